from .json_type import JSONType
from .uuid_type import UUIDType
from .time import utcnow

__all__ = ["JSONType", "UUIDType", "utcnow"]
