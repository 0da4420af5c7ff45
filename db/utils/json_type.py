"""JSON column that is JSONB on PostgreSQL and plain JSON elsewhere (SQLite in tests)."""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator, TypeEngine


class JSONType(TypeDecorator):
    """
    Values must already be JSON-safe (see app.core.serialization); Python None
    is stored as SQL NULL so "no result" and "result is null" read back the same.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect) -> TypeEngine:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB(none_as_null=True))
        return dialect.type_descriptor(JSON(none_as_null=True))
