from db.models.automation import Automation
from db.models.execution import Execution, ExecutionStatus
from db.models.execution_log import ExecutionLog
from db.models.tool_call import ToolCall

__all__ = ["Automation", "Execution", "ExecutionStatus", "ExecutionLog", "ToolCall"]
