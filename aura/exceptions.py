"""
Exceptions raised by the sync engine and its command surface
"""
from typing import Optional, Any

class AuraException(Exception):
    """Base exception for all dashboard backend errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }

class RecordNotFoundError(AuraException):
    """Record not found in the local store"""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code="RECORD_NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)}
        )

class ServerNotFoundError(RecordNotFoundError):
    def __init__(self, server_id: Any):
        super().__init__("Server", server_id)
        self.server_id = server_id

class NodeNotFoundError(RecordNotFoundError):
    def __init__(self, node_id: Any):
        super().__init__("Node", node_id)
        self.node_id = node_id

class AlertNotFoundError(RecordNotFoundError):
    def __init__(self, alert_id: Any):
        super().__init__("Alert", alert_id)
        self.alert_id = alert_id

class ScheduleNotFoundError(RecordNotFoundError):
    def __init__(self, schedule_id: Any):
        super().__init__("Schedule", schedule_id)
        self.schedule_id = schedule_id

class CommandError(AuraException):
    """A user-initiated hardware command was not acknowledged by the server"""

    def __init__(self, node_name: str, address: str, state: str):
        super().__init__(
            message=f"Failed to set {node_name} to {state} via {address}",
            error_code="COMMAND_FAILED",
            details={"node": node_name, "address": address, "state": state}
        )
