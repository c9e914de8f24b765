"""
Typed errors for membership, authorization and activity operations.

They subclass HTTPException so services can raise them directly and FastAPI
renders them; the handler in app.main adds the stable `code` to the body.
"""

from fastapi import HTTPException, status
from typing import Optional


class GroupError(HTTPException):
    default_code: str = "error"
    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, reason: Optional[str] = None):
        self.code = code or self.default_code
        self.reason = reason
        self.message = message or self.default_message
        super().__init__(status_code=self.default_status, detail=self.message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class Forbidden(GroupError):
    default_code = "forbidden"
    default_status = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action in this group"


class AlreadyMember(GroupError):
    default_code = "already_member"
    default_status = status.HTTP_409_CONFLICT
    default_message = "This user is already a member of the group"


class NotFound(GroupError):
    default_code = "not_found"
    default_status = status.HTTP_404_NOT_FOUND
    default_message = "The requested group or member does not exist"


class InvalidRole(GroupError):
    default_code = "invalid_role"
    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Role must be one of: admin, member. Use leadership transfer to appoint a new leader"


class InvalidActivity(GroupError):
    default_code = "invalid_activity"
    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Activity entry is malformed or uses an unknown action"


class AuditWriteFailed(GroupError):
    """The audit append failed after the mutation committed. Logged, never returned to the caller."""
    default_code = "audit_write_failed"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to record group activity"


class StoreError(GroupError):
    default_code = "store_error"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "The membership store rejected the request"
