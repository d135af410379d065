"""Custom exception hierarchy for DocVault.

Every expected, caller-recoverable outcome of a core operation is one of the
exceptions below. Storage and transport failures are the only unexpected
errors and surface as a generic 500.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"

    # Entity missing OR caller lacks access. Merged on purpose so an
    # unauthorized caller cannot test for existence.
    NOT_FOUND_OR_DENIED = "not_found_or_denied"

    CONFLICT = "conflict"
    NOT_EMPTY = "not_empty"
    CIRCULAR_REFERENCE = "circular_reference"
    FORBIDDEN_ROLE = "forbidden_role"

    UNAUTHORIZED = "unauthorized"
    INTERNAL_ERROR = "internal_error"


class VaultException(Exception):
    """
    Base exception for all DocVault errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class ValidationError(VaultException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class NotFoundError(VaultException):
    """Entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: Any):
        super().__init__(
            f"{self.entity} not found: {entity_id}",
            ErrorCode.NOT_FOUND,
            status_code=404,
            details={"id": entity_id}
        )


class FolderNotFoundError(NotFoundError):
    entity = "Folder"


class DocumentNotFoundError(NotFoundError):
    entity = "Document"


class RuleNotFoundError(NotFoundError):
    entity = "Classification rule"


class LabelNotFoundError(NotFoundError):
    entity = "Label"


class GrantNotFoundError(VaultException):
    """No permission grant exists for the (folder, user) pair."""

    def __init__(self, folder_id: int, user_id: str):
        super().__init__(
            "Permission not found for this user",
            ErrorCode.NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id, "user_id": user_id}
        )


class NotFoundOrDeniedError(VaultException):
    """Entity is absent or the caller has no access to it.

    Rendered as 404 (not 403) so callers cannot tell the two apart.
    """

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} not found or access denied",
            ErrorCode.NOT_FOUND_OR_DENIED,
            status_code=404,
            details={"id": entity_id}
        )


class ForbiddenRoleError(VaultException):
    """Caller can see the entity but their role does not allow the action."""

    def __init__(self, message: str = "Only the folder owner can perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN_ROLE,
            status_code=403,
        )


class ConflictError(VaultException):
    """Duplicate name or keyword within its uniqueness scope."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class FolderNotEmptyError(VaultException):
    """Non-force delete on a folder that still has children or documents."""

    def __init__(self, folder_id: int, subfolder_count: int, document_count: int):
        super().__init__(
            "Cannot delete folder: contains subfolders or documents. "
            "Use force=true to delete recursively.",
            ErrorCode.NOT_EMPTY,
            status_code=409,
            details={
                "folder_id": folder_id,
                "subfolder_count": subfolder_count,
                "document_count": document_count,
            }
        )


class CircularReferenceError(VaultException):
    """Moving the folder would make it its own ancestor."""

    def __init__(
        self,
        folder_id: int,
        target_parent_id: int,
        message: str = "Cannot move folder into itself or one of its subfolders",
    ):
        super().__init__(
            message,
            ErrorCode.CIRCULAR_REFERENCE,
            status_code=400,
            details={"folder_id": folder_id, "target_parent_id": target_parent_id}
        )


class AuthenticationError(VaultException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )
