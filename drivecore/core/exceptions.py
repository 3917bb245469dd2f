"""Domain errors raised by the structural management services.

Every error carries the HTTP status it maps to and a short machine-checkable
``reason`` string. The FastAPI handler in ``drivecore.main`` turns them into
``{"detail": ..., "reason": ...}`` responses.
"""


class DriveError(Exception):
    """Base class for all drive errors."""

    status_code = 500
    reason = "internal_error"

    def __init__(self, message: str = "Internal error") -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DriveError):
    """Item or destination is missing, deleted, or not visible to the actor."""

    status_code = 404
    reason = "not_found"


class AccessDeniedError(DriveError):
    """Actor does not hold the access level the operation needs."""

    status_code = 403
    reason = "access_denied"


class CycleError(DriveError):
    """Moving a folder would place it inside itself or a descendant."""

    status_code = 400
    reason = "cycle_detected"

    def __init__(
        self,
        message: str = "Cannot move folder into itself or its descendants",
    ) -> None:
        super().__init__(message)


class DuplicateNameError(DriveError):
    """A live sibling with the same name already exists (create only)."""

    status_code = 400
    reason = "duplicate_name"

    def __init__(self, name: str, item_type: str = "item") -> None:
        self.name = name
        super().__init__(
            f"A {item_type} named '{name}' already exists in this location",
        )


class StorageError(DriveError):
    """Blob store operation failed."""

    status_code = 500
    reason = "storage_error"

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(message)
