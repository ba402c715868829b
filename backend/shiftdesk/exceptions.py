class ShiftDeskError(Exception):
    status_code = 400

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ShiftDeskError):
    status_code = 404


class PermissionDeniedError(ShiftDeskError):
    status_code = 403


class ValidationFailedError(ShiftDeskError):
    status_code = 422


class ConflictError(ShiftDeskError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """A swap request was asked to move out of a terminal status."""

    def __init__(self, request_id: int, status: str, action: str):
        super().__init__(
            f"Swap request {request_id} is {status}; cannot {action}",
            {"request_id": request_id, "status": status, "action": action},
        )
