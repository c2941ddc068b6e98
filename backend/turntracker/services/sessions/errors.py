class TurnTrackerError(Exception):
    """Base class for business-rule failures reported to API callers."""

    status_code = 500


class ValidationError(TurnTrackerError):
    status_code = 400


class NotFoundError(TurnTrackerError):
    status_code = 404


class ForbiddenError(TurnTrackerError):
    status_code = 403


class ConflictError(TurnTrackerError):
    # The web client treats a reused code as a plain bad request
    status_code = 400


class InvalidTurnError(TurnTrackerError):
    status_code = 400


class NotificationDeliveryError(Exception):
    """Raised by push senders; never leaves the notifier."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def endpoint_gone(self):
        return self.status_code in (404, 410)
