"""
Marketplace errors.

Every error raised by the lifecycle, budget and payment services derives from
MarketplaceError. The errors blueprint turns them into JSON notices at the
action boundary; nothing here is retried automatically.
"""


class MarketplaceError(Exception):
    code = "error"
    status_code = 400
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(MarketplaceError):
    code = "validation_error"
    status_code = 400
    default_message = "Please check the highlighted fields."


class PermissionDenied(MarketplaceError):
    code = "permission_denied"
    status_code = 403
    default_message = "You are not allowed to do that."


class NotFound(MarketplaceError):
    code = "not_found"
    status_code = 404
    default_message = "Not found."


class InvalidTransition(MarketplaceError):
    code = "invalid_transition"
    status_code = 409
    default_message = "This item changed in the meantime. Refresh and try again."


class TaskNoLongerOpen(InvalidTransition):
    code = "task_no_longer_open"
    default_message = "This task is no longer open."


class DuplicateProposal(MarketplaceError):
    code = "duplicate_proposal"
    status_code = 409
    default_message = "You have already submitted an offer for this task."


class ExternalServiceError(MarketplaceError):
    code = "external_service_error"
    status_code = 502
    default_message = "A service we depend on is unavailable. Please try again."
