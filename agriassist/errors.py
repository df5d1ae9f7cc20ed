# agriassist/errors.py
class AgriAssistError(Exception):
    """Base for domain errors; `status_code` is what the API answers with."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(AgriAssistError):
    status_code = 400


class Unauthorized(AgriAssistError):
    status_code = 401


class Forbidden(AgriAssistError):
    status_code = 403


class NotFound(AgriAssistError):
    status_code = 404


class Conflict(AgriAssistError):
    status_code = 409


class ExternalServiceError(AgriAssistError):
    """A managed collaborator (LLM, Stripe, email) failed."""

    status_code = 502
