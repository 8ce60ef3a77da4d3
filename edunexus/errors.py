"""Domain error taxonomy shared by services and the HTTP layer.

Services raise these; ``edunexus.main`` renders them as JSON with the
matching status code. Request-shape problems caught by pydantic keep
FastAPI's default 422 response.
"""

from typing import Optional


class LmsError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(LmsError):
    """Malformed or out-of-range input, detected before any mutation."""

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class Unauthenticated(LmsError):
    status_code = 401
    code = "unauthenticated"


class Forbidden(LmsError):
    status_code = 403
    code = "forbidden"


class NotFound(LmsError):
    status_code = 404
    code = "not_found"


class Conflict(LmsError):
    status_code = 409
    code = "conflict"


class UploadFailed(LmsError):
    status_code = 502
    code = "upload_failed"


class InternalError(LmsError):
    status_code = 500
    code = "internal_error"
