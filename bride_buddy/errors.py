from __future__ import annotations

from typing import Any


class BrideBuddyError(Exception):
    """Base for failures that map directly onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(BrideBuddyError):
    status_code = 400

    def __init__(self, details: list[dict[str, Any]]) -> None:
        super().__init__("Invalid input", details=details)


class Unauthenticated(BrideBuddyError):
    status_code = 401


class Forbidden(BrideBuddyError):
    status_code = 403


class TrialExpired(Forbidden):
    pass


class QuotaExceeded(BrideBuddyError):
    status_code = 429


class InternalError(BrideBuddyError):
    status_code = 500


class ModelInvocationError(BrideBuddyError):
    status_code = 500

    def __init__(self, message: str, *, upstream_status: int | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status


class ModelRateLimited(ModelInvocationError):
    status_code = 429


class ModelPaymentRequired(ModelInvocationError):
    status_code = 402
