"""Error payloads shared by the coaching operations.

Rate-limit rejection is an expected outcome and is returned as a value, not
raised; see ``services.rate_limiter.RateLimitDecision``.
"""

from __future__ import annotations

from typing import Any

VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_INPUT = "INVALID_INPUT"
RATE_LIMITED = "RATE_LIMITED"


class CoachingInputError(ValueError):
    """Caller supplied input the core refuses to coerce."""

    def __init__(self, message: str, code: str = VALIDATION_ERROR):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"detail": {"code": self.code, "message": self.message}}


def rate_limited_payload(retry_after_seconds: int) -> dict[str, Any]:
    return {
        "detail": {
            "code": RATE_LIMITED,
            "message": "Rate limit exceeded",
        },
        "retry_after_seconds": retry_after_seconds,
    }
