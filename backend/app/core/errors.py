"""
Centralized error types for push delivery.
Constants and a small classifier so the transport and dispatcher stay thin and new FCM codes are easy to add.
"""
from __future__ import annotations

# ---------------------------------------------------------------------------
# FCM v1 error codes (google.firebase.fcm.v1.FcmError.errorCode)
# ---------------------------------------------------------------------------

FCM_UNREGISTERED = "UNREGISTERED"
FCM_INVALID_ARGUMENT = "INVALID_ARGUMENT"
FCM_SENDER_ID_MISMATCH = "SENDER_ID_MISMATCH"
FCM_QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
FCM_UNAVAILABLE = "UNAVAILABLE"
FCM_INTERNAL = "INTERNAL"
FCM_THIRD_PARTY_AUTH_ERROR = "THIRD_PARTY_AUTH_ERROR"
FCM_UNKNOWN = "UNKNOWN"

# Codes meaning the token itself is dead (as opposed to a transient server-side failure)
INVALID_TOKEN_CODES = frozenset({FCM_UNREGISTERED, FCM_INVALID_ARGUMENT, FCM_SENDER_ID_MISMATCH})

# Fallback when the error body carries no FCM detail: HTTP status -> code
_STATUS_TO_CODE: dict[int, str] = {
    400: FCM_INVALID_ARGUMENT,
    401: FCM_THIRD_PARTY_AUTH_ERROR,
    403: FCM_SENDER_ID_MISMATCH,
    404: FCM_UNREGISTERED,
    429: FCM_QUOTA_EXCEEDED,
    500: FCM_INTERNAL,
    503: FCM_UNAVAILABLE,
}


class PushTransportError(Exception):
    """The multicast send as a whole failed (network down, auth endpoint rejected us, ...)."""


class PushCredentialsError(PushTransportError):
    """FCM is not configured or the service-account key cannot be used."""


class FcmError:
    """Per-token failure detail reported by FCM. Not raised; carried on SendResponse."""

    __slots__ = ("code", "message", "status_code")

    def __init__(self, code: str, message: str = "", status_code: int | None = None):
        self.code = code
        self.message = message
        self.status_code = status_code

    @property
    def is_invalid_token(self) -> bool:
        return self.code in INVALID_TOKEN_CODES

    def __repr__(self) -> str:
        return f"FcmError(code={self.code!r}, status_code={self.status_code!r}, message={self.message!r})"

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code


def fcm_error_from_response(status_code: int, body: dict | None) -> FcmError:
    """
    Build an FcmError from an FCM v1 error response.
    Prefers details[].errorCode (FcmError type), then error.status, then a status-code mapping.
    """
    error = (body or {}).get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return FcmError(_STATUS_TO_CODE.get(status_code, FCM_UNKNOWN), "", status_code)
    message = error.get("message") or ""
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            return FcmError(detail["errorCode"], message, status_code)
    code = error.get("status") or _STATUS_TO_CODE.get(status_code, FCM_UNKNOWN)
    return FcmError(code, message, status_code)
