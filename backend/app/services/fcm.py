"""
Send push notifications via Firebase Cloud Messaging (FCM HTTP v1).
Requires FCM_PROJECT_ID (or project_id inside the key) and FCM_SERVICE_ACCOUNT_PATH or FCM_SERVICE_ACCOUNT_JSON in env.

Per-token failures, HTTP errors and network errors alike, come back as SendResponse(success=False).
PushTransportError is raised only when OAuth fails or when no request reached FCM at all.
"""
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import jwt

from app.config import Settings
from app.core.constants import LOG_TOKEN_PREFIX
from app.core.errors import (
    FCM_UNAVAILABLE,
    FcmError,
    PushCredentialsError,
    PushTransportError,
    fcm_error_from_response,
)

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
_JWT_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
_ASSERTION_LIFETIME_SECONDS = 60 * 60
# refresh the access token this long before Google says it expires
_ACCESS_TOKEN_MARGIN_SECONDS = 5 * 60


@dataclass
class MulticastMessage:
    """One notification addressed to many tokens."""

    title: str
    body: str
    tokens: list[str]
    data: dict[str, str] = field(default_factory=dict)


@dataclass
class SendResponse:
    success: bool
    message_id: str | None = None
    error: FcmError | None = None


@dataclass
class BatchResponse:
    """Per-token outcomes, same order as the submitted tokens."""

    responses: list[SendResponse]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.responses if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.responses) - self.success_count


def load_service_account(settings: Settings) -> dict[str, Any]:
    """Load the service-account key from FCM_SERVICE_ACCOUNT_JSON (wins) or FCM_SERVICE_ACCOUNT_PATH."""
    raw = settings.fcm_service_account_json
    if not raw:
        path = settings.fcm_service_account_path
        if not path:
            raise PushCredentialsError("FCM not configured: set FCM_SERVICE_ACCOUNT_JSON or FCM_SERVICE_ACCOUNT_PATH")
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise PushCredentialsError(f"FCM_SERVICE_ACCOUNT_PATH read failed: {e}") from e
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PushCredentialsError(f"FCM service account is not valid JSON: {e}") from e
    missing = [k for k in ("client_email", "private_key") if not info.get(k)]
    if missing:
        raise PushCredentialsError(f"FCM service account missing {', '.join(missing)}")
    return info


class FcmTransport:
    """Multicast send over FCM HTTP v1: one request per token on a shared client."""

    def __init__(
        self,
        service_account: dict[str, Any],
        project_id: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        self.service_account = service_account
        self.project_id = project_id or service_account.get("project_id") or ""
        if not self.project_id:
            raise PushCredentialsError("FCM project id missing: set FCM_PROJECT_ID")
        self.token_uri = service_account.get("token_uri") or GOOGLE_TOKEN_URI
        self._client = client
        self._timeout = timeout
        # (access_token, expiry_epoch)
        self._access_token: tuple[str, float] | None = None

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.Client | None = None) -> "FcmTransport":
        return cls(
            load_service_account(settings),
            settings.fcm_project_id or None,
            client=client,
            timeout=settings.fcm_timeout_seconds,
        )

    @property
    def send_url(self) -> str:
        return FCM_SEND_URL.format(project_id=self.project_id)

    def _build_assertion(self, now: float) -> str:
        email = self.service_account["client_email"]
        headers = {}
        if self.service_account.get("private_key_id"):
            headers["kid"] = self.service_account["private_key_id"]
        try:
            return jwt.encode(
                {
                    "iss": email,
                    "sub": email,
                    "aud": self.token_uri,
                    "scope": FCM_SCOPE,
                    "iat": int(now),
                    "exp": int(now) + _ASSERTION_LIFETIME_SECONDS,
                },
                self.service_account["private_key"],
                algorithm="RS256",
                headers=headers or None,
            )
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise PushCredentialsError(f"FCM JWT assertion build failed: {e}") from e

    def _get_access_token(self, client: httpx.Client) -> str:
        now = time.time()
        if self._access_token and self._access_token[1] > now:
            return self._access_token[0]
        assertion = self._build_assertion(now)
        try:
            resp = client.post(
                self.token_uri,
                data={"grant_type": _JWT_GRANT_TYPE, "assertion": assertion},
            )
        except httpx.HTTPError as e:
            raise PushTransportError(f"OAuth token request failed: {e}") from e
        if resp.status_code != 200:
            raise PushCredentialsError(f"OAuth token endpoint returned {resp.status_code}: {resp.text[:200]}")
        payload = resp.json()
        token = payload.get("access_token")
        if not token:
            raise PushCredentialsError("OAuth token endpoint returned no access_token")
        expires_in = int(payload.get("expires_in") or 3600)
        self._access_token = (token, now + max(expires_in - _ACCESS_TOKEN_MARGIN_SECONDS, 0))
        return token

    def _send_one(self, client: httpx.Client, access_token: str, token: str, message: MulticastMessage) -> SendResponse:
        body = {
            "message": {
                "token": token,
                "notification": {"title": message.title, "body": message.body},
                "data": dict(message.data),
            }
        }
        try:
            resp = client.post(self.send_url, json=body, headers={"Authorization": f"Bearer {access_token}"})
        except httpx.HTTPError as e:
            logger.warning("FCM request failed for token %s...: %s", token[:LOG_TOKEN_PREFIX], e)
            return SendResponse(success=False, error=FcmError(FCM_UNAVAILABLE, str(e)))
        if 200 <= resp.status_code < 300:
            return SendResponse(success=True, message_id=resp.json().get("name"))
        try:
            error_body = resp.json()
        except ValueError:
            error_body = None
        error = fcm_error_from_response(resp.status_code, error_body)
        logger.warning("FCM returned %s for token %s...: %s", resp.status_code, token[:LOG_TOKEN_PREFIX], error)
        return SendResponse(success=False, error=error)

    def send_each_for_multicast(self, message: MulticastMessage) -> BatchResponse:
        """
        Send message to every token. Returns one SendResponse per token in submission order.
        A network error on one token fails only that token.
        Raises PushTransportError (no partial result) if OAuth fails or no request reached FCM.
        """
        if not message.tokens:
            raise ValueError("MulticastMessage.tokens must not be empty")
        owns_client = self._client is None
        client = self._client or httpx.Client(timeout=self._timeout)
        try:
            access_token = self._get_access_token(client)
            responses = [self._send_one(client, access_token, token, message) for token in message.tokens]
        finally:
            if owns_client:
                client.close()
        if all(r.error is not None and r.error.status_code is None for r in responses):
            raise PushTransportError(f"FCM unreachable: {responses[0].error.message}")
        return BatchResponse(responses=responses)
