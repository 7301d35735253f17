"""FcmTransport against a mocked FCM HTTP v1 API."""

import json

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.config import Settings
from app.core.errors import PushCredentialsError, PushTransportError, fcm_error_from_response
from app.services.fcm import FCM_SCOPE, FcmTransport, MulticastMessage, load_service_account

TOKEN_URI = "https://oauth2.example.test/token"


@pytest.fixture(scope="module")
def rsa_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    return key, pem


@pytest.fixture
def service_account(rsa_key):
    return {
        "type": "service_account",
        "project_id": "project3776",
        "private_key_id": "kid-1",
        "private_key": rsa_key[1],
        "client_email": "fcm@project3776.iam.gserviceaccount.com",
        "token_uri": TOKEN_URI,
    }


class FakeFcm:
    """httpx.MockTransport handler: OAuth token endpoint plus messages:send."""

    def __init__(self, failures=None, down=False, timeouts=()):
        self.failures = failures or {}
        self.down = down
        self.timeouts = set(timeouts)
        self.sent: list[dict] = []
        self.auth_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if str(request.url) == TOKEN_URI:
            self.auth_requests.append(request)
            return httpx.Response(200, json={"access_token": "access-1", "expires_in": 3600})
        assert request.headers["Authorization"] == "Bearer access-1"
        body = json.loads(request.content)
        self.sent.append(body)
        token = body["message"]["token"]
        if token in self.timeouts:
            raise httpx.ReadTimeout("read timed out", request=request)
        if token in self.failures:
            status, payload = self.failures[token]
            return httpx.Response(status, json=payload)
        return httpx.Response(200, json={"name": f"projects/project3776/messages/{len(self.sent)}"})


def _transport(service_account, fake: FakeFcm) -> FcmTransport:
    return FcmTransport(service_account, client=httpx.Client(transport=httpx.MockTransport(fake)))


def _unregistered():
    return 404, {
        "error": {
            "code": 404,
            "message": "Requested entity was not found.",
            "status": "NOT_FOUND",
            "details": [
                {"@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError", "errorCode": "UNREGISTERED"}
            ],
        }
    }


class TestSendEachForMulticast:
    def test_per_token_outcomes_keep_order(self, service_account):
        fake = FakeFcm(failures={"tB": _unregistered()})
        message = MulticastMessage(title="t", body="b", tokens=["tA", "tB", "tC"], data={"count": "3"})

        batch = _transport(service_account, fake).send_each_for_multicast(message)

        assert [r.success for r in batch.responses] == [True, False, True]
        assert batch.success_count == 2
        assert batch.failure_count == 1
        assert batch.responses[1].error.code == "UNREGISTERED"
        assert batch.responses[1].error.is_invalid_token
        assert batch.responses[0].message_id == "projects/project3776/messages/1"

    def test_request_shape(self, service_account):
        fake = FakeFcm()
        message = MulticastMessage(
            title="Project3776", body="hi", tokens=["tA"], data={"type": "assignment_reminder", "count": "1"}
        )

        _transport(service_account, fake).send_each_for_multicast(message)

        assert fake.sent == [
            {
                "message": {
                    "token": "tA",
                    "notification": {"title": "Project3776", "body": "hi"},
                    "data": {"type": "assignment_reminder", "count": "1"},
                }
            }
        ]

    def test_access_token_is_cached(self, service_account):
        fake = FakeFcm()
        transport = _transport(service_account, fake)
        message = MulticastMessage(title="t", body="b", tokens=["tA", "tB"])

        transport.send_each_for_multicast(message)
        transport.send_each_for_multicast(message)

        assert len(fake.auth_requests) == 1

    def test_oauth_assertion_is_signed_with_service_account(self, service_account, rsa_key):
        fake = FakeFcm()
        _transport(service_account, fake).send_each_for_multicast(MulticastMessage(title="t", body="b", tokens=["tA"]))

        form = dict(httpx.QueryParams(fake.auth_requests[0].content.decode("utf-8")))
        claims = jwt.decode(form["assertion"], rsa_key[0].public_key(), algorithms=["RS256"], audience=TOKEN_URI)
        assert claims["iss"] == service_account["client_email"]
        assert claims["scope"] == FCM_SCOPE

    def test_unreachable_fcm_raises(self, service_account):
        fake = FakeFcm(down=True)
        with pytest.raises(PushTransportError):
            _transport(service_account, fake).send_each_for_multicast(MulticastMessage(title="t", body="b", tokens=["tA"]))

    def test_timeout_on_one_token_fails_only_that_token(self, service_account):
        fake = FakeFcm(timeouts={"tB"})
        message = MulticastMessage(title="t", body="b", tokens=["tA", "tB", "tC"])

        batch = _transport(service_account, fake).send_each_for_multicast(message)

        assert [r.success for r in batch.responses] == [True, False, True]
        assert [s["message"]["token"] for s in fake.sent] == ["tA", "tB", "tC"]
        error = batch.responses[1].error
        assert error.code == "UNAVAILABLE"
        assert error.status_code is None
        assert not error.is_invalid_token

    def test_every_token_timing_out_raises(self, service_account):
        fake = FakeFcm(timeouts={"tA", "tB"})
        with pytest.raises(PushTransportError, match="unreachable"):
            _transport(service_account, fake).send_each_for_multicast(
                MulticastMessage(title="t", body="b", tokens=["tA", "tB"])
            )

    def test_http_errors_on_every_token_still_return_a_batch(self, service_account):
        fake = FakeFcm(failures={"tA": _unregistered(), "tB": _unregistered()})
        batch = _transport(service_account, fake).send_each_for_multicast(
            MulticastMessage(title="t", body="b", tokens=["tA", "tB"])
        )
        assert batch.failure_count == 2

    def test_empty_tokens_rejected(self, service_account):
        with pytest.raises(ValueError):
            _transport(service_account, FakeFcm()).send_each_for_multicast(MulticastMessage(title="t", body="b", tokens=[]))

    def test_oauth_rejection_is_credentials_error(self, service_account):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        transport = FcmTransport(service_account, client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(PushCredentialsError):
            transport.send_each_for_multicast(MulticastMessage(title="t", body="b", tokens=["tA"]))


class TestFcmErrorParsing:
    def test_error_code_from_details(self):
        status, body = _unregistered()
        assert fcm_error_from_response(status, body).code == "UNREGISTERED"

    def test_falls_back_to_status(self):
        error = fcm_error_from_response(429, {"error": {"status": "RESOURCE_EXHAUSTED", "message": "slow down"}})
        assert error.code == "RESOURCE_EXHAUSTED"
        assert not error.is_invalid_token

    def test_no_body(self):
        assert fcm_error_from_response(503, None).code == "UNAVAILABLE"
        assert fcm_error_from_response(418, None).code == "UNKNOWN"


class TestServiceAccountLoading:
    def test_inline_json_wins(self, service_account, tmp_path):
        path = tmp_path / "key.json"
        path.write_text(json.dumps({"client_email": "file@x", "private_key": "k"}), encoding="utf-8")
        cfg = Settings(fcm_service_account_json=json.dumps(service_account), fcm_service_account_path=str(path))
        assert load_service_account(cfg)["client_email"] == service_account["client_email"]

    def test_from_path(self, service_account, tmp_path):
        path = tmp_path / "key.json"
        path.write_text(json.dumps(service_account), encoding="utf-8")
        cfg = Settings(fcm_service_account_json="", fcm_service_account_path=str(path))
        assert load_service_account(cfg)["project_id"] == "project3776"

    def test_not_configured(self):
        with pytest.raises(PushCredentialsError):
            load_service_account(Settings(fcm_service_account_json="", fcm_service_account_path=""))

    def test_missing_fields(self):
        cfg = Settings(fcm_service_account_json=json.dumps({"client_email": "x"}), fcm_service_account_path="")
        with pytest.raises(PushCredentialsError, match="private_key"):
            load_service_account(cfg)

    def test_project_id_required(self, service_account):
        del service_account["project_id"]
        with pytest.raises(PushCredentialsError):
            FcmTransport(service_account)

    def test_from_settings_uses_configured_project(self, service_account):
        cfg = Settings(fcm_project_id="other-project", fcm_service_account_json=json.dumps(service_account))
        transport = FcmTransport.from_settings(cfg)
        assert transport.send_url == "https://fcm.googleapis.com/v1/projects/other-project/messages:send"
