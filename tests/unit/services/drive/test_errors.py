"""
Unit tests for error classification: auth-failure detection, strategy hints,
HttpError parsing and the HTTP status mapping used by the API layer.
"""

import pytest
from google.auth.exceptions import RefreshError

from drive_backup.services.drive.errors import (
    OAUTH2_HINTS,
    SERVICE_ACCOUNT_HINTS,
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    QuotaError,
    RemoteApiError,
    extract_error_message,
    hints_for,
    http_status_for,
    looks_like_auth_failure,
    remote_api_error_from_http,
)
from tests.helpers import make_http_error


class TestAuthFailureDetection:
    @pytest.mark.parametrize(
        "message",
        [
            "invalid_grant: Token has been expired or revoked.",
            "unauthorized_client: Client is unauthorized to retrieve access tokens",
            "Invalid JWT Signature.",
            "No key could be detected. Malformed PEM",
        ],
    )
    def test_known_patterns_match(self, message):
        assert looks_like_auth_failure(message)

    @pytest.mark.parametrize("message", ["", None, "Rate Limit Exceeded", "File not found"])
    def test_other_messages_do_not_match(self, message):
        assert not looks_like_auth_failure(message)

    def test_hints_follow_strategy(self):
        assert hints_for("invalid_grant", "oauth2") == OAUTH2_HINTS
        assert hints_for("invalid_grant", "service_account") == SERVICE_ACCOUNT_HINTS

    def test_no_hints_for_unrelated_failures(self):
        assert hints_for("quota exceeded", "oauth2") == []

    def test_authentication_error_attaches_hints(self):
        err = AuthenticationError("invalid_grant: bad", strategy="oauth2")
        assert err.to_dict()["hint"] == OAUTH2_HINTS
        assert err.to_dict()["kind"] == "AuthenticationError"


class TestHttpErrorParsing:
    def test_status_and_message_are_kept(self):
        err = remote_api_error_from_http(make_http_error(429, "Rate Limit Exceeded", "rateLimitExceeded"), "files.list")
        assert err.status_code == 429
        assert err.message == "files.list: Rate Limit Exceeded"
        assert err.reason == "rateLimitExceeded"

    def test_extract_message_from_http_error(self):
        message, status = extract_error_message(make_http_error(404, "File not found: abc."))
        assert message == "File not found: abc."
        assert status == 404

    def test_extract_message_from_refresh_error(self):
        message, status = extract_error_message(RefreshError("invalid_grant: expired", {"error": "invalid_grant"}))
        assert message == "invalid_grant: expired"
        assert status is None

    def test_extract_message_from_plain_exception(self):
        assert extract_error_message(RuntimeError("boom")) == ("boom", None)


class TestHttpStatusMapping:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConfigurationError("no creds"), 400),
            (QuotaError("my drive"), 403),
            (NotFoundError("missing"), 404),
            (AuthenticationError("invalid_grant", strategy="oauth2"), 401),
            (RemoteApiError("backend error", status_code=500), 502),
            (RemoteApiError("network down"), 502),
            (RemoteApiError("forbidden", status_code=403), 403),
            (RuntimeError("unexpected"), 500),
        ],
    )
    def test_mapping(self, error, expected):
        assert http_status_for(error) == expected

    def test_quota_error_serializes_folder_meta(self):
        err = QuotaError("my drive", folder_meta={"id": "f1"})
        data = err.to_dict()
        assert data["folder_meta"] == {"id": "f1"}
        assert data["code"] == 403
        assert data["hint"]
