# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Error taxonomy for credential resolution and Drive upserts.

Every failure reaching a caller is one of the DriveBackupError subclasses below, carrying
a message, the provider status code when one exists, and optional remediation hints.
Boundary adapters (FastAPI app, CLI) map them to HTTP status codes / exit codes.
"""

from __future__ import annotations

import json
import re
from typing import Any

from google.auth.exceptions import GoogleAuthError, RefreshError
from googleapiclient.errors import HttpError

SERVICE_ACCOUNT = "service_account"
OAUTH2 = "oauth2"

_AUTH_FAILURE_PATTERN = re.compile(r"invalid_grant|unauthorized_client|jwt|signature|malformed", re.IGNORECASE)

OAUTH2_HINTS = [
    "OAuth2: revoke and re-grant consent to obtain a new refresh token.",
    "Make sure the OAuth consent screen is published (Publishing status: In production); "
    "testing-mode refresh tokens expire after 7 days.",
    "Check the refresh token was not revoked manually (Google Account > Security > Third-party access).",
    "Check GOOGLE_OAUTH_CLIENT_ID/SECRET belong to the same project that issued the refresh token.",
]

SERVICE_ACCOUNT_HINTS = [
    "Service account: rotate the key and download a fresh JSON key (IAM & Admin > Service Accounts).",
    "Check private_key keeps its line breaks; in env vars replace literal \\n with real newlines.",
    "Share the destination Drive folder with the service account email as Editor / Content manager.",
    "For domain-wide delegation set GOOGLE_IMPERSONATE_EMAIL to a domain user and grant the Drive scope.",
    "Make sure the server clock is in sync (NTP); skew over 5 minutes invalidates the JWT.",
]

QUOTA_HINTS = [
    "Create a Shared Drive and add the service account as Content manager.",
    "Or use OAuth2 (GOOGLE_OAUTH_CLIENT_ID/SECRET/REFRESH_TOKEN) to upload into your own My Drive.",
    "Or pre-create the file, share it with the service account and set GOOGLE_DRIVE_FILE_ID to update it.",
]


class DriveBackupError(Exception):
    """Base class for classified failures."""

    kind = "DriveBackupError"

    def __init__(self, message: str, status_code: int | None = None, hints: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.hints = list(hints) if hints else []

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "error": self.message,
            "code": self.status_code,
            "hint": self.hints or None,
        }


class ConfigurationError(DriveBackupError):
    """No usable credential material, or required destination settings missing."""

    kind = "ConfigurationError"


class AuthenticationError(DriveBackupError):
    """The identity provider rejected the credential."""

    kind = "AuthenticationError"

    def __init__(self, message: str, strategy: str, status_code: int | None = None):
        super().__init__(message, status_code=status_code, hints=hints_for(message, strategy))
        self.strategy = strategy


class QuotaError(DriveBackupError):
    """Service account targeting a My Drive folder without an explicit file id."""

    kind = "QuotaError"

    def __init__(self, message: str, folder_meta: dict | None = None):
        super().__init__(message, status_code=403, hints=QUOTA_HINTS)
        self.folder_meta = folder_meta or {}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["folder_meta"] = self.folder_meta
        return data


class NotFoundError(DriveBackupError):
    """Strict no-create policy active and no file matched."""

    kind = "NotFoundError"

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class RemoteApiError(DriveBackupError):
    """Any other Drive API failure (permissions, rate limit, network)."""

    kind = "RemoteApiError"

    def __init__(self, message: str, status_code: int | None = None, reason: str = ""):
        super().__init__(message, status_code=status_code)
        self.reason = reason


# ---------------------------------------------------------------------------
#  Classification helpers
# ---------------------------------------------------------------------------


def looks_like_auth_failure(message: str | None) -> bool:
    """True if the message matches a known credential-rejection pattern."""
    return bool(_AUTH_FAILURE_PATTERN.search(message or ""))


def remediation_hints(strategy: str) -> list[str]:
    """Strategy-specific remediation steps for credential failures."""
    if strategy == OAUTH2:
        return list(OAUTH2_HINTS)
    return list(SERVICE_ACCOUNT_HINTS)


def hints_for(message: str | None, strategy: str) -> list[str]:
    """Hints only when the message text looks like an auth failure; otherwise empty."""
    if not looks_like_auth_failure(message):
        return []
    return remediation_hints(strategy)


def _parse_http_error(exc: HttpError) -> tuple[str, str]:
    """Return (message, reason) from a Drive API error body; falls back to str(exc)."""
    content = getattr(exc, "content", None) or b""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        body = json.loads(content) if content.strip() else {}
    except ValueError:
        body = {}
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        details = error.get("errors") or [{}]
        reason = details[0].get("reason", "") if details else ""
        return error.get("message") or str(exc), reason
    if isinstance(error, str):
        # Token endpoint shape: {"error": "invalid_grant", "error_description": "..."}
        description = body.get("error_description", "")
        return f"{error}: {description}" if description else error, error
    return (content[:200] if content.strip() else str(exc)), ""


def extract_error_message(exc: BaseException) -> tuple[str, int | None]:
    """Best human-readable message and status code for any exception."""
    if isinstance(exc, DriveBackupError):
        return exc.message, exc.status_code
    if isinstance(exc, HttpError):
        message, _ = _parse_http_error(exc)
        return message, getattr(exc.resp, "status", None)
    if isinstance(exc, RefreshError) and exc.args:
        # RefreshError args: (message, response_body)
        return str(exc.args[0]), None
    return str(exc) or type(exc).__name__, None


def remote_api_error_from_http(exc: HttpError, action: str = "") -> RemoteApiError:
    """Wrap an HttpError keeping the provider status code and message intact."""
    message, reason = _parse_http_error(exc)
    status = getattr(exc.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    prefix = f"{action}: " if action else ""
    return RemoteApiError(f"{prefix}{message}", status_code=status, reason=reason)


def authentication_error_from(exc: GoogleAuthError | ValueError, strategy: str) -> AuthenticationError:
    """Wrap an auth-library failure into an AuthenticationError with strategy hints."""
    message, status = extract_error_message(exc)
    return AuthenticationError(message, strategy=strategy, status_code=status)


def http_status_for(error: BaseException) -> int:
    """Map a classified error to the HTTP status a boundary adapter should return."""
    if isinstance(error, ConfigurationError):
        return 400
    if isinstance(error, QuotaError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, RemoteApiError):
        if error.status_code and 400 <= error.status_code < 500:
            return error.status_code
        return 502
    return 500
