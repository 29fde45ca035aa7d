# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Credential resolution: pick an auth strategy and return an authorized Drive v3 handle.

Strategy chain (first applicable wins):
  1. OAuth2 refresh token (GOOGLE_OAUTH_CLIENT_ID + _SECRET + _REFRESH_TOKEN, all non-empty)
  2. Service account JSON blob (GOOGLE_CREDENTIALS_JSON)
  3. Service account email + key (GOOGLE_CLIENT_EMAIL + GOOGLE_PRIVATE_KEY)
  4. Service account key file (GOOGLE_CREDENTIALS_FILE, default ./google.json)

The token is exchanged before the handle is returned so bad credentials fail here,
not halfway through an upload.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from drive_backup.config.logging_config import setup_logger
from drive_backup.config.settings import config

from .errors import (
    AuthenticationError,
    ConfigurationError,
    RemoteApiError,
    authentication_error_from,
)
from .models import (
    DEFAULT_TOKEN_URI,
    OAUTH2_IDENTITY_LABEL,
    AuthStrategy,
    CredentialBundle,
    DriveHandle,
    OAuth2Bundle,
    ServiceAccountBundle,
)

logger = setup_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]


# ---------------------------------------------------------------------------
#  Key material helpers
# ---------------------------------------------------------------------------


def normalize_private_key(key: str | None) -> str | None:
    """Turn literal backslash-n sequences into newlines when the key has no real newline.

    Keys that already contain a newline are returned unchanged, so this is idempotent.
    """
    if not key:
        return key
    if "\n" in key:
        return key
    return key.replace("\\n", "\n")


def _bundle_from_info(info: dict, impersonate: str | None) -> ServiceAccountBundle | None:
    """Service account bundle from a parsed key dict; None if email or key is missing."""
    email = (info.get("client_email") or "").strip()
    key = normalize_private_key(info.get("private_key") or "")
    if not email or not key:
        return None
    return ServiceAccountBundle(
        email=email,
        private_key=key,
        impersonate=impersonate or None,
        token_uri=info.get("token_uri") or DEFAULT_TOKEN_URI,
    )


# ---------------------------------------------------------------------------
#  Strategies
# ---------------------------------------------------------------------------


class CredentialStrategy(Protocol):
    """A single way of producing credential material from settings."""

    name: str

    def load(self, settings: Any) -> CredentialBundle | None:
        """Return a bundle if this strategy applies to the settings, else None."""
        ...


class OAuth2RefreshTokenStrategy:
    name = "oauth2_refresh_token"

    def load(self, settings: Any) -> OAuth2Bundle | None:
        client_id = (settings.GOOGLE_OAUTH_CLIENT_ID or "").strip()
        client_secret = (settings.GOOGLE_OAUTH_CLIENT_SECRET or "").strip()
        refresh_token = (settings.GOOGLE_OAUTH_REFRESH_TOKEN or "").strip()
        if not (client_id and client_secret and refresh_token):
            return None
        return OAuth2Bundle(client_id=client_id, client_secret=client_secret, refresh_token=refresh_token)


class ServiceAccountJsonStrategy:
    name = "service_account_json"

    def load(self, settings: Any) -> ServiceAccountBundle | None:
        raw = (settings.GOOGLE_CREDENTIALS_JSON or "").strip()
        if not raw:
            return None
        try:
            info = json.loads(raw)
        except ValueError as e:
            raise ConfigurationError(f"GOOGLE_CREDENTIALS_JSON is not valid JSON: {e}") from e
        if not isinstance(info, dict):
            raise ConfigurationError("GOOGLE_CREDENTIALS_JSON must be a JSON object.")
        return _bundle_from_info(info, settings.GOOGLE_IMPERSONATE_EMAIL)


class ServiceAccountPairStrategy:
    name = "service_account_env_pair"

    def load(self, settings: Any) -> ServiceAccountBundle | None:
        info = {
            "client_email": settings.GOOGLE_CLIENT_EMAIL,
            "private_key": settings.GOOGLE_PRIVATE_KEY,
        }
        return _bundle_from_info(info, settings.GOOGLE_IMPERSONATE_EMAIL)


class ServiceAccountFileStrategy:
    name = "service_account_file"

    def __init__(self, base_dir: Path | None = None):
        self._base_dir = base_dir

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if path.is_absolute():
            return path
        return (self._base_dir or Path.cwd()) / path

    def load(self, settings: Any) -> ServiceAccountBundle | None:
        raw = (settings.GOOGLE_CREDENTIALS_FILE or "").strip()
        if not raw:
            return None
        path = self._resolve_path(raw)
        if not path.is_file():
            return None
        try:
            info = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read service account file {path}: {e}") from e
        if not isinstance(info, dict):
            raise ConfigurationError(f"Service account file {path} must contain a JSON object.")
        return _bundle_from_info(info, settings.GOOGLE_IMPERSONATE_EMAIL)


DEFAULT_STRATEGIES: tuple[CredentialStrategy, ...] = (
    OAuth2RefreshTokenStrategy(),
    ServiceAccountJsonStrategy(),
    ServiceAccountPairStrategy(),
    ServiceAccountFileStrategy(),
)


# ---------------------------------------------------------------------------
#  google-auth glue
# ---------------------------------------------------------------------------


def _build_credentials(bundle: CredentialBundle):
    """google-auth credentials for a bundle. Malformed keys surface as AuthenticationError."""
    if isinstance(bundle, OAuth2Bundle):
        return Credentials(
            token=None,
            refresh_token=bundle.refresh_token,
            client_id=bundle.client_id,
            client_secret=bundle.client_secret,
            token_uri=bundle.token_uri,
            scopes=SCOPES,
        )
    info = {
        "type": "service_account",
        "client_email": bundle.email,
        "private_key": bundle.private_key,
        "token_uri": bundle.token_uri,
    }
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES, subject=bundle.impersonate)
    except ValueError as e:
        raise AuthenticationError(
            f"Malformed service account private key for {bundle.email}: {e}",
            strategy=AuthStrategy.SERVICE_ACCOUNT.value,
        ) from e


def _authorize(credentials, strategy: AuthStrategy) -> None:
    """Exchange for an access token now; invalid_grant and friends fail here."""
    try:
        credentials.refresh(Request())
    except RefreshError as e:
        raise authentication_error_from(e, strategy.value) from e
    except TransportError as e:
        raise RemoteApiError(f"Token endpoint unreachable: {e}") from e


def _build_drive_client(credentials):
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


# ---------------------------------------------------------------------------
#  CredentialResolver
# ---------------------------------------------------------------------------


class CredentialResolver:
    """Runs the strategy chain and produces an authorized DriveHandle."""

    def __init__(self, strategies: tuple[CredentialStrategy, ...] | list[CredentialStrategy] | None = None):
        self._strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def select(self, settings: Any) -> CredentialBundle:
        """First applicable strategy's bundle. ConfigurationError if none applies."""
        for strategy in self._strategies:
            bundle = strategy.load(settings)
            if bundle is not None:
                logger.debug("Credential strategy selected: %s", strategy.name)
                return bundle
        raise ConfigurationError(
            "No credentials. Set OAuth2 (GOOGLE_OAUTH_CLIENT_ID/SECRET/REFRESH_TOKEN) or a service account "
            "(GOOGLE_CREDENTIALS_JSON, GOOGLE_CLIENT_EMAIL + GOOGLE_PRIVATE_KEY, or GOOGLE_CREDENTIALS_FILE)."
        )

    def resolve(self, settings: Any = None) -> DriveHandle:
        settings = settings if settings is not None else config
        bundle = self.select(settings)
        strategy = bundle.kind
        credentials = _build_credentials(bundle)
        _authorize(credentials, strategy)

        if isinstance(bundle, OAuth2Bundle):
            identity = OAUTH2_IDENTITY_LABEL
            logger.info("Using OAuth2 user credentials (files owned by the consenting user)")
        else:
            identity = bundle.email
            logger.info(
                "Using service account: %s%s",
                bundle.email,
                f" (impersonating {bundle.impersonate})" if bundle.impersonate else "",
            )

        return DriveHandle(
            client=_build_drive_client(credentials),
            strategy_tag=strategy,
            identity_label=identity,
            credentials=credentials,
        )


def resolve_drive_handle(settings: Any = None) -> DriveHandle:
    """Resolve with the default strategy chain."""
    return CredentialResolver().resolve(settings)
