"""
Drive backup domain models

Pure data structures with no Google client dependencies, so tests and adapters
can build targets/results without importing googleapiclient.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

OAUTH2_IDENTITY_LABEL = "OAuth2 (refresh token)"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


class AuthStrategy(str, Enum):
    """Which credential strategy produced a DriveHandle."""

    SERVICE_ACCOUNT = "service_account"
    OAUTH2 = "oauth2"


class UploadAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ServiceAccountBundle:
    """Service account key material (JWT bearer flow)."""

    email: str
    private_key: str = field(repr=False)
    impersonate: str | None = None  # domain-wide delegation subject
    token_uri: str = DEFAULT_TOKEN_URI

    @property
    def kind(self) -> AuthStrategy:
        return AuthStrategy.SERVICE_ACCOUNT


@dataclass(frozen=True)
class OAuth2Bundle:
    """OAuth2 client + long-lived refresh token (user account with quota)."""

    client_id: str
    client_secret: str = field(repr=False)
    refresh_token: str = field(repr=False)
    token_uri: str = DEFAULT_TOKEN_URI

    @property
    def kind(self) -> AuthStrategy:
        return AuthStrategy.OAUTH2


CredentialBundle = ServiceAccountBundle | OAuth2Bundle


@dataclass
class DriveHandle:
    """Authorized Drive v3 client for a single invocation. Not shared across calls."""

    client: Any
    strategy_tag: AuthStrategy
    identity_label: str
    credentials: Any = field(default=None, repr=False)

    @property
    def is_service_account(self) -> bool:
        return self.strategy_tag == AuthStrategy.SERVICE_ACCOUNT


@dataclass(frozen=True)
class UploadTarget:
    """Where to write. file_id bypasses name search entirely."""

    folder_id: str
    file_name: str
    file_id: str | None = None
    shared_drive_id: str | None = None


@dataclass(frozen=True)
class UploadResult:
    action: UploadAction
    remote_file_id: str
    content_hash: str  # sha256 hex of the exact uploaded bytes
    byte_size: int
    file_name: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["action"] = self.action.value
        return data


@dataclass
class FolderLocation:
    meta: dict
    is_shared_drive: bool
