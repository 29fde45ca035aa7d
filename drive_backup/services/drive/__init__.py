# © 2026 Crest Advisory Group LLC. All rights reserved.
# PROPRIETARY AND CONFIDENTIAL. Unauthorized copying, distribution, or use is strictly prohibited.

"""
Google Drive service: resolve credentials and upsert JSON files into a Drive folder.
OAuth2 refresh token takes priority; otherwise a service account (Shared Drives only,
unless an explicit pre-shared file id is configured).
"""

from .credentials import CredentialResolver, normalize_private_key, resolve_drive_handle
from .errors import (
    AuthenticationError,
    ConfigurationError,
    DriveBackupError,
    NotFoundError,
    QuotaError,
    RemoteApiError,
)
from .models import AuthStrategy, DriveHandle, UploadAction, UploadResult, UploadTarget
from .uploader import DriveUpserter, upsert

__all__ = [
    "AuthStrategy",
    "AuthenticationError",
    "ConfigurationError",
    "CredentialResolver",
    "DriveBackupError",
    "DriveHandle",
    "DriveUpserter",
    "NotFoundError",
    "QuotaError",
    "RemoteApiError",
    "UploadAction",
    "UploadResult",
    "UploadTarget",
    "normalize_private_key",
    "resolve_drive_handle",
    "upsert",
]
