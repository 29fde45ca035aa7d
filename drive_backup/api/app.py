"""
HTTP adapter for the Drive JSON backup.

Endpoints:
    GET  /health
    GET  /backup              upload DATA_PATH (or ?file=name.json under DATA_DIR); ?test=connection only checks access
    POST /backup?name=x.json  upload the JSON request body
    GET  /backup/bulk         upload every *.json in DATA_DIR
    GET  /backup/url          fetch SOURCE_URL (last good payload as fallback) and upload it
    GET  /debug/folder        folder metadata (?id= overrides GOOGLE_DRIVE_FOLDER_ID)
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from fastapi import Body, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from drive_backup.config.logging_config import setup_logger
from drive_backup.config.settings import config
from drive_backup.services.backup_service import BackupService
from drive_backup.services.drive.errors import (
    ConfigurationError,
    DriveBackupError,
    extract_error_message,
    http_status_for,
)
from drive_backup.services.sources import (
    FallbackSource,
    HttpJsonSource,
    LastKnownGoodStore,
    LocalFileSource,
    PayloadSource,
    list_json_files,
    resolve_json_path,
)

logger = setup_logger(__name__)
app = FastAPI(title="Drive JSON Backup")

# Last successfully fetched upstream payload, served when SOURCE_URL is down.
last_good_payload = LastKnownGoodStore()


class HealthResponse(BaseModel):
    """Liveness plus the effective data locations"""
    ok: bool
    time: str
    data_path: str
    data_dir: str
    folder_id: str


class BackupResponse(BaseModel):
    """Result of a single upsert"""
    success: bool = True
    file: str
    action: str
    file_id: str
    content_hash: str
    byte_size: int
    folder_id: str
    auth_mode: str
    identity: str
    from_fallback: bool = False


class BulkResponse(BaseModel):
    """Per-file results of a bulk run; failed entries carry error/kind"""
    success: bool
    folder_id: str
    auth_mode: str
    identity: str
    failed: int
    results: List[Dict[str, Any]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_service() -> BackupService:
    return BackupService(config)


def _error_response(error: BaseException, endpoint: str) -> JSONResponse:
    """Translate any failure into the JSON error body; classified errors keep kind/code/hints."""
    message, code = extract_error_message(error)
    if isinstance(error, DriveBackupError):
        body = error.to_dict()
        status = http_status_for(error)
    else:
        body = {"kind": type(error).__name__, "error": message, "code": code, "hint": None}
        # Undecodable file content is a problem with the input, not the server
        status = 400 if isinstance(error, UnicodeDecodeError) else 500
    body.update({"success": False, "endpoint": endpoint, "timestamp": _now()})
    logger.error("%s failed: %s (%s)", endpoint, message, body["kind"])
    return JSONResponse(status_code=status, content=body)


def _not_found(message: str, endpoint: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": message, "endpoint": endpoint, "timestamp": _now()},
    )


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint"""
    return HealthResponse(
        ok=True,
        time=_now(),
        data_path=config.DATA_PATH,
        data_dir=config.DATA_DIR,
        folder_id=config.GOOGLE_DRIVE_FOLDER_ID,
    )


@app.get("/backup", response_model=BackupResponse)
def backup_file(file: Optional[str] = None, test: Optional[str] = None):
    """
    Upload one local JSON file.

    - **file**: name under DATA_DIR or absolute path; defaults to DATA_PATH
    - **test**: `connection` to only verify credentials and folder access
    """
    service = _get_service()
    if (test or "").strip().lower() == "connection":
        try:
            return JSONResponse(content=service.check_connection())
        except DriveBackupError as e:
            return _error_response(e, "/backup?test=connection")

    path = resolve_json_path(file, config.DATA_PATH, config.DATA_DIR)
    if not path.is_file():
        return _not_found(f"File does not exist: {path}", "/backup")
    try:
        report = service.backup(LocalFileSource(path))
    except (DriveBackupError, OSError, ValueError) as e:
        return _error_response(e, "/backup")
    return BackupResponse(**report.to_dict())


@app.post("/backup", response_model=BackupResponse)
def backup_body(payload: Any = Body(...), name: str = Query("data.json")):
    """Upload the request body as `name` in the destination folder."""
    try:
        report = _get_service().backup(PayloadSource(payload, name=name))
    except DriveBackupError as e:
        return _error_response(e, "/backup(POST)")
    return BackupResponse(**report.to_dict())


@app.get("/backup/bulk", response_model=BulkResponse)
def backup_bulk():
    """Upload every *.json file in DATA_DIR; one failure does not stop the rest."""
    sources = [LocalFileSource(p) for p in list_json_files(config.DATA_DIR)]
    try:
        report = _get_service().backup_many(sources)
    except DriveBackupError as e:
        return _error_response(e, "/backup/bulk")
    data = report.to_dict()
    return BulkResponse(success=report.failed == 0, **data)


@app.get("/backup/url", response_model=BackupResponse)
def backup_from_url():
    """Fetch SOURCE_URL and upload it as SOURCE_FILE_NAME."""
    if not config.SOURCE_URL:
        return _error_response(ConfigurationError("SOURCE_URL is not configured."), "/backup/url")
    source = FallbackSource(
        HttpJsonSource(
            config.SOURCE_URL,
            name=config.SOURCE_FILE_NAME,
            follow_redirects=config.SOURCE_FOLLOW_REDIRECTS,
            timeout=config.SOURCE_TIMEOUT,
        ),
        last_good_payload,
    )
    try:
        report = _get_service().backup(source)
    except (DriveBackupError, requests.RequestException, ValueError) as e:
        return _error_response(e, "/backup/url")
    return BackupResponse(from_fallback=source.used_fallback, **report.to_dict())


@app.get("/debug/folder")
def debug_folder(id: Optional[str] = None):  # noqa: A002
    """Raw folder metadata, to diagnose Shared Drive vs My Drive issues."""
    try:
        return JSONResponse(content=_get_service().describe_folder(id))
    except DriveBackupError as e:
        return _error_response(e, "/debug/folder")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
