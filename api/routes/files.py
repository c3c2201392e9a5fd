"""
api/routes/files.py -- File upload and download for authenticated users.

Routes:
  POST /api/files/upload                -- multipart field "file"; 201 (requires auth)
  GET  /api/files/download/{filename}   -- streams a stored file (requires auth)

Both handlers are sync: FastAPI runs them in the thread pool, so the blocking
disk copy in FileStore never stalls the event loop.

The download route uses the :path converter on purpose. Without it a request
for "..%2Fsecret" would simply not match and return a bare 404; with it the
name reaches validate_filename() and is rejected as 400.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse

from api.models import FileUploadResponse
from auth.dependencies import get_current_identity
from auth.models import Identity
from files.store import FileStore, FileTooLarge, InvalidFilename

router = APIRouter()


@router.post("/files/upload", response_model=FileUploadResponse, status_code=201)
def upload_file(
    request: Request,
    file: UploadFile | None = File(default=None),
    identity: Identity = Depends(get_current_identity),
) -> FileUploadResponse:
    """Store the uploaded file under a name derived from owner, time and content hash."""
    store: FileStore = request.app.state.file_store
    if file is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "file_required", "message": "Failed to get file from request"},
        )
    try:
        stored = store.save(identity.username, file.filename, file.file)
    except FileTooLarge as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "file_too_large", "message": "File too large or invalid form"},
        ) from exc
    finally:
        file.file.close()
    return FileUploadResponse(filename=stored.filename, size=stored.size)


@router.get("/files/download/{filename:path}", response_class=FileResponse)
def download_file(
    request: Request,
    filename: str,
    identity: Identity = Depends(get_current_identity),
) -> FileResponse:
    """Return a stored file as an attachment."""
    store: FileStore = request.app.state.file_store
    try:
        path = store.resolve(filename)
    except InvalidFilename as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_filename", "message": str(exc)},
        ) from exc
    except FileNotFoundError as exc:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "File not found"},
        ) from exc
    return FileResponse(path, media_type="application/octet-stream", filename=filename)
