import os
import shutil
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse

from sitechat.config import SOURCES

router = APIRouter(prefix="/upload", tags=["upload"])


def _documents_dir(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return settings.documents_dir if settings is not None else SOURCES["documents_dir"]


@router.post("")
async def upload_file(request: Request, file: Optional[UploadFile] = File(None)):
    """Store a single PDF in the documents directory for the next offline ingest."""
    if file is None or not file.filename:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    filename = os.path.basename(file.filename)
    if not filename.lower().endswith(".pdf"):
        return JSONResponse(status_code=400, content={"error": "Only PDF files are accepted"})

    upload_dir = _documents_dir(request)
    os.makedirs(upload_dir, exist_ok=True)
    target = os.path.join(upload_dir, filename)

    try:
        with open(target, "wb") as f:
            shutil.copyfileobj(file.file, f)
    except OSError as e:
        print(f"[Upload] Failed to store {filename}: {e}", flush=True)
        return JSONResponse(status_code=500, content={"error": "File upload failed"})

    max_bytes = SOURCES["max_file_size_mb"] * 1024 * 1024
    if os.path.getsize(target) > max_bytes:
        os.remove(target)
        return JSONResponse(
            status_code=413,
            content={"error": f"File exceeds {SOURCES['max_file_size_mb']} MB"},
        )

    print(f"[Upload] Stored {target}", flush=True)
    return {"message": "File uploaded successfully", "filename": filename}
