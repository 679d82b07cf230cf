# docfill/main.py
"""
FastAPI application for the document filling assistant
Thin HTTP layer over the docfill core; sessions are a volatile in-memory cache
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict
from urllib.parse import quote

from dotenv import load_dotenv
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from docfill.config import settings
from docfill.conversation import build_welcome_message, is_complete, process_message, progress
from docfill.document_handler import load_document_fields, regenerate_document
from docfill.errors import DocumentCorruptError, InputRejectedError, RenderError
from docfill.llm_handler import LLMHandler, build_llm
from docfill.models import ChatRequest, ChatResponse, DownloadRequest, StatusResponse, UploadResponse
from docfill.value_extractor import ValueExtractor

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Create FastAPI app
app = FastAPI(
    title="Document Filling Assistant",
    description="Upload a document with [placeholders] and fill them in conversation",
    version="1.0.0",
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

extractor = ValueExtractor(LLMHandler(build_llm()))

# In-memory session storage
sessions: Dict[str, Dict] = {}


def _purge_expired_sessions() -> None:
    """Drop every session idle for longer than the configured timeout"""
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=settings.session_timeout_minutes)
    expired = [sid for sid, s in sessions.items() if s["updated_at"] < cutoff]
    for sid in expired:
        sessions.pop(sid, None)
    if expired:
        logger.info("Purged %d expired session(s)", len(expired))


def _get_session(session_id: str) -> Dict:
    _purge_expired_sessions()
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session expired or invalid")
    return session


def _content_disposition(filename: str) -> str:
    """attachment header that survives non-ASCII names (RFC 6266 filename*)"""
    name = f"completed_{filename}"
    encoded = quote(name)
    if encoded == name:
        return f'attachment; filename="{name}"'
    fallback = name.encode("ascii", "ignore").decode().replace('"', "")
    if fallback in ("completed_", "completed_.docx"):
        fallback = "completed.docx"
    return f"attachment; filename=\"{fallback}\"; filename*=utf-8''{encoded}"


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "model": settings.openai_model,
        "llm_enabled": extractor.llm_handler.available,
        "service": "Document Filling Assistant",
    }


@app.post("/upload", response_model=UploadResponse)
async def upload_document(file: UploadFile = File(...)):
    """
    Upload a .docx file and detect its fields

    Returns:
        - session_id: Unique session identifier
        - fields: Detected fields in document order
        - message: Opening assistant message
    """
    filename = file.filename or ""
    if not any(filename.lower().endswith(ext) for ext in settings.allowed_file_types):
        raise HTTPException(status_code=400, detail="Only .docx files supported")

    _purge_expired_sessions()

    content = await file.read()
    if len(content) > settings.max_file_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File too large (max {settings.max_file_size_mb}MB)")

    try:
        document_text, fields = load_document_fields(content)
    except InputRejectedError as e:
        logger.warning("Upload of %s rejected: %s", filename, e)
        raise HTTPException(status_code=400, detail=str(e))

    session_id = str(uuid.uuid4())
    message = build_welcome_message(filename, fields)
    sessions[session_id] = {
        "original_filename": filename,
        "original_bytes": content,
        "document_text": document_text,
        "fields": fields,
        "conversation_history": [],
        "updated_at": datetime.now(timezone.utc),
    }

    logger.info("Session %s: %s with %d fields", session_id, filename, len(fields))
    for field in fields:
        logger.debug("  - [%s] -> %s (%s)", field.original_text, field.name, field.type.value)

    preview = document_text[:500] + ("..." if len(document_text) > 500 else "")
    return UploadResponse(
        session_id=session_id,
        filename=filename,
        fields=fields,
        message=message,
        document_preview=preview,
    )


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """Handle one chat message against the session's current field"""
    session = _get_session(request.session_id)

    result = await process_message(
        request.message,
        session["fields"],
        session["conversation_history"],
        extractor,
    )

    session["fields"] = result.fields
    session["conversation_history"] = result.history
    session["updated_at"] = datetime.now(timezone.utc)

    logger.info("Session %s progress: %s", request.session_id, progress(result.fields))

    return ChatResponse(
        assistant_message=result.response,
        fields=result.fields,
        is_complete=result.is_complete,
    )


@app.get("/status/{session_id}", response_model=StatusResponse)
async def get_status(session_id: str):
    """Get current session status"""
    session = _get_session(session_id)
    fields = session["fields"]

    return StatusResponse(
        session_id=session_id,
        fields=fields,
        progress=progress(fields),
        completed=is_complete(fields),
    )


@app.post("/download")
async def download_document(request: DownloadRequest):
    """Generate and download the completed document"""
    session = _get_session(request.session_id)

    unfilled = [f.description for f in session["fields"] if f.value is None]
    if unfilled:
        raise HTTPException(status_code=400, detail=f"Please fill remaining fields: {', '.join(unfilled)}")

    try:
        completed = regenerate_document(session["original_bytes"], session["fields"])
    except DocumentCorruptError as e:
        logger.error("Session %s: corrupt package: %s", request.session_id, e)
        raise HTTPException(status_code=500, detail="Stored document is corrupt or unreadable")
    except RenderError as e:
        logger.error("Session %s: render failed: %s", request.session_id, e)
        raise HTTPException(status_code=422, detail=f"Could not fill document: {e}")

    return Response(
        content=completed,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition(session["original_filename"])},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
