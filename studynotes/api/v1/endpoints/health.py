from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from studynotes.config import settings
from studynotes.core.errors import StudyNotesError
from studynotes.core.repositories.implementations.supabase.note_repository import SupabaseNoteRepository
from studynotes.core.schemas.note_search import NoteListFilter
from studynotes.db.base import create_request_supabase_client
from studynotes.dependencies import get_memory_note_repository

router = APIRouter()


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": "studynotes-api",
            "version": "0.1.0"
        }
    )


@router.get("/ready")
async def readiness_check():
    """Readiness check endpoint."""
    db_status = "connected"
    try:
        if settings.backend == "memory":
            repo = get_memory_note_repository()
        else:
            repo = SupabaseNoteRepository(create_request_supabase_client())
        await repo.list(NoteListFilter(is_public=True, limit=1))
    except (StudyNotesError, RuntimeError) as e:
        db_status = f"error: {str(e)}"

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "database": db_status,
            "backend": settings.backend,
            "cors_origins": settings.cors_origins,
            "api_prefix": settings.api_prefix
        }
    )
