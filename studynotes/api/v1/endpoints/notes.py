from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TCH003

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from pydantic import ValidationError as PydanticValidationError

from studynotes.api.v1.errors import to_http_exception
from studynotes.api.v1.schemas.note import NoteCreate, NoteRead, NoteUpdate
from studynotes.api.v1.schemas.note_search import NoteSearchRequest
from studynotes.core.errors import StudyNotesError
from studynotes.core.models.note import NoteType
from studynotes.core.schemas.note_draft import NoteDraft
from studynotes.core.schemas.note_search import NoteListFilter, NoteOrder, NoteSearchCriteria
from studynotes.core.services.live_query import LiveNoteQuery
from studynotes.dependencies import (
    get_current_user,
    get_current_user_ws,
    get_note_repository,
    get_note_service,
    get_search_service,
    get_storage_service,
)
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from studynotes.core.models.note import Note
    from studynotes.core.repositories.note_repository import NoteRepository
    from studynotes.core.schemas.auth import AuthUser
    from studynotes.core.services.note_service import NoteService
    from studynotes.core.services.search_service import SearchService
    from studynotes.core.services.storage_service import StorageService

logger = get_logger(__name__)

router = APIRouter()


def _read_all(notes: list[Note] | tuple[Note, ...]) -> list[NoteRead]:
    return [NoteRead.model_validate(n) for n in notes]


def _list_filter(**kwargs) -> NoteListFilter:
    try:
        return NoteListFilter(**kwargs)
    except PydanticValidationError as err:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=err.errors()) from err


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        note = await service.create_note(payload, author=current_user)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)


@router.post("/upload", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def upload_note(
    file: UploadFile = File(...),
    title: str = Form(...),
    note_type: NoteType = Form(...),
    tags: list[str] = Form(default=[]),
    subject: str = Form(default=""),
    is_public: bool = Form(default=False),
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload a PDF or image and create the note that references it.

    The uploaded object is removed again if the note cannot be created.
    """
    if note_type == NoteType.MARKDOWN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Markdown notes have no file")

    try:
        draft = NoteDraft(
            title=title,
            note_type=note_type,
            tags=tags,
            subject=subject,
            is_public=is_public,
        )
    except PydanticValidationError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.errors()[0]["msg"]) from err

    data = await file.read()
    try:
        stored = await storage.upload(current_user.id, file.filename or "upload", data, file.content_type)
    except StudyNotesError as err:
        raise to_http_exception(err) from err

    try:
        note = await service.create_note(draft.model_copy(update={"file": stored.file}), author=current_user)
    except StudyNotesError as err:
        try:
            await storage.delete(stored.path)
        except StudyNotesError as cleanup_err:
            logger.warning("Failed to remove orphaned upload", extra={"path": stored.path, "error": str(cleanup_err)})
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)


@router.get("/", response_model=list[NoteRead])
async def list_notes(
    author_id: UUID | None = None,
    is_public: bool | None = None,
    subject: str | None = None,
    tags: list[str] | None = Query(default=None),
    limit: int | None = Query(default=50, ge=1, le=1000),
    order: NoteOrder = NoteOrder.RECENT,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """List notes. Other users' notes are only listed when public."""
    if author_id != current_user.id:
        is_public = True
    filters = _list_filter(
        author_id=author_id,
        is_public=is_public,
        subject=subject,
        tags=tags,
        limit=limit,
        order=order,
    )
    try:
        notes = await service.list_notes(filters)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return _read_all(list(notes))


@router.get("/mine", response_model=list[NoteRead])
async def list_my_notes(
    limit: int | None = Query(default=None, ge=1, le=1000),
    order: NoteOrder = NoteOrder.RECENT,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    filters = _list_filter(author_id=current_user.id, limit=limit, order=order)
    try:
        notes = await service.list_notes(filters)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return _read_all(list(notes))


@router.post("/search", response_model=list[NoteRead])
async def search_notes(
    payload: NoteSearchRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: SearchService = Depends(get_search_service),
):
    """Search and filter notes.

    Uses backend search when it can, and falls back to client-side substring
    matching when the backend rejects the query.
    """
    is_public = payload.is_public
    if payload.author_id != current_user.id:
        is_public = True
    criteria = NoteSearchCriteria(
        query=payload.query,
        subject=payload.subject,
        tag=payload.tag,
        sort_by=payload.sort_by,
        is_public=is_public,
        author_id=payload.author_id,
    )
    try:
        results = await service.discover(criteria)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return _read_all(results)


@router.websocket("/live")
async def live_notes(
    websocket: WebSocket,
    current_user: AuthUser = Depends(get_current_user_ws),
    repo: NoteRepository = Depends(get_note_repository),
):
    """Push a full snapshot of the matching notes on every change."""
    params = websocket.query_params
    author_id = params.get("author_id")
    try:
        filters = NoteListFilter(
            author_id=author_id,
            is_public=True if author_id != str(current_user.id) else params.get("is_public"),
            subject=params.get("subject"),
            tags=params.getlist("tags") or None,
            limit=params.get("limit"),
            order=params.get("order") or NoteOrder.RECENT,
        )
    except PydanticValidationError as err:
        await websocket.close(code=1008, reason="Invalid filter")
        logger.info("Rejected live query", extra={"errors": len(err.errors())})
        return

    await websocket.accept()

    async def send_snapshot(notes: list[Note]) -> None:
        payload = [n.model_dump(mode="json") for n in _read_all(notes)]
        await websocket.send_text(json.dumps({"type": "snapshot", "notes": payload}))

    async def close_with_error() -> None:
        try:
            await websocket.send_text(json.dumps({"type": "error", "detail": "Live query failed"}))
            await websocket.close(code=1011)
        except (RuntimeError, WebSocketDisconnect):
            logger.debug("Live query client already gone")

    pending: list[asyncio.Task[None]] = []

    def report_error(err: BaseException) -> None:
        pending.append(asyncio.create_task(close_with_error()))

    subscription = LiveNoteQuery(repo, filters).subscribe(send_snapshot, on_error=report_error)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Live query client disconnected", extra={"user_id": str(current_user.id)})
    finally:
        subscription.cancel()
        await subscription.wait_closed()
        await asyncio.gather(*pending, return_exceptions=True)


@router.get("/{note_id}", response_model=NoteRead)
async def get_note(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        note = await service.get_note(note_id, viewer_id=current_user.id)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        note = await service.update_note(
            note_id,
            payload.model_dump(exclude_unset=True),
            actor_id=current_user.id,
        )
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        await service.delete_note(note_id, actor_id=current_user.id)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return None


@router.post("/{note_id}/view", response_model=NoteRead)
async def record_view(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        note = await service.record_view(note_id, viewer_id=current_user.id)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)


@router.put("/{note_id}/like", response_model=NoteRead)
async def like_note(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        note = await service.set_like(note_id, viewer_id=current_user.id, liked=True)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)


@router.delete("/{note_id}/like", response_model=NoteRead)
async def unlike_note(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    try:
        note = await service.set_like(note_id, viewer_id=current_user.id, liked=False)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return NoteRead.model_validate(note)
