from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any

from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from studynotes.core.models.note import Note
    from studynotes.core.repositories.note_repository import NoteChangeFeed, NoteRepository
    from studynotes.core.schemas.note_search import NoteListFilter

    SnapshotCallback = Callable[[list[Note]], Awaitable[Any] | Any]
    ErrorCallback = Callable[[BaseException], Any]


logger = get_logger(__name__)


class NoteSubscription:
    """Handle for one live subscription. Cancel it to stop deliveries."""

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None
        self._feed: NoteChangeFeed | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the subscription. No callback runs after this returns."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._feed is not None:
            self._feed.close()
        if self._task is not None:
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the background task to finish after cancel or error."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class LiveNoteQuery:
    """Re-runs a repository listing whenever the note collection changes.

    Each subscriber gets an initial snapshot and then a full snapshot per
    change; deliveries are never deltas. Under rapid bursts, queued changes
    collapse into a single re-read, so only the final state is guaranteed.
    """

    def __init__(self, repo: NoteRepository, filters: NoteListFilter) -> None:
        self._repo = repo
        self._filters = filters

    def subscribe(
        self,
        callback: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> NoteSubscription:
        """Start delivering snapshots to `callback` on the running event loop."""
        subscription = NoteSubscription()
        feed = self._repo.watch()
        subscription._feed = feed
        subscription._task = asyncio.get_running_loop().create_task(
            self._pump(subscription, feed, callback, on_error)
        )
        return subscription

    async def _pump(
        self,
        subscription: NoteSubscription,
        feed: NoteChangeFeed,
        callback: SnapshotCallback,
        on_error: ErrorCallback | None,
    ) -> None:
        try:
            await feed.start()
            while not subscription.cancelled:
                snapshot = list(await self._repo.list(self._filters))
                if subscription.cancelled:
                    return
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
                await feed.wait()
        except asyncio.CancelledError:
            raise
        except Exception as err:
            logger.error("Live note query stopped", extra={"error": str(err)})
            if on_error is not None and not subscription.cancelled:
                on_error(err)
        finally:
            feed.close()
