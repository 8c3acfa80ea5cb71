"""
Auto Save - Debounced Note Persistence

Saves note content after a period of editor inactivity. Each edit
restarts the debounce timer; the save itself is delegated to a
caller-supplied coroutine (the document store), retried with exponential
backoff. A write in progress is never interrupted by a later edit; the
next save waits for it.

Timeline:
    edit ─┬─ edit ─┬─ edit ──────── delay ──────── save → reset_baseline
          └ cancel └ cancel

Author: Shubham Singh
Date: December 2025
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from clinical_note_assistant.core.config import ConfigDefaults
from clinical_note_assistant.tracking.delta_tracker import DeltaTracker


SaveCallback = Callable[[str], Awaitable[Any]]


class AutoSaver:
    """
    Debounced, retrying auto-save.

    What it does:
        Runs one cancellable single-shot asyncio task per burst of edits.
        When the task fires it awaits save_callback(content), retrying
        failures with exponential backoff, and on success re-anchors the
        delta tracker on the saved content.

    Why it exists:
        1. Clinicians should never lose edits to a closed tab
        2. Saving on every keystroke would flood the document store
        3. Analytics are relative to the last persisted version

    When to use:
        - One saver per open note, sharing that note's DeltaTracker
        - trigger() on every edit, force_save() on explicit save

    Example:
        >>> saver = AutoSaver(store.save_note, delay=2.0, tracker=tracker)
        >>> saver.trigger(editor_text)    # inside a running event loop
        >>> await saver.force_save()
    """

    def __init__(
        self,
        save_callback: SaveCallback,
        delay: float = ConfigDefaults.DEFAULT_AUTO_SAVE_DELAY,
        retry_attempts: int = ConfigDefaults.DEFAULT_AUTO_SAVE_RETRY_ATTEMPTS,
        retry_delay: float = ConfigDefaults.DEFAULT_AUTO_SAVE_RETRY_DELAY,
        tracker: Optional[DeltaTracker] = None,
    ):
        """
        Initialize the saver.

        Args:
            save_callback: Coroutine function persisting the content
            delay: Seconds of inactivity before saving
            retry_attempts: Total attempts per save (at least 1)
            retry_delay: Initial backoff in seconds, doubled per retry
            tracker: Tracker to re-anchor after each successful save
        """
        self._save_callback = save_callback
        self._delay = delay
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self._tracker = tracker

        self._task: Optional[asyncio.Task] = None
        self._write_task: Optional[asyncio.Task] = None
        self._pending_content: Optional[str] = None
        self.last_save_time: Optional[datetime] = None
        self.last_error: Optional[Exception] = None
        self.save_count = 0

        logger.debug(
            f"AutoSaver initialized | Delay: {delay}s | "
            f"Retries: {self._retry_attempts} | Backoff: {retry_delay}s"
        )

    @property
    def is_pending(self) -> bool:
        """A save is scheduled or being written."""
        return any(task is not None and not task.done() for task in (self._task, self._write_task))

    @property
    def is_saving(self) -> bool:
        return self._write_task is not None and not self._write_task.done()

    # =========================================================================
    # STAGE 1: SCHEDULING
    # =========================================================================

    def trigger(self, content: str) -> None:
        """
        Schedule a save of content after the debounce delay.

        Must be called from inside a running event loop. The debounce timer
        restarts; a write already in progress finishes and the new save
        runs after it.
        """
        self.cancel()
        self._pending_content = content
        self._task = asyncio.get_running_loop().create_task(self._save_after_delay(content))

    def cancel(self) -> None:
        """Cancel the debounce timer. A write already in progress is not interrupted."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the scheduled save and any write in progress to finish."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._write_task is not None:
            await asyncio.wait([self._write_task])

    async def force_save(self, content: Optional[str] = None) -> None:
        """
        Save immediately, bypassing the debounce delay.

        Args:
            content: Content to save (defaults to the pending content)

        Raises:
            Exception: The last save error once retries are exhausted
        """
        to_save = content if content is not None else self._pending_content
        self.cancel()
        if to_save is None:
            logger.debug("Force save skipped | Nothing pending")
            return
        error = await self._write(to_save)
        if error is not None:
            raise error

    # =========================================================================
    # STAGE 2: SAVING
    # =========================================================================

    async def _save_after_delay(self, content: str) -> None:
        await asyncio.sleep(self._delay)
        await self._write(content)

    async def _write(self, content: str) -> Optional[Exception]:
        """
        Run one save to completion, after any write already in progress.

        The write runs in its own task under asyncio.shield, so cancelling
        the debounce timer never aborts a store write part-way.
        """
        while self._write_task is not None and not self._write_task.done():
            await asyncio.wait([self._write_task])
        self._write_task = asyncio.ensure_future(self._save_with_retry(content))
        return await asyncio.shield(self._write_task)

    async def _save_with_retry(self, content: str) -> Optional[Exception]:
        """Return None on success, otherwise the last error."""
        last_error: Optional[Exception] = None
        for attempt in range(1, self._retry_attempts + 1):
            try:
                await self._save_callback(content)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Auto-save failed | Attempt: {attempt}/{self._retry_attempts} | Error: {e}"
                )
                if attempt < self._retry_attempts:
                    await asyncio.sleep(self._retry_delay * (2 ** (attempt - 1)))
                continue

            self.last_save_time = datetime.now()
            self.last_error = None
            self.save_count += 1
            if self._pending_content == content:
                self._pending_content = None
            if self._tracker is not None:
                self._tracker.reset_baseline(content)
            logger.info(f"Note saved | Chars: {len(content)} | Attempt: {attempt}")
            return None

        self.last_error = last_error
        logger.error(f"Auto-save gave up | Attempts: {self._retry_attempts} | Error: {last_error}")
        return last_error
