"""
Debounced autosave for questionnaire drafts

Every change restarts one pending write; once the quiet period elapses the
full current answer map is written. A write that has already started is not
cancelled by later changes, the next change simply schedules another one.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from kare.core.config import AUTOSAVE_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)

Answers = Dict[str, Optional[str]]
SaveFn = Callable[[Answers], Awaitable[Any]]
FetchFn = Callable[[], Awaitable[Optional[Answers]]]


class AutosaveCoordinator:
    """
    Owns a draft answer map and its pending write

    set_answer() and update() must be called from a running event loop.
    """

    def __init__(self, save: SaveFn, delay: float = AUTOSAVE_DEBOUNCE_SECONDS, answers: Optional[Answers] = None):
        self._save = save
        self.delay = delay
        self._answers: Answers = dict(answers or {})
        self._pending: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self.is_loading = False
        self.writes = 0

    @property
    def answers(self) -> Answers:
        return dict(self._answers)

    @property
    def has_pending_write(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def set_answer(self, question_id: str, value: Optional[str]) -> None:
        self._answers[question_id] = value
        self._schedule()

    def update(self, answers: Answers) -> None:
        self._answers.update(answers)
        self._schedule()

    def _schedule(self) -> None:
        if self.is_loading:
            return
        self.cancel()
        task = asyncio.get_running_loop().create_task(self._write_after_delay())
        self._pending = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        # From here on the write belongs to the draft as it was, later changes reschedule
        self._pending = None
        await self._write(self.answers)

    async def _write(self, answers: Answers) -> None:
        if not answers:
            return
        try:
            await self._save(answers)
            self.writes += 1
        except Exception as e:
            logger.error(f"Autosave failed: {e}")

    async def load(self, fetch: FetchFn) -> Answers:
        """
        Fill the draft with previously saved answers

        Answers already in the draft, including changes made while the fetch
        is running, win over loaded ones. Those changes do not trigger a write.
        Errors from fetch propagate to the caller.
        """
        self.cancel()
        self.is_loading = True
        try:
            loaded = await fetch()
        finally:
            self.is_loading = False
        if loaded:
            self._answers = {**loaded, **self._answers}
        return self.answers

    async def flush(self) -> None:
        """
        Write the current draft now instead of waiting for the quiet period
        """
        self.cancel()
        if self.is_loading:
            return
        await self._write(self.answers)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    async def aclose(self) -> None:
        self.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
