from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from PySide6.QtCore import QObject, QTimer, Signal

from .buffer import NoteBuffer
from .errors import FetchInterrupted
from .fetcher import Fetcher
from .references import ReferenceStore
from .renderer import Renderer

log = logging.getLogger(__name__)

PHASE_UNINITIALIZED = "uninitialized"
PHASE_INITIALIZING = "initializing"
PHASE_MAINTAINING = "maintaining"


class InputProbe(Protocol):
    def reset(self) -> None: ...

    def pending(self) -> bool: ...


class NoInputProbe:
    """Probe for headless use: input never arrives."""

    def reset(self) -> None:
        pass

    def pending(self) -> bool:
        return False


class RearmableTimer:
    """Single-shot QTimer with one slot: arming always cancels what was pending."""

    def __init__(self, callback: Callable[[], None], parent: Optional[QObject] = None) -> None:
        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(callback)

    def arm(self, ms: int) -> None:
        self._timer.stop()
        self._timer.start(max(0, int(ms)))

    def cancel(self) -> None:
        if self._timer.isActive():
            self._timer.stop()

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    @property
    def interval(self) -> int:
        return self._timer.interval()


class Scheduler(QObject):
    """
    Per-note refresh loop: fetch, render, re-arm.

    Each tick fetches with a checkpoint that gives up as soon as the
    input probe reports pending user input. A tick that was preempted
    renders only if some list was committed before the preemption.
    """

    ticked = Signal(bool)  # True if the region was redrawn

    def __init__(
        self,
        buffer: NoteBuffer,
        store: ReferenceStore,
        *,
        fetcher: Fetcher,
        renderer: Renderer,
        first_ms: int,
        init_ms: int,
        maintain_ms: int,
        input_probe: Optional[InputProbe] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._buffer = buffer
        self._store = store
        self._fetcher = fetcher
        self._renderer = renderer
        self.first_ms = int(first_ms)
        self.init_ms = int(init_ms)
        self.maintain_ms = int(maintain_ms)
        self._probe: InputProbe = input_probe or NoInputProbe()

        self._timer = RearmableTimer(self.tick, self)
        self._running = False
        self._ticks = 0

    @property
    def timer(self) -> RearmableTimer:
        return self._timer

    @property
    def running(self) -> bool:
        return self._running

    @property
    def phase(self) -> str:
        if self._ticks == 0:
            return PHASE_UNINITIALIZED
        if self._store.is_ready(self._fetcher.sections):
            return PHASE_MAINTAINING
        return PHASE_INITIALIZING

    def start(self) -> None:
        self._running = True
        self._ticks = 0
        self._timer.arm(self.first_ms)

    def stop(self) -> None:
        self._running = False
        self._timer.cancel()

    def postpone(self) -> None:
        """User activity: restart the pending countdown so ticks only run when idle."""
        if self._running and self._timer.is_pending:
            self._timer.arm(self._timer.interval)

    def next_delay(self) -> int:
        if self._store.is_ready(self._fetcher.sections):
            return self.maintain_ms
        return self.init_ms

    def tick(self) -> bool:
        if not self._running:
            return False
        self._timer.cancel()
        self._ticks += 1

        version = self._store.version
        completed = False
        self._probe.reset()
        try:
            self._fetcher.fetch(self._buffer, self._store, checkpoint=self._checkpoint)
            completed = True
        except FetchInterrupted:
            log.debug("Fetch preempted by user input: %r", self._buffer)
        except Exception:
            log.exception("Fetch failed: %r", self._buffer)

        # processing events at a checkpoint may have stopped us
        if not self._running:
            return False

        rendered = False
        if completed or self._store.version != version:
            try:
                rendered = self._renderer.render(self._buffer, self._store)
            except Exception:
                log.exception("Render failed: %r", self._buffer)

        if self._running:
            self._timer.arm(self.next_delay())
        self.ticked.emit(rendered)
        return rendered

    def _checkpoint(self) -> None:
        if self._probe.pending():
            raise FetchInterrupted()
