from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QObject

from .buffer import NoteBuffer
from .fetcher import Fetcher
from .references import ReferenceStore
from .renderer import Renderer
from .scheduler import InputProbe, Scheduler

if TYPE_CHECKING:
    from note_refs.app_settings import ReferencesConfig

log = logging.getLogger(__name__)


class ReferencesController:
    """
    Lifecycle of the references feature for one note.

    activate():   fresh store, placeholder render, save hooks, scheduler
    deactivate(): stop scheduler, erase region, drop hooks and store
    """

    def __init__(
        self,
        buffer: NoteBuffer,
        *,
        fetcher: Fetcher,
        renderer: Renderer,
        config: ReferencesConfig,
        input_probe: Optional[InputProbe] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        self.buffer = buffer
        self.config = config
        self._fetcher = fetcher
        self._renderer = renderer
        self._probe = input_probe
        self._parent = parent

        self._store: Optional[ReferenceStore] = None
        self._scheduler: Optional[Scheduler] = None

    @property
    def active(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> Optional[ReferenceStore]:
        return self._store

    @property
    def scheduler(self) -> Optional[Scheduler]:
        return self._scheduler

    def activate(self) -> None:
        if self.active:
            return
        store = ReferenceStore()
        self._store = store
        self._renderer.render(self.buffer, store)

        self.buffer.on_before_persist(self._before_persist)
        self.buffer.on_after_persist(self._after_persist)

        self._scheduler = Scheduler(
            self.buffer,
            store,
            fetcher=self._fetcher,
            renderer=self._renderer,
            first_ms=self.config.first_ms,
            init_ms=self.config.init_ms,
            maintain_ms=self.config.maintain_ms,
            input_probe=self._probe,
            parent=self._parent,
        )
        self._scheduler.start()
        log.info("References enabled: %r", self.buffer)

    def deactivate(self) -> None:
        if not self.active:
            return
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None:
            scheduler.stop()
            scheduler.setParent(None)

        self._renderer.remove(self.buffer, force=True)
        self.buffer.off_before_persist(self._before_persist)
        self.buffer.off_after_persist(self._after_persist)
        self._store = None
        log.info("References disabled: %r", self.buffer)

    def refresh(self) -> bool:
        """Manual, non-preemptible fetch + render."""
        if self._store is None:
            return False
        try:
            self._fetcher.fetch(self.buffer, self._store)
        except Exception:
            log.exception("Manual refresh failed: %r", self.buffer)
        return self._renderer.render(self.buffer, self._store)

    def activate_reference(self, pos: int) -> bool:
        path = self.buffer.reference_at(pos)
        if path is None:
            return False
        action = self.config.open_reference
        if action is None:
            log.warning("No open-reference action configured; ignoring %s", path)
            return True
        action(path)
        return True

    # ───────────────────────── save hooks ─────────────────────────

    def _before_persist(self, buffer: NoteBuffer) -> None:
        self._renderer.remove(buffer)

    def _after_persist(self, buffer: NoteBuffer) -> None:
        try:
            self.refresh()
        except Exception:
            log.exception("Post-save refresh failed: %r", buffer)
