from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject

from note_refs.app_settings import ReferencesConfig
from note_refs.core.buffer import NoteBuffer
from note_refs.core.controller import ReferencesController
from note_refs.core.fetcher import Fetcher
from note_refs.core.frontmatter import header_end
from note_refs.core.renderer import Renderer
from note_refs.core.scheduler import InputProbe
from note_refs.services.link_extractor import LinkExtractor
from note_refs.vault.repo import VaultBacklinkIndex, VaultRepository

log = logging.getLogger(__name__)


class ReferencesManager:
    """
    Owns one ReferencesController per enabled note, looked up by buffer identity.

    All notes of a vault share the link extractor and the backlink index.
    """

    def __init__(
        self,
        repo: VaultRepository,
        *,
        config: Optional[ReferencesConfig] = None,
        extractor: Optional[LinkExtractor] = None,
        backlink_index: Optional[VaultBacklinkIndex] = None,
        locate_header: Callable[[str], int] = header_end,
        parent: Optional[QObject] = None,
    ) -> None:
        self.repo = repo
        self.config = config or ReferencesConfig()
        self.extractor = extractor or LinkExtractor()
        self.backlink_index = backlink_index or VaultBacklinkIndex(repo, self.extractor)
        self._locate_header = locate_header
        self._parent = parent
        self._controllers: dict[NoteBuffer, ReferencesController] = {}

    def _build(self, buffer: NoteBuffer, input_probe: Optional[InputProbe]) -> ReferencesController:
        fetcher = Fetcher(
            root=self.repo.root,
            resolve=self.repo.resolve,
            extract=self.extractor.extract,
            backlinks=self.backlink_index.backlinks,
            sections=self.config.sections,
        )
        renderer = Renderer(sections=self.config.sections, locate_header=self._locate_header)
        return ReferencesController(
            buffer,
            fetcher=fetcher,
            renderer=renderer,
            config=self.config,
            input_probe=input_probe,
            parent=self._parent,
        )

    def enable(self, buffer: NoteBuffer, *, input_probe: Optional[InputProbe] = None) -> ReferencesController:
        ctrl = self._controllers.get(buffer)
        if ctrl is None:
            ctrl = self._build(buffer, input_probe)
            self._controllers[buffer] = ctrl
        ctrl.activate()
        return ctrl

    def disable(self, buffer: NoteBuffer) -> bool:
        ctrl = self._controllers.pop(buffer, None)
        if ctrl is None:
            return False
        ctrl.deactivate()
        return True

    def toggle(self, buffer: NoteBuffer, *, input_probe: Optional[InputProbe] = None) -> bool:
        """Returns the new state (True = enabled)."""
        if self.is_enabled(buffer):
            self.disable(buffer)
            return False
        self.enable(buffer, input_probe=input_probe)
        return True

    def is_enabled(self, buffer: NoteBuffer) -> bool:
        ctrl = self._controllers.get(buffer)
        return ctrl is not None and ctrl.active

    def controller_for(self, buffer: NoteBuffer) -> Optional[ReferencesController]:
        return self._controllers.get(buffer)

    def disable_all(self) -> None:
        for buffer in list(self._controllers):
            try:
                self.disable(buffer)
            except Exception:
                log.exception("Failed to disable references: %r", buffer)
