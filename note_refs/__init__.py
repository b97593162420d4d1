from .core.buffer import ManagedRegion, NoteBuffer, ReferenceButton
from .core.controller import ReferencesController
from .core.errors import FetchInterrupted, HeaderNotFound, NoteRefsError, ReadOnlyRegionError
from .core.references import NOT_READY, ReferenceEntry, ReferenceStore
from .services.manager import ReferencesManager
from .vault.repo import VaultBacklinkIndex, VaultRepository

__version__ = "0.3.0"

__all__ = ['ManagedRegion',
           'NoteBuffer',
           'ReferenceButton',
           'ReferencesController',
           'FetchInterrupted',
           'HeaderNotFound',
           'NoteRefsError',
           'ReadOnlyRegionError',
           'NOT_READY',
           'ReferenceEntry',
           'ReferenceStore',
           'ReferencesManager',
           'VaultBacklinkIndex',
           'VaultRepository',
           ]
