from .references import BACKLINKS, LINKS, NOT_READY, SECTION_ORDER, ReferenceEntry, ReferenceStore, count_line
from .errors import FetchInterrupted, HeaderNotFound, NoteRefsError, ReadOnlyRegionError
from .buffer import ManagedRegion, NoteBuffer, ReferenceButton
from .frontmatter import header_end
from .fetcher import Fetcher
from .renderer import Renderer
from .scheduler import Scheduler
from .controller import ReferencesController

__all__ = [
    "BACKLINKS",
    "LINKS",
    "NOT_READY",
    "SECTION_ORDER",
    "ReferenceEntry",
    "ReferenceStore",
    "count_line",
    "FetchInterrupted",
    "HeaderNotFound",
    "NoteRefsError",
    "ReadOnlyRegionError",
    "ManagedRegion",
    "NoteBuffer",
    "ReferenceButton",
    "header_end",
    "Fetcher",
    "Renderer",
    "Scheduler",
    "ReferencesController",
]
