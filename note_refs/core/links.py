from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LinkIndex:
    """
    Bidirectional link index keyed by note identifier.

    outgoing[src] = {dst1, dst2, ...}
    incoming[dst] = {src1, src2, ...}

    `dst` may be virtual (note does not exist yet).
    """

    outgoing: dict[str, set[str]] = field(default_factory=dict)
    incoming: dict[str, set[str]] = field(default_factory=dict)

    def clear(self) -> None:
        self.outgoing.clear()
        self.incoming.clear()

    def update_note(self, src: str, targets: set[str]) -> bool:
        """
        Incrementally replace the outgoing links of `src`.

        Returns True if outgoing links actually changed.
        """
        if not src:
            return False

        new_targets = set(targets)
        new_targets.discard(src)

        old_targets = self.outgoing.get(src, set())
        if new_targets == old_targets:
            return False

        for removed in old_targets - new_targets:
            inc = self.incoming.get(removed)
            if inc:
                inc.discard(src)
                if not inc:
                    self.incoming.pop(removed, None)

        for added in new_targets - old_targets:
            self.incoming.setdefault(added, set()).add(src)

        if new_targets:
            self.outgoing[src] = new_targets
        else:
            self.outgoing.pop(src, None)
        return True

    def forget_note(self, src: str) -> bool:
        return self.update_note(src, set())

    def backlinks_for(self, target: str) -> list[str]:
        """Sorted list of notes linking to target."""
        return sorted(self.incoming.get(target, set()), key=str.lower)
