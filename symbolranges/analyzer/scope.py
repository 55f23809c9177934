"""Per-method index bookkeeping for local declarations."""
from typing import Dict, ItemsView, Optional

from .model import Declaration
from .region import RegionTracker

# First index handed out inside modified regions
DEFAULT_ADDED_INDEX_OFFSET = 100


class ScopeIndexTable:
    """Maps each declaration seen during one walk to its positional index.

    Two independent counters are kept: one for original code starting at 0
    and one for modified-region code starting at ``added_offset``. The
    region tracker decides which counter a new declaration draws from.
    """

    def __init__(self, region: RegionTracker, added_offset: int = DEFAULT_ADDED_INDEX_OFFSET):
        self.region = region
        self.added_offset = added_offset
        self._indices: Dict[Declaration, int] = {}
        self.next_index = 0
        self.next_added_index = added_offset

    def assign(self, declaration: Declaration) -> int:
        """Record the next index for a newly-declared variable.

        Args:
            declaration: The declaration being visited

        Returns:
            The new index, unique within this walk
        """
        if self.region.within_added_code:
            index = self.next_added_index
            self.next_added_index += 1
        else:
            index = self.next_index
            self.next_index += 1

        self._indices[declaration] = index
        return index

    def lookup(self, declaration: Declaration) -> Optional[int]:
        """Index previously assigned to ``declaration``, or None if never seen."""
        return self._indices.get(declaration)

    @property
    def original_overflowed(self) -> bool:
        """True once original-code indices have reached the added-code range."""
        return self.next_index > self.added_offset

    def items(self) -> ItemsView[Declaration, int]:
        return self._indices.items()

    def __contains__(self, declaration: Declaration) -> bool:
        return declaration in self._indices

    def __len__(self) -> int:
        return len(self._indices)

    def __repr__(self) -> str:
        entries = ', '.join(f"{decl.name}={index}" for decl, index in self._indices.items())
        return f"{{{entries}}}"
