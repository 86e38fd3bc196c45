# tokko_leads/store.py
from typing import Dict, Iterator, List, Optional

from .models import Lead


class DedupStore:
    """Insertion-ordered map of identity key -> Lead for one collection run.

    Entries are never removed. Re-observing a key merges into the existing lead
    (see ``Lead.merge``), so enrichment only ever accumulates.
    """

    def __init__(self):
        self._leads: Dict[str, Lead] = {}

    def has(self, key: str) -> bool:
        return key in self._leads

    def get(self, key: str) -> Optional[Lead]:
        return self._leads.get(key)

    def upsert(self, key: str, lead: Lead) -> bool:
        """Insert or merge; returns True when ``key`` was new."""
        existing = self._leads.get(key)
        if existing is None:
            self._leads[key] = lead
            return True
        self._leads[key] = existing.merge(lead)
        return False

    def size(self) -> int:
        return len(self._leads)

    def __len__(self) -> int:
        return len(self._leads)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[Lead]:
        return iter(list(self._leads.values()))

    def export(self) -> List[Lead]:
        return list(self._leads.values())
