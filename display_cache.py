from typing import Dict, Iterable, NamedTuple, Optional


class CachedDisplay(NamedTuple):
    text: str
    error: bool = False


class DisplayCache:
    """Memoized display text per cell key. Either empty or consistent with the grid."""

    def __init__(self) -> None:
        self._entries: Dict[str, CachedDisplay] = {}

    def get(self, key: str) -> Optional[CachedDisplay]:
        return self._entries.get(key)

    def put(self, key: str, text: str, error: bool = False) -> CachedDisplay:
        entry = CachedDisplay(text, error)
        self._entries[key] = entry
        return entry

    def clear_all(self) -> None:
        self._entries.clear()

    def discard(self, keys: Iterable[str]) -> None:
        """Drop individual entries (dependency-tracking invalidation only)."""
        for key in keys:
            self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
