"""
Reference tracking for selective cache invalidation.

Each evaluated cell records the cells its last evaluation referenced. When a
cell is edited, the cell and everything that (transitively) referenced it are
the only display entries that can be stale.
"""

from collections import defaultdict, deque
from typing import Dict, Set


class DependencyGraph:

    def __init__(self) -> None:
        # {cell: cells its last evaluation referenced}
        self.precedents: Dict[str, Set[str]] = {}
        # {cell: cells whose last evaluation referenced it}
        self.dependents: Dict[str, Set[str]] = defaultdict(set)

    def record(self, key: str, referenced: Set[str]) -> None:
        """Replace the recorded references of a cell."""
        for previous in self.precedents.get(key, set()):
            self.dependents[previous].discard(key)
        self.precedents[key] = set(referenced)
        for ref in referenced:
            self.dependents[ref].add(key)

    def affected_by(self, key: str) -> Set[str]:
        """The cell itself plus every cell that transitively depends on it."""
        visited = set()
        queue = deque([key])
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            queue.extend(self.dependents.get(current, ()))
        return visited

    def clear(self) -> None:
        self.precedents.clear()
        self.dependents.clear()
