from typing import Dict, Iterator, List, Sequence

from pydantic import BaseModel


class PoolEntry(BaseModel):
    identifier: str
    display_name: str

    class Config:
        frozen = True


class FlagPool:
    """Ordered, immutable set of candidate flags.

    The order is significant: the daily permutation is computed over it.
    """

    def __init__(self, entries: Sequence[PoolEntry]):
        self._entries: tuple[PoolEntry, ...] = tuple(entries)
        self._by_identifier: Dict[str, PoolEntry] = {}
        for entry in self._entries:
            if entry.identifier in self._by_identifier:
                raise ValueError(f"Duplicate pool identifier: {entry.identifier}")
            self._by_identifier[entry.identifier] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PoolEntry]:
        return iter(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._by_identifier

    @property
    def identifiers(self) -> List[str]:
        return [entry.identifier for entry in self._entries]

    def get(self, identifier: str) -> PoolEntry | None:
        return self._by_identifier.get(identifier)

    def display_name(self, identifier: str) -> str:
        """Display name for identifier, falling back to the identifier itself."""
        entry = self._by_identifier.get(identifier)
        return entry.display_name if entry else identifier

    def find_by_name(self, text: str) -> PoolEntry | None:
        """Find the entry whose display name equals text, ignoring case and outer spaces."""
        query = text.strip().lower()
        if not query:
            return None
        for entry in self._entries:
            if entry.display_name.lower() == query:
                return entry
        return None

    def resolve(self, text: str) -> str | None:
        """Resolve a typed guess (identifier or display name) to an identifier.

        Args:
            text (str): What the player submitted

        Returns:
            str | None: Pool identifier, or None if nothing matches
        """
        candidate = text.strip()
        if candidate in self._by_identifier:
            return candidate
        entry = self.find_by_name(candidate)
        return entry.identifier if entry else None
