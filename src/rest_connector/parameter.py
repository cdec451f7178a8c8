"""
Intermediate representation produced by the parameter encoder.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Key:
    """A key path component: a field name, the index of an array element,
    or the empty placeholder under which scalar array elements accumulate."""

    name: str = ""
    index: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.name == "" and self.index is None

    @property
    def is_index(self) -> bool:
        return self.index is not None

    def __str__(self) -> str:
        if self.index is not None:
            return str(self.index)
        return self.name


EMPTY_KEY = Key()

Keys = Tuple[Key, ...]


def keys_to_string(keys: Iterable[Key]) -> str:
    """Render a key path in dotted form, e.g. ``role[].user`` or ``items[0].id``."""
    rendered = ""
    for key in keys:
        if key.is_index:
            rendered += f"[{key.index}]"
        elif key.is_empty:
            rendered += "[]"
        elif rendered:
            rendered += f".{key.name}"
        else:
            rendered = key.name
    return rendered


@dataclass
class ParameterItem:
    keys: Keys
    values: List[str] = field(default_factory=list)

    @property
    def is_default(self) -> bool:
        """True when the key path holds no named key."""
        return all(key.is_empty for key in self.keys)

    def __str__(self) -> str:
        key = keys_to_string(self.keys)
        value = ",".join(self.values)
        return f"{key}={value}" if key else value


class ParameterItems:
    """Ordered parameter items; adding an existing key path appends values."""

    def __init__(self, items: Optional[Iterable[ParameterItem]] = None):
        self._items: List[ParameterItem] = []
        for item in items or ():
            self.add(item.keys, item.values)

    def add(self, keys: Iterable[Key], values: Iterable[str]) -> None:
        keys = tuple(keys)
        values = list(values)
        if not values:
            return
        existing = self.find(keys)
        if existing is None:
            self._items.append(ParameterItem(keys, values))
        else:
            existing.values.extend(values)

    def extend(self, items: Iterable[ParameterItem], prefix: Keys = ()) -> None:
        for item in items:
            self.add(prefix + item.keys, item.values)

    def find(self, keys: Keys) -> Optional[ParameterItem]:
        for item in self._items:
            if item.keys == keys:
                return item
        return None

    def find_default(self) -> Optional[ParameterItem]:
        for item in self._items:
            if item.is_default:
                return item
        return None

    def __iter__(self) -> Iterator[ParameterItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> ParameterItem:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterItems):
            return self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        return f"ParameterItems({self._items!r})"

    def __str__(self) -> str:
        return "&".join(str(item) for item in self._items)
