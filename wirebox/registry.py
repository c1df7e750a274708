"""
Definition Registry

Ordered storage of definitions of one kind (services or functions) for
a single scope.
"""

from typing import Any, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

from .definition import Definition
from .typeinfo import canonical

D = TypeVar('D', bound=Definition)


class DefinitionRegistry(Generic[D]):
    """Definitions indexed by id, by produced type and by label.

    Iteration and every lookup return definitions in registration order.
    Registering a definition under an id that is already taken replaces
    the previous definition; the replacement counts as a new
    registration.

    Labels are read from the definitions at lookup time, so labels added
    after registration are honoured.
    """

    def __init__(self):
        self._by_id: Dict[str, D] = {}
        self._by_type: Dict[Any, List[D]] = {}

    def add(self, *definitions: D) -> None:
        for definition in definitions:
            if definition.id in self._by_id:
                self.remove(definition.id)
            self._by_id[definition.id] = definition
            self._by_type.setdefault(canonical(definition.type), []).append(definition)

    def remove(self, *ids: str) -> None:
        """Remove definitions by id; unknown ids are ignored."""
        for id in ids:
            definition = self._by_id.pop(id, None)
            if definition is None:
                continue
            key = canonical(definition.type)
            remaining = [d for d in self._by_type.get(key, []) if d is not definition]
            if remaining:
                self._by_type[key] = remaining
            else:
                self._by_type.pop(key, None)

    def clear(self) -> None:
        self._by_id.clear()
        self._by_type.clear()

    def get(self, id: str) -> Optional[D]:
        return self._by_id.get(id)

    def get_by_ids(self, ids: Iterable[str]) -> List[D]:
        return [self._by_id[id] for id in ids if id in self._by_id]

    def get_by_type(self, tp: Any) -> List[D]:
        """Definitions whose produced type is exactly ``tp``."""
        return list(self._by_type.get(canonical(tp), []))

    def get_by_label(self, label: str) -> List[D]:
        return [d for d in self._by_id.values() if label in d.labels]

    def types(self) -> List[Any]:
        return list(self._by_type.keys())

    def __contains__(self, id: str) -> bool:
        return id in self._by_id

    def __iter__(self) -> Iterator[D]:
        return iter(list(self._by_id.values()))

    def __len__(self) -> int:
        return len(self._by_id)
