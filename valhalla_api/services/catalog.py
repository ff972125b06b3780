from __future__ import annotations

from collections.abc import Iterable

from valhalla_api.models.schemas import DataFilter, Entity


SEED_ENTITIES: tuple[Entity, ...] = (
    Entity(id=1, name="Valhalla", type="Platform", status="active"),
    Entity(id=2, name="Odin", type="Service", status="active"),
    Entity(id=3, name="Thor", type="Service", status="active"),
    Entity(id=4, name="Loki", type="Service", status="maintenance"),
)


def _matches(value: str, wanted: str | None) -> bool:
    if wanted is None:
        return True
    return value.casefold() == wanted.casefold()


class Catalog:
    """Read-only, in-memory collection of sample entities.

    The backing tuple is built once and never mutated, so concurrent
    readers need no locking.
    """

    def __init__(self, entities: Iterable[Entity] = SEED_ENTITIES) -> None:
        items = tuple(entities)
        by_id: dict[int, Entity] = {}
        for item in items:
            if item.id in by_id:
                raise ValueError(f"duplicate entity id: {item.id}")
            by_id[item.id] = item
        self._items = items
        self._by_id = by_id

    def __len__(self) -> int:
        return len(self._items)

    def list(self, data_filter: DataFilter | None = None) -> list[Entity]:
        if data_filter is None:
            return list(self._items)
        return [
            item
            for item in self._items
            if _matches(item.type, data_filter.type) and _matches(item.status, data_filter.status)
        ]

    def get_by_id(self, item_id: int) -> Entity | None:
        """Return the entity with `item_id`, or None when there is no such entity."""
        return self._by_id.get(item_id)
