from __future__ import annotations

from typing import Dict, Type

from .dimension import Dimension


class DimensionRegistry:
    """Dimension classes by id, in registration order.

    Registration order is evaluation order, and therefore the order in which
    non-match reasons appear in a verdict.
    """

    def __init__(self):
        self._by_id: Dict[str, Type[Dimension]] = {}

    def register(self, dimension_cls: Type[Dimension]) -> None:
        dimension_id = getattr(dimension_cls, "dimension_id", None)
        if not dimension_id:
            raise ValueError(f"{dimension_cls.__name__} has no dimension_id")
        if dimension_id in self._by_id:
            raise ValueError(f"Dimension {dimension_id} is already registered")
        self._by_id[dimension_id] = dimension_cls

    def create_all(self) -> list[Dimension]:
        return [cls() for cls in self._by_id.values()]


registry = DimensionRegistry()


def register_dimension(dimension_cls: Type[Dimension]) -> Type[Dimension]:
    registry.register(dimension_cls)
    return dimension_cls
