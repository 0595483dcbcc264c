from datetime import datetime
from typing import Callable, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Retorna True se [a_start, a_end) sobrepõe [b_start, b_end)."""
    return a_start < b_end and a_end > b_start


def as_interval(item) -> Tuple[datetime, datetime]:
    return item.start_at, item.end_at


def first_overlap(
    start: datetime,
    end: datetime,
    items: Iterable[T],
    bounds: Callable[[T], Tuple[datetime, datetime]] = as_interval,
) -> Optional[T]:
    """Primeiro item cujo intervalo sobrepõe [start, end), ou None."""
    for item in items:
        item_start, item_end = bounds(item)
        if overlaps(start, end, item_start, item_end):
            return item
    return None
