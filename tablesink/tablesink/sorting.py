"""Bucket sort used to group log records by destination."""

from typing import Callable, Dict, Hashable, Iterable, List, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def bucket_sort(items: Iterable[T], key_of: Callable[[T], K]) -> Dict[K, List[T]]:
    """
    Group items into buckets keyed by key_of(item).

    Items keep their relative input order inside each bucket. The input is
    consumed once and never modified. Callers must not depend on the order
    of the returned keys.
    """
    buckets: Dict[K, List[T]] = {}
    for item in items:
        buckets.setdefault(key_of(item), []).append(item)
    return buckets
