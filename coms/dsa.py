"""
Sorting utilities
=================

Small, explicit algorithm primitives used by the view engine.

Included:
- Merge Sort over a comparator (stable, O(n log n))
- Top-k selection with a heap (used by dashboard lists)
"""

from __future__ import annotations
import heapq
from typing import Callable, Iterable, List, TypeVar

T = TypeVar("T")

Comparator = Callable[[T, T], int]


def merge_sort(arr: List[T], cmp: Comparator) -> List[T]:
    """Stable merge sort.

    `cmp(a, b)` returns a negative number, zero or a positive number.
    Items comparing equal keep their input order.
    """
    if len(arr) <= 1:
        return arr[:]
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], cmp)
    right = merge_sort(arr[mid:], cmp)
    return _merge(left, right, cmp)


def _merge(left: List[T], right: List[T], cmp: Comparator) -> List[T]:
    out: List[T] = []
    # i and j are pointers into each sorted list
    i = j = 0
    while i < len(left) and j < len(right):
        # ties go left: that is what keeps the sort stable
        if cmp(left[i], right[j]) <= 0:
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out


def top_k(items: Iterable[T], k: int, key: Callable[[T], float]) -> List[T]:
    """Return the k items with the largest key, largest first.

    Equal keys keep their input order.
    """
    if k <= 0:
        return []
    heap: List[tuple] = []
    for pos, item in enumerate(items):
        v = key(item)
        if v is None:
            continue
        # -pos: on equal keys the earlier item ranks higher
        entry = (v, -pos, item)
        if len(heap) < k:
            heapq.heappush(heap, entry)
        elif entry[:2] > heap[0][:2]:
            heapq.heapreplace(heap, entry)
    heap.sort(key=lambda e: e[:2], reverse=True)
    return [item for _, _, item in heap]
