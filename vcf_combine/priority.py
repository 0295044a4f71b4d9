"""Validation and materialisation of the source priority list."""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .logging_utils import MissingPriorityError, PriorityMismatchError
from .models import GenotypeMergeType

T = TypeVar("T")


class PriorityList(Sequence[str]):
    """Immutable ordered sequence of source names, most trusted first."""

    __slots__ = ("_names", "_ranks")

    def __init__(self, names: Iterable[str]):
        self._names: Tuple[str, ...] = tuple(names)
        self._ranks = {name: i for i, name in enumerate(self._names)}

    def __getitem__(self, index):
        return self._names[index]

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __contains__(self, name) -> bool:
        return name in self._ranks

    def __eq__(self, other) -> bool:
        if isinstance(other, PriorityList):
            return self._names == other._names
        if isinstance(other, (list, tuple)):
            return list(self._names) == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._names)

    def __repr__(self) -> str:
        return f"PriorityList({list(self._names)!r})"

    def rank(self, source: str) -> int:
        """Return the priority rank of *source*; unknown sources rank last."""
        return self._ranks.get(source, len(self._names))

    def order(self, items: Iterable[T], key: Callable[[T], str]) -> List[T]:
        """Sort *items* by the rank of the source name returned by *key*."""
        return sorted(items, key=lambda item: (self.rank(key(item)), key(item)))


def _split_priority(priority_string: str) -> List[str]:
    return [name.strip() for name in priority_string.split(",")]


def resolve_priority(
    configured_sources: Iterable[str],
    priority_string: Optional[str],
    genotype_merge_type: GenotypeMergeType,
) -> PriorityList:
    """Build the priority list for a run and check it against the inputs.

    PRIORITIZE requires an explicit comma-separated priority string. Every
    other mode falls back to the configured sources sorted by name, which is
    arbitrary but stable from run to run.
    """
    sources = set(configured_sources)
    if genotype_merge_type is GenotypeMergeType.PRIORITIZE:
        if priority_string is None:
            raise MissingPriorityError(
                "Priority string must be provided if you want to prioritize genotypes"
            )
        names = _split_priority(priority_string)
    else:
        names = sorted(sources)

    if len(names) != len(sources):
        raise PriorityMismatchError(
            "The priority list must contain exactly one entry per input source: "
            f"sources={sorted(sources)} priority={names}"
        )
    if set(names) != sources:
        raise PriorityMismatchError(
            f"Not all priority elements provided as input sources: {priority_string}"
        )
    return PriorityList(names)


__all__ = ["PriorityList", "resolve_priority"]
