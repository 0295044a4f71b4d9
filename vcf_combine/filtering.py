"""Filter status resolution for records merged from several sources.

A record counts as *unfiltered* when its FILTER column is ``PASS`` or was
never set (``.``) and as *filtered* when it names at least one failed
filter. :func:`resolve_filter` applies union or intersection semantics to
the per-source statuses and reports which sources contributed, honouring the
option to treat filtered records as if they supplied no call at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import PASS_FILTER, MergeType, SourceTaggedRecord
from .priority import PriorityList

UNFILTERED_SENTINELS = frozenset({None, "", ".", PASS_FILTER})


def normalize_filters(values: Optional[Iterable[str]]) -> Optional[Tuple[str, ...]]:
    """Turn a raw FILTER list into the record representation.

    ``None`` or an empty list mean no filters were applied; a list holding
    only ``PASS`` becomes ``()``; otherwise the failed filter names are kept.
    """
    if values is None:
        return None
    raw = [v for v in values if v not in {None, "", "."}]
    if not raw:
        return None
    return tuple(v for v in raw if v != PASS_FILTER)


def is_filtered_status(filters: Optional[Sequence[str]]) -> bool:
    """Return True when *filters* names at least one failed filter."""
    if not filters:
        return False
    return any(f not in UNFILTERED_SENTINELS for f in filters)


@dataclass(frozen=True)
class FilterResolution:
    filters: Optional[Tuple[str, ...]]
    """Merged status in :class:`~vcf_combine.models.VariantRecord` form."""

    provenance_sources: Tuple[str, ...]
    filtered_sources: Tuple[str, ...]
    contributing: Tuple[SourceTaggedRecord, ...]

    @property
    def is_filtered(self) -> bool:
        return bool(self.filters)


def _merged_unfiltered_status(records: Sequence[SourceTaggedRecord]) -> Optional[Tuple[str, ...]]:
    # PASS wins over "never filtered" so a single record round-trips unchanged.
    if any(tagged.record.filters is not None and not tagged.record.is_filtered for tagged in records):
        return ()
    return None


def _merged_filtered_status(records: Sequence[SourceTaggedRecord]) -> Tuple[str, ...]:
    names: List[str] = []
    for tagged in records:
        for name in tagged.record.filters or ():
            if name not in names:
                names.append(name)
    return tuple(names)


def resolve_filter(
    records: Sequence[SourceTaggedRecord],
    mode: MergeType,
    filtered_are_uncalled: bool,
    priority: Optional[PriorityList] = None,
) -> FilterResolution:
    """Decide the merged filter status and the contributing sources."""
    ordered = list(records)
    if priority is not None:
        ordered = priority.order(ordered, key=lambda tagged: tagged.source)

    if filtered_are_uncalled:
        ordered = [tagged for tagged in ordered if not tagged.record.is_filtered]

    filtered = [tagged for tagged in ordered if tagged.record.is_filtered]
    unfiltered = [tagged for tagged in ordered if not tagged.record.is_filtered]

    if not ordered:
        status: Optional[Tuple[str, ...]] = None
    elif mode is MergeType.UNION:
        status = _merged_unfiltered_status(unfiltered) if unfiltered else _merged_filtered_status(filtered)
    elif mode is MergeType.INTERSECTION:
        status = _merged_filtered_status(filtered) if filtered else _merged_unfiltered_status(unfiltered)
    else:
        raise ValueError(f"Unsupported variant merge type: {mode!r}")

    return FilterResolution(
        filters=status,
        provenance_sources=tuple(tagged.source for tagged in ordered),
        filtered_sources=tuple(tagged.source for tagged in filtered),
        contributing=tuple(ordered),
    )


__all__ = [
    "UNFILTERED_SENTINELS",
    "FilterResolution",
    "is_filtered_status",
    "normalize_filters",
    "resolve_filter",
]
