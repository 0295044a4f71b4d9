"""Per-position combination of variant records from several sources.

:func:`combine` is a pure function of its inputs and the immutable
:class:`~vcf_combine.config.CombineContext`; it performs no I/O and keeps no
state between calls, so positions can be processed concurrently.
:class:`CombineVariantsTask` packages it as the map/reduce pair the
traversal driver calls into.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .alleles import AlleleUnification, unify_alleles
from .annotation import prune_record
from .config import CombineContext
from .filtering import FilterResolution, resolve_filter
from .genotypes import merge_genotypes
from .logging_utils import InconsistentInputError, log_message
from .models import MergedRecord, MergeType, SourceTaggedRecord, VariantRecord, copy_info

INTERSECTION_TAG = "Intersection"
FILTERED_IN_ALL_TAG = "FilteredInAll"
REFERENCE_IN_ALL_TAG = "ReferenceInAll"
FILTERED_PREFIX = "filterIn"


def _check_single_locus(records: Sequence[SourceTaggedRecord]) -> None:
    loci = {tagged.record.locus for tagged in records}
    if len(loci) > 1:
        described = ", ".join(f"{c}:{p}" for c, p in sorted(loci))
        raise InconsistentInputError(f"Records handed to the merger span several loci: {described}")
    seen = set()
    for tagged in records:
        if tagged.source in seen:
            raise InconsistentInputError(
                f"Source {tagged.source} supplied more than one record at "
                f"{tagged.record.contig}:{tagged.record.position}"
            )
        seen.add(tagged.source)


def provenance_tag(
    resolution: FilterResolution,
    context: CombineContext,
) -> str:
    """Describe which sources contributed to a merged record."""
    sources = resolution.provenance_sources
    filtered = set(resolution.filtered_sources)
    if len(sources) == 1:
        return sources[0]
    if (
        context.variant_merge_type is MergeType.INTERSECTION
        and not filtered
        and len(sources) == len(context.priority)
    ):
        return INTERSECTION_TAG
    if filtered and len(filtered) == len(sources):
        return FILTERED_IN_ALL_TAG
    if not any(tagged.record.is_variant for tagged in resolution.contributing):
        return REFERENCE_IN_ALL_TAG
    return "-".join(
        f"{FILTERED_PREFIX}{source}" if source in filtered else source for source in sources
    )


def _merge_ids(records: Sequence[SourceTaggedRecord]) -> Tuple[str, ...]:
    merged: List[str] = []
    for tagged in records:
        for rid in tagged.record.ids:
            if rid and rid != "." and rid not in merged:
                merged.append(rid)
    return tuple(merged)


def _merge_quality(records: Sequence[SourceTaggedRecord]) -> Optional[float]:
    known = [tagged.record.quality for tagged in records if tagged.record.quality is not None]
    return max(known) if known else None


def _merge_info(records: Sequence[SourceTaggedRecord]) -> Dict[str, object]:
    info: Dict[str, object] = {}
    for tagged in records:
        for key, value in copy_info(tagged.record.info).items():
            info.setdefault(key, value)
    return info


def _describe_alleles(reference: str, alternates: Sequence[str]) -> str:
    return f"{reference}>{','.join(alternates) or '.'}"


def _is_complex(records: Sequence[SourceTaggedRecord], alleles: AlleleUnification) -> bool:
    if len(records) < 2:
        return False
    if alleles.needed_reconciliation:
        return True
    seen = set()
    for tagged in records:
        samples = set(tagged.record.genotypes)
        if seen & samples:
            return True
        seen |= samples
    return False


def combine(
    records: Sequence[SourceTaggedRecord],
    context: CombineContext,
    reference_bases: Optional[str] = None,
) -> Optional[MergedRecord]:
    """Merge the per-source records found at one locus into a single record.

    Returns ``None`` when no source contributes, which happens for an empty
    input or when every record is filtered and filtered records are treated
    as uncalled.
    """
    if not records:
        return None
    _check_single_locus(records)

    resolution = resolve_filter(
        records,
        context.variant_merge_type,
        context.filtered_are_uncalled,
        context.priority,
    )
    contributing = resolution.contributing
    if not contributing:
        return None

    alleles = unify_alleles(contributing, context.priority, reference_bases)
    genotypes = merge_genotypes(
        context.samples,
        {tagged.source: tagged.record.genotypes for tagged in contributing},
        context.priority,
        context.genotype_merge_type,
        alleles.remaps,
        context.source_samples,
    )

    first = contributing[0].record
    info = _merge_info(contributing)
    provenance = provenance_tag(resolution, context)
    if context.set_key is not None:
        info[context.set_key] = provenance

    merged = VariantRecord(
        contig=first.contig,
        position=first.position,
        reference=alleles.reference,
        alternates=alleles.alternates,
        filters=resolution.filters,
        info=info,
        genotypes=genotypes,
        ids=_merge_ids(contributing),
        quality=_merge_quality(contributing),
    )

    complex_merge = _is_complex(contributing, alleles)
    if complex_merge and context.print_complex_merges:
        described = " | ".join(
            f"{tagged.source}={_describe_alleles(tagged.record.reference, tagged.record.alternates)}"
            for tagged in contributing
        )
        log_message(
            f"Complex merge at {first.contig}:{first.position}: {described} => "
            f"{_describe_alleles(alleles.reference, alleles.alternates)}",
            level=logging.INFO,
        )

    if context.annotator is not None:
        merged = context.annotator.annotate(merged)
    if context.minimal_output:
        keep = [context.set_key] if context.set_key is not None else []
        merged = prune_record(merged, keep)

    return MergedRecord(
        record=merged,
        provenance=provenance,
        sources=resolution.provenance_sources,
        complex_merge=complex_merge,
    )


@dataclass(frozen=True)
class CombineSummary:
    """Counters reduced across positions."""

    sites_seen: int = 0
    records_emitted: int = 0
    complex_merges: int = 0


@dataclass(frozen=True)
class PositionResult:
    merged: Optional[MergedRecord]
    summary: CombineSummary


class CombineVariantsTask:
    """Map/reduce adapter that a traversal engine drives position by position."""

    def __init__(self, context: CombineContext):
        self.context = context

    def process_position(
        self,
        records: Sequence[SourceTaggedRecord],
        reference_bases: Optional[str] = None,
    ) -> PositionResult:
        merged = combine(records, self.context, reference_bases)
        summary = CombineSummary(
            sites_seen=1 if records else 0,
            records_emitted=1 if merged is not None else 0,
            complex_merges=1 if merged is not None and merged.complex_merge else 0,
        )
        return PositionResult(merged, summary)

    @staticmethod
    def reduce_init() -> CombineSummary:
        return CombineSummary()

    @staticmethod
    def combine_partial_results(a: CombineSummary, b: CombineSummary) -> CombineSummary:
        return CombineSummary(
            sites_seen=a.sites_seen + b.sites_seen,
            records_emitted=a.records_emitted + b.records_emitted,
            complex_merges=a.complex_merges + b.complex_merges,
        )


__all__ = [
    "INTERSECTION_TAG",
    "FILTERED_IN_ALL_TAG",
    "REFERENCE_IN_ALL_TAG",
    "CombineSummary",
    "CombineVariantsTask",
    "PositionResult",
    "combine",
    "provenance_tag",
]
