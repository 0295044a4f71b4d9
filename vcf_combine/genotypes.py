"""Per-sample genotype selection across sources."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple

from .logging_utils import DuplicateSampleError
from .models import Genotype, GenotypeMergeType
from .priority import PriorityList


def merged_sample_name(sample: str, source: str, uniquify: bool) -> str:
    """Name used for *sample* from *source* in the merged output."""
    return f"{sample}.{source}" if uniquify else sample


def _shared_samples(
    per_source_genotypes: Mapping[str, Mapping[str, Genotype]],
    source_samples: Optional[Mapping[str, Iterable[str]]],
) -> Set[str]:
    # Sample sets known up front keep renaming stable across positions.
    catalogue = source_samples if source_samples is not None else per_source_genotypes
    counts: Counter = Counter()
    for names in catalogue.values():
        counts.update(set(names))
    if source_samples is not None:
        for source, genotypes in per_source_genotypes.items():
            if source not in source_samples:
                counts.update(set(genotypes))
    return {name for name, count in counts.items() if count > 1}


def _prioritize(
    samples: Iterable[str],
    per_source_genotypes: Mapping[str, Mapping[str, Genotype]],
    priority: PriorityList,
    remaps: Mapping[str, Tuple[int, ...]],
) -> Dict[str, Genotype]:
    ordered_sources = priority.order(per_source_genotypes, key=lambda source: source)
    wanted = list(samples)
    for source in ordered_sources:
        for sample in per_source_genotypes[source]:
            if sample not in wanted:
                wanted.append(sample)

    merged: Dict[str, Genotype] = {}
    for sample in wanted:
        fallback: Optional[Genotype] = None
        for source in ordered_sources:
            genotype = per_source_genotypes[source].get(sample)
            if genotype is None:
                continue
            if genotype.is_called:
                merged[sample] = genotype.remapped(remaps[source])
                break
            if fallback is None:
                fallback = genotype.remapped(remaps[source])
        else:
            merged[sample] = fallback if fallback is not None else Genotype.no_call()
    return merged


def _keep_distinct(
    samples: Iterable[str],
    per_source_genotypes: Mapping[str, Mapping[str, Genotype]],
    priority: PriorityList,
    mode: GenotypeMergeType,
    remaps: Mapping[str, Tuple[int, ...]],
    source_samples: Optional[Mapping[str, Iterable[str]]],
) -> Dict[str, Genotype]:
    ordered_sources = priority.order(per_source_genotypes, key=lambda source: source)
    shared = _shared_samples(per_source_genotypes, source_samples)
    if shared and mode is GenotypeMergeType.REQUIRE_UNIQUE:
        raise DuplicateSampleError(
            "Duplicate sample names found across sources while unique samples are required: "
            + ", ".join(sorted(shared))
        )

    merged: Dict[str, Genotype] = {}
    for source in ordered_sources:
        for sample, genotype in per_source_genotypes[source].items():
            name = merged_sample_name(sample, source, sample in shared)
            merged[name] = genotype.remapped(remaps[source])
    for sample in samples:
        merged.setdefault(sample, Genotype.no_call())
    return merged


def merge_genotypes(
    samples: Iterable[str],
    per_source_genotypes: Mapping[str, Mapping[str, Genotype]],
    priority: PriorityList,
    mode: GenotypeMergeType,
    remaps: Mapping[str, Tuple[int, ...]],
    source_samples: Optional[Mapping[str, Iterable[str]]] = None,
) -> Dict[str, Genotype]:
    """Select or combine the genotype of every sample across sources.

    *samples* names every sample the merged record must carry; samples no
    source called are emitted as no-calls rather than omitted. Allele indices
    of kept genotypes are rewritten through the owning source's *remaps*
    entry. Under UNIQUIFY and REQUIRE_UNIQUE, *samples* holds merged names.
    """
    if mode is GenotypeMergeType.PRIORITIZE:
        return _prioritize(samples, per_source_genotypes, priority, remaps)
    if mode in (GenotypeMergeType.UNIQUIFY, GenotypeMergeType.REQUIRE_UNIQUE):
        return _keep_distinct(samples, per_source_genotypes, priority, mode, remaps, source_samples)
    raise ValueError(f"Unsupported genotype merge type: {mode!r}")


__all__ = ["merge_genotypes", "merged_sample_name"]
