"""Unification of reference and alternate alleles across sources at one locus.

Sources may describe the same site with different reference spans, e.g. one
source reports the SNV ``G>T`` while another reports the deletion ``GA>G``
at the same position. The unified reference is the longest reference seen
and alternates from records with a shorter reference are right-padded with
the missing reference bases, so the SNV above becomes ``GA>TA``. Symbolic
alleles are never padded. References that only differ in case are compared
upper-cased, and then every base allele at the locus is upper-cased too.
A reference genome slice never replaces the records' alleles; it is used to
flag records whose reference disagrees with the genome.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .logging_utils import AlleleConflictError, handle_non_critical_error
from .models import SourceTaggedRecord
from .priority import PriorityList


@dataclass(frozen=True)
class AlleleUnification:
    reference: str
    alternates: Tuple[str, ...]
    remaps: Dict[str, Tuple[int, ...]]
    """Per source: local allele index (0 = reference) -> unified allele index."""

    needed_reconciliation: bool = False

    @property
    def alleles(self) -> Tuple[str, ...]:
        return (self.reference,) + self.alternates


def is_symbolic(allele: str) -> bool:
    """Return True for symbolic, spanning-deletion and breakend alleles."""
    return (
        allele.startswith("<")
        or allele == "*"
        or "[" in allele
        or "]" in allele
        or allele.startswith(".")
        or allele.endswith(".")
    )


def pad_allele(allele: str, record_reference: str, unified_reference: str) -> str:
    """Extend *allele* with the reference suffix it is missing."""
    if is_symbolic(allele) or len(record_reference) >= len(unified_reference):
        return allele
    return allele + unified_reference[len(record_reference):]


def _fold(allele: str) -> str:
    return allele if is_symbolic(allele) else allele.upper()


def _unified_reference(ordered: Sequence[SourceTaggedRecord]) -> Tuple[str, bool]:
    """Return the longest reference and whether allele case had to be folded."""
    longest = ordered[0].record.reference
    for tagged in ordered[1:]:
        if len(tagged.record.reference) > len(longest):
            longest = tagged.record.reference

    if all(longest.startswith(tagged.record.reference) for tagged in ordered):
        return longest, False

    folded = longest.upper()
    for tagged in ordered:
        if not folded.startswith(tagged.record.reference.upper()):
            raise AlleleConflictError(
                "The provided variant files have inconsistent references for the same position: "
                f"{tagged.record.contig}:{tagged.record.position} "
                f"{tagged.source} has {tagged.record.reference}, expected a prefix of {longest}"
            )
    return folded, True


def _check_against_genome(ordered: Sequence[SourceTaggedRecord], reference_bases: str) -> None:
    genome = reference_bases.upper()
    for tagged in ordered:
        ref = tagged.record.reference.upper()
        span = min(len(ref), len(genome))
        if ref[:span] != genome[:span]:
            handle_non_critical_error(
                f"Reference allele {tagged.record.reference} from {tagged.source} at "
                f"{tagged.record.contig}:{tagged.record.position} disagrees with the "
                f"reference genome ({genome[:len(ref)]}); keeping the record's alleles."
            )


def unify_alleles(
    records: Sequence[SourceTaggedRecord],
    priority: PriorityList,
    reference_bases: Optional[str] = None,
) -> AlleleUnification:
    """Compute the union allele set and each source's allele index remap.

    *reference_bases*, when given, is only checked against the records'
    references; a mismatch is logged and the records' own alleles are kept.
    """
    if not records:
        raise ValueError("unify_alleles requires at least one record")

    ordered = priority.order(records, key=lambda tagged: tagged.source)
    reference, folded = _unified_reference(ordered)
    if reference_bases:
        _check_against_genome(ordered, reference_bases)

    alternates: List[str] = []
    index_of: Dict[str, int] = {reference: 0}
    remaps: Dict[str, Tuple[int, ...]] = {}
    needed = folded

    for tagged in ordered:
        record = tagged.record
        record_reference = record.reference.upper() if folded else record.reference
        if record_reference != reference:
            needed = True
        remap = [0]
        for alt in record.alternates:
            padded = pad_allele(_fold(alt) if folded else alt, record_reference, reference)
            if padded == reference:
                raise AlleleConflictError(
                    f"Alternate allele {alt} from {tagged.source} at {record.contig}:{record.position} "
                    f"matches the unified reference {reference}"
                )
            unified_index = index_of.get(padded)
            if unified_index is None:
                alternates.append(padded)
                unified_index = len(alternates)
                index_of[padded] = unified_index
            remap.append(unified_index)
        remaps[tagged.source] = tuple(remap)

    if not needed:
        alt_sets = {tagged.record.alternates for tagged in ordered}
        needed = len(alt_sets) > 1

    return AlleleUnification(
        reference=reference,
        alternates=tuple(alternates),
        remaps=remaps,
        needed_reconciliation=needed,
    )


__all__ = ["AlleleUnification", "is_symbolic", "pad_allele", "unify_alleles"]
