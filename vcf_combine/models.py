"""Value types shared by the merge engine, the VCF I/O layer and the writers."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, NamedTuple, Optional, Tuple

from .logging_utils import InvalidRecordError

PASS_FILTER = "PASS"
_GT_SPLIT = re.compile(r"[/|]")


class Locus(NamedTuple):
    """A (contig, 1-based position) coordinate."""

    contig: str
    position: int


class MergeType(enum.Enum):
    """How the filter status of per-source records combines."""

    UNION = "UNION"
    INTERSECTION = "INTERSECTION"

    @classmethod
    def parse(cls, value) -> "MergeType":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError as exc:
            choices = ", ".join(m.name for m in cls)
            raise ValueError(f"Unknown variant merge option {value!r}; choose one of {choices}") from exc


class GenotypeMergeType(enum.Enum):
    """How genotypes for samples shared across sources are merged."""

    PRIORITIZE = "PRIORITIZE"
    UNIQUIFY = "UNIQUIFY"
    REQUIRE_UNIQUE = "REQUIRE_UNIQUE"

    @classmethod
    def parse(cls, value) -> "GenotypeMergeType":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError as exc:
            choices = ", ".join(m.name for m in cls)
            raise ValueError(f"Unknown genotype merge option {value!r}; choose one of {choices}") from exc


@dataclass(frozen=True)
class Genotype:
    """A sample's call at one locus, indexed into its record's allele list."""

    alleles: Tuple[Optional[int], ...]
    """Allele indices; ``0`` is the reference and ``None`` a missing allele."""

    phased: bool = False
    quality: Optional[float] = None
    """Genotype quality (the ``GQ`` FORMAT field)."""

    attributes: Dict[str, object] = field(default_factory=dict)
    """Remaining per-sample FORMAT fields, carried verbatim."""

    # Unhashable: holds dict fields.
    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def no_call(cls, ploidy: int = 2) -> "Genotype":
        return cls(alleles=(None,) * max(1, ploidy))

    @classmethod
    def from_gt(cls, gt: Optional[str], quality=None, attributes=None) -> "Genotype":
        """Parse a VCF ``GT`` string such as ``0/1`` or ``1|.``."""
        text = (gt or "").strip()
        if not text or text == ".":
            alleles: Tuple[Optional[int], ...] = (None,) if text == "." else (None, None)
            return cls(alleles=alleles, quality=quality, attributes=dict(attributes or {}))
        parsed = []
        for token in _GT_SPLIT.split(text):
            token = token.strip()
            if token in {"", "."}:
                parsed.append(None)
                continue
            try:
                parsed.append(int(token))
            except ValueError as exc:
                raise InvalidRecordError(f"Malformed genotype {gt!r}") from exc
        return cls(
            alleles=tuple(parsed),
            phased="|" in text,
            quality=quality,
            attributes=dict(attributes or {}),
        )

    @property
    def is_called(self) -> bool:
        return any(a is not None for a in self.alleles)

    @property
    def ploidy(self) -> int:
        return len(self.alleles)

    def to_gt(self) -> str:
        sep = "|" if self.phased else "/"
        return sep.join("." if a is None else str(a) for a in self.alleles)

    def remapped(self, remap: Tuple[int, ...]) -> "Genotype":
        """Return a copy whose allele indices are rewritten through *remap*."""
        alleles = tuple(None if a is None else remap[a] for a in self.alleles)
        return Genotype(alleles, self.phased, self.quality, dict(self.attributes))


@dataclass(frozen=True)
class VariantRecord:
    """One variant call record: a locus, its alleles, filters and genotypes."""

    contig: str
    position: int
    reference: str
    alternates: Tuple[str, ...] = ()
    filters: Optional[Tuple[str, ...]] = None
    """``None`` when no filters were applied, ``()`` for PASS, else failed filter names."""

    info: Dict[str, object] = field(default_factory=dict)
    genotypes: Dict[str, Genotype] = field(default_factory=dict)
    ids: Tuple[str, ...] = ()
    quality: Optional[float] = None

    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self):
        if not self.contig:
            raise InvalidRecordError("Record contig must be a non-empty string")
        if not isinstance(self.position, int) or self.position < 1:
            raise InvalidRecordError(f"Record position must be a positive integer, got {self.position!r}")
        if not self.reference:
            raise InvalidRecordError(f"Empty reference allele at {self.contig}:{self.position}")
        object.__setattr__(self, "alternates", tuple(self.alternates))
        if self.filters is not None:
            object.__setattr__(
                self,
                "filters",
                tuple(f for f in self.filters if f not in {None, "", ".", PASS_FILTER}),
            )
        seen = {self.reference}
        for alt in self.alternates:
            if not alt:
                raise InvalidRecordError(f"Empty alternate allele at {self.contig}:{self.position}")
            if alt in seen:
                raise InvalidRecordError(
                    f"Alternate allele {alt!r} duplicates another allele at {self.contig}:{self.position}"
                )
            seen.add(alt)
        allele_count = len(self.alternates) + 1
        for sample, genotype in self.genotypes.items():
            for index in genotype.alleles:
                if index is not None and not 0 <= index < allele_count:
                    raise InvalidRecordError(
                        f"Genotype {genotype.to_gt()} for sample {sample} references allele {index} "
                        f"but {self.contig}:{self.position} has {allele_count} allele(s)"
                    )

    @property
    def locus(self) -> Locus:
        return Locus(self.contig, self.position)

    @property
    def alleles(self) -> Tuple[str, ...]:
        return (self.reference,) + self.alternates

    @property
    def is_filtered(self) -> bool:
        return bool(self.filters)

    @property
    def is_variant(self) -> bool:
        return bool(self.alternates)


@dataclass(frozen=True)
class SourceTaggedRecord:
    """A record together with the name of the source (track) it came from."""

    source: str
    record: VariantRecord


@dataclass(frozen=True)
class MergedRecord:
    """The single authoritative record produced for one locus."""

    record: VariantRecord
    provenance: str
    sources: Tuple[str, ...] = ()
    complex_merge: bool = False


def copy_info(info: Mapping[str, object]) -> Dict[str, object]:
    """Return a shallow copy of *info* with list values duplicated."""
    return {key: list(value) if isinstance(value, list) else value for key, value in info.items()}


__all__ = [
    "PASS_FILTER",
    "Locus",
    "MergeType",
    "GenotypeMergeType",
    "Genotype",
    "VariantRecord",
    "SourceTaggedRecord",
    "MergedRecord",
    "copy_info",
]
