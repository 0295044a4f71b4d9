"""Shared pytest fixtures and record builders for the vcf_combine test suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence

import pytest

from vcf_combine.config import CombineContext
from vcf_combine.logging_utils import configure_logging, logger
from vcf_combine.models import (
    Genotype,
    GenotypeMergeType,
    MergeType,
    SourceTaggedRecord,
    VariantRecord,
)
from vcf_combine.priority import PriorityList

VCF_HEADER = [
    "##fileformat=VCFv4.2",
    "##reference=GRCh38",
    "##contig=<ID=chr1,length=1000>",
    "##contig=<ID=chr2,length=1000>",
    '##INFO=<ID=DP,Number=1,Type=Integer,Description="Total depth">',
    '##FILTER=<ID=LowQual,Description="Low quality">',
    '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">',
    '##FORMAT=<ID=GQ,Number=1,Type=Integer,Description="Genotype quality">',
    '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth">',
]


def gt(text: str, quality=None, **attributes) -> Genotype:
    return Genotype.from_gt(text, quality=quality, attributes=attributes)


def make_record(
    ref: str = "G",
    alts: Sequence[str] = ("T",),
    *,
    contig: str = "chr1",
    pos: int = 100,
    filters: Optional[Iterable[str]] = (),
    info: Optional[Dict[str, object]] = None,
    genotypes: Optional[Dict[str, Genotype]] = None,
    ids: Sequence[str] = (),
    quality: Optional[float] = None,
) -> VariantRecord:
    return VariantRecord(
        contig=contig,
        position=pos,
        reference=ref,
        alternates=tuple(alts),
        filters=None if filters is None else tuple(filters),
        info=dict(info or {}),
        genotypes=dict(genotypes or {}),
        ids=tuple(ids),
        quality=quality,
    )


def tagged(source: str, record: VariantRecord) -> SourceTaggedRecord:
    return SourceTaggedRecord(source, record)


def make_context(
    priority: Sequence[str] = ("A", "B"),
    *,
    variant_merge_type: MergeType = MergeType.UNION,
    genotype_merge_type: GenotypeMergeType = GenotypeMergeType.PRIORITIZE,
    **kwargs,
) -> CombineContext:
    return CombineContext(
        priority=PriorityList(priority),
        variant_merge_type=variant_merge_type,
        genotype_merge_type=genotype_merge_type,
        **kwargs,
    )


def write_vcf(path: Path, samples: Sequence[str], rows: Sequence[str], header: Sequence[str] = VCF_HEADER) -> Path:
    """Write a small plain-text VCF with the shared header."""
    columns = ["#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO"]
    if samples:
        columns += ["FORMAT", *samples]
    lines = list(header) + ["\t".join(columns)] + list(rows)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def context_factory():
    return make_context


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers a test (or the CLI) attached to the combiner logger."""
    yield
    configure_logging(enable_file_logging=False)


@pytest.fixture
def combiner_caplog(caplog):
    """``caplog`` wired directly to the non-propagating combiner logger."""
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger=logger.name)
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)
