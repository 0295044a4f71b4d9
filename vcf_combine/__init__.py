"""Combine variant-call records from several sources into one record per locus.

This package exposes the merge engine used to reconcile VCF records that
several independent sources report for the same position, together with the
:mod:`vcfpy`/:mod:`pysam` backed I/O layer that drives it over whole files.
Importing the package immediately verifies that those runtime dependencies
are available so that later operations can rely on them without deferred
import errors.
"""

from __future__ import annotations


def _import_dependency(name: str):
    try:
        module = __import__(name)
    except ImportError as exc:  # pragma: no cover - exercised when dependency missing
        raise ModuleNotFoundError(
            f"The '{name}' package is required for vcf_combine. "
            f"Please install it with 'pip install {name}'."
        ) from exc
    return module


vcfpy = _import_dependency("vcfpy")
pysam = _import_dependency("pysam")

from .config import CombineContext, CombineOptions, build_context  # noqa: E402
from .merging import CombineVariantsTask, combine  # noqa: E402
from .models import (  # noqa: E402
    Genotype,
    GenotypeMergeType,
    Locus,
    MergedRecord,
    MergeType,
    SourceTaggedRecord,
    VariantRecord,
)
from .priority import PriorityList, resolve_priority  # noqa: E402
from .wiggle import WiggleHeader, WiggleWriter  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "CombineContext",
    "CombineOptions",
    "CombineVariantsTask",
    "Genotype",
    "GenotypeMergeType",
    "Locus",
    "MergeType",
    "MergedRecord",
    "PriorityList",
    "SourceTaggedRecord",
    "VariantRecord",
    "WiggleHeader",
    "WiggleWriter",
    "build_context",
    "combine",
    "resolve_priority",
]
