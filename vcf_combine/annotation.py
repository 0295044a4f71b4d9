"""Post-merge record annotation and minimal-output pruning."""

from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, List, Protocol, Tuple

from .models import Genotype, VariantRecord

ALLELE_COUNT_INFO_LINES: Tuple[Dict[str, str], ...] = (
    {
        "ID": "AC",
        "Number": "A",
        "Type": "Integer",
        "Description": "Allele count in genotypes, for each ALT allele, in the same order as listed",
    },
    {
        "ID": "AN",
        "Number": "1",
        "Type": "Integer",
        "Description": "Total number of alleles in called genotypes",
    },
    {
        "ID": "AF",
        "Number": "A",
        "Type": "Float",
        "Description": "Allele Frequency, for each ALT allele, in the same order as listed",
    },
)


class Annotator(Protocol):
    """Anything that can derive INFO attributes for a merged record."""

    def annotate(self, record: VariantRecord) -> VariantRecord:
        ...

    def header_lines(self) -> Iterable[Dict[str, str]]:
        ...


class AlleleCountAnnotator:
    """Recompute AC, AN and AF from the merged genotype calls."""

    def header_lines(self) -> Iterable[Dict[str, str]]:
        return ALLELE_COUNT_INFO_LINES

    def annotate(self, record: VariantRecord) -> VariantRecord:
        alt_n = len(record.alternates)
        ac = [0] * alt_n
        an = 0
        for genotype in record.genotypes.values():
            for allele_index in genotype.alleles:
                if allele_index is None:
                    continue
                an += 1
                if 1 <= allele_index <= alt_n:
                    ac[allele_index - 1] += 1
        info = dict(record.info)
        info["AC"] = ac
        info["AN"] = an
        info["AF"] = [round(c / an, 4) for c in ac] if an > 0 else [0.0] * alt_n
        return dataclasses.replace(record, info=info)


def prune_record(record: VariantRecord, keep_info_keys: Iterable[str] = ()) -> VariantRecord:
    """Strip a record down to alleles, filter status and bare genotype calls.

    INFO attributes listed in *keep_info_keys* survive; every other INFO
    attribute, genotype quality and per-sample attribute is dropped.
    """
    keep = {key for key in keep_info_keys if key}
    info = {key: value for key, value in record.info.items() if key in keep}
    genotypes = {
        sample: Genotype(alleles=genotype.alleles, phased=genotype.phased)
        for sample, genotype in record.genotypes.items()
    }
    return dataclasses.replace(record, info=info, genotypes=genotypes)


__all__: List[str] = [
    "ALLELE_COUNT_INFO_LINES",
    "Annotator",
    "AlleleCountAnnotator",
    "prune_record",
]
