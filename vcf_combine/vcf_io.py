"""Conversion between :mod:`vcfpy` objects and the merge engine's records.

Besides record conversion this module builds the combined output header
from the input headers, writes merged records through :class:`VcfRecordSink`
(BGZF-compressing and tabix-indexing ``.vcf.gz`` destinations with
:mod:`pysam`) and looks up reference bases from an indexed FASTA file.
"""

from __future__ import annotations

import copy
import os
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pysam
import vcfpy
from vcfpy.parser import process_alt

from .annotation import Annotator
from .filtering import normalize_filters
from .genotypes import merged_sample_name
from .logging_utils import (
    DuplicateSampleError,
    HeaderConflictError,
    OutputSinkError,
    handle_critical_error,
    handle_non_critical_error,
    log_message,
)
from .models import Genotype, GenotypeMergeType, MergedRecord, VariantRecord
from .priority import PriorityList

SOURCE_NAME = "CombineVariants"
SET_KEY_DESCRIPTION = "Source VCF for the merged record in CombineVariants"


def _alt_value(alt) -> str:
    serialize = getattr(alt, "serialize", None)
    if callable(serialize):
        return serialize()
    return getattr(alt, "value", str(alt))


def _alt_record(value: str, reference: str):
    """Build the vcfpy ALT object, typed the same way vcfpy types parsed ALTs."""
    # process_alt never consults the header.
    return process_alt(None, reference, value)


def from_vcfpy_record(record) -> VariantRecord:
    """Build a :class:`VariantRecord` from a parsed :class:`vcfpy.Record`."""
    genotypes: Dict[str, Genotype] = {}
    for call in record.calls or []:
        data = dict(call.data or {})
        gt = data.pop("GT", None)
        gq = data.pop("GQ", None)
        genotypes[call.sample] = Genotype.from_gt(gt, quality=gq, attributes=data)
    return VariantRecord(
        contig=record.CHROM,
        position=record.POS,
        reference=record.REF,
        alternates=tuple(_alt_value(alt) for alt in record.ALT or []),
        filters=normalize_filters(record.FILTER),
        info=copy.deepcopy(dict(record.INFO or {})),
        genotypes=genotypes,
        ids=tuple(record.ID or []),
        quality=record.QUAL,
    )


def _order_format(genotypes: Mapping[str, Genotype]) -> List[str]:
    keys: List[str] = ["GT"]
    if any(g.quality is not None for g in genotypes.values()):
        keys.append("GQ")
    for genotype in genotypes.values():
        for key in genotype.attributes:
            if key not in keys:
                keys.append(key)
    return keys


def _filter_column(filters: Optional[Tuple[str, ...]]) -> List[str]:
    if filters is None:
        return []
    return list(filters) if filters else ["PASS"]


def to_vcfpy_record(record: VariantRecord, sample_order: Sequence[str]):
    """Build a :class:`vcfpy.Record` whose calls follow *sample_order*."""
    fmt_keys = _order_format(record.genotypes) if sample_order else []
    calls = []
    for sample in sample_order:
        genotype = record.genotypes.get(sample) or Genotype.no_call()
        data: Dict[str, object] = {}
        for key in fmt_keys:
            if key == "GT":
                data[key] = genotype.to_gt()
            elif key == "GQ":
                data[key] = genotype.quality
            else:
                data[key] = genotype.attributes.get(key)
        calls.append(vcfpy.Call(sample, data))
    return vcfpy.Record(
        CHROM=record.contig,
        POS=record.position,
        ID=list(record.ids),
        REF=record.reference,
        ALT=[_alt_record(alt, record.reference) for alt in record.alternates],
        QUAL=record.quality,
        FILTER=_filter_column(record.filters),
        INFO=dict(record.info),
        FORMAT=fmt_keys,
        calls=calls,
    )


def _line_mapping(line) -> Dict[str, str]:
    mapping = getattr(line, "mapping", None)
    return dict(mapping) if isinstance(mapping, dict) else {}


def combined_sample_names(
    source_samples: Mapping[str, Sequence[str]],
    priority: PriorityList,
    mode: GenotypeMergeType,
) -> List[str]:
    """Sample columns of the combined output, following the priority order."""
    seen: Dict[str, str] = {}
    shared = set()
    for source in priority.order(source_samples, key=lambda name: name):
        for sample in source_samples[source]:
            if sample in seen and seen[sample] != source:
                shared.add(sample)
            seen.setdefault(sample, source)

    if shared and mode is GenotypeMergeType.REQUIRE_UNIQUE:
        raise DuplicateSampleError(
            "Duplicate sample names found across sources while unique samples are required: "
            + ", ".join(sorted(shared))
        )

    names: List[str] = []
    for source in priority.order(source_samples, key=lambda name: name):
        for sample in source_samples[source]:
            uniquify = mode is not GenotypeMergeType.PRIORITIZE and sample in shared
            name = merged_sample_name(sample, source, uniquify)
            if name not in names:
                names.append(name)
    return names


def union_headers(
    headers: Mapping[str, "vcfpy.Header"],
    priority: PriorityList,
    mode: GenotypeMergeType,
    *,
    set_key: Optional[str] = None,
    annotator: Optional[Annotator] = None,
):
    """Merge the input headers into the header of the combined output.

    Lines of the highest priority source come first; later sources only add
    INFO, FORMAT, FILTER, ALT and contig definitions not seen before. INFO
    and FORMAT definitions that disagree on ``Number`` or ``Type`` abort the
    run, differing descriptions only produce a warning.
    """
    ordered = priority.order(headers, key=lambda name: name)
    if not ordered:
        handle_critical_error("Unable to construct a combined VCF header without inputs.")

    lines: List[object] = []
    seen: Dict[Tuple[str, str], object] = {}
    for position, source in enumerate(ordered):
        for line in headers[source].lines:
            key = getattr(line, "key", None)
            line_id = getattr(line, "id", None)
            if key in {"source", "fileDate"}:
                continue
            if key == "INFO" and line_id == set_key:
                continue
            if line_id is None:
                if position == 0:
                    lines.append(copy.deepcopy(line))
                continue
            existing = seen.get((key, line_id))
            if existing is None:
                seen[(key, line_id)] = line
                lines.append(copy.deepcopy(line))
                continue
            exist_map, new_map = _line_mapping(existing), _line_mapping(line)
            if key in {"INFO", "FORMAT"}:
                for field_name in ("Number", "Type"):
                    if exist_map.get(field_name) != new_map.get(field_name):
                        raise HeaderConflictError(
                            f"{key} header definitions conflict across sources. "
                            f"Field '{field_name}' for {key} '{line_id}' differs: "
                            f"{exist_map.get(field_name)!r} vs {new_map.get(field_name)!r} (in {source})."
                        )
            if exist_map.get("Description") != new_map.get("Description"):
                handle_non_critical_error(
                    f"Description for {key} '{line_id}' differs between sources; keeping the first one."
                )

    source_samples = {source: list(headers[source].samples.names) for source in ordered}
    combined = vcfpy.Header(
        lines=lines,
        samples=vcfpy.SamplesInfos(combined_sample_names(source_samples, priority, mode)),
    )
    combined.add_line(vcfpy.HeaderLine("source", SOURCE_NAME))
    if set_key is not None:
        combined.add_info_line(
            {"ID": set_key, "Number": "1", "Type": "String", "Description": SET_KEY_DESCRIPTION}
        )
    if annotator is not None:
        for mapping in annotator.header_lines():
            if not combined.has_header_line("INFO", mapping["ID"]):
                combined.add_info_line(dict(mapping))
    return combined


class VcfRecordSink:
    """Write merged records to a VCF destination.

    Destinations ending in ``.gz`` are written as plain text first, then
    BGZF-compressed and tabix-indexed when the sink is closed.
    """

    def __init__(self, path: Union[str, os.PathLike], header):
        self.destination = os.path.abspath(os.fspath(path))
        self.compress = self.destination.endswith(".gz")
        self._plain_path = self.destination[:-3] if self.compress else self.destination
        self.header = header
        self.sample_order = list(header.samples.names)
        self.records_written = 0
        try:
            directory = os.path.dirname(self.destination)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._writer = vcfpy.Writer.from_path(self._plain_path, header)
        except OSError as exc:
            raise OutputSinkError(
                f"Unable to open VCF output {self.destination}: {exc}", destination=self.destination
            ) from exc

    def __enter__(self) -> "VcfRecordSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(finalize=exc_type is None)

    def write(self, merged: Union[MergedRecord, VariantRecord]) -> None:
        record = merged.record if isinstance(merged, MergedRecord) else merged
        try:
            self._writer.write_record(to_vcfpy_record(record, self.sample_order))
        except OSError as exc:
            raise OutputSinkError(
                f"Failed to write record {record.contig}:{record.position} to {self.destination}: {exc}",
                destination=self.destination,
            ) from exc
        self.records_written += 1

    def close(self, finalize: bool = True) -> None:
        writer, self._writer = getattr(self, "_writer", None), None
        if writer is None:
            return
        try:
            writer.close()
        except OSError as exc:
            raise OutputSinkError(
                f"Failed to close VCF output {self.destination}: {exc}", destination=self.destination
            ) from exc
        if not (self.compress and finalize):
            return
        try:
            pysam.tabix_compress(self._plain_path, self.destination, force=True)
            pysam.tabix_index(self.destination, preset="vcf", force=True)
        except (OSError, ValueError) as exc:
            raise OutputSinkError(
                f"Failed to compress and index {self.destination}: {exc}", destination=self.destination
            ) from exc
        try:
            os.remove(self._plain_path)
        except OSError:
            handle_non_critical_error(f"Could not remove intermediate file {self._plain_path}")
        log_message(f"Combined VCF written and indexed: {self.destination}")


class ReferenceGenome:
    """Reference base lookup backed by an indexed FASTA file."""

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = os.fspath(path)
        try:
            self._fasta = pysam.FastaFile(self.path)
        except (OSError, ValueError) as exc:
            handle_critical_error(f"Unable to open reference FASTA {self.path}: {exc}", exc_info=exc)
        self._contigs = set(self._fasta.references)

    def __enter__(self) -> "ReferenceGenome":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._fasta.close()

    def bases(self, contig: str, position: int, length: int = 1) -> Optional[str]:
        """Return *length* reference bases starting at 1-based *position*."""
        if contig not in self._contigs:
            return None
        start = position - 1
        return self._fasta.fetch(contig, start, start + max(1, length)).upper() or None


__all__ = [
    "ReferenceGenome",
    "VcfRecordSink",
    "combined_sample_names",
    "from_vcfpy_record",
    "to_vcfpy_record",
    "union_headers",
]
