"""Position-ordered traversal of several VCF inputs feeding the merge engine."""

from __future__ import annotations

import concurrent.futures
import heapq
import itertools
from contextlib import ExitStack
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import vcfpy
from vcfpy.exceptions import VCFPyException

from .annotation import AlleleCountAnnotator
from .config import CombineContext, CombineOptions, build_context
from .logging_utils import (
    InconsistentInputError,
    handle_critical_error,
    handle_non_critical_error,
    log_message,
)
from .merging import CombineSummary, CombineVariantsTask, PositionResult
from .models import Locus, SourceTaggedRecord
from .priority import resolve_priority
from .vcf_io import ReferenceGenome, VcfRecordSink, from_vcfpy_record, union_headers

BATCH_SIZE = 1024


def contig_ranks(headers: Iterable) -> Dict[str, int]:
    """Rank contigs by their first appearance in the header ``##contig`` lines."""
    ranks: Dict[str, int] = {}
    for header in headers:
        for line in getattr(header, "lines", []):
            if getattr(line, "key", None) == "contig" and getattr(line, "id", None):
                ranks.setdefault(line.id, len(ranks))
    return ranks


def _locus_key(locus: Locus, ranks: Mapping[str, int]) -> Tuple[int, str, int]:
    # Contigs missing from the headers sort after the declared ones, by name.
    return (ranks.get(locus.contig, len(ranks)), locus.contig, locus.position)


def _tagged_stream(source: str, reader, ranks: Mapping[str, int]) -> Iterator[Tuple[Tuple, str, SourceTaggedRecord]]:
    previous: Optional[Tuple] = None
    for raw in reader:
        record = from_vcfpy_record(raw)
        key = _locus_key(record.locus, ranks)
        if previous is not None and key < previous:
            raise InconsistentInputError(
                f"Input {source} is not sorted: {record.contig}:{record.position} follows an earlier locus"
            )
        previous = key
        yield key, source, SourceTaggedRecord(source, record)


def iter_loci(
    readers: Mapping[str, object],
    ranks: Mapping[str, int],
) -> Iterator[Tuple[Locus, List[SourceTaggedRecord]]]:
    """Yield every locus with the records each source holds there."""
    streams = [_tagged_stream(source, reader, ranks) for source, reader in readers.items()]
    merged = heapq.merge(*streams, key=lambda item: (item[0], item[1]))
    for _, group in itertools.groupby(merged, key=lambda item: item[0]):
        records: List[SourceTaggedRecord] = []
        sources = set()
        for _, source, tagged in group:
            if source in sources:
                handle_non_critical_error(
                    f"Source {source} has more than one record at "
                    f"{tagged.record.contig}:{tagged.record.position}; keeping the first."
                )
                continue
            sources.add(source)
            records.append(tagged)
        yield records[0].record.locus, records


def _reference_bases(
    reference: Optional[ReferenceGenome],
    locus: Locus,
    records: Sequence[SourceTaggedRecord],
) -> Optional[str]:
    if reference is None:
        return None
    span = max(len(tagged.record.reference) for tagged in records)
    return reference.bases(locus.contig, locus.position, span)


def _batched(iterable: Iterable, size: int) -> Iterator[list]:
    iterator = iter(iterable)
    while True:
        batch = list(itertools.islice(iterator, size))
        if not batch:
            return
        yield batch


def run_positions(
    task: CombineVariantsTask,
    loci: Iterable[Tuple[Locus, List[SourceTaggedRecord]]],
    reference: Optional[ReferenceGenome] = None,
    threads: int = 1,
) -> Iterator[PositionResult]:
    """Apply *task* to every locus, keeping results in locus order."""
    prepared = (
        (records, _reference_bases(reference, locus, records)) for locus, records in loci
    )
    if threads <= 1:
        for records, bases in prepared:
            yield task.process_position(records, bases)
        return
    with concurrent.futures.ThreadPoolExecutor(max_workers=threads) as executor:
        for batch in _batched(prepared, BATCH_SIZE):
            yield from executor.map(lambda item: task.process_position(*item), batch)


def combine_vcfs(
    inputs: Mapping[str, str],
    output_path: str,
    options: CombineOptions,
    verbose: bool = False,
) -> CombineSummary:
    """Combine the named VCF *inputs* into *output_path*."""
    if not inputs:
        handle_critical_error("No input VCF files specified.", exc_cls=InconsistentInputError)

    with ExitStack() as stack:
        readers: Dict[str, object] = {}
        for source, path in inputs.items():
            try:
                readers[source] = stack.enter_context(vcfpy.Reader.from_path(path))
            except (OSError, VCFPyException) as exc:
                handle_critical_error(f"Failed to open input {source}={path}: {exc}", exc_info=exc)
            log_message(f"Opened input {source}: {path}", verbose)

        headers = {source: reader.header for source, reader in readers.items()}
        source_samples = {source: list(header.samples.names) for source, header in headers.items()}
        priority = resolve_priority(inputs.keys(), options.priority, options.genotype_merge_option)
        annotator = AlleleCountAnnotator() if options.annotate else None
        header = union_headers(
            headers,
            priority,
            options.genotype_merge_option,
            set_key=options.set_key,
            annotator=annotator,
        )
        context: CombineContext = build_context(
            options,
            inputs.keys(),
            source_samples=source_samples,
            samples=header.samples.names,
            annotator=annotator,
        )
        log_message(
            f"Priority order: {', '.join(context.priority)}; variant merge "
            f"{context.variant_merge_type.name}, genotype merge {context.genotype_merge_type.name}",
            verbose,
        )

        reference = None
        if options.reference:
            reference = stack.enter_context(ReferenceGenome(options.reference))

        task = CombineVariantsTask(context)
        summary = task.reduce_init()
        sink = stack.enter_context(VcfRecordSink(output_path, header))
        loci = iter_loci(readers, contig_ranks(headers.values()))
        try:
            for result in run_positions(task, loci, reference, options.threads):
                if result.merged is not None:
                    sink.write(result.merged)
                summary = task.combine_partial_results(summary, result.summary)
        except VCFPyException as exc:
            handle_critical_error(f"Failed while reading input records: {exc}", exc_info=exc)

    log_message(
        f"Processed {summary.sites_seen} site(s), wrote {summary.records_emitted} record(s) "
        f"({summary.complex_merges} complex merge(s)) to {output_path}",
        verbose,
    )
    return summary


__all__ = ["combine_vcfs", "contig_ranks", "iter_loci", "run_positions"]
