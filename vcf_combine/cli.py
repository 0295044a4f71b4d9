"""Command-line entrypoint for combining VCF files from several sources."""
from __future__ import annotations

import argparse
import datetime
import logging
import os
import sys
from collections import OrderedDict
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_SET_KEY, CombineOptions
from .logging_utils import (
    LOG_FILE,
    CombineVCFError,
    ConfigurationError,
    configure_logging,
    log_message,
)
from .models import GenotypeMergeType, MergeType
from .traversal import combine_vcfs


def _validate_source_binding(arg: str) -> tuple:
    """Validate NAME=PATH and return the (name, path) pair."""
    if arg is None:
        raise argparse.ArgumentTypeError("Input binding cannot be empty")
    s = arg.strip()
    if "=" not in s:
        raise argparse.ArgumentTypeError("Use NAME=PATH (e.g., calls1=first.vcf.gz)")
    name, path = s.split("=", 1)
    name, path = name.strip(), path.strip()
    if not name:
        raise argparse.ArgumentTypeError("Input binding must include a non-empty NAME")
    if "," in name:
        raise argparse.ArgumentTypeError("Input NAME cannot contain ','")
    if not path:
        raise argparse.ArgumentTypeError(f"Input binding {name} is missing a PATH")
    return name, path


def _positive_int(arg: str) -> int:
    try:
        value = int(arg)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {arg!r}") from exc
    if value < 1:
        raise argparse.ArgumentTypeError("Value must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vcf-combine",
        description=(
            "Combine VCF records from different sources into one record per position. "
            "Union keeps a site if any record is unfiltered, intersection requires all "
            "records to be unfiltered."
        ),
    )
    parser.add_argument(
        "-V",
        "--variant",
        action="append",
        dest="inputs",
        type=_validate_source_binding,
        default=[],
        metavar="NAME=PATH",
        help="Named input VCF (repeatable). NAME is used for priority and provenance.",
    )
    parser.add_argument("-o", "--output", dest="output", required=True, help="Output VCF (.vcf or .vcf.gz).")
    parser.add_argument(
        "--genotype-merge-option",
        "--genotypeMergeOptions",
        dest="genotype_merge_option",
        type=GenotypeMergeType.parse,
        default=GenotypeMergeType.PRIORITIZE,
        metavar="{PRIORITIZE,UNIQUIFY,REQUIRE_UNIQUE}",
        help="How genotypes for samples shared across inputs are merged.",
    )
    parser.add_argument(
        "--variant-merge-option",
        "--variantMergeOptions",
        dest="variant_merge_option",
        type=MergeType.parse,
        default=MergeType.UNION,
        metavar="{UNION,INTERSECTION}",
        help="How records across inputs are merged.",
    )
    parser.add_argument(
        "--priority",
        "--rod-priority-list",
        dest="priority",
        help="Comma-separated input NAMEs, most trusted first. Required with PRIORITIZE.",
    )
    parser.add_argument(
        "--print-complex-merges",
        dest="print_complex_merges",
        action="store_true",
        help="Log sites that need allele reconciliation or share samples across inputs.",
    )
    parser.add_argument(
        "--filtered-are-uncalled",
        dest="filtered_are_uncalled",
        action="store_true",
        help="Treat filtered records as if the input had no call at that site.",
    )
    parser.add_argument(
        "--minimal-vcf",
        dest="minimal_vcf",
        action="store_true",
        help="Emit no INFO or per-sample fields besides GT and the set tag.",
    )
    parser.add_argument(
        "--set-key",
        dest="set_key",
        default=DEFAULT_SET_KEY,
        help="INFO key recording which inputs a record came from. Use 'null' to omit it.",
    )
    parser.add_argument(
        "--no-annotation",
        dest="annotate",
        action="store_false",
        help="Do not recompute AC/AN/AF on merged records.",
    )
    parser.add_argument("-R", "--reference", dest="reference", help="Indexed reference FASTA.")
    parser.add_argument("--threads", type=_positive_int, default=1, help="Worker threads for merging.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose console logging.")
    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """Parse CLI args for the VCF combining tool."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.inputs:
        parser.error("No input VCF files specified; use -V NAME=PATH.")

    bindings: "OrderedDict[str, str]" = OrderedDict()
    for name, path in args.inputs:
        if name in bindings:
            parser.error(f"Input name {name} was given more than once.")
        bindings[name] = str(Path(path))
    args.input_bindings = bindings
    args.output = str(Path(args.output))
    return args


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_arguments(argv)
    verbose = args.verbose

    # Phase 1: environment + configuration
    try:
        output_dir = os.path.dirname(os.path.abspath(args.output)) or "."
        os.makedirs(output_dir, exist_ok=True)
        configure_logging(
            log_level=logging.DEBUG if verbose else logging.INFO,
            log_file=os.path.join(output_dir, LOG_FILE),
            enable_file_logging=True,
            enable_console=verbose,
        )
        log_message("Script Execution Log - " + datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        for name, path in args.input_bindings.items():
            if not os.path.isfile(path):
                raise ConfigurationError(f"Input {name} does not exist: {path}")
        options = CombineOptions.from_namespace(args)
    except (ConfigurationError, OSError) as exc:
        log_message(f"Configuration failed: {exc}", level=logging.ERROR)
        print(f"ERROR: {exc}")
        sys.exit(1)

    # Phase 2: combine
    try:
        summary = combine_vcfs(args.input_bindings, args.output, options, verbose=verbose)
        log_message(f"Script execution completed successfully. Combined VCF: {args.output}", verbose)
        print(f"Wrote: {args.output} ({summary.records_emitted} records from {summary.sites_seen} sites).")
    except CombineVCFError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)


__all__ = ["build_parser", "main", "parse_arguments"]


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    main()
