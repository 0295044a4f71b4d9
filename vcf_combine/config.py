"""Run configuration for the variant combiner.

:class:`CombineOptions` mirrors the command-line surface and is validated as
soon as it is built. :func:`build_context` turns validated options plus the
names of the configured input sources into the immutable
:class:`CombineContext` handed to every per-position merge call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Tuple

from .annotation import AlleleCountAnnotator, Annotator
from .logging_utils import ConfigurationError
from .models import GenotypeMergeType, MergeType
from .priority import PriorityList, resolve_priority

DEFAULT_SET_KEY = "set"


def normalize_set_key(value: Optional[str]) -> Optional[str]:
    """Return the provenance INFO key, or ``None`` when tagging is disabled."""
    if value is None:
        return None
    stripped = value.strip()
    if not stripped or stripped.lower() == "null":
        return None
    return stripped


@dataclass(frozen=True)
class CombineOptions:
    genotype_merge_option: GenotypeMergeType = GenotypeMergeType.PRIORITIZE
    variant_merge_option: MergeType = MergeType.UNION
    priority: Optional[str] = None
    print_complex_merges: bool = False
    filtered_are_uncalled: bool = False
    minimal_output: bool = False
    set_key: Optional[str] = DEFAULT_SET_KEY
    annotate: bool = True
    reference: Optional[str] = None
    threads: int = 1

    def __post_init__(self):
        try:
            object.__setattr__(
                self, "genotype_merge_option", GenotypeMergeType.parse(self.genotype_merge_option)
            )
            object.__setattr__(self, "variant_merge_option", MergeType.parse(self.variant_merge_option))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        object.__setattr__(self, "set_key", normalize_set_key(self.set_key))
        if not isinstance(self.threads, int) or self.threads < 1:
            raise ConfigurationError(f"threads must be a positive integer, got {self.threads!r}")

    @classmethod
    def from_namespace(cls, args) -> "CombineOptions":
        """Build options from an argparse namespace, tolerating missing attributes."""
        return cls(
            genotype_merge_option=getattr(args, "genotype_merge_option", GenotypeMergeType.PRIORITIZE),
            variant_merge_option=getattr(args, "variant_merge_option", MergeType.UNION),
            priority=getattr(args, "priority", None),
            print_complex_merges=bool(getattr(args, "print_complex_merges", False)),
            filtered_are_uncalled=bool(getattr(args, "filtered_are_uncalled", False)),
            minimal_output=bool(getattr(args, "minimal_vcf", False)),
            set_key=getattr(args, "set_key", DEFAULT_SET_KEY),
            annotate=bool(getattr(args, "annotate", True)),
            reference=getattr(args, "reference", None),
            threads=getattr(args, "threads", 1) or 1,
        )


@dataclass(frozen=True)
class CombineContext:
    """Everything a per-position merge needs, fixed for the whole run."""

    priority: PriorityList
    variant_merge_type: MergeType = MergeType.UNION
    genotype_merge_type: GenotypeMergeType = GenotypeMergeType.PRIORITIZE
    filtered_are_uncalled: bool = False
    set_key: Optional[str] = DEFAULT_SET_KEY
    print_complex_merges: bool = False
    minimal_output: bool = False
    annotator: Optional[Annotator] = None
    source_samples: Optional[Mapping[str, Tuple[str, ...]]] = None
    samples: Tuple[str, ...] = field(default_factory=tuple)
    """Sample names every merged record carries (already uniquified if needed)."""


def build_context(
    options: CombineOptions,
    source_names: Iterable[str],
    *,
    source_samples: Optional[Mapping[str, Iterable[str]]] = None,
    samples: Iterable[str] = (),
    annotator: Optional[Annotator] = None,
) -> CombineContext:
    """Resolve the priority list and freeze the per-run merge context."""
    priority = resolve_priority(source_names, options.priority, options.genotype_merge_option)
    if annotator is None and options.annotate:
        annotator = AlleleCountAnnotator()
    frozen_samples = None
    if source_samples is not None:
        frozen_samples = {source: tuple(names) for source, names in source_samples.items()}
    return CombineContext(
        priority=priority,
        variant_merge_type=options.variant_merge_option,
        genotype_merge_type=options.genotype_merge_option,
        filtered_are_uncalled=options.filtered_are_uncalled,
        set_key=options.set_key,
        print_complex_merges=options.print_complex_merges,
        minimal_output=options.minimal_output,
        annotator=annotator if options.annotate else None,
        source_samples=frozen_samples,
        samples=tuple(samples),
    )


__all__ = [
    "DEFAULT_SET_KEY",
    "CombineContext",
    "CombineOptions",
    "build_context",
    "normalize_set_key",
]
