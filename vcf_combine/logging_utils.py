"""Shared logging helpers and error types for the variant combining workflow.

The module wires the ``vcf_combiner`` logger to emit timestamped messages to
the console. Importing the module triggers :func:`configure_logging` with
console output only; the command-line entry point calls it again to add a
persistent ``combine_execution.log`` beside the merged output.

:func:`configure_logging` is idempotent: call it with ``log_level`` to adjust
verbosity, ``log_file`` to redirect output, disable either handler, or pass
``create_dirs`` when the log directory needs to be created. Repeated
invocations clear previous handlers so no duplicate outputs accumulate.

For error handling the module defines :class:`CombineVCFError` and the
specialised subclasses raised by the merge engine, the output sinks and the
configuration layer. :func:`handle_critical_error` and
:func:`handle_non_critical_error` centralise how fatal and recoverable
conditions are logged: critical failures are recorded at ``CRITICAL`` level
and raised, non-critical conditions are logged as warnings.
"""
from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

LOG_FILE = "combine_execution.log"
LOG_FORMAT = "%(asctime)s : %(levelname)s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("vcf_combiner")
logger.propagate = False


def _normalize_level(level: int | str) -> int:
    """Return a numeric logging level for *level*."""
    if isinstance(level, str):
        name = level.upper()
        try:
            return logging._nameToLevel[name]  # type: ignore[attr-defined]
        except KeyError as exc:
            raise ValueError(f"Unknown log level: {level}") from exc
    return int(level)


def _clear_handlers(existing: Iterable[logging.Handler]) -> None:
    for h in list(existing):
        try:
            h.close()
        finally:
            logger.removeHandler(h)


def configure_logging(
    *,
    log_level: int | str = logging.INFO,
    log_file: str | os.PathLike[str] | None = LOG_FILE,
    enable_file_logging: bool = True,
    enable_console: bool = True,
    create_dirs: bool = True,
) -> None:
    """Idempotent logger setup for the variant combiner."""
    level = _normalize_level(log_level)
    _clear_handlers(logger.handlers)
    logger.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if enable_file_logging and log_file:
        path = os.fspath(log_file)
        if create_dirs:
            d = os.path.dirname(path)
            if d:
                os.makedirs(d, exist_ok=True)
        fh = logging.FileHandler(path)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    if enable_console:
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        logger.addHandler(sh)


class CombineVCFError(RuntimeError):
    """Base exception for unrecoverable errors in the combine workflow."""


class ConfigurationError(CombineVCFError):
    """Raised when user supplied options cannot be turned into a run."""


class MissingPriorityError(ConfigurationError):
    """PRIORITIZE genotype merging was requested without a priority list."""


class PriorityMismatchError(ConfigurationError):
    """The priority list is not a permutation of the configured sources."""


class DuplicateSampleError(CombineVCFError):
    """The same sample name was supplied by two sources under REQUIRE_UNIQUE."""


class InvalidRecordError(CombineVCFError):
    """A variant record or genotype violates its structural invariants."""


class InconsistentInputError(CombineVCFError):
    """The records handed to the merger do not describe a single locus."""


class AlleleConflictError(InconsistentInputError):
    """Reference alleles cannot be reconciled without a reference context."""


class HeaderConflictError(CombineVCFError):
    """Input headers carry incompatible definitions for the same ID."""


class MultiContigWriteError(CombineVCFError):
    """A single-track writer was asked to write a second contig."""


class OutputSinkError(CombineVCFError):
    """An output destination could not be opened or written."""

    def __init__(self, message: str, destination: Optional[str] = None):
        super().__init__(message)
        self.destination = destination


def log_message(
    message: str,
    verbose: bool = False,
    level: int = logging.INFO,
    *,
    exc_info: BaseException | bool | None = None,
) -> None:
    """Log *message* at the requested level and optionally echo it to stdout."""

    logger.log(level, message, exc_info=exc_info)
    if verbose:
        print(message)


def handle_critical_error(
    message: str,
    exc_cls=None,
    *,
    exc_info: BaseException | bool | None = None,
) -> None:
    """Log and raise a fatal error."""

    log_message(message, level=logging.ERROR)
    logger.critical(message, exc_info=exc_info)
    exception_class = exc_cls or CombineVCFError
    if isinstance(exc_info, BaseException):
        raise exception_class(message) from exc_info
    raise exception_class(message)


def handle_non_critical_error(message: str) -> None:
    """Log a recoverable error as a warning."""

    log_message(message, level=logging.WARNING)


__all__ = [
    "LOG_FILE",
    "configure_logging",
    "logger",
    "log_message",
    "handle_critical_error",
    "handle_non_critical_error",
    "CombineVCFError",
    "ConfigurationError",
    "MissingPriorityError",
    "PriorityMismatchError",
    "DuplicateSampleError",
    "InvalidRecordError",
    "InconsistentInputError",
    "AlleleConflictError",
    "HeaderConflictError",
    "MultiContigWriteError",
    "OutputSinkError",
]

# Default configuration: console only at INFO level.
configure_logging(enable_file_logging=False)
