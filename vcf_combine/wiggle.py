"""Writer for single-contig wiggle (``variableStep``) numeric tracks."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import IO, Optional, Union

from .logging_utils import MultiContigWriteError, OutputSinkError, log_message
from .models import Locus


class StepType(enum.Enum):
    VARIABLE = "variableStep"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WiggleHeader:
    """Track definition line written ahead of the data."""

    name: str
    description: str

    def __str__(self) -> str:
        return f'track type=wiggle_0 name="{self.name}" description="{self.description}"'


class WiggleWriter:
    """Append ``(position, value)`` pairs for exactly one contig.

    The first write binds the writer to that contig and emits the step
    declaration. A later write on another contig raises
    :class:`MultiContigWriteError` and leaves the writer unusable.
    """

    step_type = StepType.VARIABLE

    def __init__(self, destination: Union[str, os.PathLike, IO[str]]):
        self._owns_stream = False
        if isinstance(destination, (str, os.PathLike)):
            self.destination = os.path.abspath(os.fspath(destination))
            try:
                self._stream: IO[str] = open(self.destination, "w", encoding="utf-8")
            except OSError as exc:
                raise OutputSinkError(
                    f"Unable to create a wiggle file {self.destination}: {exc}",
                    destination=self.destination,
                ) from exc
            self._owns_stream = True
        else:
            self.destination = getattr(destination, "name", "unknown")
            self._stream = destination
        self.contig: Optional[str] = None
        self._failed: Optional[MultiContigWriteError] = None

    def __enter__(self) -> "WiggleWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_stream and not self._stream.closed:
            self._stream.close()

    def _write_line(self, line: str) -> None:
        try:
            self._stream.write(line + "\n")
            self._stream.flush()
        except (OSError, ValueError) as exc:
            raise OutputSinkError(
                f"Error writing the wiggle line {line!r} to {self.destination}: {exc}",
                destination=str(self.destination),
            ) from exc

    def write_header(self, header: WiggleHeader) -> None:
        self._write_line(str(header))

    def write_data(self, locus: Locus, value) -> None:
        if self._failed is not None:
            raise self._failed
        contig, position = locus
        if self.contig is None:
            self.contig = contig
            log_message(f"Wiggle output {self.destination} bound to contig {contig}", level=logging.DEBUG)
            self._write_line(f"{self.step_type}\tchrom={contig}")
        elif contig != self.contig:
            self._failed = MultiContigWriteError(
                "Attempting to write multiple contigs into wiggle file, first contig was "
                f"{self.contig} most recent {contig}"
            )
            raise self._failed
        self._write_line(f"{position}\t{value}")


__all__ = ["StepType", "WiggleHeader", "WiggleWriter"]
