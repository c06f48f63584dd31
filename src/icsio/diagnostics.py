from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging

logger = logging.getLogger(__name__)


class DiagnosticKind(StrEnum):
    MALFORMED_LINE = "malformed_line"
    UNKNOWN_PROPERTY = "unknown_property"
    UNSUPPORTED_COMPONENT = "unsupported_component"
    INVALID_VALUE = "invalid_value"
    INVALID_RRULE = "invalid_rrule"
    UNKNOWN_FREQUENCY = "unknown_frequency"
    INCONSISTENT_EVENT = "inconsistent_event"
    TRAILING_CONTENT = "trailing_content"


@dataclass(frozen=True)
class Diagnostic:
    """A recovered, line-level problem found while parsing."""

    kind: DiagnosticKind
    message: str
    line_no: int | None = None

    def __str__(self) -> str:
        where = f"line {self.line_no}" if self.line_no is not None else "-"
        return f"[{self.kind}] {where}: {self.message}"


@dataclass
class Diagnostics:
    """Collects diagnostics for one parse call and mirrors each one to the module logger."""

    records: list[Diagnostic] = field(default_factory=list)

    def warn(self, kind: DiagnosticKind, message: str, *, line_no: int | None = None) -> None:
        self.records.append(Diagnostic(kind=kind, message=message, line_no=line_no))
        logger.debug("ics_%s line=%s detail=%s", kind.value, line_no, message)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [record for record in self.records if record.kind == kind]

    def __len__(self) -> int:
        return len(self.records)
