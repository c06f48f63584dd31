from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
import re

from icsio.diagnostics import DiagnosticKind, Diagnostics

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


@dataclass(frozen=True)
class Property:
    """One `KEY[;PARAM=VAL]:VALUE` record split into its parts."""

    name: str
    value: str
    raw_key: str
    line_no: int
    params: dict[str, str] = field(default_factory=dict)

    @property
    def is_date_only(self) -> bool:
        return self.params.get("VALUE", "").upper() == "DATE"


def split_records(text: str) -> list[tuple[int, str]]:
    """Split text into (line_no, record) pairs, dropping blank records.

    Continuation lines are not merged into the previous record: a record
    beginning with whitespace stays a record of its own.
    """
    records: list[tuple[int, str]] = []
    for index, line in enumerate(_LINE_BREAK.split(text.removeprefix("\ufeff")), start=1):
        if not line.strip():
            continue
        records.append((index, line))
    return records


def split_property(record: str, *, line_no: int = 0) -> Property | None:
    """Split a record on its first ':'; None when there is no separator."""
    if ":" not in record:
        return None
    raw_key, value = record.split(":", maxsplit=1)
    parts = raw_key.split(";")
    params: dict[str, str] = {}
    for item in parts[1:]:
        if "=" not in item:
            continue
        key, param_value = item.split("=", maxsplit=1)
        params[key.upper()] = param_value.strip('"')
    return Property(name=parts[0].upper(), value=value, raw_key=raw_key, line_no=line_no, params=params)


def read_property(line_no: int, record: str, diagnostics: Diagnostics) -> Property | None:
    """Like split_property, but reports a malformed record instead of returning silently."""
    prop = split_property(record, line_no=line_no)
    if prop is None:
        diagnostics.warn(
            DiagnosticKind.MALFORMED_LINE,
            f"no ':' separator in '{record}'",
            line_no=line_no,
        )
    return prop


def tokenize(text: str, diagnostics: Diagnostics) -> Iterator[Property]:
    for line_no, record in split_records(text):
        prop = read_property(line_no, record, diagnostics)
        if prop is not None:
            yield prop
