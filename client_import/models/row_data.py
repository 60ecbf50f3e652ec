from __future__ import annotations

from dataclasses import dataclass, field

"""RawRow model for the client import pipeline.

A RawRow is one data line of an uploaded spreadsheet exactly as the tabular
decoder produced it: every cell is a string (possibly empty) keyed by the
header text found in the file. Nothing downstream of the validator is
allowed to see a RawRow.
"""

__all__ = [
    "RawRow",
]


@dataclass(frozen=True)
class RawRow:
    """Untyped row straight out of the decoder.

    The row_number is the 1-based position of the data line in the uploaded
    file with the header line excluded. Blank lines skipped by the decoder
    still consume a number so that reported rows match what the user sees.
    """
    row_number: int  # 1-based, header excluded
    values: dict[str, str] = field(default_factory=dict)  # header -> cell text

    def get(self, header: str, default: str = "") -> str:
        return self.values.get(header, default)

    def is_blank(self) -> bool:
        return all(not (v or "").strip() for v in self.values.values())
