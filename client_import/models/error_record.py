from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured import error log.

One record is written per invalid row, per structural file failure and per
repository error. row=-1 marks failures that cannot be tied to a single
source row.
"""

__all__ = [
    "ErrorRecord",
    "ROW_VALIDATION_ERROR",
    "FILE_STRUCTURE_ERROR",
    "CLIENT_INSERT_ERROR",
]

ROW_VALIDATION_ERROR = "ROW_VALIDATION_ERROR"
FILE_STRUCTURE_ERROR = "FILE_STRUCTURE_ERROR"
CLIENT_INSERT_ERROR = "CLIENT_INSERT_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: name of the uploaded file
        row: 1-based source row, -1 when unknown
        error_type: classification in UPPER_SNAKE_CASE
        message: human-readable description
    """
    timestamp: str
    file: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
