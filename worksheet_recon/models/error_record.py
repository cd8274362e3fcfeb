from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for structured error logging.

Each record describes one input file that could not be read, or one request
that was skipped or downgraded during a batch run. `worksheet` uses
"<FILE_LEVEL>" when the failure happened before a worksheet could be
resolved.
"""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL",
    "READ_FAILURE",
    "RESOLUTION_FAILURE",
    "STRUCTURAL_MISMATCH",
    "COMPUTATION_FAILURE",
]

FILE_LEVEL = "<FILE_LEVEL>"

READ_FAILURE = "READ_FAILURE"
RESOLUTION_FAILURE = "RESOLUTION_FAILURE"
STRUCTURAL_MISMATCH = "STRUCTURAL_MISMATCH"
COMPUTATION_FAILURE = "COMPUTATION_FAILURE"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source file id of the left side of the request
        worksheet: Worksheet name, or FILE_LEVEL
        request: Human readable request description
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Failure description
    """
    timestamp: str
    file: str
    worksheet: str
    request: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, worksheet: str, request: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            worksheet=worksheet,
            request=request,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
