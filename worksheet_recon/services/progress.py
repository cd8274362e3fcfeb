from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.comparison_request import ComparisonRequest

"""Progress display with tqdm (TTY only).

A single tqdm bar counts finished comparison requests. In non-TTY environments
(CI, redirected output) the bar is disabled to avoid ANSI control sequence
spam in logs.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker for batch comparison requests."""

    def __init__(self, total_requests: int, *, description: str = "Comparing worksheets") -> None:
        self.total_requests = total_requests
        self.description = description
        self.finished = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_requests,
                desc=description,
                unit="pair",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def finish_request(self, request: ComparisonRequest) -> None:
        """Advance the bar by one finished (or skipped) request."""
        self.finished += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({request.file1_worksheet_name})")
            self.pbar.update(1)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
