from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.import_result import PipelineSnapshot, PipelineState

"""Commit progress display with tqdm (TTY only).

The orchestrator reports progress as a percentage on each snapshot;
ImportProgressBar subscribes to those snapshots and moves a single bar.
In non-TTY environments (CI, pipes) no bar is drawn.
"""

__all__ = [
    "ImportProgressBar",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ImportProgressBar:
    """Percentage bar for the importing state, usable as an orchestrator listener."""

    def __init__(self, *, description: str = "Importing clients") -> None:
        self.description = description
        self.position = 0  # last percentage drawn
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None

    def _open(self) -> None:
        if self.enabled and self.pbar is None:
            self.pbar = tqdm(
                total=100,
                desc=self.description,
                unit="%",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def update(self, percent: int) -> None:
        percent = max(0, min(100, percent))
        if percent <= self.position:
            return
        self._open()
        if self.pbar is not None:
            self.pbar.update(percent - self.position)
        self.position = percent

    def __call__(self, snapshot: PipelineSnapshot) -> None:
        if snapshot.state is PipelineState.IMPORTING:
            self.update(snapshot.progress)
        elif snapshot.state is PipelineState.DONE:
            self.update(snapshot.progress)
            self.close()

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ImportProgressBar:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
