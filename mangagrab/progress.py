"""Progress bars shown while a job runs."""

from __future__ import annotations

from dataclasses import dataclass

from tqdm import tqdm

DEFAULT_BAR_FORMAT = "{desc} [{elapsed}] |{bar:40}| {n_fmt}/{total_fmt} ({remaining})"


@dataclass(frozen=True)
class ProgressConfig:
    """Whether bars are drawn, and how."""

    enabled: bool = True
    bar_format: str = DEFAULT_BAR_FORMAT

    def bar(self, total: int, desc: str) -> tqdm:
        return tqdm(
            total=total,
            desc=desc,
            unit="page",
            bar_format=self.bar_format,
            disable=not self.enabled,
            leave=False,
        )
