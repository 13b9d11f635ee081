"""File-based persistence helpers for analysis outputs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings


class FileStorage:
    """Thin wrapper around the data root for storing JSON and CSV outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "analysis") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def save_analysis(
        self,
        summary: dict,
        *,
        rows_csv: str,
        coverage_csv: str,
        unidentified_csv: str,
        prefix: str = "analysis",
    ) -> Path:
        """Write one run's artifacts into a fresh timestamped directory."""

        run_dir = self.make_run_directory(prefix)
        self.write_json(run_dir / "summary.json", summary)
        self.write_csv(run_dir / "groups.csv", rows_csv)
        self.write_csv(run_dir / "coverage.csv", coverage_csv)
        self.write_csv(run_dir / "unidentified.csv", unidentified_csv)
        return run_dir
