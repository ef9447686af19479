from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

ARCHIVE_NAME_PATTERN = re.compile(r"(20\d{2})[-_]?(\d{2})")


def month_key(path: Path) -> Optional[Tuple[int, int]]:
    match = ARCHIVE_NAME_PATTERN.search(path.name)
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def discover_trip_files(data_dir: Path, pattern: str) -> List[Path]:
    """Monthly trip files under ``data_dir`` ordered by (year, month, name)."""
    if not data_dir.exists():
        return []
    files = [path for path in data_dir.rglob(pattern) if path.is_file()]
    return sorted(files, key=lambda path: (month_key(path) or (0, 0), path.name))


def output_path(output_dir: Path, name: str, suffix: str = ".parquet") -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / f"{name}{suffix}"
