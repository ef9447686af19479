from __future__ import annotations

import argparse
import io
import logging
import sys
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional, Union

import httpx

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tripmetrics.config import get_settings  # noqa: E402
from tripmetrics.logging_config import configure_logging  # noqa: E402

DIVVY_BASE_URL = "https://divvy-tripdata.s3.amazonaws.com"
IGNORED_FILES = {".ds_store", "thumbs.db"}

logger = logging.getLogger(__name__)


def archive_names(year: int, months: Optional[Iterable[int]] = None) -> List[str]:
    selected = sorted(set(months)) if months else list(range(1, 13))
    invalid = [month for month in selected if not 1 <= month <= 12]
    if invalid:
        raise ValueError(f"Invalid months: {invalid}")
    return [f"{year}{month:02d}-divvy-tripdata.zip" for month in selected]


def download_archive(client: httpx.Client, url: str, target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s", url)
    with client.stream("GET", url) as response:
        response.raise_for_status()
        with target.open("wb") as handle:
            for chunk in response.iter_bytes():
                handle.write(chunk)
    return target


def extract_csv_files(zip_path: Path, target_dir: Path) -> List[Path]:
    csv_paths: List[Path] = []

    def _walk(source: Union[Path, io.BytesIO], out_dir: Path) -> None:
        with zipfile.ZipFile(source) as handle:
            for member in handle.infolist():
                if member.is_dir():
                    continue
                member_name = Path(member.filename)
                if any(part.startswith("__MACOSX") for part in member_name.parts):
                    continue
                if member_name.name.startswith("._"):
                    continue
                if member_name.name.lower() in IGNORED_FILES:
                    continue
                suffix = member_name.suffix.lower()
                if suffix not in {".csv", ".zip"}:
                    continue
                payload = handle.read(member)
                if suffix == ".zip":
                    _walk(io.BytesIO(payload), out_dir)
                    continue
                out_dir.mkdir(parents=True, exist_ok=True)
                target_path = out_dir / member_name.name
                target_path.write_bytes(payload)
                csv_paths.append(target_path)

    _walk(zip_path, target_dir)
    return csv_paths


def fetch_year(
    year: int,
    data_dir: Path,
    months: Optional[Iterable[int]] = None,
    base_url: str = DIVVY_BASE_URL,
    keep_archives: bool = False,
) -> List[Path]:
    written: List[Path] = []
    with httpx.Client(timeout=httpx.Timeout(60.0, read=None), follow_redirects=True) as client:
        for name in archive_names(year, months):
            archive_path = data_dir / name
            download_archive(client, f"{base_url.rstrip('/')}/{name}", archive_path)
            extracted = extract_csv_files(archive_path, data_dir)
            logger.info("Extracted %s CSV files from %s", len(extracted), name)
            written.extend(extracted)
            if not keep_archives:
                archive_path.unlink()
    return written


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download monthly Divvy trip archives and extract their CSV files."
    )
    parser.add_argument("--year", type=int, required=True, help="Calendar year to fetch.")
    parser.add_argument(
        "--months",
        type=int,
        nargs="*",
        default=None,
        help="Months to fetch (1-12). Defaults to the whole year.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Where to extract CSV files. Defaults to TRIPS_DATA_DIR.",
    )
    parser.add_argument("--base-url", default=DIVVY_BASE_URL)
    parser.add_argument("--keep-archives", action="store_true")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level to display.",
    )
    return parser.parse_args(argv)


def main() -> None:
    args = parse_args()
    configure_logging(level=args.log_level, log_name="fetch.log")
    data_dir = args.data_dir or get_settings().data_dir
    written = fetch_year(
        args.year,
        data_dir,
        months=args.months,
        base_url=args.base_url,
        keep_archives=args.keep_archives,
    )
    logger.info("Done. %s CSV files in %s", len(written), data_dir)


if __name__ == "__main__":
    main()
