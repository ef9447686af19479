from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from prefect import flow, get_run_logger, task

from tripmetrics.config import get_settings
from tripmetrics.logging_config import configure_logging
from tripmetrics.schemas import CleaningReport
from workflows import loader, pipeline, summary
from workflows.paths import output_path


# -------- Trip Metrics Flow -------- #


@task(name="load_trip_files")
def load_trip_files(data_dir: Path) -> Dict[str, object]:
    settings = get_settings()
    trips, files = loader.load_trip_directory(
        data_dir, settings.file_pattern, settings.drop_duplicate_rides
    )
    get_run_logger().info("Loaded %s trips from %s files", len(trips), len(files))
    return {"trips": trips, "files": [str(path) for path in files]}


@task(name="clean_trip_table")
def clean_trip_table(trips: pd.DataFrame) -> Dict[str, object]:
    clean, metrics = pipeline.clean_trips(trips, get_settings())
    return {"trips": clean, "metrics": metrics.as_dict()}


@task(name="summarize_segments")
def summarize_segments(trips: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    return summary.build_summaries(trips)


@task(name="write_outputs")
def write_outputs(
    trips: pd.DataFrame, summaries: Dict[str, pd.DataFrame], output_dir: Path
) -> Dict[str, str]:
    trips_path = output_path(output_dir, "trips_clean")
    trips.to_parquet(trips_path, index=False)
    written = {"trips": str(trips_path)}
    for name, table in summaries.items():
        path = output_path(output_dir, name)
        table.to_parquet(path, index=False)
        written[name] = str(path)
    return written


@task(name="write_cleaning_report")
def write_cleaning_report(report: CleaningReport, output_dir: Path) -> str:
    path = output_path(output_dir, "cleaning_report", suffix=".json")
    path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return str(path)


@flow(name="bike_trip_metrics")
def trip_metrics_pipeline(
    data_dir: Optional[Path] = None, output_dir: Optional[Path] = None
) -> Dict[str, object]:
    logger = get_run_logger()
    settings = get_settings()
    data_dir = Path(data_dir or settings.data_dir)
    output_dir = Path(output_dir or settings.output_dir)

    loaded = load_trip_files(data_dir)
    cleaned = clean_trip_table(loaded["trips"])
    clean_trips = cleaned["trips"]
    report = CleaningReport(
        generated_at=datetime.now(timezone.utc),
        source_files=len(loaded["files"]),
        metrics=cleaned["metrics"],
        rollback_window=settings.rollback_window,
    )

    if clean_trips.empty:
        logger.warning("No trips survived cleaning: %s", cleaned["metrics"])
        report.status = "empty"
        report_path = write_cleaning_report(report, output_dir)
        return {"status": "empty", "metrics": cleaned["metrics"], "report_path": report_path}

    summaries = summarize_segments(clean_trips)
    written = write_outputs(clean_trips, summaries, output_dir)
    report.output_path = written.pop("trips")
    report.summaries = written
    report_path = write_cleaning_report(report, output_dir)
    return {
        "status": "completed",
        "metrics": cleaned["metrics"],
        "output_path": report.output_path,
        "summaries": written,
        "report_path": report_path,
    }


if __name__ == "__main__":  # pragma: no cover
    configure_logging()
    trip_metrics_pipeline()
