from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict


@dataclass
class CleaningMetrics:
    rows_loaded: int = 0
    anomaly_candidates: int = 0
    rollback_corrected: int = 0
    rows_dropped: int = 0
    rows_retained: int = 0

    @property
    def retained_share(self) -> float:
        if not self.rows_loaded:
            return 0.0
        return self.rows_retained / self.rows_loaded

    def as_dict(self) -> Dict[str, int]:
        return {key: int(value) for key, value in asdict(self).items()}


__all__ = ["CleaningMetrics"]
