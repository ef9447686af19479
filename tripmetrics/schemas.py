from datetime import datetime, timedelta
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, confloat, constr

RideableType = Literal["classic", "docked", "electric"]
MemberCasual = Literal["member", "casual"]


class TripRecord(BaseModel):
    ride_id: constr(min_length=1)
    rideable_type: RideableType
    started_at: datetime = Field(description="Local wall-clock start, no UTC offset")
    ended_at: datetime = Field(description="Local wall-clock end, no UTC offset")
    start_lat: confloat(ge=-90, le=90)
    start_lng: confloat(ge=-180, le=180)
    end_lat: confloat(ge=-90, le=90)
    end_lng: confloat(ge=-180, le=180)
    member_casual: MemberCasual

    class Config:
        json_schema_extra = {
            "example": {
                "ride_id": "F96D5A74A3E41399",
                "rideable_type": "electric",
                "started_at": "2023-07-01T08:00:00",
                "ended_at": "2023-07-01T08:10:00",
                "start_lat": 41.88,
                "start_lng": -87.63,
                "end_lat": 41.90,
                "end_lng": -87.64,
                "member_casual": "member",
            }
        }


class RollbackWindow(BaseModel):
    """Repeated wall-clock hour left behind when clocks fall back.

    ``transition`` is the local time at which the clock is set back, e.g.
    02:00 on the first Sunday of November for US Central time. Trips ending
    in ``[transition - offset, transition)`` on that date may have ended
    after the rollback while starting before it.
    """

    transition: datetime = datetime(2023, 11, 5, 2, 0)
    offset_seconds: int = Field(default=3600, gt=0)

    @property
    def start(self) -> datetime:
        return self.transition - timedelta(seconds=self.offset_seconds)

    @property
    def end(self) -> datetime:
        return self.transition


class CleaningReport(BaseModel):
    status: Literal["completed", "empty"] = "completed"
    generated_at: datetime
    source_files: int
    metrics: Dict[str, int]
    rollback_window: RollbackWindow
    output_path: Optional[str] = None
    summaries: Dict[str, str] = Field(default_factory=dict)
