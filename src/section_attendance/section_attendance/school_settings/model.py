from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class AttendanceConfig:
    """School-wide marking policy shown to and edited by staff."""

    daily_reset_time: str = "00:00"
    default_status: str = "unmarked"
    enable_auto_reset: bool = False
    auto_reset_time: str = "00:00"
    late_threshold_minutes: int = 15
    absent_threshold_minutes: int = 30

    def to_dict(self) -> dict:
        return asdict(self)
