"""
Activity Heatmap
================

Turns the per-day question volume into a fixed trailing window of
classified day cells. Cells are returned most recent first: the window is
built oldest to newest and then reversed.
"""

from dataclasses import dataclass, asdict
from datetime import date
from typing import Dict, List

from utils.datetime_utils import format_date_br, trailing_window
from utils.logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_WINDOW_DAYS = 60


@dataclass(frozen=True)
class HeatmapCell:
    date: str  # YYYY-MM-DD
    count: int
    tier: int  # 0 (idle) to 4 (heaviest)
    is_today: bool = False

    def to_dict(self) -> Dict:
        return dict(asdict(self), label=format_date_br(self.date))


def tier_for_count(count) -> int:
    """Intensity bucket for a day's question count"""
    count = float(count or 0)
    if count == 0:
        return 0
    if count <= 19:
        return 1
    if count <= 49:
        return 2
    if count <= 79:
        return 3
    return 4


def build_activity_grid(
    volume: Dict[str, int], today: date, days: int = DEFAULT_WINDOW_DAYS
) -> List[HeatmapCell]:
    """One cell per day of the window ending at ``today``, newest first"""
    if days <= 0:
        return []

    today_iso = today.isoformat()
    cells = []
    for day in trailing_window(today, days):
        day_iso = day.isoformat()
        count = volume.get(day_iso, 0)
        cells.append(
            HeatmapCell(
                date=day_iso,
                count=count,
                tier=tier_for_count(count),
                is_today=day_iso == today_iso,
            )
        )

    cells.reverse()
    logger.debug("Built activity grid: %d days ending %s", days, today_iso)
    return cells
