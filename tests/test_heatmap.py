from datetime import date

import pytest

from services.aggregator import daily_question_volume
from services.heatmap import build_activity_grid, tier_for_count


class TestTierForCount:
    @pytest.mark.parametrize(
        "count, tier",
        [(0, 0), (1, 1), (19, 1), (20, 2), (49, 2), (50, 3), (79, 3), (80, 4), (500, 4)],
    )
    def test_boundaries(self, count, tier):
        assert tier_for_count(count) == tier


class TestActivityGrid:
    def test_sixty_cells_most_recent_first(self):
        today = date(2025, 10, 18)
        cells = build_activity_grid({}, today)

        assert len(cells) == 60
        assert cells[0].date == "2025-10-18"
        assert cells[-1].date == "2025-08-20"
        dates = [cell.date for cell in cells]
        assert dates == sorted(dates, reverse=True)

    def test_only_today_is_flagged(self):
        cells = build_activity_grid({}, date(2025, 10, 18))
        assert [cell.date for cell in cells if cell.is_today] == ["2025-10-18"]

    def test_today_counts_current_cycle_volume(self, make_record, now):
        record = make_record(before="3/5", after="6/8", days_ago=0)
        cells = build_activity_grid(daily_question_volume([record]), now.date())

        today_cell = cells[0]
        assert today_cell.is_today
        assert today_cell.count == 13
        assert today_cell.tier == 1

    def test_cells_carry_display_label(self):
        cells = build_activity_grid({"2025-10-18": 3}, date(2025, 10, 18), days=2)
        assert [cell.to_dict()["label"] for cell in cells] == ["18-10-2025", "17-10-2025"]
        assert cells[0].to_dict()["count"] == 3

    def test_days_outside_window_are_dropped(self):
        volume = {"2025-10-18": 30, "2025-08-19": 99, "2025-10-10": 85}
        cells = build_activity_grid(volume, date(2025, 10, 18))

        assert sum(cell.count for cell in cells) == 115
        by_date = {cell.date: cell for cell in cells}
        assert by_date["2025-10-10"].tier == 4
        assert by_date["2025-10-01"].count == 0
        assert by_date["2025-10-01"].tier == 0

    def test_custom_window(self):
        cells = build_activity_grid({}, date(2025, 10, 18), days=7)
        assert len(cells) == 7
        assert cells[-1].date == "2025-10-12"
        assert build_activity_grid({}, date(2025, 10, 18), days=0) == []
