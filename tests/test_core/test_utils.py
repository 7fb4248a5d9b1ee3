"""Tests for the shared arithmetic helpers."""

import pytest

from clinic_os.core.utils import overlaps, percent_of, to_minutes


class TestPercentOf:
    @pytest.mark.parametrize(
        "part,total,expected",
        [
            (1, 8, 13),
            (3, 8, 38),
            (2, 3, 67),
            (1, 3, 33),
            (1, 2, 50),
            (0, 5, 0),
            (3, 0, 0),
            (7, 5, 140),
        ],
    )
    def test_half_up(self, part, total, expected):
        assert percent_of(part, total) == expected


class TestTimeSlots:
    def test_to_minutes(self):
        assert to_minutes("00:00") == 0
        assert to_minutes("09:05") == 545
        assert to_minutes("23:59") == 1439

    @pytest.mark.parametrize(
        "start,duration,expected",
        [
            (610, 20, True),   # starts during
            (585, 20, True),   # ends during
            (570, 120, True),  # contains
            (605, 10, True),   # inside
            (630, 20, False),  # starts as the other ends
            (580, 20, False),  # ends as the other starts
        ],
    )
    def test_overlaps_against_ten_to_half_past(self, start, duration, expected):
        assert overlaps(start, duration, 600, 30) is expected
