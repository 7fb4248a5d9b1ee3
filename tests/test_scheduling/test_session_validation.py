"""Tests for session structure validation."""

import pytest

from clinic_os.core.errors import BadRequestError
from clinic_os.core.schemas import SessionIn
from clinic_os.scheduling.session_validation import (
    is_valid_order,
    validate_max_session_count,
    validate_session_duration,
    validate_session_structure,
    validate_unique_order_numbers,
)


def _sessions(*orders, **kwargs):
    return [SessionIn(order=o, **kwargs) for o in orders]


class TestSessionStructure:
    def test_valid_list_passes(self):
        validate_session_structure(
            [
                SessionIn(name="Assessment", order=1, duration=60),
                SessionIn(order=2),
                SessionIn(name="Review", order=3, duration=5),
            ]
        )

    def test_empty_list_passes(self):
        validate_session_structure([])

    def test_duplicate_orders(self):
        with pytest.raises(BadRequestError) as exc_info:
            validate_session_structure(_sessions(1, 2, 2, 3, 3))
        assert exc_info.value.code == "DUPLICATE_SESSION_ORDER"
        assert exc_info.value.details == {"duplicateOrders": [2, 3]}

    def test_blank_name(self):
        with pytest.raises(BadRequestError) as exc_info:
            validate_session_structure([SessionIn(name="   ", order=1)])
        assert exc_info.value.code == "EMPTY_SESSION_NAME"
        assert exc_info.value.details == {"sessionOrder": 1}

    @pytest.mark.parametrize("order", [0, -1, 1.5])
    def test_invalid_order(self, order):
        with pytest.raises(BadRequestError) as exc_info:
            validate_session_structure([SessionIn(order=order)])
        assert exc_info.value.code == "INVALID_SESSION_ORDER"

    @pytest.mark.parametrize("duration", [4, 481])
    def test_duration_out_of_range(self, duration):
        with pytest.raises(BadRequestError) as exc_info:
            validate_session_structure([SessionIn(order=1, duration=duration)])
        assert exc_info.value.code == "INVALID_SESSION_DURATION"
        assert exc_info.value.details == {"duration": duration, "min": 5, "max": 480}

    def test_count_checked_before_anything_else(self):
        # 51 sessions that would also fail the duplicate-order check
        with pytest.raises(BadRequestError) as exc_info:
            validate_session_structure(_sessions(*([1] * 51)))
        assert exc_info.value.code == "MAX_SESSIONS_EXCEEDED"
        assert exc_info.value.details == {"count": 51, "max": 50}

    def test_fifty_sessions_allowed(self):
        validate_session_structure(_sessions(*range(1, 51)))

    def test_duplicate_explicit_ids(self):
        with pytest.raises(BadRequestError) as exc_info:
            validate_session_structure([SessionIn(id="a", order=1), SessionIn(id="a", order=2)])
        assert exc_info.value.code == "INVALID_SESSION_STRUCTURE"

    def test_deterministic(self):
        sessions = _sessions(3, 1, 3)
        codes = []
        for _ in range(3):
            with pytest.raises(BadRequestError) as exc_info:
                validate_session_structure(sessions)
            codes.append(exc_info.value.code)
        assert codes == ["DUPLICATE_SESSION_ORDER"] * 3


class TestHelpers:
    def test_duration_none_is_valid(self):
        validate_session_duration(None)

    @pytest.mark.parametrize("duration", [5, 45, 480])
    def test_duration_bounds_inclusive(self, duration):
        validate_session_duration(duration)

    def test_unique_orders(self):
        validate_unique_order_numbers(_sessions(1, 2, 3))

    def test_max_count(self):
        with pytest.raises(BadRequestError):
            validate_max_session_count(_sessions(*range(1, 52)))

    @pytest.mark.parametrize(
        "order,expected",
        [(1, True), (2.0, True), (0, False), (-3, False), (2.5, False), (True, False)],
    )
    def test_is_valid_order(self, order, expected):
        assert is_valid_order(order) is expected
