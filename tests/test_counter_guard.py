"""
Tests for the monotonic counter guard.
"""

import pytest

from core.counter_guard import MAX_SCAN_COUNTER, check_counter, next_counter
from core.errors import ErrorKind, InvalidCounter, ReplaySuspected


@pytest.mark.parametrize("supplied", [0, 1, 3])
def test_counter_not_above_stored_is_replay(supplied):
    with pytest.raises(ReplaySuspected) as excinfo:
        check_counter(3, supplied)
    assert excinfo.value.kind == ErrorKind.FORBIDDEN


def test_higher_counter_becomes_new_value():
    assert check_counter(3, 4) == 4
    # Saltos hacia adelante se aceptan tal cual
    assert next_counter(3, 40, waived=False) == 40


def test_missing_counter_increments_by_one():
    assert next_counter(3, None, waived=False) == 4


def test_waived_tag_always_increments_by_one():
    assert next_counter(3, 1, waived=True) == 4
    assert next_counter(3, 99, waived=True) == 4


def test_counter_above_column_range_is_bad_request():
    with pytest.raises(InvalidCounter) as excinfo:
        check_counter(3, MAX_SCAN_COUNTER + 1)
    assert excinfo.value.kind == ErrorKind.BAD_REQUEST
    assert check_counter(3, MAX_SCAN_COUNTER) == MAX_SCAN_COUNTER
