from datetime import date

from fee_ledger.academic_calendar import (
    ACADEMIC_MONTH_NAMES,
    academic_index,
    display_year,
    is_next_calendar_year,
    remaining_months_count,
    session_start_date,
    session_start_year,
)


def test_april_is_first_and_march_is_last():
    assert academic_index(date(2024, 4, 1)) == 0
    assert academic_index(date(2025, 3, 31)) == 11
    assert ACADEMIC_MONTH_NAMES[0] == "April"
    assert ACADEMIC_MONTH_NAMES[11] == "March"


def test_every_calendar_month_maps_to_its_name():
    for month in range(1, 13):
        d = date(2024, month, 15)
        assert ACADEMIC_MONTH_NAMES[academic_index(d)] == d.strftime("%B")


def test_next_calendar_year_months():
    assert [i for i in range(12) if is_next_calendar_year(i)] == [9, 10, 11]


def test_session_start_year_rolls_over_in_april():
    assert session_start_year(date(2025, 3, 31)) == 2024
    assert session_start_year(date(2025, 4, 1)) == 2025
    assert session_start_year(date(2024, 12, 1)) == 2024
    assert session_start_date(date(2025, 1, 20)) == date(2024, 4, 1)


def test_display_year():
    assert display_year(0, 2024) == 2024
    assert display_year(8, 2024) == 2024
    assert display_year(9, 2024) == 2025
    assert display_year(11, 2024) == 2025


def test_remaining_months_count():
    assert remaining_months_count(date(2024, 4, 5)) == 12
    assert remaining_months_count(date(2024, 8, 10)) == 8
    assert remaining_months_count(date(2025, 1, 1)) == 3
    assert remaining_months_count(date(2025, 3, 31)) == 1
