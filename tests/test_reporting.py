from datetime import date, datetime, timezone

from church_admin.services.reporting import (
    age_distribution,
    age_on,
    compute_window,
    main_table,
    month_starts,
    normalize_period,
    normalize_report_type,
    percent,
    ratio_pct,
)


def test_window_clamps_month_end():
    w = compute_window("1month", now=datetime(2024, 3, 31, 12, tzinfo=timezone.utc))
    assert w.start == datetime(2024, 2, 29, 12, tzinfo=timezone.utc)
    assert w.period == "1month"


def test_window_unknown_period_is_one_month():
    w = compute_window("forever", now=datetime(2024, 6, 15, tzinfo=timezone.utc))
    assert w.period == "1month"
    assert w.start == datetime(2024, 5, 15, tzinfo=timezone.utc)


def test_normalizers():
    assert normalize_report_type(" Zones ") == "zones"
    assert normalize_report_type("finance") == "membership"
    assert normalize_report_type(None) == "membership"
    assert normalize_period("1YEAR") == "1year"
    assert normalize_period("") == "1month"


def test_month_starts_cover_both_ends():
    months = month_starts(
        datetime(2023, 11, 20, tzinfo=timezone.utc),
        datetime(2024, 2, 3, tzinfo=timezone.utc),
    )
    assert [m.strftime("%Y-%m") for m in months] == ["2023-11", "2023-12", "2024-01", "2024-02"]
    assert months[0].day == 1 and months[0].hour == 0


def test_percent_rounds_halves_up():
    assert percent(1, 8) == 13
    assert percent(1, 3) == 33
    assert percent(2, 3) == 67
    assert percent(5, 0) == 0


def test_ratio_pct():
    assert ratio_pct(1, 3) == 33.3
    assert ratio_pct(3, 0) == 0


def test_age_is_exact():
    assert age_on(date(2000, 6, 15), date(2024, 6, 14)) == 23
    assert age_on(date(2000, 6, 15), date(2024, 6, 15)) == 24


def test_age_distribution_buckets():
    today = date(2024, 1, 1)
    buckets = age_distribution(
        [date(2010, 1, 1), date(2000, 1, 1), date(1980, 1, 1), date(1950, 1, 1), None],
        today=today,
    )
    assert [b["value"] for b in buckets] == [25, 25, 25, 25]
    assert [b["name"] for b in buckets] == ["0-18", "19-35", "36-50", "51+"]
    assert all(b["color"].startswith("#") for b in buckets)


def test_age_distribution_empty():
    assert [b["value"] for b in age_distribution([], today=date(2024, 1, 1))] == [0, 0, 0, 0]


def test_main_table():
    data = {"monthlyGrowth": [{"month": "Jan 2024", "members": 3}], "totalMembers": 3}
    assert main_table("membership", data) == [{"month": "Jan 2024", "members": 3}]
    assert main_table("ministry", {"totalMinistries": 0}) == [{"totalMinistries": 0}]
    assert main_table("zones", [{"a": 1}, "junk"]) == [{"a": 1}]
    assert main_table("zones", None) == []
