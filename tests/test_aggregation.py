from __future__ import annotations

from datetime import date, datetime

from trust_dashboard.aggregation import (
    campaign_insights,
    campaign_progress,
    campaign_rollup,
    dashboard_stats,
    donation_insights,
    donation_years,
    donor_giving_summary,
    donor_retention,
    format_change,
    month_bounds,
    month_over_month,
    monthly_totals,
    percent_change,
    previous_month_bounds,
    recent_activity,
    sum_amounts,
    top_campaigns,
)
from trust_dashboard.models import Campaign, Donation, Donor


def _donor(donor_id: int, **fields) -> Donor:  # type: ignore[no-untyped-def]
    fields.setdefault("name", f"Donor {donor_id}")
    return Donor(id=donor_id, **fields)


def _donation(donation_id: int, amount_cents: int | None, donated_on: str, **fields) -> Donation:  # type: ignore[no-untyped-def]
    fields.setdefault("donor_id", 1)
    return Donation(id=donation_id, amount_cents=amount_cents, donation_date=donated_on, **fields)


def test_sum_amounts_treats_missing_as_zero() -> None:
    donations = [
        _donation(1, 1000, "2024-01-01"),
        _donation(2, None, "2024-01-02", donation_type="in-kind"),
        _donation(3, 250, "2024-01-03"),
    ]

    assert sum_amounts(donations) == 1250
    assert sum_amounts([]) == 0


def test_percent_change_edge_cases() -> None:
    assert percent_change(current=0, previous=0) == 0
    assert percent_change(current=5, previous=0) == 100
    assert percent_change(current=100, previous=50) == 100
    assert percent_change(current=50, previous=100) == -50
    assert format_change(12.345) == "+12.3%"
    assert format_change(-50) == "-50.0%"


def test_monthly_totals_bucket_by_calendar_month() -> None:
    donations = [
        _donation(1, 10000, "2024-03-15"),
        _donation(2, 5000, "2024-03-20"),
    ]

    buckets = monthly_totals(donations, 2024)
    assert [bucket["month"] for bucket in buckets][:3] == ["Jan", "Feb", "Mar"]
    assert len(buckets) == 12
    assert buckets[2]["total_cents"] == 15000
    assert sum(bucket["total_cents"] for bucket in buckets) == 15000

    assert all(bucket["total_cents"] == 0 for bucket in monthly_totals(donations, 2023))


def test_donation_years_always_include_current_year() -> None:
    donations = [_donation(1, 100, "2021-05-01"), _donation(2, 100, "2023-05-01")]

    assert donation_years(donations, today=date(2025, 1, 1)) == [2025, 2023, 2021]


def test_month_bounds_handle_year_rollover() -> None:
    december = month_bounds(date(2024, 12, 18))
    assert december.start == date(2024, 12, 1)
    assert december.end == date(2024, 12, 31)

    previous = previous_month_bounds(date(2024, 1, 10))
    assert previous.start == date(2023, 12, 1)
    assert previous.end == date(2023, 12, 31)
    assert date(2023, 12, 15) in previous
    assert date(2024, 1, 1) not in previous


def test_month_over_month_compares_amounts_and_counts() -> None:
    today = date(2024, 3, 10)
    donations = [
        _donation(1, 20000, "2024-03-02"),
        _donation(2, 10000, "2024-02-14"),
        _donation(3, 99999, "2023-12-01"),
    ]

    amounts = month_over_month(
        donations,
        date_of=lambda donation: donation.donation_date,
        value_of=lambda donation: donation.amount_cents,
        today=today,
    )
    assert (amounts.current, amounts.previous) == (20000, 10000)
    assert amounts.change == 100
    assert amounts.trend == "up"

    counts = month_over_month(donations, date_of=lambda donation: donation.donation_date, today=today)
    assert (counts.current, counts.previous) == (1, 1)
    assert counts.change == 0


def test_dashboard_stats_report_three_cards() -> None:
    today = date(2024, 3, 10)
    donors = [
        _donor(1, status="Active", created_at="2024-03-01T09:00:00"),
        _donor(2, status="Inactive", created_at="2024-02-01T09:00:00"),
        _donor(3, status="Active", created_at="2024-02-05T09:00:00"),
    ]
    donations = [_donation(1, 150000, "2024-03-02"), _donation(2, 50000, "2024-01-15")]
    campaigns = [Campaign(id=1, title="Roof", goal_cents=100, created_at="2024-03-03 10:00:00")]

    cards = dashboard_stats(donors, donations, campaigns, today=today)

    assert [card.title for card in cards] == ["Total Donations", "Active Donors", "Campaign Reach"]
    assert cards[0].value == "₹2,000.00"
    assert cards[0].change == "+100.0%"
    assert cards[1].value == "2"
    assert cards[1].change == "-50.0%"
    assert cards[1].trend == "down"
    assert cards[2].change == "+100.0%"


def test_progress_is_zero_when_goal_is_zero() -> None:
    campaign = Campaign(id=1, title="Open appeal", goal_cents=0)
    donations = [_donation(1, 500000, "2024-01-01", campaign_id=1)]

    progress = campaign_progress(campaign, donations)

    assert progress.raised_cents == 500000
    assert progress.progress_percent == 0
    assert progress.status == "Active"


def test_progress_rounds_and_clamps_for_display() -> None:
    campaign = Campaign(id=1, title="School kits", goal_cents=30000)
    donations = [
        _donation(1, 10000, "2024-01-01", campaign_id=1),
        _donation(2, 35000, "2024-01-02", campaign_id=1, donor_id=2),
    ]

    progress = campaign_progress(campaign, donations)

    assert progress.progress_percent == 150
    assert progress.bar_percent == 100
    assert progress.remaining_cents == 0
    assert progress.donor_count == 2

    partial = campaign_progress(Campaign(id=2, title="Meals", goal_cents=300), [_donation(3, 100, "2024-01-01", campaign_id=2)])
    assert partial.progress_percent == 33


def test_campaigns_reaching_goal_derive_completed() -> None:
    campaigns = [Campaign(id=index, title=f"Campaign {index}", goal_cents=90000) for index in range(1, 4)]
    donations = []
    next_id = 1
    for campaign in campaigns:
        for _ in range(3):
            donations.append(_donation(next_id, 30000, "2024-04-01", campaign_id=campaign.id))
            next_id += 1

    rollup = campaign_rollup(campaigns, donations)

    assert [item.progress_percent for item in rollup] == [100, 100, 100]
    assert all(item.goal_met for item in rollup)
    assert all(item.status == "Completed" for item in rollup)


def test_stored_completed_status_is_kept() -> None:
    campaign = Campaign(id=1, title="Closed early", goal_cents=100000, status="Completed")

    assert campaign_progress(campaign, []).status == "Completed"


def test_top_campaigns_sorted_by_raised_with_stable_ties() -> None:
    campaigns = [Campaign(id=index, title=f"C{index}", goal_cents=1000) for index in range(1, 8)]
    amounts = {1: 100, 2: 500, 3: 500, 4: 50, 5: 900, 6: 10, 7: 0}
    donations = [
        _donation(campaign_id, amount, "2024-01-01", campaign_id=campaign_id)
        for campaign_id, amount in amounts.items()
    ]

    leaders = top_campaigns(campaign_rollup(campaigns, donations))

    assert [item.campaign.id for item in leaders] == [5, 2, 3, 1, 4]


def test_donor_retention_breakdown() -> None:
    donors = [_donor(index) for index in range(1, 5)]
    donations = [
        _donation(1, 100, "2024-01-01", donor_id=2),
        _donation(2, 100, "2024-01-01", donor_id=3),
        _donation(3, 100, "2024-01-01", donor_id=4),
        _donation(4, 100, "2024-02-01", donor_id=4),
        _donation(5, 100, "2024-03-01", donor_id=4),
    ]

    retention = donor_retention(donors, donations)

    assert (retention.new, retention.one_time, retention.recurring) == (1, 2, 1)
    assert retention.retention_rate == 25.0
    assert donor_retention([], []).retention_rate == 0.0


def test_donation_insights_split_composition_and_sources() -> None:
    donors = [_donor(1, type="Corporate"), _donor(2, type="Individual")]
    donations = [
        _donation(1, 10000, "2024-01-01", donor_id=1),
        _donation(2, 5000, "2024-01-02", donor_id=2, donation_type="in-kind"),
        _donation(3, 5001, "2024-01-03", donor_id=2),
    ]

    insights = donation_insights(donations, donors)

    assert insights["total_cents"] == 20001
    assert insights["count"] == 3
    assert insights["average_cents"] == 6667
    assert insights["max_cents"] == 10000
    assert {"name": "In-Kind", "value": 5000} in insights["composition"]
    assert {"name": "Corporate", "value": 10000} in insights["sources"]
    assert donation_insights([])["average_cents"] == 0


def test_campaign_insights_truncate_long_titles() -> None:
    campaigns = [Campaign(id=1, title="Winter Blanket Distribution Drive", goal_cents=5000)]
    donations = [_donation(1, 2500, "2024-01-01", campaign_id=1)]

    insights = campaign_insights(campaigns, donations)

    assert insights["progress"][0]["name"] == "Winter Blanket ..."
    assert insights["total_raised_cents"] == 2500
    assert insights["total_goal_cents"] == 5000


def test_recent_activity_merges_newest_first() -> None:
    donors = [
        _donor(1, name="Asha", created_at="2024-03-05T10:00:00"),
        _donor(2, name="Ravi", created_at="2024-01-01T10:00:00"),
    ]
    donations = [
        _donation(1, 500, "2024-03-06", donor_name="Asha"),
        _donation(2, 700, "2024-02-01", donor_name=None),
    ]

    items = recent_activity(donations, donors, limit=3)

    assert [item.id for item in items] == ["don-1", "user-1", "don-2"]
    assert items[0].subtitle == "From Asha"
    assert items[2].subtitle == "From Unknown"
    assert items[1].occurred_at == datetime(2024, 3, 5, 10, 0)


def test_donor_giving_summary() -> None:
    donations = [
        _donation(1, 500, "2024-03-06", donor_id=7),
        _donation(2, 700, "2024-05-01", donor_id=7),
        _donation(3, 900, "2024-05-02", donor_id=8),
    ]

    summary = donor_giving_summary(7, donations)

    assert summary == {"total_cents": 1200, "gift_count": 2, "last_donation_date": date(2024, 5, 1)}
