"""Derived reporting values computed from donor, donation, and campaign rows.

Everything here is a pure function of its inputs. Amounts are integer cents
end to end, so sums never accumulate floating-point drift; rounding happens
only for percentages and averages.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable, Sequence, TypeVar

from .models import Campaign, Donation, Donor, format_currency


MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
TOP_CAMPAIGN_LIMIT = 5
CHART_LABEL_WIDTH = 15

T = TypeVar("T")


def _round_half_up(value: Decimal, places: int = 0) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _ratio_percent(numerator: int, denominator: int, places: int = 0) -> Decimal:
    return _round_half_up(Decimal(numerator) * 100 / Decimal(denominator), places)


def sum_amounts(donations: Iterable[Donation]) -> int:
    return sum(int(donation.amount_cents or 0) for donation in donations)


@dataclass(frozen=True)
class MonthRange:
    start: date
    end: date

    def __contains__(self, value: object) -> bool:
        return isinstance(value, date) and self.start <= value <= self.end


def month_bounds(anchor: date) -> MonthRange:
    first_day = anchor.replace(day=1)
    if first_day.month == 12:
        next_month = date(first_day.year + 1, 1, 1)
    else:
        next_month = date(first_day.year, first_day.month + 1, 1)
    return MonthRange(start=first_day, end=next_month - timedelta(days=1))


def previous_month_bounds(anchor: date) -> MonthRange:
    return month_bounds(month_bounds(anchor).start - timedelta(days=1))


def monthly_totals(donations: Iterable[Donation], year: int) -> list[dict[str, Any]]:
    """Twelve Jan..Dec buckets of donation totals for ``year``; empty months are 0."""

    buckets = [0] * 12
    for donation in donations:
        donated_on = donation.donation_date
        if donated_on is None or donated_on.year != year:
            continue
        buckets[donated_on.month - 1] += int(donation.amount_cents or 0)
    return [
        {"month": label, "total_cents": total}
        for label, total in zip(MONTH_LABELS, buckets)
    ]


def donation_years(donations: Iterable[Donation], today: date | None = None) -> list[int]:
    anchor = today or date.today()
    years = {donation.donation_date.year for donation in donations if donation.donation_date}
    years.add(anchor.year)
    return sorted(years, reverse=True)


def percent_change(current: int | float, previous: int | float) -> float:
    if previous > 0:
        return float(Decimal(str(current - previous)) / Decimal(str(previous)) * 100)
    if current > 0:
        return 100.0
    return 0.0


def trend_direction(change: float) -> str:
    return "up" if change >= 0 else "down"


def format_change(change: float) -> str:
    return f"{change:+.1f}%"


@dataclass(frozen=True)
class PeriodComparison:
    current: int
    previous: int

    @property
    def change(self) -> float:
        return percent_change(self.current, self.previous)

    @property
    def trend(self) -> str:
        return trend_direction(self.change)


def month_over_month(
    records: Iterable[T],
    date_of: Callable[[T], date | datetime | None],
    value_of: Callable[[T], int] = lambda _record: 1,
    today: date | None = None,
) -> PeriodComparison:
    """Compare this calendar month against the previous one.

    ``value_of`` defaults to counting records; pass an amount accessor to
    compare totals instead.
    """

    anchor = today or date.today()
    this_month = month_bounds(anchor)
    last_month = previous_month_bounds(anchor)

    current = 0
    previous = 0
    for record in records:
        stamp = date_of(record)
        if stamp is None:
            continue
        if isinstance(stamp, datetime):
            stamp = stamp.date()
        if stamp in this_month:
            current += value_of(record)
        elif stamp in last_month:
            previous += value_of(record)
    return PeriodComparison(current=current, previous=previous)


@dataclass(frozen=True)
class StatCard:
    title: str
    value: str
    change: str
    trend: str


def _stat_card(title: str, value: str, comparison: PeriodComparison) -> StatCard:
    return StatCard(
        title=title,
        value=value,
        change=format_change(comparison.change),
        trend=comparison.trend,
    )


def dashboard_stats(
    donors: Sequence[Donor],
    donations: Sequence[Donation],
    campaigns: Sequence[Campaign],
    today: date | None = None,
) -> list[StatCard]:
    donation_trend = month_over_month(
        donations,
        date_of=lambda donation: donation.donation_date,
        value_of=lambda donation: int(donation.amount_cents or 0),
        today=today,
    )
    donor_trend = month_over_month(donors, date_of=lambda donor: donor.created_at, today=today)
    campaign_trend = month_over_month(campaigns, date_of=lambda campaign: campaign.created_at, today=today)

    active_donors = sum(1 for donor in donors if donor.status == "Active")
    return [
        _stat_card("Total Donations", format_currency(sum_amounts(donations)), donation_trend),
        _stat_card("Active Donors", f"{active_donors:,}", donor_trend),
        _stat_card("Campaign Reach", f"{len(campaigns):,}", campaign_trend),
    ]


@dataclass(frozen=True)
class CampaignProgress:
    """A campaign together with the values derived from its donations."""

    campaign: Campaign
    raised_cents: int
    donor_count: int
    donation_count: int

    @property
    def progress_percent(self) -> int:
        if self.campaign.goal_cents <= 0:
            return 0
        return int(_ratio_percent(self.raised_cents, self.campaign.goal_cents))

    @property
    def bar_percent(self) -> int:
        return max(0, min(self.progress_percent, 100))

    @property
    def goal_met(self) -> bool:
        return self.campaign.goal_cents > 0 and self.raised_cents >= self.campaign.goal_cents

    @property
    def status(self) -> str:
        if self.campaign.status == "Completed" or self.goal_met:
            return "Completed"
        return "Active"

    @property
    def remaining_cents(self) -> int:
        return max(self.campaign.goal_cents - self.raised_cents, 0)


def _progress_for(campaign: Campaign, donations: Iterable[Donation]) -> CampaignProgress:
    linked = [donation for donation in donations if donation.campaign_id == campaign.id]
    return CampaignProgress(
        campaign=campaign,
        raised_cents=sum_amounts(linked),
        donor_count=len({donation.donor_id for donation in linked}),
        donation_count=len(linked),
    )


def campaign_progress(campaign: Campaign, donations: Iterable[Donation]) -> CampaignProgress:
    return _progress_for(campaign, donations)


def campaign_rollup(
    campaigns: Iterable[Campaign],
    donations: Iterable[Donation],
) -> list[CampaignProgress]:
    by_campaign: dict[int, list[Donation]] = {}
    for donation in donations:
        if donation.campaign_id is not None:
            by_campaign.setdefault(donation.campaign_id, []).append(donation)
    return [
        _progress_for(campaign, by_campaign.get(campaign.id, []))
        for campaign in campaigns
    ]


def top_campaigns(
    progress: Iterable[CampaignProgress],
    limit: int = TOP_CAMPAIGN_LIMIT,
) -> list[CampaignProgress]:
    # sorted() is stable with reverse=True, so ties keep their original order.
    return sorted(progress, key=lambda item: item.raised_cents, reverse=True)[:limit]


def campaign_donations(campaign_id: int, donations: Iterable[Donation]) -> list[Donation]:
    linked = [donation for donation in donations if donation.campaign_id == campaign_id]
    return sorted(linked, key=lambda donation: donation.donation_date or date.min, reverse=True)


@dataclass(frozen=True)
class RetentionBreakdown:
    new: int
    one_time: int
    recurring: int

    @property
    def total(self) -> int:
        return self.new + self.one_time + self.recurring

    @property
    def retention_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return float(_ratio_percent(self.recurring, self.total, places=1))


def donor_retention(donors: Iterable[Donor], donations: Iterable[Donation]) -> RetentionBreakdown:
    gift_counts = Counter(donation.donor_id for donation in donations)
    new = one_time = recurring = 0
    for donor in donors:
        count = gift_counts.get(donor.id, 0)
        if count == 0:
            new += 1
        elif count == 1:
            one_time += 1
        else:
            recurring += 1
    return RetentionBreakdown(new=new, one_time=one_time, recurring=recurring)


def _short_label(title: str, width: int = CHART_LABEL_WIDTH) -> str:
    if len(title) > width:
        return f"{title[:width]}..."
    return title


def _non_empty(slices: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [entry for entry in slices if entry["value"] > 0]


def donation_insights(
    donations: Sequence[Donation],
    donors: Sequence[Donor] = (),
) -> dict[str, Any]:
    donor_types = {donor.id: donor.type for donor in donors}
    total = sum_amounts(donations)
    count = len(donations)

    composition: dict[str, int] = {}
    sources: dict[str, int] = {}
    for donation in donations:
        amount = int(donation.amount_cents or 0)
        category = "In-Kind" if donation.is_in_kind else "Monetary"
        composition[category] = composition.get(category, 0) + amount
        source = donor_types.get(donation.donor_id) or donation.donor_type or "Unknown"
        sources[source] = sources.get(source, 0) + amount

    average = int(_round_half_up(Decimal(total) / count)) if count else 0
    return {
        "total_cents": total,
        "count": count,
        "average_cents": average,
        "max_cents": max((int(donation.amount_cents or 0) for donation in donations), default=0),
        "composition": [{"name": name, "value": value} for name, value in composition.items()],
        "sources": [{"name": name, "value": value} for name, value in sources.items()],
    }


def donor_insights(donors: Sequence[Donor], donations: Sequence[Donation]) -> dict[str, Any]:
    retention = donor_retention(donors, donations)
    active = sum(1 for donor in donors if donor.status == "Active")
    return {
        "total": len(donors),
        "active": active,
        "retention_rate": retention.retention_rate,
        "retention": _non_empty(
            [
                {"name": "Recurring (>1)", "value": retention.recurring},
                {"name": "One-time", "value": retention.one_time},
                {"name": "New (0)", "value": retention.new},
            ]
        ),
        "activity": _non_empty(
            [
                {"name": "Active", "value": active},
                {"name": "Inactive", "value": len(donors) - active},
            ]
        ),
    }


def campaign_insights(campaigns: Sequence[Campaign], donations: Sequence[Donation]) -> dict[str, Any]:
    rollup = campaign_rollup(campaigns, donations)
    leaders = top_campaigns(rollup)
    return {
        "total": len(rollup),
        "total_raised_cents": sum(item.raised_cents for item in rollup),
        "total_goal_cents": sum(item.campaign.goal_cents for item in rollup),
        "progress": [
            {
                "name": _short_label(item.campaign.title),
                "value": item.raised_cents,
                "goal": item.campaign.goal_cents,
            }
            for item in leaders
        ],
        "distribution": _non_empty(
            [{"name": _short_label(item.campaign.title), "value": item.raised_cents} for item in leaders]
        ),
    }


@dataclass(frozen=True)
class ActivityItem:
    id: str
    kind: str
    title: str
    subtitle: str
    occurred_at: datetime
    amount_cents: int | None = None


def recent_activity(
    donations: Iterable[Donation],
    donors: Iterable[Donor],
    limit: int | None = 5,
) -> list[ActivityItem]:
    items: list[ActivityItem] = []
    for donation in donations:
        if donation.donation_date is None:
            continue
        donated_on = donation.donation_date
        items.append(
            ActivityItem(
                id=f"don-{donation.id}",
                kind="donation",
                title="New Donation received",
                subtitle=f"From {donation.donor_name or 'Unknown'}",
                occurred_at=datetime(donated_on.year, donated_on.month, donated_on.day),
                amount_cents=int(donation.amount_cents or 0),
            )
        )
    for donor in donors:
        if donor.created_at is None:
            continue
        items.append(
            ActivityItem(
                id=f"user-{donor.id}",
                kind="donor",
                title="New Donor Registered",
                subtitle=donor.name,
                occurred_at=donor.created_at.replace(tzinfo=None),
            )
        )
    items.sort(key=lambda item: item.occurred_at, reverse=True)
    return items if limit is None else items[:limit]


def donor_giving_summary(donor_id: int, donations: Iterable[Donation]) -> dict[str, Any]:
    own = [donation for donation in donations if donation.donor_id == donor_id]
    dated = [donation.donation_date for donation in own if donation.donation_date is not None]
    return {
        "total_cents": sum_amounts(own),
        "gift_count": len(own),
        "last_donation_date": max(dated) if dated else None,
    }
