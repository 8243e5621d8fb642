"""Typed row schemas for donors, donations, campaigns, and communications.

Rows coming back from the store are treated as untrusted: every model
defaults missing or malformed optional fields so the aggregation code can
work with complete records.
"""

from __future__ import annotations

import datetime as dt
import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


DONOR_TYPES = ("Individual", "Corporate", "Recurring")
DONOR_STATUSES = ("Active", "Inactive")
DONATION_TYPES = ("monetary", "in-kind")
PAYMENT_METHODS = ("UPI", "Cash", "Bank Transfer", "Cheque")
CAMPAIGN_STATUSES = ("Active", "Completed")
CHANNELS = ("Email", "WhatsApp")

DonorType = Literal["Individual", "Corporate", "Recurring"]
DonorStatus = Literal["Active", "Inactive"]
DonationType = Literal["monetary", "in-kind"]
CampaignStatus = Literal["Active", "Completed"]
Channel = Literal["Email", "WhatsApp"]

CURRENCY_SYMBOL = "₹"


def cents_from_amount(amount: float | int | str | Decimal) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def amount_from_cents(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def format_currency(cents: int) -> str:
    return f"{CURRENCY_SYMBOL}{amount_from_cents(cents):,.2f}"


def parse_date(value: Any) -> dt.date | None:
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_datetime(value: Any) -> dt.datetime | None:
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = parse_date(text)
        if parsed is None:
            return None
        return dt.datetime(parsed.year, parsed.month, parsed.day)


def _json_list(value: Any) -> list[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return value


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class MemorialDate(_Row):
    tag: str = ""
    date: dt.date | None = None

    @field_validator("tag", mode="before")
    @classmethod
    def _tag(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> dt.date | None:
        return parse_date(value)


class InKindItem(_Row):
    item: str = ""
    quantity: float = 0
    unit: str = ""

    @field_validator("item", "unit", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0


class Donor(_Row):
    id: int
    name: str = ""
    email: str | None = None
    phone: str | None = None
    type: DonorType = "Individual"
    status: DonorStatus = "Active"
    birth_date: dt.date | None = None
    anniversary_date: dt.date | None = None
    social_media_handle: str | None = None
    memorial_dates: tuple[MemorialDate, ...] = ()
    created_at: dt.datetime | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("email", "phone", "social_media_handle", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> str:
        return value if value in DONOR_TYPES else "Individual"

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        return value if value in DONOR_STATUSES else "Active"

    @field_validator("birth_date", "anniversary_date", mode="before")
    @classmethod
    def _dates(cls, value: Any) -> dt.date | None:
        return parse_date(value)

    @field_validator("memorial_dates", mode="before")
    @classmethod
    def _memorials(cls, value: Any) -> list[Any]:
        return [entry for entry in _json_list(value) if isinstance(entry, (dict, MemorialDate))]

    @field_validator("created_at", mode="before")
    @classmethod
    def _created(cls, value: Any) -> dt.datetime | None:
        return parse_datetime(value)


class Donation(_Row):
    id: int
    donor_id: int
    campaign_id: int | None = None
    amount_cents: int = 0
    donation_type: DonationType = "monetary"
    payment_method: str | None = None
    items: tuple[InKindItem, ...] = ()
    donation_date: dt.date | None = None
    created_at: dt.datetime | None = None
    donor_name: str | None = None
    donor_type: str | None = None
    donor_email: str | None = None
    campaign_title: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_joins(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        flattened = dict(data)
        donor = flattened.pop("donors", None)
        if isinstance(donor, dict):
            flattened.setdefault("donor_name", donor.get("name"))
            flattened.setdefault("donor_type", donor.get("type"))
            flattened.setdefault("donor_email", donor.get("email"))
        campaign = flattened.pop("campaigns", None)
        if isinstance(campaign, dict):
            flattened.setdefault("campaign_title", campaign.get("title"))
        return flattened

    @field_validator("amount_cents", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> int:
        if value is None or value == "":
            return 0
        cents = int(round(float(value)))
        if cents < 0:
            raise ValueError("Donation amount cannot be negative.")
        return cents

    @field_validator("donation_type", mode="before")
    @classmethod
    def _donation_type(cls, value: Any) -> str:
        return value if value in DONATION_TYPES else "monetary"

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, value: Any) -> list[Any]:
        return [entry for entry in _json_list(value) if isinstance(entry, (dict, InKindItem))]

    @field_validator("donation_date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> dt.date | None:
        return parse_date(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created(cls, value: Any) -> dt.datetime | None:
        return parse_datetime(value)

    @property
    def is_in_kind(self) -> bool:
        return self.donation_type == "in-kind"


class Campaign(_Row):
    id: int
    title: str = ""
    description: str = ""
    goal_cents: int = 0
    deadline: dt.date | None = None
    status: CampaignStatus = "Active"
    created_at: dt.datetime | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("goal_cents", mode="before")
    @classmethod
    def _goal(cls, value: Any) -> int:
        if value is None or value == "":
            return 0
        return max(0, int(round(float(value))))

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str:
        return value if value in CAMPAIGN_STATUSES else "Active"

    @field_validator("deadline", mode="before")
    @classmethod
    def _deadline(cls, value: Any) -> dt.date | None:
        return parse_date(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created(cls, value: Any) -> dt.datetime | None:
        return parse_datetime(value)


class Communication(_Row):
    id: int
    donor_id: int | None = None
    channel: Channel = "Email"
    subject: str | None = None
    content: str = ""
    status: str = "Sent"
    direction: str = "Outbound"
    sent_at: dt.datetime | None = None
    donor_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_joins(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        flattened = dict(data)
        donor = flattened.pop("donors", None)
        if isinstance(donor, dict):
            flattened.setdefault("donor_name", donor.get("name"))
        return flattened

    @field_validator("sent_at", mode="before")
    @classmethod
    def _sent(cls, value: Any) -> dt.datetime | None:
        return parse_datetime(value)


class OrgSettings(_Row):
    id: int = 1
    org_name: str = ""
    org_email: str = ""
    org_phone: str = ""
    org_address: str = ""
    website: str = ""
    upi_id: str = ""
    razorpay_key: str = ""
    notifications_enabled: bool = True

    @field_validator(
        "org_name",
        "org_email",
        "org_phone",
        "org_address",
        "website",
        "upi_id",
        "razorpay_key",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()
