"""Field-level checks for the donor, campaign, and donation forms."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Iterable, Mapping

from .models import DONATION_TYPES, PAYMENT_METHODS, parse_date


_NAME_PATTERN = re.compile(r"^[A-Za-z\s]+$")
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_PATTERN = re.compile(r"^\d{10,15}$")


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def _entry(value: Any, key: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(key)
    return getattr(value, key, None)


def validate_donor(
    name: str | None,
    email: str | None,
    phone: str | None,
    birth_date: date | str | None,
    memorial_dates: Iterable[Any] = (),
    today: date | None = None,
) -> dict[str, str]:
    errors: dict[str, str] = {}
    anchor = today or date.today()

    clean_name = clean_text(name)
    if not clean_name:
        errors["name"] = "Name is required"
    elif not _NAME_PATTERN.match(clean_name):
        errors["name"] = "Name must contain only letters"

    clean_email = clean_text(email)
    if not clean_email:
        errors["email"] = "Email is required"
    elif not _EMAIL_PATTERN.match(clean_email):
        errors["email"] = "Invalid email address"

    clean_phone = clean_text(phone)
    if not clean_phone:
        errors["phone"] = "Phone is required"
    elif not _PHONE_PATTERN.match(clean_phone):
        errors["phone"] = "Phone must be 10-15 digits"

    parsed_birth = parse_date(birth_date)
    if parsed_birth is None:
        errors["birth_date"] = "Birth date is required"
    elif parsed_birth > anchor:
        errors["birth_date"] = "Birth date cannot be in the future"

    for memorial in memorial_dates:
        has_tag = bool(clean_text(_entry(memorial, "tag")))
        has_date = parse_date(_entry(memorial, "date")) is not None
        if has_tag != has_date:
            errors["memorial_dates"] = "Incomplete memorial date entries"
            break

    return errors


def validate_campaign(
    title: str | None,
    description: str | None,
    goal_cents: int | None,
    deadline: date | str | None,
    today: date | None = None,
) -> dict[str, str]:
    errors: dict[str, str] = {}
    anchor = today or date.today()

    if not clean_text(title):
        errors["title"] = "Title is required"

    if goal_cents is None or goal_cents <= 0:
        errors["goal_amount"] = "Goal amount must be greater than 0"

    parsed_deadline = parse_date(deadline)
    if deadline not in (None, "") and parsed_deadline is None:
        errors["deadline"] = "Target date is not a valid date"
    elif parsed_deadline is not None and parsed_deadline <= anchor:
        errors["deadline"] = "Target date must be in the future"

    if not clean_text(description):
        errors["description"] = "Description is required"

    return errors


def validate_donation(
    donor_id: int | None,
    donation_type: str,
    amount_cents: int | None,
    payment_method: str | None,
    items: Iterable[Any] = (),
) -> dict[str, str]:
    errors: dict[str, str] = {}

    if donor_id is None:
        errors["donor_id"] = "Select a donor"

    if donation_type not in DONATION_TYPES:
        errors["donation_type"] = "Donation type must be monetary or in-kind"
        return errors

    if donation_type == "monetary":
        if amount_cents is None or amount_cents <= 0:
            errors["amount"] = "Amount must be greater than 0"
        if payment_method not in PAYMENT_METHODS:
            errors["payment_method"] = "Choose a payment method"
        return errors

    if amount_cents is not None and amount_cents < 0:
        errors["amount"] = "Estimated value cannot be negative"

    entries = list(items)
    if not entries:
        errors["items"] = "Add at least one donated item"
        return errors
    for entry in entries:
        if not clean_text(_entry(entry, "item")):
            errors["items"] = "Every item needs a name"
            break
        try:
            quantity = float(_entry(entry, "quantity") or 0)
        except (TypeError, ValueError):
            quantity = 0.0
        if quantity <= 0:
            errors["items"] = "Every item needs a quantity greater than 0"
            break

    return errors
