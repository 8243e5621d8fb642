"""Per-entity repositories over the data gateway.

Each repository validates input before writing and hands back typed models,
so reporting code never deals with raw rows or the gateway's query shape.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import FormValidationError
from .models import (
    CAMPAIGN_STATUSES,
    CHANNELS,
    DONOR_STATUSES,
    DONOR_TYPES,
    Campaign,
    Communication,
    Donation,
    Donor,
    InKindItem,
    MemorialDate,
    OrgSettings,
)
from .store import DataGateway
from .validation import clean_text, validate_campaign, validate_donation, validate_donor

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DONOR_JOIN = {"donors": ("name", "type", "email")}


def parse_rows(model: type[ModelT], rows: Iterable[dict[str, Any]]) -> list[ModelT]:
    parsed: list[ModelT] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s row %s (%d error(s))",
                model.__name__,
                row.get("id"),
                exc.error_count(),
            )
    return parsed


def _first(model: type[ModelT], rows: list[dict[str, Any]]) -> ModelT | None:
    parsed = parse_rows(model, rows)
    return parsed[0] if parsed else None


def _raise_if(errors: dict[str, str]) -> None:
    if errors:
        raise FormValidationError(errors)


def _memorial_entries(memorial_dates: Iterable[Any]) -> list[MemorialDate]:
    entries: list[MemorialDate] = []
    for entry in memorial_dates:
        memorial = entry if isinstance(entry, MemorialDate) else MemorialDate.model_validate(entry)
        if not memorial.tag and memorial.date is None:
            continue
        entries.append(memorial)
    return entries


def _item_entries(items: Iterable[Any]) -> list[InKindItem]:
    return [entry if isinstance(entry, InKindItem) else InKindItem.model_validate(entry) for entry in items]


class DonorRepository:
    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway

    def _payload(
        self,
        name: str,
        email: str | None,
        phone: str | None,
        donor_type: str,
        status: str,
        birth_date: date | None,
        anniversary_date: date | None,
        social_media_handle: str | None,
        memorial_dates: Iterable[Any],
        today: date | None,
    ) -> dict[str, Any]:
        memorials = _memorial_entries(memorial_dates)
        errors = validate_donor(
            name=name,
            email=email,
            phone=phone,
            birth_date=birth_date,
            memorial_dates=memorials,
            today=today,
        )
        if donor_type not in DONOR_TYPES:
            errors["type"] = "Donor type must be Individual, Corporate, or Recurring"
        if status not in DONOR_STATUSES:
            errors["status"] = "Status must be Active or Inactive"
        _raise_if(errors)

        return {
            "name": clean_text(name),
            "email": clean_text(email),
            "phone": clean_text(phone),
            "type": donor_type,
            "status": status,
            "birth_date": birth_date,
            "anniversary_date": anniversary_date,
            "social_media_handle": clean_text(social_media_handle),
            "memorial_dates": memorials,
        }

    def add(
        self,
        name: str,
        email: str | None,
        phone: str | None,
        birth_date: date | None,
        donor_type: str = "Individual",
        status: str = "Active",
        anniversary_date: date | None = None,
        social_media_handle: str | None = None,
        memorial_dates: Iterable[Any] = (),
        today: date | None = None,
    ) -> int:
        payload = self._payload(
            name, email, phone, donor_type, status, birth_date,
            anniversary_date, social_media_handle, memorial_dates, today,
        )
        donor_id = self.gateway.insert("donors", payload)[0]
        logger.info("Registered donor #%s", donor_id)
        return donor_id

    def update(
        self,
        donor_id: int,
        name: str,
        email: str | None,
        phone: str | None,
        birth_date: date | None,
        donor_type: str = "Individual",
        status: str = "Active",
        anniversary_date: date | None = None,
        social_media_handle: str | None = None,
        memorial_dates: Iterable[Any] = (),
        today: date | None = None,
    ) -> None:
        payload = self._payload(
            name, email, phone, donor_type, status, birth_date,
            anniversary_date, social_media_handle, memorial_dates, today,
        )
        self.gateway.update("donors", donor_id, payload)

    def delete(self, donor_id: int) -> None:
        self.gateway.delete("donors", donor_id)
        logger.info("Deleted donor #%s", donor_id)

    def get(self, donor_id: int) -> Donor | None:
        return _first(Donor, self.gateway.select("donors", {"id": donor_id}, limit=1))

    def list(self) -> list[Donor]:
        return parse_rows(Donor, self.gateway.select("donors", order_by="created_at", descending=True))


class DonationRepository:
    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway

    def add(
        self,
        donor_id: int | None,
        donation_date: date,
        donation_type: str = "monetary",
        amount_cents: int | None = None,
        payment_method: str | None = None,
        items: Iterable[Any] = (),
        campaign_id: int | None = None,
    ) -> int:
        entries = _item_entries(items) if donation_type == "in-kind" else []
        _raise_if(
            validate_donation(
                donor_id=donor_id,
                donation_type=donation_type,
                amount_cents=amount_cents,
                payment_method=payment_method,
                items=entries,
            )
        )

        payload: dict[str, Any] = {
            "donor_id": donor_id,
            "campaign_id": campaign_id,
            "donation_type": donation_type,
            "amount_cents": amount_cents,
            "donation_date": donation_date,
        }
        if donation_type == "monetary":
            payload["payment_method"] = payment_method
            payload["items"] = None
        else:
            payload["payment_method"] = None
            payload["items"] = entries

        donation_id = self.gateway.insert("donations", payload)[0]
        logger.info("Recorded %s donation #%s for donor #%s", donation_type, donation_id, donor_id)
        return donation_id

    def delete(self, donation_id: int) -> None:
        self.gateway.delete("donations", donation_id)

    def list(
        self,
        donor_id: int | None = None,
        campaign_id: int | None = None,
        limit: int | None = None,
    ) -> list[Donation]:
        filters: dict[str, Any] = {}
        if donor_id is not None:
            filters["donor_id"] = donor_id
        if campaign_id is not None:
            filters["campaign_id"] = campaign_id
        rows = self.gateway.select(
            "donations",
            filters,
            joins={**DONOR_JOIN, "campaigns": ("title",)},
            order_by="donation_date",
            descending=True,
            limit=limit,
        )
        return parse_rows(Donation, rows)


class CampaignRepository:
    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway

    def _payload(
        self,
        title: str,
        description: str,
        goal_cents: int | None,
        deadline: date | None,
        status: str,
        today: date | None,
        check_deadline: bool = True,
    ) -> dict[str, Any]:
        errors = validate_campaign(
            title=title,
            description=description,
            goal_cents=goal_cents,
            deadline=deadline if check_deadline else None,
            today=today,
        )
        if status not in CAMPAIGN_STATUSES:
            errors["status"] = "Status must be Active or Completed"
        _raise_if(errors)
        return {
            "title": clean_text(title),
            "description": clean_text(description),
            "goal_cents": goal_cents,
            "deadline": deadline,
            "status": status,
        }

    def add(
        self,
        title: str,
        description: str,
        goal_cents: int | None,
        deadline: date | None,
        status: str = "Active",
        today: date | None = None,
    ) -> int:
        payload = self._payload(title, description, goal_cents, deadline, status, today)
        campaign_id = self.gateway.insert("campaigns", payload)[0]
        logger.info("Created campaign #%s", campaign_id)
        return campaign_id

    def update(
        self,
        campaign_id: int,
        title: str,
        description: str,
        goal_cents: int | None,
        deadline: date | None,
        status: str = "Active",
        today: date | None = None,
    ) -> None:
        current = self.get(campaign_id)
        # An unchanged deadline may already be in the past.
        unchanged = current is not None and current.deadline == deadline
        payload = self._payload(
            title, description, goal_cents, deadline, status, today, check_deadline=not unchanged
        )
        self.gateway.update("campaigns", campaign_id, payload)

    def delete(self, campaign_id: int) -> None:
        self.gateway.delete("campaigns", campaign_id)

    def get(self, campaign_id: int) -> Campaign | None:
        return _first(Campaign, self.gateway.select("campaigns", {"id": campaign_id}, limit=1))

    def list(self) -> list[Campaign]:
        return parse_rows(Campaign, self.gateway.select("campaigns", order_by="created_at", descending=True))


class CommunicationRepository:
    """Append-only outreach log."""

    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway

    def log(
        self,
        donor_id: int | None,
        channel: str,
        content: str,
        subject: str | None = None,
        status: str = "Sent",
    ) -> int:
        if channel not in CHANNELS:
            raise ValueError("Channel must be Email or WhatsApp.")
        return self.gateway.insert(
            "communications",
            {
                "donor_id": donor_id,
                "channel": channel,
                "subject": clean_text(subject) if channel == "Email" else None,
                "content": content,
                "status": status,
                "direction": "Outbound",
            },
        )[0]

    def list(self, donor_id: int | None = None, limit: int | None = None) -> list[Communication]:
        filters = {"donor_id": donor_id} if donor_id is not None else None
        rows = self.gateway.select(
            "communications",
            filters,
            joins={"donors": ("name",)},
            order_by="sent_at",
            descending=True,
            limit=limit,
        )
        return parse_rows(Communication, rows)


class SettingsRepository:
    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway

    def get(self) -> OrgSettings:
        found = _first(OrgSettings, self.gateway.select("settings", order_by="id", limit=1))
        return found or OrgSettings()

    def save(self, settings: OrgSettings) -> None:
        errors: dict[str, str] = {}
        if not settings.org_name:
            errors["org_name"] = "Organisation name is required"
        if settings.org_email and "@" not in settings.org_email:
            errors["org_email"] = "Invalid email address"
        _raise_if(errors)

        payload = settings.model_dump(exclude={"id"})
        if self.gateway.count("settings", {"id": settings.id}):
            self.gateway.update("settings", settings.id, payload)
        else:
            self.gateway.insert("settings", payload)


def donor_lookup(donors: Sequence[Donor]) -> dict[int, Donor]:
    return {donor.id: donor for donor in donors}
