from __future__ import annotations

from datetime import date

import pytest

from trust_dashboard.errors import FormValidationError, GatewayError
from trust_dashboard.models import OrgSettings
from trust_dashboard.repositories import (
    CampaignRepository,
    CommunicationRepository,
    DonationRepository,
    DonorRepository,
    SettingsRepository,
)
from trust_dashboard.store import DataGateway


def _build_gateway(tmp_path) -> DataGateway:  # type: ignore[no-untyped-def]
    gateway = DataGateway(tmp_path / "trust_dashboard_test.db")
    gateway.init_db()
    return gateway


def _add_donor(donors: DonorRepository, name: str = "Asha Rao", email: str = "asha@example.org") -> int:
    return donors.add(
        name=name,
        email=email,
        phone="9876543210",
        birth_date=date(1990, 7, 4),
    )


def test_init_db_is_idempotent_and_seeds_settings(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    gateway.init_db()

    assert gateway.count("settings") == 1
    settings = SettingsRepository(gateway).get()
    assert settings.org_name == "Prajakirana Seva Charitable Trust"
    assert settings.notifications_enabled is True


def test_gateway_filters_orders_and_limits(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    ids = gateway.insert(
        "campaigns",
        [
            {"title": "Books", "goal_cents": 1000, "status": "Active"},
            {"title": "Meals", "goal_cents": 3000, "status": "Completed"},
            {"title": "Wells", "goal_cents": 2000, "status": "Active"},
        ],
    )

    assert len(ids) == 3
    active = gateway.select("campaigns", {"status": "Active"}, order_by="goal_cents", descending=True)
    assert [row["title"] for row in active] == ["Wells", "Books"]
    assert [row["title"] for row in gateway.select("campaigns", {"id": [ids[0], ids[1]]})] == ["Books", "Meals"]
    assert gateway.select("campaigns", {"id": []}) == []
    assert len(gateway.select("campaigns", limit=2)) == 2
    assert gateway.count("campaigns", {"deadline": None}) == 3


def test_gateway_rejects_unknown_collections_and_missing_rows(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)

    with pytest.raises(GatewayError):
        gateway.select("volunteers")
    with pytest.raises(GatewayError):
        gateway.select("donors", {"name; DROP TABLE donors": "x"})
    with pytest.raises(GatewayError):
        gateway.update("donors", 999, {"name": "Ghost"})
    with pytest.raises(GatewayError):
        gateway.delete("donors", 999)


def test_gateway_wraps_constraint_failures(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)

    with pytest.raises(GatewayError):
        gateway.insert("donations", {"donor_id": 12345, "amount_cents": 100, "donation_date": "2024-01-01"})


def test_donor_repository_round_trip(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    donors = DonorRepository(gateway)

    donor_id = donors.add(
        name="  Asha Rao ",
        email="asha@example.org",
        phone="9876543210",
        birth_date=date(1990, 7, 4),
        donor_type="Recurring",
        social_media_handle="@asha",
        memorial_dates=[
            {"tag": "Father", "date": "2015-01-09"},
            {"tag": "", "date": ""},
        ],
    )

    donor = donors.get(donor_id)
    assert donor is not None
    assert donor.name == "Asha Rao"
    assert donor.type == "Recurring"
    assert donor.birth_date == date(1990, 7, 4)
    assert len(donor.memorial_dates) == 1
    assert donor.memorial_dates[0].date == date(2015, 1, 9)
    assert donor.created_at is not None

    donors.update(
        donor_id,
        name="Asha Rao",
        email="asha.rao@example.org",
        phone="9876543210",
        birth_date=date(1990, 7, 4),
        status="Inactive",
    )
    updated = donors.get(donor_id)
    assert updated is not None
    assert updated.email == "asha.rao@example.org"
    assert updated.status == "Inactive"
    assert updated.memorial_dates == ()


def test_donor_repository_raises_field_errors(tmp_path) -> None:  # type: ignore[no-untyped-def]
    donors = DonorRepository(_build_gateway(tmp_path))

    with pytest.raises(FormValidationError) as excinfo:
        donors.add(name="", email="bad", phone="1", birth_date=None, donor_type="Alien")

    assert set(excinfo.value.errors) == {"name", "email", "phone", "birth_date", "type"}
    assert isinstance(excinfo.value, ValueError)
    assert donors.list() == []


def test_donations_join_donor_and_campaign(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    donors = DonorRepository(gateway)
    donations = DonationRepository(gateway)
    campaigns = CampaignRepository(gateway)

    donor_id = _add_donor(donors)
    campaign_id = campaigns.add(
        title="Clean Water",
        description="Two borewells",
        goal_cents=500000,
        deadline=date(2099, 1, 1),
    )
    donations.add(
        donor_id=donor_id,
        donation_date=date(2024, 3, 15),
        amount_cents=10000,
        payment_method="UPI",
        campaign_id=campaign_id,
    )
    donations.add(
        donor_id=donor_id,
        donation_date=date(2024, 3, 20),
        donation_type="in-kind",
        items=[{"item": "Rice", "quantity": 25, "unit": "kg"}],
    )

    rows = donations.list()
    assert [row.donation_date for row in rows] == [date(2024, 3, 20), date(2024, 3, 15)]
    in_kind, monetary = rows
    assert in_kind.is_in_kind
    assert in_kind.amount_cents == 0
    assert in_kind.payment_method is None
    assert in_kind.items[0].item == "Rice"
    assert in_kind.items[0].quantity == 25
    assert monetary.donor_name == "Asha Rao"
    assert monetary.donor_type == "Individual"
    assert monetary.campaign_title == "Clean Water"
    assert in_kind.campaign_title is None

    assert [row.id for row in donations.list(campaign_id=campaign_id)] == [monetary.id]
    assert len(donations.list(donor_id=donor_id, limit=1)) == 1


def test_deleting_donor_cascades_and_campaign_delete_unlinks(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    donors = DonorRepository(gateway)
    donations = DonationRepository(gateway)
    campaigns = CampaignRepository(gateway)

    keep_id = _add_donor(donors, name="Keep Me", email="keep@example.org")
    drop_id = _add_donor(donors, name="Drop Me", email="drop@example.org")
    campaign_id = campaigns.add("Books", "Library shelves", 10000, None)
    donations.add(donor_id=keep_id, donation_date=date(2024, 1, 1), amount_cents=500, payment_method="Cash", campaign_id=campaign_id)
    donations.add(donor_id=drop_id, donation_date=date(2024, 1, 2), amount_cents=700, payment_method="Cash")

    donors.delete(drop_id)
    assert [row.donor_id for row in donations.list()] == [keep_id]

    campaigns.delete(campaign_id)
    remaining = donations.list()
    assert len(remaining) == 1
    assert remaining[0].campaign_id is None


def test_donation_validation_happens_before_insert(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    donations = DonationRepository(gateway)

    with pytest.raises(FormValidationError) as excinfo:
        donations.add(donor_id=None, donation_date=date(2024, 1, 1), amount_cents=0, payment_method=None)

    assert set(excinfo.value.errors) == {"donor_id", "amount", "payment_method"}
    assert gateway.count("donations") == 0


def test_campaign_repository_validates_and_updates(tmp_path) -> None:  # type: ignore[no-untyped-def]
    campaigns = CampaignRepository(_build_gateway(tmp_path))

    with pytest.raises(FormValidationError):
        campaigns.add(title="", description="", goal_cents=0, deadline=date(2000, 1, 1))

    campaign_id = campaigns.add(
        title="Winter Blankets",
        description="Blankets for shelters",
        goal_cents=250000,
        deadline=date(2024, 12, 1),
        today=date(2024, 10, 1),
    )
    campaigns.update(
        campaign_id,
        title="Winter Blankets",
        description="Blankets for shelters",
        goal_cents=300000,
        deadline=date(2024, 12, 15),
        status="Completed",
        today=date(2024, 10, 1),
    )

    campaign = campaigns.get(campaign_id)
    assert campaign is not None
    assert campaign.goal_cents == 300000
    assert campaign.status == "Completed"
    assert [row.id for row in campaigns.list()] == [campaign_id]

    # Editing after the deadline passed keeps the stored deadline valid.
    campaigns.update(
        campaign_id,
        title="Winter Blankets 2024",
        description="Blankets for shelters",
        goal_cents=300000,
        deadline=date(2024, 12, 15),
        today=date(2025, 2, 1),
    )
    with pytest.raises(FormValidationError):
        campaigns.update(
            campaign_id,
            title="Winter Blankets 2024",
            description="Blankets for shelters",
            goal_cents=300000,
            deadline=date(2025, 1, 10),
            today=date(2025, 2, 1),
        )


def test_malformed_rows_are_skipped(tmp_path, caplog) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    donors = DonorRepository(gateway)
    donor_id = _add_donor(donors)
    gateway.insert("donations", {"donor_id": donor_id, "amount_cents": 100, "donation_date": "2024-01-01"})

    # Written outside the repositories, past the CHECK constraint.
    with gateway._connect() as connection:
        connection.execute("PRAGMA ignore_check_constraints = ON")
        connection.execute(
            "INSERT INTO donations (donor_id, amount_cents, donation_date) VALUES (?, ?, ?)",
            (donor_id, -500, "2024-01-02"),
        )

    with caplog.at_level("WARNING"):
        rows = DonationRepository(gateway).list()

    assert [row.amount_cents for row in rows] == [100]
    assert "Skipping malformed Donation row" in caplog.text


def test_communications_are_logged_newest_first(tmp_path) -> None:  # type: ignore[no-untyped-def]
    gateway = _build_gateway(tmp_path)
    donor_id = _add_donor(DonorRepository(gateway))
    communications = CommunicationRepository(gateway)

    communications.log(donor_id, "Email", "Dear Asha", subject="Thank you")
    communications.log(donor_id, "WhatsApp", "Hi Asha", subject="ignored")

    rows = communications.list(donor_id=donor_id)
    assert [row.channel for row in rows] == ["WhatsApp", "Email"]
    assert rows[0].subject is None
    assert rows[1].subject == "Thank you"
    assert rows[1].donor_name == "Asha Rao"
    assert rows[1].direction == "Outbound"

    with pytest.raises(ValueError):
        communications.log(donor_id, "Pigeon", "Coo")


def test_settings_repository_saves_changes(tmp_path) -> None:  # type: ignore[no-untyped-def]
    repository = SettingsRepository(_build_gateway(tmp_path))
    current = repository.get()

    repository.save(current.model_copy(update={"upi_id": "trust@upi", "notifications_enabled": False}))

    saved = repository.get()
    assert saved.upi_id == "trust@upi"
    assert saved.notifications_enabled is False

    with pytest.raises(FormValidationError):
        repository.save(OrgSettings(org_name="", org_email="nope"))
