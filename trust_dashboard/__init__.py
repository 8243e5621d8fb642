"""Data, reporting, and outreach helpers for the trust dashboard."""

from .config import Settings, configure_logging
from .models import (
    Campaign,
    Communication,
    Donation,
    Donor,
    OrgSettings,
    cents_from_amount,
    format_currency,
)
from .store import DataGateway
from .repositories import (
    CampaignRepository,
    CommunicationRepository,
    DonationRepository,
    DonorRepository,
    SettingsRepository,
)

__all__ = [
    "Campaign",
    "CampaignRepository",
    "Communication",
    "CommunicationRepository",
    "DataGateway",
    "Donation",
    "DonationRepository",
    "Donor",
    "DonorRepository",
    "OrgSettings",
    "Settings",
    "SettingsRepository",
    "cents_from_amount",
    "configure_logging",
    "format_currency",
]
