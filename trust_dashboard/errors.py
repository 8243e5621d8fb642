"""Exception types shared across the dashboard."""

from __future__ import annotations


class TrustDashboardError(Exception):
    """Base class for dashboard failures."""


class FormValidationError(TrustDashboardError, ValueError):
    """Raised when submitted form data fails field-level checks."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()) or "Invalid form data.")


class GatewayError(TrustDashboardError):
    """A query, insert, update, or delete against the store failed."""


class AuthError(TrustDashboardError):
    """Sign-in or sign-up was rejected."""


class NotificationError(TrustDashboardError):
    """A message could not be handed to the provider."""
