"""Workflow services combining the repository with business rules."""

from .billing import BillingService
from .fleet import FleetService
from .hr import OnboardingService

__all__ = ["BillingService", "FleetService", "OnboardingService"]
