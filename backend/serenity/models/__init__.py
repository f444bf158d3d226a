"""SQLAlchemy ORM models for the Serenity onboarding backend.

All models are exported from this module for convenient imports:
    from serenity.models import User, ClientOnboarding, ...

Models are organized by domain:
- user.py: User (accounts and roles)
- profiles.py: ClientProfile, ConsultantProfile
- catalog.py: ConsultingService
- onboarding.py: ClientOnboarding, ConsultantOnboarding
"""

from serenity.models.base import Base, TimestampMixin
from serenity.models.catalog import ConsultingService
from serenity.models.onboarding import (
    ClientOnboarding,
    ConsultantOnboarding,
    OnboardingRecordMixin,
)
from serenity.models.profiles import ClientProfile, ConsultantProfile
from serenity.models.user import User

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "OnboardingRecordMixin",
    # Accounts
    "User",
    "ClientProfile",
    "ConsultantProfile",
    # Catalog
    "ConsultingService",
    # Onboarding
    "ClientOnboarding",
    "ConsultantOnboarding",
]
