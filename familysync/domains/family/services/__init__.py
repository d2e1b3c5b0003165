"""Family domain services."""

from familysync.domains.family.services.family_service import FamilyService

__all__ = ["FamilyService"]
