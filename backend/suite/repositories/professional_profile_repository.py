# backend/suite/repositories/professional_profile_repository.py
"""
Professional Profile Repository for the Suite backend

Reads and updates the cancellation policy columns on professional profiles.
"""

import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.professional import ProfessionalProfile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProfessionalProfileRepository(BaseRepository[ProfessionalProfile]):
    """Repository for professional profiles and their cancellation policy."""

    def __init__(self, db: Session):
        super().__init__(db, ProfessionalProfile)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(ProfessionalProfile.stripe_connected_account))

    def get_by_user_id(self, user_id: str) -> Optional[ProfessionalProfile]:
        try:
            profile = (
                self._apply_eager_loading(self.db.query(ProfessionalProfile))
                .filter(ProfessionalProfile.user_id == user_id)
                .first()
            )
            return cast(Optional[ProfessionalProfile], profile)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting professional profile for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get professional profile: {str(e)}")

    def update_cancellation_policy(
        self,
        profile: ProfessionalProfile,
        *,
        enabled: bool,
        within_24h_percentage: int,
        within_48h_percentage: int,
    ) -> ProfessionalProfile:
        try:
            profile.cancellation_policy_enabled = enabled
            profile.cancellation_24h_charge_percentage = within_24h_percentage
            profile.cancellation_48h_charge_percentage = within_48h_percentage
            self.db.flush()
            return profile
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating cancellation policy for {profile.id}: {str(e)}")
            raise RepositoryException(f"Failed to update cancellation policy: {str(e)}")
