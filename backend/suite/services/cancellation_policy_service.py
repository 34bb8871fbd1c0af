# backend/suite/services/cancellation_policy_service.py
"""Professional-facing management of cancellation fee settings."""

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..repositories.factory import RepositoryFactory
from ..schemas.cancellation import CancellationPolicySettings, CancellationPolicySettingsResponse
from .base import BaseService


class CancellationPolicyService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.profile_repository = RepositoryFactory.create_professional_profile_repository(db)

    def get_policy_settings(self, user_id: str) -> CancellationPolicySettingsResponse:
        """Current settings, with unset windows shown at the platform defaults."""
        profile = self.profile_repository.get_by_user_id(user_id)
        if not profile:
            raise NotFoundException("Professional profile not found")

        pct_24h = profile.cancellation_24h_charge_percentage
        pct_48h = profile.cancellation_48h_charge_percentage
        return CancellationPolicySettingsResponse(
            cancellation_policy_enabled=bool(profile.cancellation_policy_enabled),
            cancellation_24h_charge_percentage=(
                settings.cancellation_default_24h_percentage if pct_24h is None else pct_24h
            ),
            cancellation_48h_charge_percentage=(
                settings.cancellation_default_48h_percentage if pct_48h is None else pct_48h
            ),
        )

    @BaseService.measure_operation("update_policy_settings")
    def update_policy_settings(
        self, user_id: str, policy_settings: CancellationPolicySettings
    ) -> CancellationPolicySettingsResponse:
        with self.transaction():
            profile = self.profile_repository.get_by_user_id(user_id)
            if not profile:
                raise NotFoundException("Professional profile not found")
            self.profile_repository.update_cancellation_policy(
                profile,
                enabled=policy_settings.cancellation_policy_enabled,
                within_24h_percentage=policy_settings.cancellation_24h_charge_percentage,
                within_48h_percentage=policy_settings.cancellation_48h_charge_percentage,
            )

        self.logger.info(
            f"Cancellation policy updated for professional {user_id}: "
            f"enabled={policy_settings.cancellation_policy_enabled} "
            f"24h={policy_settings.cancellation_24h_charge_percentage}% "
            f"48h={policy_settings.cancellation_48h_charge_percentage}%"
        )
        return CancellationPolicySettingsResponse(**policy_settings.model_dump())
