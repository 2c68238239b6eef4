"""
Reassignment configuration repository.

Stores per-program reassignment policies and resolves the policy in
effect for a program.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookly.core.config import settings
from bookly.core.exceptions import ConfigurationError, RepositoryError
from bookly.core.logging import get_logger
from bookly.models.base import ensure_utc, utc_now
from bookly.models.reassignment import ReassignmentConfiguration
from bookly.repositories.base.base_repository import BaseRepository

logger = get_logger(__name__)


class ReassignmentConfigurationRepository(BaseRepository[ReassignmentConfiguration]):
    """Repository for reassignment configurations."""

    def __init__(self, db: Session):
        super().__init__(ReassignmentConfiguration, db)

    # ==================== LOOKUP ====================

    def find_active_for_program(
        self,
        program_id: Optional[str] = None
    ) -> Optional[ReassignmentConfiguration]:
        """
        Active configuration of a program.

        Args:
            program_id: Program ID, None for the institution-wide default

        Returns:
            Most recently updated active configuration or None
        """
        if program_id is None:
            program_filter = ReassignmentConfiguration.program_id.is_(None)
        else:
            program_filter = ReassignmentConfiguration.program_id == program_id

        stmt = (
            select(ReassignmentConfiguration)
            .where(and_(program_filter, ReassignmentConfiguration.is_active == True))
            .order_by(ReassignmentConfiguration.updated_at.desc())
            .limit(1)
        )

        try:
            return self.db.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            raise RepositoryError(
                f"Configuration lookup failed: {str(e)}",
                operation="find_active_for_program"
            ) from e

    def find_by_program(self, program_id: Optional[str]) -> List[ReassignmentConfiguration]:
        """Every configuration of a program, active or not, newest first."""
        if program_id is None:
            program_filter = ReassignmentConfiguration.program_id.is_(None)
        else:
            program_filter = ReassignmentConfiguration.program_id == program_id

        stmt = (
            select(ReassignmentConfiguration)
            .where(program_filter)
            .order_by(ReassignmentConfiguration.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_effective(self, program_id: Optional[str] = None) -> ReassignmentConfiguration:
        """
        Configuration in effect for a program.

        Falls back to the institution-wide configuration, then to an
        unpersisted default built from settings.

        Args:
            program_id: Program ID

        Returns:
            Configuration to apply
        """
        configuration = self.find_active_for_program(program_id)

        if configuration is None and program_id is not None:
            configuration = self.find_active_for_program(None)

        if configuration is None:
            logger.debug(f"No stored reassignment configuration for program {program_id}, using defaults")
            configuration = ReassignmentConfiguration.from_settings(
                settings.reassignment,
                program_id=program_id,
            )

        return configuration

    # ==================== PERSISTENCE ====================

    def save(
        self,
        configuration: ReassignmentConfiguration,
        now: Optional[datetime] = None,
        commit: bool = True
    ) -> ReassignmentConfiguration:
        """
        Validate and persist a configuration.

        Saving an active configuration deactivates every other active
        configuration of the same program.

        Args:
            configuration: Configuration to persist
            now: Operation time
            commit: Whether to commit immediately

        Returns:
            Persisted configuration

        Raises:
            ConfigurationError: If the configuration is out of range
        """
        outcome = configuration.validate()
        if not outcome.is_valid:
            raise ConfigurationError(
                f"Invalid reassignment configuration: {'; '.join(outcome.errors)}",
                errors=outcome.errors,
            )

        now = ensure_utc(now) or utc_now()

        try:
            if configuration.is_active:
                for other in self.find_by_program(configuration.program_id):
                    if other is not configuration and other.is_active:
                        other.deactivate(now)

            self.db.add(configuration)

            if commit:
                self.db.commit()
            else:
                self.db.flush()

        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Save failed: {str(e)}", operation="save") from e

        logger.info(
            f"Saved reassignment configuration {configuration.id} "
            f"for program {configuration.program_id}"
        )
        return configuration


__all__ = [
    "ReassignmentConfigurationRepository",
]
