"""Daily poll: one AI-generated public card per day."""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Awaitable, Callable

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.config import get_settings
from cardsurvey.models.base import SurveyStatus, SurveyType
from cardsurvey.models.survey import Survey
from cardsurvey.schemas.survey import QuestionIn, SurveyCreate
from cardsurvey.services.ai.poll_generator import (
    PollContent,
    PollGenerationError,
    generate_daily_poll,
)
from cardsurvey.services.survey_service import SurveyError, SurveyService

logger = logging.getLogger(__name__)

DAILY_POLL_TITLE = "Today's Poll"

PollGenerator = Callable[[], Awaitable[PollContent]]


class DailyPollService:
    """Fetches the current daily poll, generating a new one when it is stale."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        generator: PollGenerator | None = None,
        survey_service: SurveyService | None = None,
    ):
        self.db = db
        self.settings = get_settings()
        self.generator = generator or generate_daily_poll
        self.survey_service = survey_service or SurveyService(db)

    async def get_current_daily_poll(self) -> Survey | None:
        cutoff = datetime.now(UTC) - timedelta(hours=self.settings.daily_poll_max_age_hours)
        result = await self.db.execute(
            select(Survey)
            .where(
                Survey.is_daily_poll.is_(True),
                Survey.status == SurveyStatus.ACTIVE.value,
                Survey.created_at >= cutoff,
            )
            .order_by(Survey.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def demote_old_polls(self) -> int:
        """Clear the daily flag on every poll still carrying it."""
        result = await self.db.execute(
            update(Survey)
            .where(
                Survey.is_daily_poll.is_(True),
                Survey.status == SurveyStatus.ACTIVE.value,
            )
            .values(is_daily_poll=False, updated_at=datetime.now(UTC))
        )
        await self.db.commit()
        if result.rowcount:
            logger.info(f"Demoted {result.rowcount} old daily poll(s).")
        return result.rowcount or 0

    async def fetch_or_create_daily_poll(self) -> Survey | None:
        """Return today's poll, creating it if needed; None when generation fails."""
        current = await self.get_current_daily_poll()
        if current is not None:
            return current

        if not self.settings.daily_poll_enabled:
            return None

        try:
            content = await self.generator()
            data = SurveyCreate(
                survey_type=SurveyType.SINGLE_CARD,
                title=DAILY_POLL_TITLE,
                description=content.question_text,
                questions=[QuestionIn(text=content.question_text, options=content.options)],
            )
        except (PollGenerationError, ValidationError) as exc:
            logger.error(f"Daily poll generation failed: {exc}")
            return None

        # Old polls keep their flag until replacement content is ready
        try:
            await self.demote_old_polls()
            poll = await self.survey_service.create_survey(
                None, data, status=SurveyStatus.ACTIVE, is_daily_poll=True
            )
        except (SurveyError, SQLAlchemyError) as exc:
            await self.db.rollback()
            logger.error(f"Error in fetch_or_create_daily_poll: {exc}")
            return None

        logger.info(f"Created daily poll {poll.survey_id}")
        return poll
