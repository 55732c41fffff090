"""Survey statistics: recording respondent interactions and reporting aggregates."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.models.survey import Survey, SurveyOptionCount
from cardsurvey.models.user import User
from cardsurvey.models.user_survey_answer import UserSurveyAnswer
from cardsurvey.schemas.survey import OptionStat, SurveyOut, SurveyStats
from cardsurvey.services.answer_state import AnswerState, Answered, answer_state_from_record
from cardsurvey.services.reconciliation import StatDeltas, compute_stat_deltas
from cardsurvey.services.survey_service import SurveyService

logger = logging.getLogger(__name__)


@dataclass
class InteractionResult:
    """Outcome of recording an interaction.

    ``survey`` is the freshly re-read aggregate when ``processed`` is True,
    otherwise a snapshot of the survey as it was passed in.
    """

    survey: SurveyOut
    processed: bool
    deltas: StatDeltas | None = None


def option_percentage(count: int, responses: int) -> float:
    if responses <= 0:
        return 0.0
    return round(count / responses * 100, 1)


class SurveyStatsService:
    """Keeps survey aggregates consistent with respondents' answers."""

    def __init__(self, db: AsyncSession, *, survey_service: SurveyService | None = None):
        self.db = db
        self.survey_service = survey_service or SurveyService(db)

    async def get_user_answer(self, user_id: UUID, survey_id: UUID) -> UserSurveyAnswer | None:
        result = await self.db.execute(
            select(UserSurveyAnswer).where(
                UserSurveyAnswer.user_id == user_id,
                UserSurveyAnswer.survey_id == survey_id,
            )
        )
        return result.scalar_one_or_none()

    async def _apply_deltas(self, survey_id: UUID, deltas: StatDeltas) -> None:
        """Persist deltas as in-database increments."""
        totals = {}
        if deltas.responses:
            totals["responses"] = Survey.responses + deltas.responses
        if deltas.skips:
            totals["skip_count"] = Survey.skip_count + deltas.skips
        await self.db.execute(
            update(Survey)
            .where(Survey.survey_id == survey_id)
            .values(updated_at=datetime.now(UTC), **totals)
        )

        for option, delta in deltas.options.items():
            await self.db.execute(
                update(SurveyOptionCount)
                .where(
                    SurveyOptionCount.survey_id == survey_id,
                    SurveyOptionCount.option == option,
                )
                .values(count=SurveyOptionCount.count + delta)
            )

    async def _upsert_answer(
        self,
        existing: UserSurveyAnswer | None,
        user_id: UUID,
        survey_id: UUID,
        question_id: str | None,
        answer: AnswerState,
    ) -> UserSurveyAnswer:
        record = existing or UserSurveyAnswer(user_id=user_id, survey_id=survey_id)
        record.question_id = question_id
        record.answer_value = answer.value if isinstance(answer, Answered) else None
        record.is_skipped = not isinstance(answer, Answered)
        record.answered_at = datetime.now(UTC)
        if existing is None:
            self.db.add(record)
        return record

    async def record_interaction(
        self,
        user_id: UUID,
        survey: Survey,
        answer: AnswerState,
        *,
        question_id: str | None = None,
    ) -> InteractionResult:
        """Record a respondent's answer or skip and reconcile the aggregate counters.

        The stored answer is the previous state; counter changes are applied
        as SQL increments together with the answer upsert in one commit.
        Persistence failures are logged and reported with ``processed=False``.
        """
        survey_id = survey.survey_id
        known_ids = {question.get("id") for question in survey.questions or []}
        if question_id is not None and question_id not in known_ids:
            logger.warning(f"Ignoring unknown question id {question_id!r} for survey {survey_id}")
            question_id = None
        if question_id is None and survey.first_question:
            question_id = survey.first_question.get("id")
        # Rollback expires ORM state, so keep a detached view to return on failure
        snapshot = SurveyOut.model_validate(survey)

        try:
            existing = await self.get_user_answer(user_id, survey_id)
            previous = answer_state_from_record(existing)
            deltas = compute_stat_deltas(previous, answer, survey.options)

            if not deltas.is_empty:
                await self._apply_deltas(survey_id, deltas)
            await self._upsert_answer(existing, user_id, survey_id, question_id, answer)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                f"Failed to record interaction for user {user_id} on survey {survey_id}: {exc}",
                exc_info=True,
            )
            return InteractionResult(survey=snapshot, processed=False)

        logger.info(
            f"Recorded interaction for user {user_id} on survey {survey_id}: "
            f"{previous!r} -> {answer!r} (responses {deltas.responses:+d}, skips {deltas.skips:+d}, "
            f"options {deltas.options})"
        )

        updated = snapshot
        try:
            refreshed = await self.survey_service.get_survey(survey_id)
            if refreshed is not None:
                updated = SurveyOut.model_validate(refreshed)
        except SQLAlchemyError as exc:
            logger.warning(f"Could not re-read survey {survey_id} after update: {exc}")
        return InteractionResult(survey=updated, processed=True, deltas=deltas)

    async def get_survey_stats(self, survey_id: UUID, requester: User) -> SurveyStats:
        """Aggregate statistics for the survey's creator."""
        survey = await self.survey_service.require_owned_survey(survey_id, requester)
        question = survey.first_question
        return SurveyStats(
            survey_id=survey.survey_id,
            question=question.get("text") if question else None,
            status=survey.status,
            responses=survey.responses,
            skip_count=survey.skip_count,
            total_interactions=survey.responses + survey.skip_count,
            options=[
                OptionStat(
                    option=option,
                    count=count,
                    percentage=option_percentage(count, survey.responses),
                )
                for option, count in survey.option_counts.items()
            ],
        )
