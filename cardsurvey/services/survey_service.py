"""Survey persistence, validation and lifecycle rules."""
from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.config import get_settings
from cardsurvey.models.base import (
    QuestionType,
    SurveyPrivacy,
    SurveyStatus,
    SurveyType,
)
from cardsurvey.models.survey import Survey, SurveyOptionCount
from cardsurvey.models.user import User
from cardsurvey.models.user_survey_answer import UserSurveyAnswer
from cardsurvey.schemas.survey import SurveyCreate

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    SurveyStatus.DRAFT: {SurveyStatus.ACTIVE},
    SurveyStatus.ACTIVE: {SurveyStatus.CLOSED},
    SurveyStatus.CLOSED: set(),
}


class SurveyError(RuntimeError):
    """Base error for survey operations."""


class SurveyNotFoundError(SurveyError):
    """Raised when a survey does not exist."""


class SurveyPermissionError(SurveyError):
    """Raised when the requester is not the survey's creator."""


class SurveyStateError(SurveyError):
    """Raised when the survey's status does not allow the operation."""


class SurveyValidationError(SurveyError):
    """Raised when survey content is invalid."""


def _question_id() -> str:
    return f"q_{uuid.uuid4().hex[:12]}"


class SurveyService:
    """Create, read, update and delete surveys."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _normalize_questions(self, data: SurveyCreate, existing: list[dict] | None = None) -> list[dict]:
        existing = existing or []
        questions = []
        for index, question in enumerate(data.questions):
            text = question.text.strip()
            if len(text) < self.settings.question_min_length:
                raise SurveyValidationError(
                    f"Question text must be at least {self.settings.question_min_length} characters."
                )

            options = [option.strip() for option in question.options]
            if question.type == QuestionType.MULTIPLE_CHOICE:
                if not options:
                    raise SurveyValidationError("At least one option is required.")
                if len(options) > self.settings.survey_max_options:
                    raise SurveyValidationError(
                        f"A maximum of {self.settings.survey_max_options} options are allowed."
                    )
                if any(not option for option in options):
                    raise SurveyValidationError("Option text cannot be empty.")
                if len(set(options)) != len(options):
                    raise SurveyValidationError("Options must be unique.")
            else:
                # Only multiple-choice questions carry options
                options = []

            # Keep question ids stable across edits so stored answers still line up
            question_id = existing[index]["id"] if index < len(existing) else _question_id()
            questions.append({
                "id": question_id,
                "text": text,
                "type": question.type.value,
                "options": options,
            })
        return questions

    def _validate_layout(self, data: SurveyCreate, questions: list[dict]) -> tuple[str, str]:
        """Return (title, privacy) after applying layout rules."""
        if data.survey_type == SurveyType.SINGLE_CARD:
            if len(questions) != 1:
                raise SurveyValidationError("A single card must have exactly one question.")
            if questions[0]["type"] != QuestionType.MULTIPLE_CHOICE.value:
                raise SurveyValidationError("A single card must be a multiple-choice question.")
            # Single cards are always public
            return (data.title or "").strip(), SurveyPrivacy.PUBLIC.value

        title = (data.title or "").strip()
        if len(title) < self.settings.deck_title_min_length:
            raise SurveyValidationError(
                f"Survey title must be at least {self.settings.deck_title_min_length} characters for Card Decks."
            )
        if data.privacy is None:
            raise SurveyValidationError("Privacy setting is required for Card Decks.")
        return title, data.privacy.value

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_survey(self, survey_id: UUID) -> Survey | None:
        """Load a survey fresh from the database, including its counters."""
        result = await self.db.execute(
            select(Survey)
            .where(Survey.survey_id == survey_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_survey(self, survey_id: UUID) -> Survey:
        survey = await self.get_survey(survey_id)
        if survey is None:
            raise SurveyNotFoundError("survey_not_found")
        return survey

    async def get_survey_for_viewer(self, survey_id: UUID, viewer: User | None) -> Survey:
        """Return a survey; Drafts are only visible to their creator."""
        survey = await self.require_survey(survey_id)
        if survey.status == SurveyStatus.DRAFT.value:
            if viewer is None or survey.created_by != viewer.user_id:
                raise SurveyPermissionError("not_survey_owner")
        return survey

    async def require_owned_survey(self, survey_id: UUID, user: User) -> Survey:
        survey = await self.require_survey(survey_id)
        if survey.created_by is None or survey.created_by != user.user_id:
            logger.warning(f"User {user.user_id} denied access to survey {survey_id}")
            raise SurveyPermissionError("not_survey_owner")
        return survey

    async def list_surveys_by_creator(self, user_id: UUID) -> list[Survey]:
        result = await self.db.execute(
            select(Survey)
            .where(Survey.created_by == user_id)
            .order_by(Survey.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_public_cards(self) -> list[Survey]:
        """Public, Active single cards, newest first (daily polls included)."""
        result = await self.db.execute(
            select(Survey)
            .where(
                Survey.privacy == SurveyPrivacy.PUBLIC.value,
                Survey.survey_type == SurveyType.SINGLE_CARD.value,
                Survey.status == SurveyStatus.ACTIVE.value,
            )
            .order_by(Survey.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_user_interactions(
        self, user_id: UUID, survey_ids: Iterable[UUID]
    ) -> dict[UUID, UserSurveyAnswer]:
        """Map survey_id to the user's stored answer for the given surveys."""
        survey_ids = list(survey_ids)
        if not survey_ids:
            return {}
        result = await self.db.execute(
            select(UserSurveyAnswer).where(
                UserSurveyAnswer.user_id == user_id,
                UserSurveyAnswer.survey_id.in_(survey_ids),
            )
        )
        return {answer.survey_id: answer for answer in result.scalars().all()}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def create_survey(
        self,
        creator: User | None,
        data: SurveyCreate,
        *,
        status: SurveyStatus = SurveyStatus.DRAFT,
        is_daily_poll: bool = False,
    ) -> Survey:
        """Create a survey in Draft or Active state with zeroed counters."""
        if status == SurveyStatus.CLOSED:
            raise SurveyStateError("invalid_initial_status")

        questions = self._normalize_questions(data)
        title, privacy = self._validate_layout(data, questions)
        now = datetime.now(UTC)

        survey = Survey(
            survey_id=uuid.uuid4(),
            title=title,
            description=(data.description or "").strip() or None,
            survey_type=data.survey_type.value,
            questions=questions,
            question_count=len(questions),
            responses=0,
            skip_count=0,
            status=status.value,
            privacy=privacy,
            created_by=creator.user_id if creator else None,
            is_daily_poll=is_daily_poll,
            created_at=now,
            updated_at=now,
        )
        survey.option_counters = [
            SurveyOptionCount(option=option, position=position, count=0)
            for position, option in enumerate(questions[0]["options"])
        ]
        self.db.add(survey)
        await self.db.commit()

        logger.info(
            f"Created {survey.survey_type} survey {survey.survey_id} with status {survey.status} "
            f"for creator {survey.created_by}"
        )
        return await self.require_survey(survey.survey_id)

    def _sync_option_counters(self, survey: Survey, options: list[str]) -> None:
        """Keep counters of surviving options, add new ones at zero, drop removed ones."""
        existing = {counter.option: counter for counter in survey.option_counters}
        counters = []
        for position, option in enumerate(options):
            counter = existing.get(option)
            if counter is None:
                counter = SurveyOptionCount(option=option, count=0)
            counter.position = position
            counters.append(counter)
        survey.option_counters = counters

    async def update_survey(self, survey_id: UUID, editor: User, data: SurveyCreate) -> Survey:
        """Edit a survey's content; only the creator may edit and Closed surveys are frozen."""
        survey = await self.require_owned_survey(survey_id, editor)
        if survey.status == SurveyStatus.CLOSED.value:
            raise SurveyStateError("survey_closed")

        questions = self._normalize_questions(data, existing=survey.questions)
        title, privacy = self._validate_layout(data, questions)

        survey.title = title
        survey.description = (data.description or "").strip() or None
        survey.survey_type = data.survey_type.value
        survey.questions = questions
        survey.question_count = len(questions)
        survey.privacy = privacy
        survey.updated_at = datetime.now(UTC)
        self._sync_option_counters(survey, questions[0]["options"])
        await self.db.commit()

        logger.info(f"Updated survey {survey_id}")
        return await self.require_survey(survey_id)

    async def change_status(self, survey_id: UUID, editor: User, new_status: SurveyStatus) -> Survey:
        survey = await self.require_owned_survey(survey_id, editor)
        current = SurveyStatus(survey.status)
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise SurveyStateError(f"invalid_transition_{current.value.lower()}_to_{new_status.value.lower()}")

        survey.status = new_status.value
        survey.updated_at = datetime.now(UTC)
        await self.db.commit()
        logger.info(f"Survey {survey_id} moved from {current.value} to {new_status.value}")
        return await self.require_survey(survey_id)

    async def finalize_survey(
        self,
        creator: User,
        data: SurveyCreate,
        existing_survey_id: UUID | None = None,
    ) -> Survey:
        """Publish the wizard's result: update an existing survey or create a new one, then activate it."""
        if existing_survey_id is None:
            return await self.create_survey(creator, data, status=SurveyStatus.ACTIVE)

        survey = await self.update_survey(existing_survey_id, creator, data)
        if survey.status == SurveyStatus.DRAFT.value:
            survey = await self.change_status(existing_survey_id, creator, SurveyStatus.ACTIVE)
        return survey

    async def delete_survey(self, survey_id: UUID, editor: User) -> None:
        """Delete a survey; only Drafts can be deleted."""
        survey = await self.require_owned_survey(survey_id, editor)
        if survey.status != SurveyStatus.DRAFT.value:
            raise SurveyStateError("survey_not_draft")

        await self.db.execute(delete(UserSurveyAnswer).where(UserSurveyAnswer.survey_id == survey_id))
        await self.db.delete(survey)
        await self.db.commit()
        logger.info(f"Deleted draft survey {survey_id}")
