"""Pydantic schemas for survey endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from cardsurvey.models.base import QuestionType, SurveyPrivacy, SurveyStatus, SurveyType
from cardsurvey.schemas.base import BaseSchema


class QuestionIn(BaseModel):
    """Question as entered in the creation wizard."""

    text: str = Field(..., max_length=500)
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: list[str] = Field(default_factory=list)


class SurveyCreate(BaseModel):
    """Survey creation / edit payload."""

    survey_type: SurveyType = SurveyType.SINGLE_CARD
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    privacy: Optional[SurveyPrivacy] = None
    questions: list[QuestionIn] = Field(..., min_length=1)
    publish: bool = False


class QuestionOut(BaseSchema):
    id: str
    text: str
    type: QuestionType
    options: list[str] = Field(default_factory=list)


class SurveyOut(BaseSchema):
    """Survey with its aggregate counters."""

    survey_id: UUID
    title: str
    description: Optional[str] = None
    survey_type: SurveyType
    questions: list[QuestionOut]
    question_count: int
    responses: int
    skip_count: int
    status: SurveyStatus
    privacy: SurveyPrivacy
    created_by: Optional[UUID] = None
    is_daily_poll: bool = False
    option_counts: dict[str, int]
    created_at: datetime
    updated_at: datetime


class SurveyList(BaseSchema):
    surveys: list[SurveyOut]


class AnswerRequest(BaseModel):
    """A respondent's answer or skip for a card."""

    answer_value: Optional[str] = Field(default=None, max_length=255)
    is_skipped: bool = False
    question_id: Optional[str] = None


class UserInteraction(BaseSchema):
    """Stored answer of the current user on a survey."""

    survey_id: UUID
    question_id: Optional[str] = None
    answer_value: Optional[str] = None
    is_skipped: bool
    answered_at: datetime


class AnswerResponse(BaseSchema):
    """Result of recording an answer: the refreshed aggregate and whether it was stored."""

    processed: bool
    survey: SurveyOut


class PublicCard(BaseSchema):
    survey: SurveyOut
    my_answer: Optional[UserInteraction] = None


class PublicCardList(BaseSchema):
    cards: list[PublicCard]


class OptionStat(BaseSchema):
    option: str
    count: int
    percentage: float


class SurveyStats(BaseSchema):
    """Aggregate statistics shown to a survey's creator."""

    survey_id: UUID
    question: Optional[str] = None
    status: SurveyStatus
    responses: int
    skip_count: int
    total_interactions: int
    options: list[OptionStat]
