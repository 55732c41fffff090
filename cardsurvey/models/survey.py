"""Survey and per-option counter models."""
from __future__ import annotations

import uuid
from datetime import datetime, UTC

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from cardsurvey.database import Base
from cardsurvey.models.base import (
    SurveyPrivacy,
    SurveyStatus,
    SurveyType,
    get_uuid_column,
)


class Survey(Base):
    """A survey card (or deck) with its aggregate statistics.

    Response and skip totals live on this row. Each option has its own
    SurveyOptionCount row so counters can be adjusted with single-statement
    SQL increments.
    """

    __tablename__ = "surveys"

    survey_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False, default="")
    description = Column(Text, nullable=True)
    survey_type = Column(String(20), nullable=False, default=SurveyType.SINGLE_CARD.value)
    questions = Column(JSON, nullable=False, default=list)
    question_count = Column(Integer, nullable=False, default=0)
    responses = Column(Integer, nullable=False, default=0)
    skip_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=SurveyStatus.DRAFT.value, index=True)
    privacy = Column(String(20), nullable=False, default=SurveyPrivacy.PUBLIC.value)
    created_by = get_uuid_column(
        ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_daily_poll = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    option_counters = relationship(
        "SurveyOptionCount",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="SurveyOptionCount.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_surveys_public_listing", "privacy", "survey_type", "status", "created_at"),
    )

    @property
    def option_counts(self) -> dict[str, int]:
        """Per-option counters in option order."""
        return {counter.option: counter.count for counter in self.option_counters}

    @property
    def first_question(self) -> dict | None:
        if not self.questions:
            return None
        return self.questions[0]

    @property
    def options(self) -> list[str]:
        question = self.first_question
        if not question:
            return []
        return list(question.get("options") or [])

    def __repr__(self) -> str:
        return (
            f"<Survey(survey_id={self.survey_id}, status={self.status}, "
            f"responses={self.responses}, skip_count={self.skip_count})>"
        )


class SurveyOptionCount(Base):
    """Response counter for one option of a survey."""

    __tablename__ = "survey_option_counts"

    counter_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    survey_id = get_uuid_column(
        ForeignKey("surveys.survey_id", ondelete="CASCADE"), nullable=False, index=True
    )
    option = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    count = Column(Integer, nullable=False, default=0)

    survey = relationship("Survey", back_populates="option_counters")

    __table_args__ = (
        Index("ix_survey_option_counts_survey_option", "survey_id", "option", unique=True),
    )

    def __repr__(self) -> str:
        return f"<SurveyOptionCount(survey_id={self.survey_id}, option={self.option!r}, count={self.count})>"
