"""Per-respondent answer records."""
from __future__ import annotations

import uuid
from datetime import datetime, UTC

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String

from cardsurvey.database import Base
from cardsurvey.models.base import get_uuid_column


class UserSurveyAnswer(Base):
    """Latest answer (or skip) of one user on one survey."""

    __tablename__ = "user_survey_answers"

    answer_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    survey_id = get_uuid_column(
        ForeignKey("surveys.survey_id", ondelete="CASCADE"), index=True, nullable=False
    )
    question_id = Column(String(64), nullable=True)
    answer_value = Column(String(255), nullable=True)
    is_skipped = Column(Boolean, default=False, nullable=False)
    answered_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("ix_user_survey_answers_user_survey", "user_id", "survey_id", unique=True),
    )

    def __repr__(self) -> str:
        return (
            f"<UserSurveyAnswer(user_id={self.user_id}, survey_id={self.survey_id}, "
            f"answer_value={self.answer_value!r}, is_skipped={self.is_skipped})>"
        )
