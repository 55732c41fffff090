"""Respondent answer states."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from cardsurvey.models.user_survey_answer import UserSurveyAnswer


@dataclass(frozen=True)
class Skipped:
    """The respondent skipped the card."""


@dataclass(frozen=True)
class Answered:
    """The respondent picked an answer."""

    value: str


AnswerState = Union[Skipped, Answered]


def answer_state_from_record(record: UserSurveyAnswer | None) -> AnswerState | None:
    """Convert a stored answer row into an answer state (None when absent)."""
    if record is None:
        return None
    if record.is_skipped:
        return Skipped()
    return Answered(value=record.answer_value or "")


def answer_state_from_payload(value: str | None, is_skipped: bool) -> AnswerState:
    """Build an answer state from request fields.

    Raises:
        ValueError: If the payload neither skips nor carries a value.
    """
    if is_skipped:
        return Skipped()
    if value is None or not str(value).strip():
        raise ValueError("answer_value_required")
    return Answered(value=str(value))
