"""Base utilities for SQLAlchemy models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class SurveyStatus(str, Enum):
    """Survey lifecycle status."""
    DRAFT = "Draft"
    ACTIVE = "Active"
    CLOSED = "Closed"


class SurveyType(str, Enum):
    """Survey layout."""
    SINGLE_CARD = "single-card"
    CARD_DECK = "card-deck"


class SurveyPrivacy(str, Enum):
    """Who may see a survey in public listings."""
    PUBLIC = "Public"
    INVITE_ONLY = "Invite-Only"


class QuestionType(str, Enum):
    """Question input type."""
    MULTIPLE_CHOICE = "multiple-choice"
    TEXT = "text"
    RATING = "rating"


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID stored natively on PostgreSQL and as hex text elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return value.hex

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._coerce_uuid(value)


def get_uuid_column(*args, **kwargs):
    """Get a UUID column that adapts to the database dialect.

    Args:
        *args: Positional arguments to pass to Column (e.g., ForeignKey)
        **kwargs: Keyword arguments to pass to Column (e.g., primary_key=True)

    Example:
        survey_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        user_id = get_uuid_column(ForeignKey("users.user_id"), nullable=False)
    """
    return Column(AdaptiveUUID(), *args, **kwargs)
