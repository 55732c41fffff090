"""Tests for daily poll parsing and the fetch-or-create flow."""
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update

from cardsurvey.models.base import SurveyPrivacy, SurveyStatus, SurveyType
from cardsurvey.models.survey import Survey
from cardsurvey.services.ai.poll_generator import (
    PollContent,
    PollGenerationError,
    build_poll_prompt,
    normalize_options,
    parse_poll_content,
)
from cardsurvey.services.daily_poll_service import DAILY_POLL_TITLE, DailyPollService


def _enabled_service(db_session, generator):
    service = DailyPollService(db_session, generator=generator)
    service.settings = service.settings.model_copy(update={"daily_poll_enabled": True})
    return service


async def _retire_existing_polls(db_session):
    """Make polls from earlier tests look stale."""
    await db_session.execute(
        update(Survey)
        .where(Survey.is_daily_poll.is_(True))
        .values(created_at=datetime.now(UTC) - timedelta(days=2))
    )
    await db_session.commit()


@pytest.fixture
async def stale_polls_after_test(db_session):
    yield
    await db_session.rollback()
    await _retire_existing_polls(db_session)


def test_parse_plain_json():
    content = parse_poll_content('{"questionText": " Cats or dogs? ", "options": ["Cats", "Dogs", "Both"]}')
    assert content.question_text == "Cats or dogs?"
    assert content.options == ["Cats", "Dogs", "Both"]


def test_parse_fenced_json_and_pads_options():
    raw = '```json\n{"questionText": "Tea or coffee?", "options": ["Tea", "Coffee"]}\n```'
    content = parse_poll_content(raw, option_count=3)
    assert content.options == ["Tea", "Coffee", "Another option"]


def test_parse_rejects_garbage():
    with pytest.raises(PollGenerationError):
        parse_poll_content("no json here")
    with pytest.raises(PollGenerationError):
        parse_poll_content('{"options": ["A"]}')


def test_normalize_options_trims_and_dedupes():
    assert normalize_options([" A ", "A", "", "B", "C", "D"], 3) == ["A", "B", "C"]
    assert normalize_options([], 3) == ["Another option", "Another option 2", "Another option 3"]


def test_prompt_mentions_theme_and_count():
    prompt = build_poll_prompt("space travel", option_count=3)
    assert "space travel" in prompt
    assert "exactly 3" in prompt


@pytest.mark.asyncio
@pytest.mark.usefixtures("stale_polls_after_test")
async def test_creates_poll_once_and_reuses_it(db_session):
    await _retire_existing_polls(db_session)
    calls = []

    async def generator():
        calls.append(1)
        return PollContent(question_text="Morning or night person?", options=["Morning", "Night", "Neither"])

    service = _enabled_service(db_session, generator)
    poll = await service.fetch_or_create_daily_poll()

    assert poll is not None
    assert poll.is_daily_poll is True
    assert poll.title == DAILY_POLL_TITLE
    assert poll.status == SurveyStatus.ACTIVE.value
    assert poll.privacy == SurveyPrivacy.PUBLIC.value
    assert poll.survey_type == SurveyType.SINGLE_CARD.value
    assert poll.created_by is None
    assert poll.option_counts == {"Morning": 0, "Night": 0, "Neither": 0}

    again = await service.fetch_or_create_daily_poll()
    assert again.survey_id == poll.survey_id
    assert len(calls) == 1


@pytest.mark.asyncio
@pytest.mark.usefixtures("stale_polls_after_test")
async def test_stale_poll_is_demoted(db_session):
    await _retire_existing_polls(db_session)

    async def generator():
        return PollContent(question_text="Beach or mountains?", options=["Beach", "Mountains", "Both"])

    service = _enabled_service(db_session, generator)
    old = await service.fetch_or_create_daily_poll()
    old_id = old.survey_id
    await _retire_existing_polls(db_session)

    new = await service.fetch_or_create_daily_poll()
    assert new.survey_id != old_id

    demoted = await db_session.get(Survey, old_id, populate_existing=True)
    assert demoted.is_daily_poll is False
    assert demoted.status == SurveyStatus.ACTIVE.value


@pytest.mark.asyncio
@pytest.mark.usefixtures("stale_polls_after_test")
async def test_generation_failure_returns_none(db_session):
    await _retire_existing_polls(db_session)

    async def generator():
        raise PollGenerationError("OpenAI API error: boom")

    assert await _enabled_service(db_session, generator).fetch_or_create_daily_poll() is None


@pytest.mark.asyncio
@pytest.mark.usefixtures("stale_polls_after_test")
async def test_disabled_daily_poll_returns_none(db_session):
    await _retire_existing_polls(db_session)

    async def generator():
        raise AssertionError("generator must not run when disabled")

    service = DailyPollService(db_session, generator=generator)
    assert service.settings.daily_poll_enabled is False
    assert await service.fetch_or_create_daily_poll() is None


def test_parse_rejects_overlong_question():
    raw = '{"questionText": "%s", "options": ["A", "B", "C"]}' % ("x" * 621)
    with pytest.raises(PollGenerationError):
        parse_poll_content(raw)


@pytest.mark.asyncio
@pytest.mark.usefixtures("stale_polls_after_test")
async def test_unusable_content_keeps_previous_poll_flagged(db_session):
    await _retire_existing_polls(db_session)

    async def good_generator():
        return PollContent(question_text="Sunrise or sunset?", options=["Sunrise", "Sunset", "Both"])

    previous = await _enabled_service(db_session, good_generator).fetch_or_create_daily_poll()
    previous_id = previous.survey_id
    await _retire_existing_polls(db_session)

    async def overlong_generator():
        return PollContent.model_construct(question_text="Why " * 155, options=["A", "B", "C"])

    assert await _enabled_service(db_session, overlong_generator).fetch_or_create_daily_poll() is None

    kept = await db_session.get(Survey, previous_id, populate_existing=True)
    assert kept.is_daily_poll is True
