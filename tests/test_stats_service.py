"""Tests for recording interactions and reporting survey statistics."""
import pytest
from sqlalchemy.exc import OperationalError

from cardsurvey.models.base import SurveyStatus
from cardsurvey.services import (
    Answered,
    Skipped,
    SurveyPermissionError,
    SurveyService,
    SurveyStatsService,
)
from cardsurvey.services.stats_service import option_percentage


async def _reload(db_session, survey_id):
    return await SurveyService(db_session).require_survey(survey_id)


@pytest.mark.asyncio
async def test_first_answer_increments_response_and_option(db_session, active_card, user_factory):
    survey, _ = active_card
    respondent = await user_factory()

    result = await SurveyStatsService(db_session).record_interaction(
        respondent.user_id, survey, Answered("Yes")
    )

    assert result.processed is True
    assert result.survey.responses == 1
    assert result.survey.skip_count == 0
    assert result.survey.option_counts == {"Yes": 1, "No": 0, "Maybe": 0}


@pytest.mark.asyncio
async def test_changing_answer_moves_option_count(db_session, active_card, user_factory):
    survey, _ = active_card
    respondent = await user_factory()
    service = SurveyStatsService(db_session)

    await service.record_interaction(respondent.user_id, survey, Answered("Yes"))
    survey = await _reload(db_session, survey.survey_id)
    result = await service.record_interaction(respondent.user_id, survey, Answered("No"))

    assert result.processed is True
    assert result.survey.responses == 1
    assert result.survey.option_counts == {"Yes": 0, "No": 1, "Maybe": 0}

    stored = await service.get_user_answer(respondent.user_id, survey.survey_id)
    assert stored.answer_value == "No"
    assert stored.is_skipped is False


@pytest.mark.asyncio
async def test_skip_then_answer_converts_skip_into_response(db_session, active_card, user_factory):
    survey, _ = active_card
    respondent = await user_factory()
    service = SurveyStatsService(db_session)

    skipped = await service.record_interaction(respondent.user_id, survey, Skipped())
    assert skipped.survey.skip_count == 1
    assert skipped.survey.responses == 0

    survey = await _reload(db_session, survey.survey_id)
    result = await service.record_interaction(respondent.user_id, survey, Answered("Maybe"))

    assert result.survey.skip_count == 0
    assert result.survey.responses == 1
    assert result.survey.option_counts["Maybe"] == 1


@pytest.mark.asyncio
async def test_answer_then_skip_releases_option(db_session, active_card, user_factory):
    survey, _ = active_card
    respondent = await user_factory()
    service = SurveyStatsService(db_session)

    await service.record_interaction(respondent.user_id, survey, Answered("Yes"))
    survey = await _reload(db_session, survey.survey_id)
    result = await service.record_interaction(respondent.user_id, survey, Skipped())

    assert result.survey.responses == 0
    assert result.survey.skip_count == 1
    assert result.survey.option_counts["Yes"] == 0


@pytest.mark.asyncio
async def test_repeating_same_answer_changes_nothing(db_session, active_card, user_factory):
    survey, _ = active_card
    respondent = await user_factory()
    service = SurveyStatsService(db_session)

    await service.record_interaction(respondent.user_id, survey, Answered("No"))
    survey = await _reload(db_session, survey.survey_id)
    result = await service.record_interaction(respondent.user_id, survey, Answered("No"))

    assert result.processed is True
    assert result.deltas.is_empty
    assert result.survey.responses == 1
    assert result.survey.option_counts["No"] == 1


@pytest.mark.asyncio
async def test_counters_track_several_respondents(db_session, active_card, user_factory):
    survey, _ = active_card
    service = SurveyStatsService(db_session)
    first, second, third = await user_factory(), await user_factory(), await user_factory()

    await service.record_interaction(first.user_id, survey, Answered("Yes"))
    await service.record_interaction(second.user_id, survey, Answered("Yes"))
    await service.record_interaction(third.user_id, survey, Skipped())

    refreshed = await _reload(db_session, survey.survey_id)
    assert refreshed.responses == 2
    assert refreshed.skip_count == 1
    assert refreshed.option_counts == {"Yes": 2, "No": 0, "Maybe": 0}
    assert sum(refreshed.option_counts.values()) <= refreshed.responses


@pytest.mark.asyncio
async def test_failed_write_returns_unprocessed_snapshot(db_session, active_card, user_factory, monkeypatch):
    survey, _ = active_card
    survey_id = survey.survey_id
    respondent = await user_factory()
    respondent_id = respondent.user_id
    service = SurveyStatsService(db_session)

    async def failing_apply(*args, **kwargs):
        raise OperationalError("UPDATE surveys", {}, Exception("database is locked"))

    monkeypatch.setattr(service, "_apply_deltas", failing_apply)

    result = await service.record_interaction(respondent_id, survey, Answered("Yes"))

    assert result.processed is False
    assert result.survey.survey_id == survey_id
    assert result.survey.responses == 0

    # Rollback expires loaded rows, so re-read by id
    refreshed = await _reload(db_session, survey_id)
    assert refreshed.responses == 0
    assert refreshed.option_counts["Yes"] == 0
    assert await service.get_user_answer(respondent_id, survey_id) is None


@pytest.mark.asyncio
async def test_stats_report_percentages_for_creator(db_session, active_card, user_factory):
    survey, creator = active_card
    service = SurveyStatsService(db_session)
    for answer in ("Yes", "Yes", "No"):
        respondent = await user_factory()
        await service.record_interaction(respondent.user_id, survey, Answered(answer))
    skipper = await user_factory()
    await service.record_interaction(skipper.user_id, survey, Skipped())

    stats = await service.get_survey_stats(survey.survey_id, creator)

    assert stats.responses == 3
    assert stats.skip_count == 1
    assert stats.total_interactions == 4
    assert stats.status == SurveyStatus.ACTIVE
    by_option = {item.option: item for item in stats.options}
    assert [item.option for item in stats.options] == ["Yes", "No", "Maybe"]
    assert by_option["Yes"].count == 2
    assert by_option["Yes"].percentage == 66.7
    assert by_option["No"].percentage == 33.3
    assert by_option["Maybe"].percentage == 0.0


@pytest.mark.asyncio
async def test_stats_denied_for_non_creator(db_session, active_card, user_factory):
    survey, _ = active_card
    stranger = await user_factory()

    with pytest.raises(SurveyPermissionError):
        await SurveyStatsService(db_session).get_survey_stats(survey.survey_id, stranger)


def test_option_percentage_without_responses():
    assert option_percentage(0, 0) == 0.0
    assert option_percentage(1, 3) == 33.3
    assert option_percentage(3, 3) == 100.0


@pytest.mark.asyncio
async def test_unknown_question_id_falls_back_to_card_question(db_session, active_card, user_factory):
    survey, _ = active_card
    respondent = await user_factory()
    service = SurveyStatsService(db_session)
    card_question_id = survey.questions[0]["id"]

    await service.record_interaction(respondent.user_id, survey, Answered("Yes"), question_id="q_doesnotexist")

    stored = await service.get_user_answer(respondent.user_id, survey.survey_id)
    assert stored.question_id == card_question_id
