"""Survey card endpoints: authoring, answering and statistics."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardsurvey.database import get_db
from cardsurvey.dependencies import get_current_user, get_optional_user
from cardsurvey.models.base import SurveyStatus
from cardsurvey.models.user import User
from cardsurvey.schemas.survey import (
    AnswerRequest,
    AnswerResponse,
    PublicCard,
    PublicCardList,
    SurveyCreate,
    SurveyList,
    SurveyOut,
    SurveyStats,
    UserInteraction,
)
from cardsurvey.services import (
    DailyPollService,
    SurveyError,
    SurveyNotFoundError,
    SurveyPermissionError,
    SurveyService,
    SurveyStateError,
    SurveyStatsService,
    SurveyValidationError,
)
from cardsurvey.services.answer_state import answer_state_from_payload, Answered

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/surveys", tags=["surveys"])


def _raise_for_survey_error(exc: SurveyError) -> None:
    """Translate service errors into HTTP errors."""
    if isinstance(exc, SurveyNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="survey_not_found") from exc
    if isinstance(exc, SurveyPermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="not_survey_owner") from exc
    if isinstance(exc, SurveyStateError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, SurveyValidationError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("", response_model=SurveyOut, status_code=201)
async def create_survey(
    request: SurveyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    """Create a survey as a Draft, or publish it immediately when ``publish`` is set."""
    initial_status = SurveyStatus.ACTIVE if request.publish else SurveyStatus.DRAFT
    try:
        survey = await SurveyService(db).create_survey(user, request, status=initial_status)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
    return SurveyOut.model_validate(survey)


@router.get("/mine", response_model=SurveyList)
async def list_my_surveys(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyList:
    """Surveys created by the current user, newest first."""
    surveys = await SurveyService(db).list_surveys_by_creator(user.user_id)
    return SurveyList(surveys=[SurveyOut.model_validate(survey) for survey in surveys])


@router.get("/public", response_model=PublicCardList)
async def list_public_cards(
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> PublicCardList:
    """Active public single cards, with the caller's own answers when signed in."""
    survey_service = SurveyService(db)
    surveys = await survey_service.list_public_cards()

    interactions = {}
    if user is not None:
        interactions = await survey_service.get_user_interactions(
            user.user_id, [survey.survey_id for survey in surveys]
        )

    cards = []
    for survey in surveys:
        answer = interactions.get(survey.survey_id)
        cards.append(PublicCard(
            survey=SurveyOut.model_validate(survey),
            my_answer=UserInteraction.model_validate(answer) if answer else None,
        ))
    return PublicCardList(cards=cards)


@router.get("/daily-poll", response_model=SurveyOut)
async def get_daily_poll(db: AsyncSession = Depends(get_db)) -> SurveyOut:
    """Today's poll, generated on first request of the day."""
    poll = await DailyPollService(db).fetch_or_create_daily_poll()
    if poll is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="daily_poll_unavailable")
    return SurveyOut.model_validate(poll)


@router.get("/{survey_id}", response_model=SurveyOut)
async def get_survey(
    survey_id: UUID,
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    """Fetch a survey for taking or editing."""
    try:
        survey = await SurveyService(db).get_survey_for_viewer(survey_id, user)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
    return SurveyOut.model_validate(survey)


@router.put("/{survey_id}", response_model=SurveyOut)
async def update_survey(
    survey_id: UUID,
    request: SurveyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    """Edit a survey; with ``publish`` set a Draft is finalized and activated."""
    survey_service = SurveyService(db)
    try:
        if request.publish:
            survey = await survey_service.finalize_survey(user, request, existing_survey_id=survey_id)
        else:
            survey = await survey_service.update_survey(survey_id, user, request)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
    return SurveyOut.model_validate(survey)


@router.post("/{survey_id}/publish", response_model=SurveyOut)
async def publish_survey(
    survey_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    try:
        survey = await SurveyService(db).change_status(survey_id, user, SurveyStatus.ACTIVE)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
    return SurveyOut.model_validate(survey)


@router.post("/{survey_id}/close", response_model=SurveyOut)
async def close_survey(
    survey_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyOut:
    try:
        survey = await SurveyService(db).change_status(survey_id, user, SurveyStatus.CLOSED)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
    return SurveyOut.model_validate(survey)


@router.delete("/{survey_id}", status_code=204)
async def delete_survey(
    survey_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a Draft survey."""
    try:
        await SurveyService(db).delete_survey(survey_id, user)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
    return Response(status_code=204)


@router.post("/{survey_id}/answer", response_model=AnswerResponse)
async def answer_survey(
    survey_id: UUID,
    request: AnswerRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AnswerResponse:
    """Record the caller's answer or skip and return the refreshed aggregate."""
    try:
        answer = answer_state_from_payload(request.answer_value, request.is_skipped)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        survey = await SurveyService(db).require_survey(survey_id)
    except SurveyError as exc:
        _raise_for_survey_error(exc)

    if survey.status != SurveyStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="survey_not_active")
    if isinstance(answer, Answered) and answer.value not in survey.options:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_option")

    result = await SurveyStatsService(db).record_interaction(
        user.user_id, survey, answer, question_id=request.question_id
    )
    if not result.processed:
        logger.warning(f"Interaction for user {user.user_id} on survey {survey_id} was not stored")
    return AnswerResponse(processed=result.processed, survey=result.survey)


@router.get("/{survey_id}/stats", response_model=SurveyStats)
async def get_survey_stats(
    survey_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SurveyStats:
    """Aggregate statistics; only the survey's creator may view them."""
    try:
        return await SurveyStatsService(db).get_survey_stats(survey_id, user)
    except SurveyError as exc:
        _raise_for_survey_error(exc)
