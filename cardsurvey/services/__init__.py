from cardsurvey.services.auth_service import AuthService, AuthError
from cardsurvey.services.user_service import UserService, UserServiceError
from cardsurvey.services.session import AuthSession, SessionUser
from cardsurvey.services.answer_state import Answered, AnswerState, Skipped
from cardsurvey.services.reconciliation import StatDeltas, compute_stat_deltas
from cardsurvey.services.survey_service import (
    SurveyService,
    SurveyError,
    SurveyNotFoundError,
    SurveyPermissionError,
    SurveyStateError,
    SurveyValidationError,
)
from cardsurvey.services.stats_service import SurveyStatsService, InteractionResult
from cardsurvey.services.daily_poll_service import DailyPollService

__all__ = [
    # Accounts
    'AuthService',
    'AuthError',
    'UserService',
    'UserServiceError',
    'AuthSession',
    'SessionUser',

    # Answers and reconciliation
    'Answered',
    'AnswerState',
    'Skipped',
    'StatDeltas',
    'compute_stat_deltas',

    # Surveys
    'SurveyService',
    'SurveyError',
    'SurveyNotFoundError',
    'SurveyPermissionError',
    'SurveyStateError',
    'SurveyValidationError',
    'SurveyStatsService',
    'InteractionResult',
    'DailyPollService',
]
