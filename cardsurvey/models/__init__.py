"""Database models."""
from cardsurvey.models.user import User
from cardsurvey.models.refresh_token import RefreshToken
from cardsurvey.models.survey import Survey, SurveyOptionCount
from cardsurvey.models.user_survey_answer import UserSurveyAnswer
