"""
Helper for generating daily poll content with the OpenAI API.

The model is asked for a JSON object with a question and exactly three
short options; the result is validated and normalised before use.
"""
from __future__ import annotations

import json
import logging

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError

from cardsurvey.config import get_settings

logger = logging.getLogger(__name__)

FILLER_OPTION = "Another option"

SYSTEM_PROMPT = "You are an AI that creates engaging daily poll questions for a general audience."


class PollGenerationError(RuntimeError):
    """Raised when poll content cannot be generated."""


class PollContent(BaseModel):
    """Generated poll question and its options."""

    question_text: str = Field(..., alias="questionText", min_length=1, max_length=500)
    options: list[str]

    model_config = {"populate_by_name": True}


def build_poll_prompt(theme: str | None = None, option_count: int = 3) -> str:
    """Build the user prompt for poll generation."""
    if theme:
        topic = f"Generate a question related to the theme: {theme}."
    else:
        topic = (
            'Generate a general interest question. It could be a "this or that" type, '
            "a fun fact based question, or a simple preference question."
        )
    return (
        "Create a single, interesting multiple-choice question with exactly "
        f"{option_count} distinct and plausible answer options. The question should be "
        "light-hearted, thought-provoking, or fun. Avoid controversial topics.\n"
        f"{topic}\n"
        f"Ensure the question is clear and concise. Provide exactly {option_count} unique, brief options.\n"
        'Respond only with JSON of the form {"questionText": "...", "options": ["...", "..."]}.'
    )


def normalize_options(options: list[str], option_count: int) -> list[str]:
    """Strip, de-duplicate and pad/trim options to exactly option_count entries."""
    cleaned: list[str] = []
    for option in options:
        text = str(option).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    cleaned = cleaned[:option_count]
    filler_index = 1
    while len(cleaned) < option_count:
        filler = FILLER_OPTION if filler_index == 1 else f"{FILLER_OPTION} {filler_index}"
        if filler not in cleaned:
            cleaned.append(filler)
        filler_index += 1
    return cleaned


def parse_poll_content(raw: str, option_count: int = 3) -> PollContent:
    """Parse the model's JSON reply into PollContent.

    Raises:
        PollGenerationError: If the reply is not valid poll JSON.
    """
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        content = PollContent.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise PollGenerationError(f"Could not parse poll content: {exc}") from exc

    content.question_text = content.question_text.strip()
    content.options = normalize_options(content.options, option_count)
    return content


async def generate_daily_poll(theme: str | None = None) -> PollContent:
    """
    Generate a poll question with a fixed number of options.

    Raises:
        PollGenerationError: If the API key is missing or the API call fails
    """
    settings = get_settings()
    if not settings.openai_api_key:
        raise PollGenerationError("OPENAI_API_KEY environment variable must be set")

    option_count = settings.daily_poll_option_count
    try:
        client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_timeout_seconds)
        response = await client.chat.completions.create(
            model=settings.ai_openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_poll_prompt(theme, option_count)},
            ],
        )
    except OpenAIError as exc:
        raise PollGenerationError(f"OpenAI API error: {exc}") from exc

    if not response.choices or not response.choices[0].message:
        raise PollGenerationError("OpenAI API returned no choices")

    output_text = response.choices[0].message.content
    if not output_text or not output_text.strip():
        logger.warning(
            f"OpenAI returned empty content. Model: {settings.ai_openai_model}, "
            f"Finish reason: {response.choices[0].finish_reason}"
        )
        raise PollGenerationError("OpenAI API returned empty response content")

    return parse_poll_content(output_text, option_count)
