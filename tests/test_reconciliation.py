"""Tests for the answer transition table and counter deltas."""
import random

import pytest

from cardsurvey.services.answer_state import (
    Answered,
    Skipped,
    answer_state_from_payload,
    answer_state_from_record,
)
from cardsurvey.services.reconciliation import StatDeltas, compute_stat_deltas
from cardsurvey.models.user_survey_answer import UserSurveyAnswer

OPTIONS = ["Yes", "No", "Maybe"]


@pytest.mark.parametrize(
    "previous, current, expected",
    [
        (None, Skipped(), (0, 1, {})),
        (None, Answered("Yes"), (1, 0, {"Yes": 1})),
        (Skipped(), Skipped(), (0, 0, {})),
        (Skipped(), Answered("Maybe"), (1, -1, {"Maybe": 1})),
        (Answered("Yes"), Skipped(), (-1, 1, {"Yes": -1})),
        (Answered("Yes"), Answered("Yes"), (0, 0, {})),
        (Answered("Yes"), Answered("No"), (0, 0, {"Yes": -1, "No": 1})),
    ],
)
def test_transition_table(previous, current, expected):
    deltas = compute_stat_deltas(previous, current, OPTIONS)
    assert (deltas.responses, deltas.skips, deltas.options) == expected


def test_repeated_same_answer_is_noop():
    deltas = compute_stat_deltas(Answered("No"), Answered("No"), OPTIONS)
    assert deltas.is_empty


def test_unknown_value_counts_as_response_without_option_delta():
    deltas = compute_stat_deltas(None, Answered("Purple"), OPTIONS)
    assert deltas.responses == 1
    assert deltas.options == {}


def test_change_from_removed_option_only_increments_new_option():
    deltas = compute_stat_deltas(Answered("Removed"), Answered("Yes"), OPTIONS)
    assert deltas.responses == 0
    assert deltas.options == {"Yes": 1}


def test_apply_ignores_options_missing_from_counts():
    deltas = StatDeltas(responses=1, skips=0, options={"Yes": 1, "Ghost": 1})
    responses, skips, counts = deltas.apply(0, 0, {"Yes": 0, "No": 0})
    assert (responses, skips) == (1, 0)
    assert counts == {"Yes": 1, "No": 0}


def test_counters_match_final_answers_over_random_sequences():
    """Replaying random answer changes keeps counters equal to the final answers."""
    rng = random.Random(1234)
    choices = [Skipped()] + [Answered(option) for option in OPTIONS]

    responses, skips = 0, 0
    counts = {option: 0 for option in OPTIONS}
    current: dict[int, object] = {}

    for _ in range(500):
        user = rng.randrange(8)
        answer = rng.choice(choices)
        deltas = compute_stat_deltas(current.get(user), answer, OPTIONS)
        responses, skips, counts = deltas.apply(responses, skips, counts)
        current[user] = answer

        assert responses >= 0 and skips >= 0
        assert all(count >= 0 for count in counts.values())
        assert sum(counts.values()) <= responses

    assert skips == sum(1 for state in current.values() if isinstance(state, Skipped))
    assert responses == sum(1 for state in current.values() if isinstance(state, Answered))
    for option in OPTIONS:
        assert counts[option] == sum(1 for state in current.values() if state == Answered(option))


def test_answer_state_from_payload():
    assert answer_state_from_payload(None, True) == Skipped()
    assert answer_state_from_payload("Yes", True) == Skipped()
    assert answer_state_from_payload("Yes", False) == Answered("Yes")
    with pytest.raises(ValueError, match="answer_value_required"):
        answer_state_from_payload("  ", False)


def test_answer_state_from_record():
    assert answer_state_from_record(None) is None
    assert answer_state_from_record(UserSurveyAnswer(is_skipped=True)) == Skipped()
    assert answer_state_from_record(
        UserSurveyAnswer(is_skipped=False, answer_value="No")
    ) == Answered("No")
