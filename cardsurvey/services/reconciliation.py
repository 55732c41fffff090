"""Counter deltas for respondent answer changes.

A respondent moves between three states on a card: no interaction, skipped,
and answered(value). Each move translates into a small set of counter
adjustments on the survey aggregate:

    previous      new            responses  skips  old option  new option
    none          skipped            0        +1       -           -
    none          answered(v)       +1         0       -         +1 v
    skipped       skipped            0         0       -           -
    skipped       answered(v)       +1        -1       -         +1 v
    answered(v)   skipped           -1        +1     -1 v          -
    answered(v)   answered(v)        0         0       0           0
    answered(v)   answered(w)        0         0     -1 v        +1 w

Values that are not among the survey's options never receive option deltas.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from cardsurvey.services.answer_state import AnswerState, Answered, Skipped


@dataclass
class StatDeltas:
    """Counter adjustments produced by one answer transition."""

    responses: int = 0
    skips: int = 0
    options: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.responses == 0 and self.skips == 0 and not any(self.options.values())

    def add_option(self, option: str, delta: int) -> None:
        total = self.options.get(option, 0) + delta
        if total:
            self.options[option] = total
        else:
            self.options.pop(option, None)

    def apply(
        self,
        responses: int,
        skips: int,
        option_counts: Mapping[str, int],
    ) -> tuple[int, int, dict[str, int]]:
        """Return the aggregate after applying these deltas."""
        counts = dict(option_counts)
        for option, delta in self.options.items():
            if option in counts:
                counts[option] += delta
        return responses + self.responses, skips + self.skips, counts


def compute_stat_deltas(
    previous: AnswerState | None,
    current: AnswerState,
    options: Iterable[str],
) -> StatDeltas:
    """Compute the counter deltas for moving from ``previous`` to ``current``."""
    tallied = set(options)
    deltas = StatDeltas()

    if previous is None:
        if isinstance(current, Skipped):
            deltas.skips += 1
        else:
            deltas.responses += 1
            if current.value in tallied:
                deltas.add_option(current.value, 1)
        return deltas

    if isinstance(previous, Skipped):
        if isinstance(current, Answered):
            deltas.skips -= 1
            deltas.responses += 1
            if current.value in tallied:
                deltas.add_option(current.value, 1)
        return deltas

    # previous is Answered
    if isinstance(current, Skipped):
        deltas.responses -= 1
        deltas.skips += 1
        if previous.value in tallied:
            deltas.add_option(previous.value, -1)
        return deltas

    if current.value != previous.value:
        if previous.value in tallied:
            deltas.add_option(previous.value, -1)
        if current.value in tallied:
            deltas.add_option(current.value, 1)
    return deltas
