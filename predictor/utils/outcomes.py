"""
Outcome resolution for the Gameweek Predictor

Turns a raw result (explicit outcome code and/or a goal pair) into a
three-way outcome. Everything that scores a pick goes through here.
"""

from enum import Enum


class Outcome(str, Enum):
    HOME = "H"
    DRAW = "D"
    AWAY = "A"

    @classmethod
    def parse(cls, value):
        """Parse a code ("H"/"D"/"A" or an Outcome). Returns None if unknown."""
        if value is None:
            return None
        if isinstance(value, Outcome):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


def outcome_from_score(home_goals, away_goals):
    """Outcome implied by a scoreline, or None when either side is missing"""
    if home_goals is None or away_goals is None:
        return None
    if home_goals > away_goals:
        return Outcome.HOME
    if away_goals > home_goals:
        return Outcome.AWAY
    return Outcome.DRAW


def resolve_outcome(outcome_code=None, home_goals=None, away_goals=None):
    """
    Resolve a result into an Outcome.

    An explicit outcome code always takes precedence over the goals, even when
    the two disagree. With neither available the fixture is undecided and
    None is returned.

    Args:
        outcome_code: "H", "D", "A" (or an Outcome), optional
        home_goals: home goals, optional
        away_goals: away goals, optional
    """
    explicit = Outcome.parse(outcome_code)
    if explicit is not None:
        return explicit

    return outcome_from_score(home_goals, away_goals)
