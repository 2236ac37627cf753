"""
Submission validation
"""

from predictor.utils.gameweek_state import GameweekState


def picks_match_fixtures(pick_indices, fixture_indices):
    """Exact fixture-index set equality, no missing and no extra picks"""
    fixture_indices = set(fixture_indices)
    if not fixture_indices:
        return False
    return set(pick_indices) == fixture_indices


def validate_submission(pick_indices, fixture_indices, state):
    """
    Validate if a pick set can be submitted for a round.

    Args:
        pick_indices: fixture indices the user has picked
        fixture_indices: fixture indices of the round
        state: GameweekState of the round

    Returns:
        tuple: (is_valid, error_message)
    """
    if state is None or not GameweekState(state).accepts_submissions:
        label = GameweekState(state).value if state is not None else "UNDEFINED"
        return False, f"Submissions are closed for this round ({label})"

    pick_indices = set(pick_indices)
    fixture_indices = set(fixture_indices)

    if not fixture_indices:
        return False, "Round has no fixtures"

    missing = sorted(fixture_indices - pick_indices)
    extra = sorted(pick_indices - fixture_indices)

    if missing:
        return False, f"Missing picks for fixtures {missing}"
    if extra:
        return False, f"Picks for unknown fixtures {extra}"

    return True, "Valid submission"
