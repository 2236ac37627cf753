"""
Rare-correct-pick bonus ("unicorn")

A unicorn is a fixture where exactly one member of a comparison group called
the outcome correctly. Groups below MIN_GROUP_SIZE never award one.
"""

from collections import defaultdict

from predictor.utils.outcomes import Outcome

MIN_GROUP_SIZE = 3


def unicorn_winner(group_picks, outcome, group_size, min_group_size=MIN_GROUP_SIZE):
    """
    Return the only user who picked `outcome` for a fixture, or None.

    Args:
        group_picks: {user_id: Outcome} for one fixture
        outcome: resolved Outcome (None when undecided)
        group_size: member count of the comparison group
    """
    if outcome is None or group_size < min_group_size:
        return None

    correct = [
        user_id for user_id, pick in group_picks.items()
        if Outcome.parse(pick) == outcome
    ]
    if len(correct) == 1:
        return correct[0]
    return None


def unicorn_fixtures(picks_by_user, outcomes, group_size, min_group_size=MIN_GROUP_SIZE):
    """
    Map every unicorn fixture of a round to the user who earned it.

    Args:
        picks_by_user: {user_id: {fixture_index: Outcome}}
        outcomes: {fixture_index: Outcome or None}
        group_size: member count of the comparison group

    Returns:
        {fixture_index: user_id}
    """
    winners = {}
    if group_size < min_group_size:
        return winners

    for fixture_index, outcome in outcomes.items():
        if outcome is None:
            continue
        fixture_picks = {
            user_id: picks[fixture_index]
            for user_id, picks in picks_by_user.items()
            if fixture_index in picks
        }
        winner = unicorn_winner(fixture_picks, outcome, group_size, min_group_size)
        if winner is not None:
            winners[fixture_index] = winner
    return winners


def count_unicorns(picks_by_user, outcomes, group_size, min_group_size=MIN_GROUP_SIZE):
    """Per-user unicorn count for one round; users without any are omitted"""
    counts = defaultdict(int)
    for user_id in unicorn_fixtures(
        picks_by_user, outcomes, group_size, min_group_size
    ).values():
        counts[user_id] += 1
    return dict(counts)
