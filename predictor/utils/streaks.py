"""
Top-quartile streaks
"""

TOP_QUARTILE_PERCENTILE = 75


class Streak:
    def __init__(self, length=0, start_round=None, end_round=None):
        self.length = length
        self.start_round = start_round
        self.end_round = end_round

    def __repr__(self):
        return f"<Streak {self.length} ({self.start_round}-{self.end_round})>"

    def __eq__(self, other):
        if not isinstance(other, Streak):
            return NotImplemented
        return (self.length, self.start_round, self.end_round) == (
            other.length, other.start_round, other.end_round
        )

    def to_dict(self):
        return {
            "length": self.length,
            "start_round": self.start_round,
            "end_round": self.end_round,
        }


def longest_top_quartile_streak(percentiles, rounds=None,
                                threshold=TOP_QUARTILE_PERCENTILE):
    """
    Longest run of consecutive rounds at or above `threshold`.

    Args:
        percentiles: chronological per-round percentiles, None for rounds the
            user has no entry in
        rounds: round numbers matching `percentiles`; positions from 1 if omitted
        threshold: minimum percentile that keeps a run alive

    Returns:
        Streak; the earliest run wins a tie on length
    """
    percentiles = list(percentiles)
    if rounds is None:
        rounds = range(1, len(percentiles) + 1)
    rounds = list(rounds)
    if len(rounds) != len(percentiles):
        raise ValueError("rounds and percentiles must be the same length")

    best = Streak()
    run_length = 0
    run_start = None
    previous_round = None

    for round_number, value in zip(rounds, percentiles):
        gap = previous_round is not None and round_number != previous_round + 1
        previous_round = round_number

        if value is None or value < threshold:
            run_length = 0
            run_start = None
            continue

        if gap or run_length == 0:
            run_length = 0
            run_start = round_number

        run_length += 1
        if run_length > best.length:
            best = Streak(run_length, run_start, round_number)

    return best
