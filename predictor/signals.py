"""
Application signals

Subscribers connect with ``league_round_submitted.connect(handler)``; the
handler receives the app as sender plus ``league_id`` and ``round_number``.
Delivery (push, email, chat) is the subscriber's concern.
"""

from blinker import Namespace

_signals = Namespace()

# Every member of a league holds a valid submission for a round
league_round_submitted = _signals.signal("league-round-submitted")

# A submission was revoked because its picks no longer match the round
submission_revoked = _signals.signal("submission-revoked")
