from predictor import db  # noqa: F401 - imported for model imports

from .fixture import Fixture
from .league import League
from .league_member import LeagueMember
from .live_score import LiveScore
from .pick import Pick
from .result import Result
from .submission import Submission
from .user import User

__all__ = [
    "User",
    "Fixture",
    "Result",
    "Pick",
    "Submission",
    "League",
    "LeagueMember",
    "LiveScore",
]
