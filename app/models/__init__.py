from app import db  # noqa: F401 - imported for model imports

from .competition import Competition, CompetitionStatus
from .game import Game, GameStatus
from .league import League
from .league_member import LeagueMember
from .pick import Pick
from .score import Score
from .season_standing import SeasonStanding
from .user import User

__all__ = [
    "User",
    "League",
    "LeagueMember",
    "Competition",
    "CompetitionStatus",
    "Game",
    "GameStatus",
    "Pick",
    "Score",
    "SeasonStanding",
]
