from esports_wiki.db.models.core.match import Match
from esports_wiki.db.models.core.player import Player
from esports_wiki.db.models.core.team import Team
from esports_wiki.db.models.core.tournament import Tournament
from esports_wiki.db.models.ingestion.sync_log import SyncLog

__all__ = [
    "Match",
    "Player",
    "SyncLog",
    "Team",
    "Tournament",
]
