from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shared.dal.models import PersonalStats

if TYPE_CHECKING:
    from game.logic.types import PlaySession
    from game.messaging.protocol import ConnectionProtocol
    from game.session.sync import RankInfo
    from shared.dal.models import ResultRecord


@dataclass
class PlayerSession:
    """Connection-bound runtime wrapper around one player's PlaySession.

    Lifecycle:
    - Created when the WebSocket connects; stats are loaded for player_id
    - ``state`` is replaced on every transition, never mutated
    - ``play_id`` increments on restart so late background results for an
      earlier play-through are dropped
    - Removed when the connection closes
    """

    connection: ConnectionProtocol
    player_id: str
    state: PlaySession
    stats: PersonalStats = field(default_factory=PersonalStats)
    play_id: int = 0
    saved_result: ResultRecord | None = None
    save_in_flight: bool = False
    rank: RankInfo | None = None

    @property
    def session_id(self) -> str:
        return self.connection.connection_id
