"""Backend port (interface)"""
from abc import ABC, abstractmethod
from typing import Optional

from app.services.records import GameResult


class GameStationPort(ABC):
    """Storage port implemented by the local store and the remote ledger.

    Every method returns a ``Result`` (``Ok``/``Err`` from ``app.errors``);
    implementations must not raise.
    """

    name = 'abstract'

    @abstractmethod
    def submit_result(self, result: GameResult):
        """Persist the counters for one game result"""
        pass

    @abstractmethod
    def update_profile(self, player_id: str, username: str, avatar_id: int):
        pass

    @abstractmethod
    def create_room(self, player_id: str, game_type: str, max_players: int,
                    entry_fee: int):
        """Create a room hosted by ``player_id``, returns the room id"""
        pass

    @abstractmethod
    def join_room(self, player_id: str, room_id: str):
        pass

    @abstractmethod
    def get_leaderboard(self, game_type: Optional[str], limit: int):
        """Ranked entries; an empty list when nobody has played yet"""
        pass

    @abstractmethod
    def get_user_profile(self, player_id: str):
        pass

    @abstractmethod
    def get_active_rooms(self, game_type: Optional[str] = None):
        pass

    @abstractmethod
    def get_snake_high_score(self, player_id: str):
        pass
