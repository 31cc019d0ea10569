"""Player records shared by both backends.

Persisted blobs go through the ``parse_*`` helpers, which check the shape of
every entry and fall back to the documented zero values instead of raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

GAME_TYPES = ('snake', 'tictactoe', 'snakeladders', 'uno')
SOLO_GAMES = ('snake',)
WIN_LOSS_GAMES = ('tictactoe', 'snakeladders', 'uno')
ALL_GAMES = 'all'

DEFAULT_USERNAME = 'Anonymous Player'
DEFAULT_AVATAR_ID = 0
DEFAULT_BEST_POSITION = 4

ROOM_STATUSES = ('waiting', 'playing', 'finished')


def as_count(value, default=0):
    """Coerce a stored counter to a non-negative int, or ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return default


@dataclass
class GameResult:
    """One reported outcome of a single game round."""
    player_id: str
    game_type: str
    won: bool
    score: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.game_type not in GAME_TYPES:
            raise ValueError(f"Unknown game type: {self.game_type!r}")
        if not self.player_id:
            raise ValueError("GameResult needs a player id")
        if self.score is not None:
            if isinstance(self.score, bool) or not isinstance(self.score, int) or self.score < 0:
                raise ValueError(f"Invalid score: {self.score!r}")
        if self.extra is None:
            self.extra = {}
        if not isinstance(self.extra, dict):
            raise ValueError("extra must be a mapping")
        self.won = bool(self.won)

    @property
    def is_solo(self):
        return self.game_type in SOLO_GAMES


@dataclass
class PlayerProfile:
    username: str = DEFAULT_USERNAME
    avatar_id: int = DEFAULT_AVATAR_ID

    def to_dict(self):
        return {'username': self.username, 'avatarId': self.avatar_id}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            return cls()
        username = data.get('username')
        if not isinstance(username, str) or not username:
            username = DEFAULT_USERNAME
        return cls(username=username,
                   avatar_id=as_count(data.get('avatarId'), DEFAULT_AVATAR_ID))


@dataclass
class GameStats:
    """Cumulative counters of one player for one game type."""
    game_type: str
    high_score: int = 0
    wins: int = 0
    losses: int = 0
    games_played: int = 0
    best_position: Optional[int] = None

    @property
    def decided_games(self):
        return self.wins + self.losses


@dataclass
class SessionAggregate:
    """Cross-game running totals read by the achievement catalogue."""
    total_games: int = 0
    total_wins: int = 0
    current_win_streak: int = 0
    best_win_streak: int = 0
    snake_high_score: int = 0
    ttt_wins: int = 0
    sl_wins: int = 0
    uno_wins: int = 0

    def apply(self, result: GameResult) -> None:
        self.total_games += 1
        if result.won:
            self.total_wins += 1
            self.current_win_streak += 1
            self.best_win_streak = max(self.best_win_streak,
                                       self.current_win_streak)
        else:
            self.current_win_streak = 0

        if result.game_type == 'snake' and result.score:
            self.snake_high_score = max(self.snake_high_score, result.score)
        if result.won:
            if result.game_type == 'tictactoe':
                self.ttt_wins += 1
            elif result.game_type == 'snakeladders':
                self.sl_wins += 1
            elif result.game_type == 'uno':
                self.uno_wins += 1

    def to_dict(self):
        return {
            'totalGames': self.total_games,
            'totalWins': self.total_wins,
            'currentWinStreak': self.current_win_streak,
            'bestWinStreak': self.best_win_streak,
            'snakeHighScore': self.snake_high_score,
            'tttWins': self.ttt_wins,
            'slWins': self.sl_wins,
            'unoWins': self.uno_wins,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            return cls()
        return cls(
            total_games=as_count(data.get('totalGames')),
            total_wins=as_count(data.get('totalWins')),
            current_win_streak=as_count(data.get('currentWinStreak')),
            best_win_streak=as_count(data.get('bestWinStreak')),
            snake_high_score=as_count(data.get('snakeHighScore')),
            ttt_wins=as_count(data.get('tttWins')),
            sl_wins=as_count(data.get('slWins')),
            uno_wins=as_count(data.get('unoWins')),
        )


@dataclass
class AchievementState:
    unlocked: bool = False
    unlocked_at: Optional[int] = None

    def to_dict(self):
        data = {'unlocked': self.unlocked}
        if self.unlocked_at is not None:
            data['unlockedAt'] = self.unlocked_at
        return data

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or data.get('unlocked') is not True:
            return cls()
        unlocked_at = data.get('unlockedAt')
        if isinstance(unlocked_at, bool) or not isinstance(unlocked_at, (int, float)):
            unlocked_at = None
        else:
            unlocked_at = int(unlocked_at)
        return cls(unlocked=True, unlocked_at=unlocked_at)


@dataclass
class LeaderboardEntry:
    rank: int
    player_id: str
    display_name: str
    score: int
    games_played: int
    win_rate: int
    avatar: str = ''
    placeholder: bool = False

    def to_dict(self):
        return {
            'rank': self.rank,
            'playerId': self.player_id,
            'displayName': self.display_name,
            'score': self.score,
            'gamesPlayed': self.games_played,
            'winRate': self.win_rate,
            'avatar': self.avatar,
            'placeholder': self.placeholder,
        }


@dataclass
class UserProfile:
    username: str = DEFAULT_USERNAME
    avatar_id: int = DEFAULT_AVATAR_ID
    level: int = 1
    xp: int = 0
    snake_high_score: int = 0
    snake_games: int = 0
    snake_ladders_wins: int = 0
    snake_ladders_losses: int = 0
    tictactoe_wins: int = 0
    tictactoe_losses: int = 0
    uno_wins: int = 0
    uno_losses: int = 0

    _FIELDS = (
        ('username', 'username'),
        ('avatar_id', 'avatarId'),
        ('level', 'level'),
        ('xp', 'xp'),
        ('snake_high_score', 'snakeHighScore'),
        ('snake_games', 'snakeGames'),
        ('snake_ladders_wins', 'snakeLaddersWins'),
        ('snake_ladders_losses', 'snakeLaddersLosses'),
        ('tictactoe_wins', 'tictactoeWins'),
        ('tictactoe_losses', 'tictactoeLosses'),
        ('uno_wins', 'unoWins'),
        ('uno_losses', 'unoLosses'),
    )

    def to_dict(self):
        return {wire: getattr(self, attr) for attr, wire in self._FIELDS}

    @classmethod
    def from_dict(cls, data):
        """Build from a camelCase payload; unknown or bad values use defaults."""
        profile = cls()
        if not isinstance(data, dict):
            return profile
        for attr, wire in cls._FIELDS:
            if attr == 'username':
                if isinstance(data.get(wire), str) and data[wire]:
                    profile.username = data[wire]
            elif wire in data:
                setattr(profile, attr,
                        as_count(data[wire], getattr(profile, attr)))
        return profile


@dataclass
class GameRoom:
    id: str
    game: str
    players: int
    max_players: int
    fee: int
    host: str
    status: str = 'waiting'
    created_at: int = 0
    chain_id: Optional[str] = None

    @property
    def is_full(self):
        return self.players >= self.max_players

    def to_dict(self):
        data = {
            'id': self.id,
            'game': self.game,
            'players': self.players,
            'maxPlayers': self.max_players,
            'fee': self.fee,
            'host': self.host,
            'status': self.status,
            'createdAt': self.created_at,
        }
        if self.chain_id:
            data['chainId'] = self.chain_id
        return data

    @classmethod
    def from_dict(cls, data):
        """Return a room, or ``None`` when the record is unusable."""
        if not isinstance(data, dict):
            return None
        room_id = data.get('id')
        game = data.get('game')
        if not isinstance(room_id, str) or not isinstance(game, str):
            return None
        status = data.get('status')
        if status not in ROOM_STATUSES:
            status = 'waiting'
        host = data.get('host')
        chain_id = data.get('chainId')
        return cls(id=room_id,
                   game=game,
                   players=as_count(data.get('players'), 1),
                   max_players=as_count(data.get('maxPlayers'), 2),
                   fee=as_count(data.get('fee')),
                   host=host if isinstance(host, str) else '',
                   status=status,
                   created_at=as_count(data.get('createdAt')),
                   chain_id=chain_id if isinstance(chain_id, str) else None)


# ---- Persisted blob parsing ---- #

def parse_counter_map(raw, key=''):
    """``{playerId: int}``; anything else becomes an empty map."""
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Malformed counter map '{key}' - using empty map")
        return {}
    parsed = {}
    for player_id, value in raw.items():
        count = as_count(value, None)
        if count is None:
            logger.warning(f"Dropping malformed counter for {player_id} in '{key}'")
            continue
        parsed[player_id] = count
    return parsed


def parse_stats_map(raw, key=''):
    """``{playerId: {wins, losses, ...extras}}`` with integer fields only."""
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Malformed stats map '{key}' - using empty map")
        return {}
    parsed = {}
    for player_id, value in raw.items():
        if not isinstance(value, dict):
            logger.warning(f"Dropping malformed stats for {player_id} in '{key}'")
            continue
        entry = {'wins': as_count(value.get('wins')),
                 'losses': as_count(value.get('losses'))}
        for extra_key, extra_value in value.items():
            if extra_key in entry:
                continue
            count = as_count(extra_value, None)
            if count is not None:
                entry[extra_key] = count
        parsed[player_id] = entry
    return parsed


def parse_profile_map(raw, key='profiles'):
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Malformed profile map '{key}' - using empty map")
        return {}
    return {player_id: PlayerProfile.from_dict(value)
            for player_id, value in raw.items() if isinstance(value, dict)}


def parse_rooms(raw, key='rooms'):
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"Malformed room list '{key}' - using empty list")
        return []
    rooms = []
    for item in raw:
        room = GameRoom.from_dict(item)
        if room is not None:
            rooms.append(room)
    return rooms


def parse_achievement_map(raw):
    """``{achievementId: AchievementState}`` for one player."""
    if not isinstance(raw, dict):
        return {}
    return {achievement_id: AchievementState.from_dict(value)
            for achievement_id, value in raw.items()}
