"""Local embedded backend: the port implemented over the key/value store.

Namespaces (key -> value):

    profiles            {playerId: {username, avatarId}}
    snake-scores        {playerId: int}
    <game>-stats        {playerId: {wins, losses, ...extras}}
    games-played        {playerId: int}
    rooms               [RoomRecord]

Every read falls back to the zero value of its namespace. Writes replace
the whole record through ``KeyValueStore.update``.
"""
import logging
import random
import string
from functools import wraps

from app.errors import Err, Ok, StorageError
from app.services.achievements import now_millis
from app.services.leaderboard import LeaderboardRanker, PlayerSnapshot
from app.services.ports import GameStationPort
from app.services.progression import build_user_profile
from app.services.records import (DEFAULT_BEST_POSITION, GameRoom, GameStats,
                                  PlayerProfile, SOLO_GAMES, WIN_LOSS_GAMES,
                                  as_count, parse_counter_map,
                                  parse_profile_map, parse_rooms,
                                  parse_stats_map)

logger = logging.getLogger(__name__)

PROFILES_KEY = 'profiles'
GAMES_PLAYED_KEY = 'games-played'
ROOMS_KEY = 'rooms'
ROOM_TTL_MS = 3600 * 1000


def scores_key(game_type):
    return f"{game_type}-scores"


def stats_key(game_type):
    return f"{game_type}-stats"


class _Unchanged(Exception):
    """Raised inside a mutation to skip the write."""


def storage_guarded(method):
    """Turn a StorageError into an ``Err`` result."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except StorageError as e:
            logger.error(f"Local store {method.__name__} failed: {e.detail}")
            return Err(e)
    return wrapper


class LocalStoreAdapter(GameStationPort):
    name = 'local'

    def __init__(self, store, ranker=None, clock=now_millis, room_ttl_ms=ROOM_TTL_MS):
        self.store = store
        self.ranker = ranker or LeaderboardRanker()
        self.clock = clock
        self.room_ttl_ms = room_ttl_ms

    # ---- Reads ---- #

    def _counters(self, key):
        return parse_counter_map(self.store.get(key, {}), key)

    def _stats(self, key):
        return parse_stats_map(self.store.get(key, {}), key)

    def _profiles(self):
        return parse_profile_map(self.store.get(PROFILES_KEY, {}))

    def _rooms(self):
        return parse_rooms(self.store.get(ROOMS_KEY, []))

    def _load_tables(self):
        tables = {'snake': self._counters(scores_key('snake')),
                  'games-played': self._counters(GAMES_PLAYED_KEY)}
        for game in WIN_LOSS_GAMES:
            tables[game] = self._stats(stats_key(game))
        return tables

    @staticmethod
    def _stats_for(player_id, tables):
        stats = {'snake': GameStats('snake',
                                    high_score=tables['snake'].get(player_id, 0),
                                    games_played=tables['games-played'].get(player_id, 0))}
        for game in WIN_LOSS_GAMES:
            entry = tables[game].get(player_id, {})
            wins = entry.get('wins', 0)
            losses = entry.get('losses', 0)
            stats[game] = GameStats(game,
                                    wins=wins,
                                    losses=losses,
                                    games_played=wins + losses,
                                    best_position=entry.get('bestPosition'))
        return stats

    def snapshots(self):
        """All known players, in first-seen order across the score tables."""
        tables = self._load_tables()
        profiles = self._profiles()
        seen = {}
        for table in ('snake',) + WIN_LOSS_GAMES:
            for player_id in tables[table]:
                seen.setdefault(player_id, None)
        return [PlayerSnapshot(player_id=player_id,
                               profile=profiles.get(player_id),
                               stats=self._stats_for(player_id, tables))
                for player_id in seen]

    # ---- Game results ---- #

    def _record_solo(self, result):
        score = result.score or 0

        def keep_best(raw):
            scores = parse_counter_map(raw, scores_key(result.game_type))
            scores[result.player_id] = max(scores.get(result.player_id, 0), score)
            return scores

        def count_game(raw):
            played = parse_counter_map(raw, GAMES_PLAYED_KEY)
            played[result.player_id] = played.get(result.player_id, 0) + 1
            return played

        self.store.update(scores_key(result.game_type), keep_best, {})
        self.store.update(GAMES_PLAYED_KEY, count_game, {})

    def _record_win_loss(self, result):
        key = stats_key(result.game_type)
        position = as_count(result.extra.get('position'), None)
        if position is None:
            position = result.score

        def apply(raw):
            table = parse_stats_map(raw, key)
            entry = table.get(result.player_id, {'wins': 0, 'losses': 0})
            if result.won:
                entry['wins'] += 1
            else:
                entry['losses'] += 1
            if result.game_type == 'snakeladders':
                best = entry.get('bestPosition', DEFAULT_BEST_POSITION)
                if position is not None and position < best:
                    best = position
                entry['bestPosition'] = best
            table[result.player_id] = entry
            return table

        self.store.update(key, apply, {})

    @storage_guarded
    def submit_result(self, result):
        if result.game_type in SOLO_GAMES:
            self._record_solo(result)
        else:
            self._record_win_loss(result)
        logger.debug(f"Recorded {result.game_type} result for {result.player_id}")
        return Ok(True)

    @storage_guarded
    def update_profile(self, player_id, username, avatar_id):
        def apply(raw):
            profiles = raw if isinstance(raw, dict) else {}
            profiles[player_id] = PlayerProfile(username, avatar_id).to_dict()
            return profiles

        self.store.update(PROFILES_KEY, apply, {})
        return Ok(True)

    # ---- Queries ---- #

    @storage_guarded
    def get_leaderboard(self, game_type, limit):
        return Ok(self.ranker.rank(self.snapshots(), game_type, limit))

    @storage_guarded
    def get_user_profile(self, player_id):
        tables = self._load_tables()
        profile = self._profiles().get(player_id) or PlayerProfile()
        return Ok(build_user_profile(profile, self._stats_for(player_id, tables)))

    @storage_guarded
    def get_snake_high_score(self, player_id):
        return Ok(self._counters(scores_key('snake')).get(player_id, 0))

    # ---- Rooms ---- #

    def _new_room_id(self, game_type, taken):
        alphabet = string.ascii_uppercase + string.digits
        while True:
            room_id = f"{game_type[:3].upper()}-{''.join(random.choices(alphabet, k=4))}"
            if room_id not in taken:
                return room_id

    @storage_guarded
    def create_room(self, player_id, game_type, max_players, entry_fee):
        profile = self._profiles().get(player_id)
        host = profile.username if profile else player_id[:10]
        created = {}

        def apply(raw):
            rooms = parse_rooms(raw)
            room = GameRoom(id=self._new_room_id(game_type, {r.id for r in rooms}),
                            game=game_type,
                            players=1,
                            max_players=max_players,
                            fee=entry_fee,
                            host=host,
                            status='waiting',
                            created_at=self.clock())
            created['room'] = room
            return [r.to_dict() for r in rooms] + [room.to_dict()]

        self.store.update(ROOMS_KEY, apply, [])
        logger.info(f"Room {created['room'].id} created by {player_id}")
        return Ok(created['room'].id)

    @storage_guarded
    def join_room(self, player_id, room_id):
        def apply(raw):
            rooms = parse_rooms(raw)
            room = next((r for r in rooms if r.id == room_id), None)
            if room is None or room.is_full or room.status == 'finished':
                raise _Unchanged()
            room.players += 1
            if room.is_full:
                room.status = 'playing'
            return [r.to_dict() for r in rooms]

        try:
            self.store.update(ROOMS_KEY, apply, [])
        except _Unchanged:
            logger.info(f"{player_id} could not join room {room_id}")
            return Ok(False)
        return Ok(True)

    @storage_guarded
    def get_active_rooms(self, game_type=None):
        now = self.clock()
        rooms = [room for room in self._rooms()
                 if now - room.created_at < self.room_ttl_ms
                 and room.status != 'finished']
        if game_type and game_type != 'all':
            rooms = [room for room in rooms if room.game == game_type]
        return Ok(rooms)
