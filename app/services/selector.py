"""Backend selection and the public game station service.

``GameStationService`` is what the rest of the application talks to. It
picks a backend once per session in ``connect()``: the remote ledger when it
can be initialised, otherwise the local store. The choice is not revisited
until ``disconnect()``; a failing remote call returns its failure value and is
never retried against the local store.
"""
import logging
import secrets
import string

from app.errors import (ConnectionError, Err, NotConnectedError, StorageError,
                        unwrap_or)
from app.services.achievements import AchievementEngine, now_millis
from app.services.leaderboard import DEFAULT_LIMIT, placeholder_leaderboard
from app.services.local_store import LocalStoreAdapter
from app.services.records import GAME_TYPES, GameResult
from app.services.remote_ledger import NotificationHub, RemoteLedgerConnector
from app.utils.db import KeyValueStore

logger = logging.getLogger(__name__)

WALLET_KEY = 'wallet'
SESSION_KEY = 'session'

_BASE36 = string.digits + string.ascii_lowercase


def generate_wallet():
    """Local identity: a random address and a fake chain id."""
    return {
        'address': f"0x{secrets.token_hex(20)}",
        'chainId': f"chain-{''.join(secrets.choice(_BASE36) for _ in range(8))}",
    }


class GameStationService:
    """Single entry point over whichever backend is active."""

    def __init__(self, store, connector, achievements=None, clock=now_millis):
        self.store = store
        self.connector = connector
        self.clock = clock
        self.achievements = achievements or AchievementEngine(store, clock=clock)
        self.notifications = NotificationHub()
        self.adapter = None
        self.player_id = None
        self.selected_at = None

    @classmethod
    def from_config(cls, config, store=None, application_factory=None):
        store = store or KeyValueStore()
        connector = RemoteLedgerConnector.from_config(
            config, application_factory=application_factory)
        return cls(store, connector)

    @property
    def backend(self):
        return self.adapter.name if self.adapter is not None else None

    @property
    def connected(self):
        return self.adapter is not None and self.player_id is not None

    # ---- Session ---- #

    def _local_identity(self):
        wallet = self.store.get(WALLET_KEY, None)
        if isinstance(wallet, dict) and isinstance(wallet.get('address'), str) \
                and wallet['address']:
            return wallet['address']

        wallet = generate_wallet()
        try:
            self.store.put(WALLET_KEY, wallet)
        except StorageError as e:
            logger.warning(f"Could not persist local wallet: {e.detail}")
        logger.info(f"Created local wallet {wallet['address'][:10]}...")
        return wallet['address']

    def connect(self):
        """
        Select the backend for this session and establish the player identity.

        Calling it again on a connected session keeps the earlier choice.

        Returns:
            str: the player identity
        """
        if self.connected:
            return self.player_id

        try:
            adapter = self.connector.connect(self.store, self.notifications)
            player_id = adapter.chain_id
        except ConnectionError as e:
            logger.warning(f"Remote ledger unavailable ({e.detail}) - using local store")
            adapter = LocalStoreAdapter(self.store, clock=self.clock)
            player_id = self._local_identity()

        self.adapter = adapter
        self.player_id = player_id
        self.selected_at = self.clock()
        try:
            self.store.put(SESSION_KEY, {'backend': adapter.name,
                                         'selectedAt': self.selected_at})
        except StorageError as e:
            logger.warning(f"Could not persist session marker: {e.detail}")

        logger.info(f"Game station connected using {adapter.name} backend")
        return player_id

    def disconnect(self):
        if self.backend == 'local':
            try:
                self.store.delete(WALLET_KEY)
            except StorageError as e:
                logger.warning(f"Could not clear local wallet: {e.detail}")
        logger.info(f"Disconnected from {self.backend or 'no'} backend")
        self.adapter = None
        self.player_id = None
        self.selected_at = None

    def env_info(self):
        info = self.connector.env_info()
        info['backend'] = self.backend
        return info

    def session_info(self):
        return {
            'connected': self.connected,
            'backend': self.backend,
            'playerId': self.player_id,
            'selectedAt': self.selected_at,
            'env': self.env_info(),
        }

    def on_notification(self, callback):
        """Subscribe to ledger notifications; returns the unsubscribe callable."""
        return self.notifications.subscribe(callback)

    # ---- Port ---- #

    def _call(self, operation, *args):
        if not self.connected:
            logger.warning(f"{operation} called without a connected backend")
            return Err(NotConnectedError())
        result = getattr(self.adapter, operation)(*args)
        if not result.ok:
            logger.warning(f"{operation} failed on {self.backend} backend: "
                           f"{result.error.detail}")
        return result

    def submit_result(self, game_type, won, score=None, extra=None):
        """
        Record one game result and run the achievement pass.

        Args:
            game_type (str): snake, tictactoe, snakeladders or uno
            won (bool): Outcome for win/loss games
            score (int): Score for the solo game or the finishing position
            extra (dict): Per-game flags read by the achievement catalogue

        Returns:
            bool: True when the backend accepted the result and the
            achievement state was saved
        """
        self.achievements.last_unlocks = []
        if not self.connected:
            logger.warning("submit_result called without a connected backend")
            return False
        try:
            result = GameResult(self.player_id, game_type, won, score, extra or {})
        except ValueError as e:
            logger.warning(f"Rejected game result: {e}")
            return False

        if not unwrap_or(self._call('submit_result', result), False):
            return False

        try:
            self.achievements.track_game(result)
        except StorageError as e:
            logger.error(f"Achievement state not saved: {e.detail}")
            return False
        return True

    def update_profile(self, username, avatar_id=0):
        if not isinstance(username, str) or not username.strip():
            logger.warning("Rejected profile update without a username")
            return False
        if isinstance(avatar_id, bool) or not isinstance(avatar_id, int) or avatar_id < 0:
            logger.warning(f"Rejected profile update with avatar {avatar_id!r}")
            return False
        return unwrap_or(self._call('update_profile', self.player_id,
                                    username.strip(), avatar_id), False)

    def create_room(self, game_type, max_players=2, entry_fee=0):
        if game_type not in GAME_TYPES:
            logger.warning(f"Rejected room for unknown game {game_type!r}")
            return None
        for value in (max_players, entry_fee):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                logger.warning(f"Rejected room with invalid settings {max_players!r}/{entry_fee!r}")
                return None
        if max_players < 2:
            logger.warning(f"Rejected room for {max_players} players")
            return None
        return unwrap_or(self._call('create_room', self.player_id, game_type,
                                    max_players, entry_fee), None)

    def join_room(self, room_id):
        if not isinstance(room_id, str) or not room_id:
            return False
        return unwrap_or(self._call('join_room', self.player_id, room_id), False)

    def get_leaderboard(self, game_type=None, limit=DEFAULT_LIMIT):
        """Ranked rows; the placeholder list when there is nothing to show."""
        limit = max(limit, 1)
        entries = unwrap_or(self._call('get_leaderboard', game_type, limit), [])
        if not entries:
            return placeholder_leaderboard(limit)
        return entries

    def get_user_profile(self, player_id=None):
        return unwrap_or(self._call('get_user_profile',
                                    player_id or self.player_id), None)

    def get_active_rooms(self, game_type=None):
        return unwrap_or(self._call('get_active_rooms', game_type), [])

    def get_snake_high_score(self, player_id=None):
        return unwrap_or(self._call('get_snake_high_score',
                                    player_id or self.player_id), 0)

    # ---- Achievements ---- #

    @property
    def recent_unlock(self):
        return self.achievements.recent_unlock

    @property
    def last_unlocks(self):
        return self.achievements.last_unlocks

    def clear_recent_unlock(self):
        self.achievements.clear_recent_unlock()

    def get_achievements(self, player_id=None):
        player_id = player_id or self.player_id
        if player_id is None:
            return []
        return self.achievements.achievements(player_id)

    def get_achievement_progress(self, player_id=None):
        player_id = player_id or self.player_id
        if player_id is None:
            return {'unlocked': 0, 'total': len(self.achievements.catalogue),
                    'percentage': 0}
        return self.achievements.progress(player_id)

    def check_and_unlock(self, achievement_id):
        if not self.connected:
            return False
        try:
            return self.achievements.check_and_unlock(self.player_id, achievement_id)
        except StorageError as e:
            logger.error(f"Could not unlock {achievement_id}: {e.detail}")
            return False
