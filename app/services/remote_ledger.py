"""Remote ledger backend.

The ledger is reached through a ``LedgerApplication``: one method that takes a
GraphQL document and returns the raw JSON response. Everything else here is
mapping the port onto named queries and mutations, and reading the results
back into records. Calls are single-shot: no retries, no cancellation.
"""
import json
import logging
from abc import ABC, abstractmethod

import requests

from app.errors import ConnectionError, Err, Ok, RemoteCallError
from app.services.leaderboard import assign_ranks
from app.services.ports import GameStationPort
from app.services.progression import build_user_profile, stats_from_profile
from app.services.records import (GameRoom, LeaderboardEntry, PlayerProfile,
                                  UserProfile, as_count)
from app.utils.scoring import avatar_for, round_half_up

logger = logging.getLogger(__name__)

LEDGER_WALLET_KEY = 'ledger-wallet'

PROFILE_FIELDS = ('username avatarId level xp snakeHighScore snakeGames '
                  'tictactoeWins tictactoeLosses snakeLaddersWins '
                  'snakeLaddersLosses unoWins unoLosses')
ROOM_FIELDS = 'id game players maxPlayers fee host status chainId'


def literal(value):
    """GraphQL literal for a scalar argument."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return str(value)
    return json.dumps(str(value))


def _percentage(value):
    if isinstance(value, float) and value >= 0:
        return round_half_up(value)
    return as_count(value)


def _arguments(**kwargs):
    args = ', '.join(f"{name}: {literal(value)}"
                     for name, value in kwargs.items() if value is not None)
    return f"({args})" if args else ''


def query_document(field, selection='', **kwargs):
    body = f"{field}{_arguments(**kwargs)}"
    if selection:
        body += f" {{ {selection} }}"
    return f"query {{ {body} }}"


def mutation_document(field, selection='', **kwargs):
    body = f"{field}{_arguments(**kwargs)}"
    if selection:
        body += f" {{ {selection} }}"
    return f"mutation {{ {body} }}"


class LedgerApplication(ABC):
    """Query capability against one application on the ledger."""

    @abstractmethod
    def query(self, document):
        """Run a GraphQL document and return the raw JSON response text.

        Raises:
            RemoteCallError: transport failure
        """
        pass


class HttpLedgerApplication(LedgerApplication):
    """Posts GraphQL documents to a node service over HTTP."""

    def __init__(self, storage_url, chain_id, application_id, timeout=10,
                 session=None):
        self.url = (f"{storage_url.rstrip('/')}/chains/{chain_id}"
                    f"/applications/{application_id}")
        self.timeout = timeout
        self.session = session or requests.Session()

    def query(self, document):
        try:
            response = self.session.post(self.url,
                                         json={'query': document},
                                         timeout=self.timeout)
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            raise RemoteCallError(f"Ledger request failed: {e}") from e


class NotificationHub:
    """Fan-out of push notifications from the ledger.

    Callbacks run in registration order for each notification, and
    notifications are delivered in the order ``publish`` receives them.
    """

    def __init__(self):
        self._callbacks = []

    def subscribe(self, callback):
        self._callbacks.append(callback)

        def unsubscribe():
            self._callbacks = [cb for cb in self._callbacks if cb is not callback]

        return unsubscribe

    def publish(self, notification):
        for callback in list(self._callbacks):
            try:
                callback(notification)
            except Exception as e:
                logger.error(f"Notification callback failed: {e}")

    def __len__(self):
        return len(self._callbacks)


class RemoteLedgerAdapter(GameStationPort):
    name = 'remote'

    def __init__(self, application, chain_id, notifications=None):
        self.application = application
        self.chain_id = chain_id
        self.notifications = notifications if notifications is not None else NotificationHub()

    # ---- Transport ---- #

    def _call(self, document):
        """Run one document; ``Ok(data)`` or ``Err(RemoteCallError)``."""
        try:
            raw = self.application.query(document)
            response = json.loads(raw)
        except RemoteCallError as e:
            logger.error(f"Ledger call failed: {e.detail}")
            return Err(e)
        except (TypeError, ValueError) as e:
            logger.error(f"Ledger returned invalid JSON: {e}")
            return Err(RemoteCallError(f"Invalid response: {e}"))

        if not isinstance(response, dict):
            return Err(RemoteCallError("Invalid response shape"))
        errors = response.get('errors')
        if errors:
            messages = '; '.join(
                str(error.get('message', error)) if isinstance(error, dict) else str(error)
                for error in errors)
            logger.error(f"Ledger reported errors: {messages}")
            return Err(RemoteCallError(messages))
        data = response.get('data')
        if data is None:
            return Err(RemoteCallError("Response has no data"))
        return Ok(data)

    def ping(self):
        result = self._call(mutation_document('ping'))
        return result.ok and bool(result.value.get('ping'))

    def on_notification(self, callback):
        return self.notifications.subscribe(callback)

    def publish(self, notification):
        self.notifications.publish(notification)

    # ---- Mutations ---- #

    def submit_result(self, result):
        if result.game_type == 'snake':
            document = mutation_document('submitSnakeScore', score=result.score or 0)
        elif result.game_type == 'tictactoe':
            opponent = result.extra.get('opponent')
            document = mutation_document(
                'submitTicTacToeResult', won=result.won,
                opponent=opponent if isinstance(opponent, str) and opponent else None)
        elif result.game_type == 'snakeladders':
            position = as_count(result.extra.get('position'), None)
            if position is None:
                position = result.score or 0
            document = mutation_document('submitSnakeLaddersResult',
                                         won=result.won, position=position)
        else:
            document = mutation_document('submitUnoResult', won=result.won)

        outcome = self._call(document)
        if not outcome.ok:
            return outcome
        return Ok(bool(outcome.value))

    def update_profile(self, player_id, username, avatar_id):
        outcome = self._call(mutation_document('updateProfile',
                                               username=username,
                                               avatarId=avatar_id))
        if not outcome.ok:
            return outcome
        return Ok(bool(outcome.value))

    def create_room(self, player_id, game_type, max_players, entry_fee):
        outcome = self._call(mutation_document('createRoom', 'roomId chainId',
                                               gameType=game_type,
                                               maxPlayers=max_players,
                                               entryFee=entry_fee))
        if not outcome.ok:
            return outcome
        created = outcome.value.get('createRoom') or {}
        room_id = created.get('roomId') if isinstance(created, dict) else None
        return Ok(room_id or None)

    def join_room(self, player_id, room_id):
        outcome = self._call(mutation_document('joinRoom', 'success', roomId=room_id))
        if not outcome.ok:
            return outcome
        joined = outcome.value.get('joinRoom') or {}
        return Ok(isinstance(joined, dict) and joined.get('success') is True)

    # ---- Queries ---- #

    def get_leaderboard(self, game_type, limit):
        outcome = self._call(query_document(
            'leaderboard', 'playerName playerAddress score gamesPlayed winRate',
            gameType=game_type or 'all', limit=limit))
        if not outcome.ok:
            return outcome

        rows = outcome.value.get('leaderboard') or []
        entries = []
        for row in rows if isinstance(rows, list) else []:
            if not isinstance(row, dict):
                continue
            address = row.get('playerAddress') if isinstance(row.get('playerAddress'), str) else ''
            name = row.get('playerName') if isinstance(row.get('playerName'), str) else ''
            entries.append(LeaderboardEntry(rank=0,
                                            player_id=address,
                                            display_name=name or address[:8],
                                            score=as_count(row.get('score')),
                                            games_played=as_count(row.get('gamesPlayed')),
                                            win_rate=_percentage(row.get('winRate')),
                                            avatar=avatar_for(address or name)))
        return Ok(assign_ranks(entries)[:max(limit, 0)])

    def get_user_profile(self, player_id):
        outcome = self._call(query_document('userProfile', PROFILE_FIELDS,
                                            address=player_id))
        if not outcome.ok:
            return outcome
        payload = outcome.value.get('userProfile')
        if not isinstance(payload, dict):
            return Ok(None)
        remote = UserProfile.from_dict(payload)
        # Level and xp are re-derived so both backends agree
        profile = build_user_profile(PlayerProfile(remote.username, remote.avatar_id),
                                     stats_from_profile(remote))
        return Ok(profile)

    def get_snake_high_score(self, player_id):
        outcome = self._call(query_document('snakeHighScore', address=player_id))
        if not outcome.ok:
            return outcome
        return Ok(as_count(outcome.value.get('snakeHighScore')))

    def get_active_rooms(self, game_type=None):
        if game_type and game_type != 'all':
            document = query_document('activeRooms', ROOM_FIELDS, gameType=game_type)
        else:
            document = query_document('activeRooms', ROOM_FIELDS)
        outcome = self._call(document)
        if not outcome.ok:
            return outcome
        rows = outcome.value.get('activeRooms') or []
        rooms = [GameRoom.from_dict(row) for row in rows] if isinstance(rows, list) else []
        return Ok([room for room in rooms if room is not None])


class RemoteLedgerConnector:
    """Builds a connected ``RemoteLedgerAdapter`` or raises ``ConnectionError``.

    Wallet creation and chain claiming happen outside this service; the
    connector only needs the claimed chain id, read from the
    ``ledger-wallet`` record of the local store.
    """

    def __init__(self, faucet_url, application_id, storage_url, timeout=10,
                 application_factory=None):
        self.faucet_url = faucet_url or ''
        self.application_id = application_id or ''
        self.storage_url = storage_url or ''
        self.timeout = timeout
        self.application_factory = application_factory or self._http_application

    @classmethod
    def from_config(cls, config, application_factory=None):
        return cls(faucet_url=config.get('LINERA_FAUCET_URL'),
                   application_id=config.get('LINERA_APP_ID'),
                   storage_url=config.get('LINERA_STORAGE_URL'),
                   timeout=config.get('REMOTE_TIMEOUT', 10),
                   application_factory=application_factory)

    @property
    def configured(self):
        return bool(self.application_id)

    def env_info(self):
        return {
            'faucetUrl': self.faucet_url,
            'applicationId': f"{self.application_id[:8]}..." if self.application_id else 'NOT SET',
            'storageUrl': self.storage_url or 'NOT SET',
            'isConfigured': self.configured,
        }

    def _http_application(self, chain_id):
        return HttpLedgerApplication(self.storage_url, chain_id,
                                     self.application_id, timeout=self.timeout)

    def connect(self, store, notifications=None):
        """
        Bind the ledger application and check that it answers.

        Args:
            store (KeyValueStore): Local store holding the ledger wallet record
            notifications (NotificationHub): Hub the adapter publishes into

        Returns:
            RemoteLedgerAdapter: connected adapter

        Raises:
            ConnectionError: not configured, no claimed chain, or no answer
        """
        if not self.configured:
            raise ConnectionError("Application id not configured")
        if not self.storage_url:
            raise ConnectionError("Ledger service URL not configured")

        wallet = store.get(LEDGER_WALLET_KEY, {})
        chain_id = wallet.get('chainId') if isinstance(wallet, dict) else None
        if not isinstance(chain_id, str) or not chain_id:
            raise ConnectionError("No claimed chain in ledger wallet")

        try:
            application = self.application_factory(chain_id)
        except Exception as e:
            raise ConnectionError(f"Could not bind application: {e}") from e

        adapter = RemoteLedgerAdapter(application, chain_id,
                                     notifications=notifications)
        if not adapter.ping():
            raise ConnectionError("Ledger application did not answer ping")

        logger.info(f"Connected to ledger chain {chain_id[:6]}...{chain_id[-4:]}")
        return adapter
