import json

import pytest
import requests

from app.errors import ConnectionError, RemoteCallError
from app.services.records import GameResult
from app.services.remote_ledger import (HttpLedgerApplication,
                                        LEDGER_WALLET_KEY, NotificationHub,
                                        RemoteLedgerAdapter,
                                        RemoteLedgerConnector, literal,
                                        mutation_document, query_document)
from conftest import FakeLedgerApplication, RemoteConfig

CHAIN = 'e476187f6ddfeb9d588c7b45d3df334d5501d6499b3f9ad5595cae86cce16a65'


@pytest.fixture
def adapter(ledger):
    return RemoteLedgerAdapter(ledger, CHAIN)


def result(game_type, won=False, score=None, **extra):
    return GameResult(CHAIN, game_type, won, score, extra)


def test_document_builders():
    assert query_document('ping') == 'query { ping }'
    assert mutation_document('joinRoom', 'success', roomId='SNA-1234') == \
        'mutation { joinRoom(roomId: "SNA-1234") { success } }'
    assert literal(True) == 'true'
    assert literal(7) == '7'
    assert literal('say "hi"\n') == '"say \\"hi\\"\\n"'


def test_submit_mutations(adapter, ledger):
    assert adapter.submit_result(result('snake', score=40)).value is True
    adapter.submit_result(result('tictactoe', won=True, opponent='0xfriend'))
    adapter.submit_result(result('snakeladders', won=False, position=3))
    adapter.submit_result(result('snakeladders', won=True, score=1))
    adapter.submit_result(result('uno', won=False))

    assert ledger.documents == [
        'mutation { submitSnakeScore(score: 40) }',
        'mutation { submitTicTacToeResult(won: true, opponent: "0xfriend") }',
        'mutation { submitSnakeLaddersResult(won: false, position: 3) }',
        'mutation { submitSnakeLaddersResult(won: true, position: 1) }',
        'mutation { submitUnoResult(won: false) }',
    ]


def test_update_profile_escapes_username(adapter, ledger):
    assert adapter.update_profile(CHAIN, 'Robert"); drop', 2).value is True

    assert ledger.documents[-1] == \
        'mutation { updateProfile(username: "Robert\\"); drop", avatarId: 2) }'


def test_errors_in_response(adapter, ledger):
    ledger.responses['submitUnoResult'] = {'errors': [{'message': 'not allowed'}]}

    outcome = adapter.submit_result(result('uno', won=True))

    assert not outcome.ok
    assert isinstance(outcome.error, RemoteCallError)
    assert outcome.error.detail == 'not allowed'


def test_missing_data_and_bad_json(adapter, ledger):
    ledger.responses['snakeHighScore'] = {'extensions': {}}
    ledger.responses['activeRooms'] = '<html>gateway timeout</html>'

    assert not adapter.get_snake_high_score(CHAIN).ok
    assert not adapter.get_active_rooms().ok


def test_transport_failure(adapter, ledger):
    ledger.fail = True

    outcome = adapter.get_leaderboard('snake', 10)

    assert not outcome.ok
    assert outcome.error.detail == 'ledger unreachable'


def test_leaderboard_rows_are_ranked(adapter, ledger):
    ledger.responses['leaderboard'] = {'data': {'leaderboard': [
        {'playerName': 'low', 'playerAddress': '0x1', 'score': 10,
         'gamesPlayed': 2, 'winRate': 50},
        {'playerName': 'high', 'playerAddress': '0x2', 'score': 90,
         'gamesPlayed': 3, 'winRate': 66.5},
        'junk',
    ]}}

    rows = adapter.get_leaderboard(None, 10).value

    assert ledger.documents[-1].startswith('query { leaderboard(gameType: "all", limit: 10)')
    assert [(r.display_name, r.rank) for r in rows] == [('high', 1), ('low', 2)]
    assert rows[0].win_rate == 67
    assert rows[0].placeholder is False


def test_user_profile_levels_are_recomputed(adapter, ledger):
    ledger.responses['userProfile'] = {'data': {'userProfile': {
        'username': 'Chain Player', 'avatarId': 4, 'level': 9, 'xp': 1,
        'snakeHighScore': 120, 'snakeGames': 5, 'tictactoeWins': 2,
        'unoWins': 1}}}

    profile = adapter.get_user_profile(CHAIN).value

    assert profile.username == 'Chain Player'
    assert (profile.level, profile.xp) == (1, 270)
    assert profile.snake_games == 5
    assert f'address: "{CHAIN}"' in ledger.documents[-1]


def test_unknown_user_profile(adapter):
    outcome = adapter.get_user_profile('0xnobody')

    assert outcome.ok
    assert outcome.value is None


def test_rooms(adapter, ledger):
    ledger.responses['createRoom'] = {'data': {'createRoom': {
        'roomId': 'UNO-7QX2', 'chainId': 'room-chain'}}}
    ledger.responses['joinRoom'] = {'data': {'joinRoom': {'success': False}}}
    ledger.responses['activeRooms'] = {'data': {'activeRooms': [
        {'id': 'UNO-7QX2', 'game': 'uno', 'players': 1, 'maxPlayers': 4,
         'fee': 0, 'host': 'Chain Player', 'status': 'waiting',
         'chainId': 'room-chain'},
        {'game': 'uno'},
    ]}}

    assert adapter.create_room(CHAIN, 'uno', 4, 0).value == 'UNO-7QX2'
    assert adapter.join_room(CHAIN, 'UNO-7QX2').value is False
    rooms = adapter.get_active_rooms('uno').value

    assert [room.chain_id for room in rooms] == ['room-chain']
    assert 'activeRooms(gameType: "uno")' in ledger.documents[-1]
    adapter.get_active_rooms('all')
    assert ledger.documents[-1].startswith('query { activeRooms {')


def test_notifications_in_order():
    hub = NotificationHub()
    seen = []
    hub.subscribe(lambda n: seen.append(('first', n)))
    unsubscribe = hub.subscribe(lambda n: seen.append(('second', n)))

    hub.publish('block-1')
    hub.publish('block-2')
    unsubscribe()
    hub.publish('block-3')

    assert seen == [('first', 'block-1'), ('second', 'block-1'),
                    ('first', 'block-2'), ('second', 'block-2'),
                    ('first', 'block-3')]
    assert len(hub) == 1


def test_failing_subscriber_does_not_block_others(adapter):
    seen = []

    def broken(notification):
        raise RuntimeError("boom")

    adapter.on_notification(broken)
    adapter.on_notification(seen.append)
    adapter.publish({'reason': 'NewBlock'})

    assert seen == [{'reason': 'NewBlock'}]


class FakeResponse:
    def __init__(self, payload, status=200):
        self.text = json.dumps(payload)
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error:
            raise self.error
        return self.response


def test_http_application_posts_query():
    session = FakeSession(FakeResponse({'data': {'ping': True}}))
    application = HttpLedgerApplication('http://node:8080/', 'chain1', 'app1',
                                        timeout=3, session=session)

    assert json.loads(application.query('query { ping }')) == {'data': {'ping': True}}
    assert session.calls == [('http://node:8080/chains/chain1/applications/app1',
                              {'query': 'query { ping }'}, 3)]


@pytest.mark.parametrize('session', [
    FakeSession(error=requests.ConnectionError("refused")),
    FakeSession(FakeResponse({}, status=502)),
])
def test_http_application_errors(session):
    application = HttpLedgerApplication('http://node', 'c', 'a', session=session)

    with pytest.raises(RemoteCallError):
        application.query('query { ping }')


def connector(ledger, **overrides):
    config = {
        'LINERA_FAUCET_URL': RemoteConfig.LINERA_FAUCET_URL,
        'LINERA_APP_ID': RemoteConfig.LINERA_APP_ID,
        'LINERA_STORAGE_URL': RemoteConfig.LINERA_STORAGE_URL,
        'REMOTE_TIMEOUT': 5,
    }
    config.update(overrides)
    return RemoteLedgerConnector.from_config(config,
                                             application_factory=lambda chain_id: ledger)


def test_connector_requires_configuration(store, ledger):
    store.put(LEDGER_WALLET_KEY, {'chainId': CHAIN})

    with pytest.raises(ConnectionError):
        connector(ledger, LINERA_APP_ID='').connect(store)
    with pytest.raises(ConnectionError):
        connector(ledger, LINERA_STORAGE_URL='').connect(store)
    assert ledger.documents == []


def test_connector_requires_claimed_chain(store, ledger):
    with pytest.raises(ConnectionError):
        connector(ledger).connect(store)

    store.put(LEDGER_WALLET_KEY, {'owner': '0xabc'})
    with pytest.raises(ConnectionError):
        connector(ledger).connect(store)


def test_connector_requires_ping(store, ledger):
    store.put(LEDGER_WALLET_KEY, {'chainId': CHAIN})
    ledger.responses['ping'] = {'data': {'ping': False}}

    with pytest.raises(ConnectionError):
        connector(ledger).connect(store)


def test_connector_binds_adapter(store, ledger):
    store.put(LEDGER_WALLET_KEY, {'chainId': CHAIN})

    adapter = connector(ledger).connect(store)

    assert adapter.name == 'remote'
    assert adapter.chain_id == CHAIN
    assert ledger.fields() == ['ping']
    assert ledger.documents == ['mutation { ping }']


def test_connector_shares_an_empty_hub(store, ledger):
    store.put(LEDGER_WALLET_KEY, {'chainId': CHAIN})
    hub = NotificationHub()
    seen = []

    adapter = connector(ledger).connect(store, hub)
    hub.subscribe(seen.append)
    adapter.publish('block-9')

    assert adapter.notifications is hub
    assert seen == ['block-9']


def test_env_info_truncates_application_id(ledger):
    info = connector(ledger).env_info()

    assert info['applicationId'] == 'e476187f...'
    assert info['isConfigured'] is True
    assert connector(ledger, LINERA_APP_ID='').env_info()['applicationId'] == 'NOT SET'
