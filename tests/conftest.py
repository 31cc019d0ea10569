import json
import re

import pytest

from app import create_app
from app.errors import RemoteCallError
from app.services.remote_ledger import LedgerApplication
from config import TestConfig

FIELD = re.compile(r'\{\s*(\w+)')


class FakeLedgerApplication(LedgerApplication):
    """In-memory ledger: canned responses keyed by the top-level field."""

    def __init__(self, responses=None):
        self.documents = []
        self.responses = {'ping': {'data': {'ping': True}}}
        self.responses.update(responses or {})
        self.fail = False

    def query(self, document):
        self.documents.append(document)
        if self.fail:
            raise RemoteCallError("ledger unreachable")
        field = FIELD.search(document).group(1)
        payload = self.responses.get(field, {'data': {field: None}})
        if isinstance(payload, str):
            return payload
        return json.dumps(payload)

    def fields(self):
        return [FIELD.search(document).group(1) for document in self.documents]


class RemoteConfig(TestConfig):
    LINERA_APP_ID = 'e476187f6ddfeb9d588c7b45d3df334d5501d6499b3f9ad5595cae86cce16a65'
    LINERA_STORAGE_URL = 'http://ledger.test:8080'


class Clock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, millis):
        self.now += millis


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    return app.extensions['game_station']


@pytest.fixture
def store(service):
    return service.store


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def ledger():
    return FakeLedgerApplication()
