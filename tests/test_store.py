import pytest

from app.errors import StorageError
from app.models import StoreEntry, db
from app.utils.db import KeyValueStore


def test_missing_key_returns_default(store):
    default = {'a': 1}
    value = store.get('missing', default)

    assert value == {'a': 1}
    assert value is not default
    assert store.read('missing', []) == ([], 0)


def test_versions_increase_on_every_write(store):
    store.put('counter', 1)
    store.put('counter', 2)

    assert store.read('counter') == (2, 2)


def test_compare_and_swap_rejects_stale_version(store):
    store.put('k', 'first')
    _, version = store.read('k')

    assert store.compare_and_swap('k', 'second', version) is True
    assert store.compare_and_swap('k', 'third', version) is False
    assert store.get('k') == 'second'


def test_update_reapplies_after_conflict(store):
    store.put('total', 0)
    calls = []

    def add_one(value):
        calls.append(value)
        if len(calls) == 1:
            # Another writer sneaks in between read and write
            store.put('total', 10)
        return value + 1

    assert store.update('total', add_one, 0) == 11
    assert calls == [0, 10]
    assert store.get('total') == 11


def test_update_gives_up_after_max_attempts(app):
    store = KeyValueStore(max_attempts=3)
    store.put('busy', 0)

    def always_conflicting(value):
        store.put('busy', value + 100)
        return value + 1

    with pytest.raises(StorageError):
        store.update('busy', always_conflicting, 0)


def test_corrupted_record(store):
    db.session.add(StoreEntry(key='broken', value='{not json', version=1))
    db.session.commit()

    with pytest.raises(StorageError):
        store.read('broken')
    assert store.get('broken', {}) == {}

    assert store.update('broken', lambda value: {**value, 'fixed': True}, {}) == {'fixed': True}
    assert store.get('broken') == {'fixed': True}


def test_delete(store):
    store.put('gone', [1, 2])
    store.delete('gone')
    store.delete('never-there')

    assert store.get('gone') is None
