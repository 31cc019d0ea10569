import copy
import json
import logging
from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.errors import StorageError
from app.models import db, StoreEntry

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5


class KeyValueStore:
    """Namespaced JSON records on top of the ``store_entry`` table.

    Reads of a missing key return the caller's default. Writes are
    whole-record and versioned: ``update`` re-reads and re-applies the
    mutation when another writer got in between.
    """

    def __init__(self, max_attempts=MAX_WRITE_ATTEMPTS):
        self.max_attempts = max_attempts

    @property
    def session(self):
        return db.session

    def _fetch(self, key):
        try:
            row = self.session.execute(
                select(StoreEntry.value, StoreEntry.version).where(
                    StoreEntry.key == key)).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Could not read '{key}': {e}") from e
        if row is None:
            return None, 0
        return row.value, row.version

    def read(self, key, default=None):
        """
        Read a record and its version.

        Args:
            key (str): Store key
            default: Value returned for a missing key

        Returns:
            tuple: (value, version); version is 0 for a missing key

        Raises:
            StorageError: the row could not be read or holds invalid JSON
        """
        raw, version = self._fetch(key)
        if raw is None:
            return copy.deepcopy(default), version
        try:
            return json.loads(raw), version
        except (TypeError, ValueError) as e:
            raise StorageError(f"Corrupted record '{key}': {e}") from e

    def get(self, key, default=None):
        try:
            value, _ = self.read(key, default)
            return value
        except StorageError as e:
            logger.warning(f"{e.detail} - using default")
            return copy.deepcopy(default)

    def compare_and_swap(self, key, value, expected_version):
        """Write ``value`` only if the stored version still matches."""
        payload = json.dumps(value)
        try:
            if expected_version == 0:
                now = datetime.utcnow()
                self.session.execute(
                    insert(StoreEntry).values(key=key,
                                              value=payload,
                                              version=1,
                                              created_at=now,
                                              updated_at=now))
                self.session.commit()
                return True

            result = self.session.execute(
                update(StoreEntry).where(
                    StoreEntry.key == key,
                    StoreEntry.version == expected_version).values(
                        value=payload,
                        version=expected_version + 1,
                        updated_at=datetime.utcnow()).execution_options(
                            synchronize_session=False))
            if result.rowcount != 1:
                self.session.rollback()
                return False
            self.session.commit()
            return True
        except IntegrityError:
            # Someone inserted the key first
            self.session.rollback()
            return False
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Could not write '{key}': {e}") from e

    def update(self, key, mutate, default=None):
        """
        Read-modify-write a whole record.

        Args:
            key (str): Store key
            mutate (callable): Receives the current value (``default`` when
                missing or corrupted) and returns the new value
            default: Zero value for the record

        Returns:
            The value that was written

        Raises:
            StorageError: the write failed or kept conflicting
        """
        for attempt in range(1, self.max_attempts + 1):
            raw, version = self._fetch(key)
            current = copy.deepcopy(default)
            if raw is not None:
                try:
                    current = json.loads(raw)
                except (TypeError, ValueError):
                    logger.warning(
                        f"Corrupted record '{key}' - overwriting with fresh value")

            value = mutate(current)
            if self.compare_and_swap(key, value, version):
                return value
            logger.info(
                f"Write conflict on '{key}' (attempt {attempt}/{self.max_attempts})")

        raise StorageError(
            f"Write conflict on '{key}' after {self.max_attempts} attempts")

    def put(self, key, value):
        return self.update(key, lambda _: value)

    def delete(self, key):
        try:
            entry = self.session.get(StoreEntry, key)
            if entry is not None:
                self.session.delete(entry)
                self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"Could not delete '{key}': {e}") from e
