"""Error taxonomy and the internal result type.

Adapters never raise past their public methods. Each call is modelled as a
``Result`` so the engine can tell failure causes apart, and the port collapses
it to ``False``/``None``/empty at the boundary.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar('T')


class GameStationError(Exception):
    """Base class for engine errors"""

    def __init__(self, detail='Game station error'):
        super().__init__(detail)
        self.detail = detail


class ConnectionError(GameStationError):
    """The remote ledger cannot be reached or initialized"""

    def __init__(self, detail='Remote ledger unavailable'):
        super().__init__(detail)


class RemoteCallError(GameStationError):
    """A query or mutation failed after the connection was established"""

    def __init__(self, detail='Remote call failed'):
        super().__init__(detail)


class StorageError(GameStationError):
    """Local store read, parse or write failure"""

    def __init__(self, detail='Storage error'):
        super().__init__(detail)


class NotConnectedError(GameStationError):
    """No backend selected or no player identity yet"""

    def __init__(self, detail='Not connected'):
        super().__init__(detail)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self):
        return True


@dataclass(frozen=True)
class Err:
    error: GameStationError

    @property
    def ok(self):
        return False


Result = Union[Ok[Any], Err]


def unwrap_or(result, default):
    """Return the payload of an ``Ok`` or ``default`` for an ``Err``."""
    if isinstance(result, Ok):
        return result.value
    return default
