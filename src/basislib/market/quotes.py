"""
Market quotes, handles and versioned lazy snapshots.

Live market data is modelled with version counters instead of observer
callbacks:

- SimpleQuote: a mutable value whose version increments on every change
- Handle / RelinkableHandle: indirection to a curve or quote; the handle's
  version reflects both relinks and the linked object's own version
- LazyObject: an object whose results are a snapshot rebuilt whenever the
  versions of its inputs change

Every quote change or handle relink advances a process-wide market epoch.
Lazy objects cache their input state per epoch, so repeated reads between
market changes never walk the dependency graph.
Readers always receive a complete snapshot. Rebuilds are serialised per
object and published by swapping a single reference.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Any, Hashable, Optional, Tuple, Union

from ..exceptions import ConfigurationError


class _MarketEpoch:
    """Monotonic counter advanced by every market data change."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self.value = 0

    def advance(self) -> None:
        with self._lock:
            self.value = next(self._counter)


_EPOCH = _MarketEpoch()


def market_epoch() -> int:
    """Current market epoch; changes whenever any quote or handle changes."""
    return _EPOCH.value


class SimpleQuote:
    """
    Mutable market quote.

    Attributes:
        value: Current quote value
        version: Incremented on every set_value call
    """

    def __init__(self, value: float):
        self._value = float(value)
        self._version = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        return self._value

    @property
    def version(self) -> int:
        return self._version

    def set_value(self, value: float) -> None:
        """Update the quote and bump its version."""
        with self._lock:
            self._value = float(value)
            self._version += 1
        _EPOCH.advance()

    def __repr__(self) -> str:
        return f"SimpleQuote({self._value}, version={self._version})"


class Handle:
    """
    Read-only indirection to a curve, volatility structure or quote.

    An empty handle is allowed; dereferencing it raises ConfigurationError.
    """

    def __init__(self, link: Any = None):
        self._link = link
        self._relinks = 0

    @property
    def empty(self) -> bool:
        return self._link is None

    @property
    def link(self) -> Any:
        """The linked object."""
        if self._link is None:
            raise ConfigurationError("Dereferencing an empty handle")
        return self._link

    @property
    def version(self) -> Tuple:
        return (self._relinks, version_of(self._link))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._link!r})"


class RelinkableHandle(Handle):
    """Handle whose target can be swapped."""

    def link_to(self, link: Any, bump_epoch: bool = True) -> None:
        """
        Point the handle at a new object.

        bump_epoch=False is for handles private to a bootstrap, which no
        cached state key observes.
        """
        self._link = link
        self._relinks += 1
        if bump_epoch:
            _EPOCH.advance()


def as_quote(value: Union[float, SimpleQuote, Handle]) -> Union[SimpleQuote, Handle]:
    """Wrap plain numbers as quotes; pass quotes and handles through."""
    if isinstance(value, (SimpleQuote, Handle)):
        return value
    return SimpleQuote(float(value))


def quote_value(quote: Union[SimpleQuote, Handle]) -> float:
    """Current value of a quote or of a handle to a quote."""
    if isinstance(quote, Handle):
        return quote.link.value
    return quote.value


def as_handle(obj: Any) -> Handle:
    """Wrap an object in a Handle unless it is one already (None -> empty handle)."""
    if isinstance(obj, Handle):
        return obj
    return Handle(obj)


def version_of(obj: Any) -> Hashable:
    """Version of any market object; objects without one are static."""
    if obj is None:
        return None
    return getattr(obj, "version", 0)


class LazyObject(ABC):
    """
    Base for objects that compute a snapshot from versioned inputs.

    Subclasses implement _state_key (a hashable summary of input versions)
    and _perform_calculations (returns the new snapshot). The state key is
    evaluated at most once per market epoch; `version` is an integer
    revision that advances whenever the state key changes.
    """

    def __init__(self):
        self._calc_lock = threading.RLock()
        self._current: Optional[Tuple[Hashable, Any]] = None
        # (epoch, state key, revision)
        self._key_cache: Optional[Tuple[int, Hashable, int]] = None

    @abstractmethod
    def _state_key(self) -> Hashable:
        """Hashable summary of every input the snapshot depends on."""

    @abstractmethod
    def _perform_calculations(self) -> Any:
        """Build a new snapshot from the current inputs."""

    def _validate_inputs(self) -> None:
        """Hook run before the state key is recomputed after a market change."""

    def _versioned_key(self) -> Tuple[int, Hashable, int]:
        epoch = market_epoch()
        cached = self._key_cache
        if cached is not None and cached[0] == epoch:
            return cached

        with self._calc_lock:
            cached = self._key_cache
            if cached is not None and cached[0] == epoch:
                return cached
            self._validate_inputs()
            key = self._state_key()
            if cached is None:
                revision = 0
            elif cached[1] != key:
                revision = cached[2] + 1
            else:
                revision = cached[2]
            self._key_cache = (epoch, key, revision)
            return self._key_cache

    @property
    def version(self) -> int:
        return self._versioned_key()[2]

    def snapshot(self) -> Any:
        """Return an up-to-date snapshot, rebuilding if inputs changed."""
        key = self._versioned_key()[1]
        current = self._current
        if current is not None and current[0] == key:
            return current[1]

        with self._calc_lock:
            key = self._versioned_key()[1]
            current = self._current
            if current is not None and current[0] == key:
                return current[1]
            result = self._perform_calculations()
            self._current = (key, result)
            return result

    def is_calculated(self) -> bool:
        """True if the published snapshot matches the current inputs."""
        current = self._current
        return current is not None and current[0] == self._versioned_key()[1]


__all__ = [
    "SimpleQuote",
    "Handle",
    "RelinkableHandle",
    "LazyObject",
    "as_quote",
    "as_handle",
    "quote_value",
    "version_of",
    "market_epoch",
]
