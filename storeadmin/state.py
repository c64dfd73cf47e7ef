# storeadmin/state.py

"""
Cross-view shared state.

Only two values are shared between views: the live-updates flag and the
selected date range. Both live in a small JSON state file (so they survive
restarts) and are fanned out through Observables, which views subscribe to
when mounted and drop when unmounted. Fire-and-forget notifications
(sign-out, sign-in, catalog edits) are Signals.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError

from storeadmin.date_range import DateRange

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIVE_UPDATES_KEY = "liveUpdates"
DATE_RANGE_KEY = "dateRange"


class Signal:
    """Named broadcast with no payload beyond keyword arguments"""

    def __init__(self, name: str):
        self.name = name
        self._receivers: List[Callable[..., None]] = []

    def connect(self, receiver: Callable[..., None]) -> Callable[[], None]:
        self._receivers.append(receiver)

        def disconnect() -> None:
            if receiver in self._receivers:
                self._receivers.remove(receiver)

        return disconnect

    def send(self, **kwargs) -> None:
        logger.debug("Signal %s -> %d receiver(s)", self.name, len(self._receivers))
        for receiver in list(self._receivers):
            receiver(**kwargs)

    def __len__(self) -> int:
        return len(self._receivers)


class Observable(Generic[T]):
    def __init__(self, name: str, value: T, on_set: Optional[Callable[[T], None]] = None):
        self.name = name
        self._value = value
        self._on_set = on_set
        self._subscribers: List[Callable[[T], None]] = []

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        if self._on_set is not None:
            self._on_set(value)
        for callback in list(self._subscribers):
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def __len__(self) -> int:
        return len(self._subscribers)


class LocalStateFile:
    """Key/value JSON file. A missing or unreadable file reads as empty."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def put(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)


class SharedState:
    def __init__(self, store: LocalStateFile):
        self.store = store

        live = store.get(LIVE_UPDATES_KEY, True)
        self.live_updates: Observable[bool] = Observable(
            "liveUpdatesChanged",
            live if isinstance(live, bool) else True,
            on_set=lambda v: store.put(LIVE_UPDATES_KEY, v),
        )

        try:
            selected = DateRange.model_validate(store.get(DATE_RANGE_KEY) or {})
        except ValidationError:
            logger.warning("Stored date range is invalid, falling back to Today")
            selected = DateRange()
        self.date_range: Observable[DateRange] = Observable(
            "dateRangeChanged",
            selected,
            on_set=lambda v: store.put(DATE_RANGE_KEY, v.model_dump(mode="json")),
        )

        self.signed_out = Signal("signedOut")
        self.authenticated = Signal("authenticated")
        self.orders_mutated = Signal("ordersMutated")
