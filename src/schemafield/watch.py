"""Explicit subscription table replacing ambient reactivity."""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from schemafield.structural import MISSING, get_path, structurally_equal

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from schemafield.typing.enums import WatchSource


@dataclass
class Subscription:
    """One observed path of one source document."""

    source: WatchSource
    path: str
    callback: Callable[[Any], None]
    last_value: Any = field(default=MISSING)


class WatchTable:
    """Observed path -> callbacks, with callbacks deferred until `flush`.

    Registering and checking only update the table and queue callbacks; nothing
    runs before `flush`, so a reconciliation pass always completes before any of
    the callbacks it triggered can observe the model.
    """

    def __init__(self, sources: Mapping[WatchSource, Callable[[], Any]]) -> None:
        """Initialize table.

        Args:
            sources (Mapping[WatchSource, Callable[[], Any]]): Getter of each observable document.
        """
        self._sources = dict(sources)
        self._subscriptions: list[Subscription] = []
        self._pending: deque[tuple[Callable[[Any], None], Any]] = deque()

    def __len__(self) -> int:
        return len(self._subscriptions)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _read(self, source: WatchSource, path: str) -> Any:  # noqa: ANN401
        return get_path(self._sources[source](), path)

    def clear(self) -> None:
        """Drop every subscription and queued callback."""
        self._subscriptions.clear()
        self._pending.clear()

    def watch(
        self,
        source: WatchSource,
        path: str,
        callback: Callable[[Any], None],
        *,
        immediate: bool = True,
    ) -> Subscription:
        """Subscribe to a path.

        Args:
            source (WatchSource): Observed document.
            path (str): Dotted path inside the document.
            callback (Callable[[Any], None]): Receives the new value (None when absent).
            immediate (bool): Queue one call with the current value.

        Returns:
            Subscription: Registered subscription.
        """
        value = self._read(source, path)
        subscription = Subscription(source=source, path=path, callback=callback, last_value=copy.deepcopy(value))
        self._subscriptions.append(subscription)
        if immediate:
            self._pending.append((callback, value))
        return subscription

    def check(self, source: WatchSource | None = None) -> int:
        """Queue callbacks of subscriptions whose value changed since last seen.

        Args:
            source (WatchSource | None): Restrict the check to one document.

        Returns:
            int: Number of callbacks queued.
        """
        queued = 0
        for subscription in self._subscriptions:
            if source is not None and subscription.source != source:
                continue
            value = self._read(subscription.source, subscription.path)
            if structurally_equal(value, subscription.last_value):
                continue
            subscription.last_value = copy.deepcopy(value)
            self._pending.append((subscription.callback, value))
            queued += 1
        return queued

    def flush(self) -> int:
        """Run queued callbacks in order, including callbacks queued while flushing.

        Returns:
            int: Number of callbacks run.
        """
        ran = 0
        while self._pending:
            callback, value = self._pending.popleft()
            callback(None if value is MISSING else value)
            ran += 1
        return ran
