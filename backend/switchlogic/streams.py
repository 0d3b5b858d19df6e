"""
Observable values for live signal data.

Provides a small push-based stream model used by terms and rules:
- SignalSource: the latest value of one signal path, pushed by the host
- SignalBundle: provider of SignalSources keyed by dot-separated path
- Observable combinators: map, filter, skip_duplicates, to_property,
  combine, do_action

Streams are lazy. Nothing flows until a subscriber attaches, and every
subscription owns its own combinator state.

Every SignalSource.push runs as one transaction. A combined stream whose
sides both change during the push emits once, after the push has reached
every subscriber, so it never pairs a new value with a stale one.
"""

from __future__ import annotations

import heapq
import itertools
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Set, Tuple

_NOTHING = object()

Callback = Callable[[Any], None]


class _UpdateBarrier:
    """
    Holds back combined emissions until the current push has settled.

    Pending flushes run lowest depth first, so an inner combine settles
    before any combine built on top of it. Pushes issued while a
    transaction is open are queued and run as their own transactions.
    """

    def __init__(self):
        self.active = False
        self._pending: List[Tuple[int, int, Callable[[], None]]] = []
        self._scheduled: Set[Callable[[], None]] = set()
        self._deferred: Deque[Callable[[], None]] = deque()
        self._order = itertools.count()

    def schedule(self, depth: int, flush: Callable[[], None]) -> None:
        """Run flush once before the current transaction ends."""
        if flush in self._scheduled:
            return
        self._scheduled.add(flush)
        heapq.heappush(self._pending, (depth, next(self._order), flush))

    def run(self, action: Callable[[], None]) -> None:
        if self.active:
            self._deferred.append(action)
            return

        self.active = True
        try:
            action()
            while self._pending:
                _, _, flush = heapq.heappop(self._pending)
                self._scheduled.discard(flush)
                flush()
        finally:
            self.active = False
            self._pending.clear()
            self._scheduled.clear()

        while self._deferred:
            self.run(self._deferred.popleft())


_barrier = _UpdateBarrier()


class Subscription:
    """Handle returned by subscribe(); disposing it more than once is a no-op."""

    def __init__(self, dispose: Optional[Callable[[], None]] = None):
        self._dispose = dispose
        self.disposed = False

    def dispose(self) -> None:
        """Detach the subscriber from its source."""
        if self.disposed:
            return
        self.disposed = True
        dispose, self._dispose = self._dispose, None
        if dispose is not None:
            dispose()

    __call__ = dispose


class Observable(ABC):
    """
    Base class for push-based value streams.

    Subclasses implement subscribe(); everything else is built on it.
    depth counts the combines between the stream and its sources.
    """

    depth = 0

    @abstractmethod
    def subscribe(self, callback: Callback) -> Subscription:
        """Attach callback and return the handle that detaches it."""
        ...

    def on_value(self, callback: Callback) -> Subscription:
        """Alias of subscribe() for side-effecting consumers."""
        return self.subscribe(callback)

    def map(self, fn: Callable[[Any], Any]) -> "Observable":
        def connect(callback: Callback) -> Subscription:
            return self.subscribe(lambda value: callback(fn(value)))
        return _Derived(connect, self.depth)

    def filter(self, predicate: Callable[[Any], bool]) -> "Observable":
        def connect(callback: Callback) -> Subscription:
            def forward(value: Any) -> None:
                if predicate(value):
                    callback(value)
            return self.subscribe(forward)
        return _Derived(connect, self.depth)

    def do_action(self, fn: Callable[[Any], None]) -> "Observable":
        """Run fn for every value before passing it on unchanged."""
        def connect(callback: Callback) -> Subscription:
            def forward(value: Any) -> None:
                fn(value)
                callback(value)
            return self.subscribe(forward)
        return _Derived(connect, self.depth)

    def skip_duplicates(self) -> "Observable":
        """Drop values equal to the previous value seen by this subscription."""
        def connect(callback: Callback) -> Subscription:
            last = _NOTHING

            def forward(value: Any) -> None:
                nonlocal last
                if last is not _NOTHING and last == value:
                    return
                last = value
                callback(value)
            return self.subscribe(forward)
        return _Derived(connect, self.depth)

    def to_property(self, initial: Any) -> "Observable":
        """
        Give the stream a current value.

        If the upstream does not deliver a value synchronously on
        subscription, the subscriber receives initial instead.
        """
        def connect(callback: Callback) -> Subscription:
            delivered = False

            def forward(value: Any) -> None:
                nonlocal delivered
                delivered = True
                callback(value)
            subscription = self.subscribe(forward)
            if not delivered:
                callback(initial)
            return subscription
        return _Derived(connect, self.depth)

    def combine(
        self,
        other: "Observable",
        fn: Callable[[Any, Any], Any]
    ) -> "Observable":
        """
        Combine the latest values of two streams.

        Emits fn(latest_self, latest_other) once both sides have produced
        a value, and then once per push that changes either side or both.
        """
        depth = max(self.depth, other.depth) + 1

        def connect(callback: Callback) -> Subscription:
            latest = [_NOTHING, _NOTHING]
            connecting = True
            closed = False

            def flush() -> None:
                if closed:
                    return
                if latest[0] is not _NOTHING and latest[1] is not _NOTHING:
                    callback(fn(latest[0], latest[1]))

            def update(index: int, value: Any) -> None:
                latest[index] = value
                if _barrier.active and not connecting:
                    _barrier.schedule(depth, flush)
                else:
                    flush()

            first = self.subscribe(lambda value: update(0, value))
            second = other.subscribe(lambda value: update(1, value))
            connecting = False

            def dispose() -> None:
                nonlocal closed
                closed = True
                first.dispose()
                second.dispose()
            return Subscription(dispose)
        return _Derived(connect, depth)


class _Derived(Observable):
    """Observable defined by a connect function."""

    def __init__(self, connect: Callable[[Callback], Subscription], depth: int = 0):
        self._connect = connect
        self.depth = depth

    def subscribe(self, callback: Callback) -> Subscription:
        return self._connect(callback)


class _Constant(Observable):
    def __init__(self, value: Any):
        self.value = value

    def subscribe(self, callback: Callback) -> Subscription:
        callback(self.value)
        return Subscription()

    def __repr__(self) -> str:
        return f"constant({self.value!r})"


def constant(value: Any) -> Observable:
    """Return a stream that delivers value once to every subscriber."""
    return _Constant(value)


class SignalSource(Observable):
    """
    Live value of one signal path.

    The source remembers the last pushed value and replays it to late
    subscribers, so a subscriber always starts from the current state.
    """

    def __init__(self, path: str):
        self.path = path
        self._subscribers: List[Callback] = []
        self._value: Any = _NOTHING

    @property
    def value(self) -> Any:
        """Latest pushed value, or None before the first update."""
        return None if self._value is _NOTHING else self._value

    @property
    def has_value(self) -> bool:
        return self._value is not _NOTHING

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def push(self, value: Any) -> None:
        """
        Publish a new value to every current subscriber.

        A push made while another push is propagating runs after it.
        """
        def deliver() -> None:
            self._value = value
            for callback in list(self._subscribers):
                callback(value)
        _barrier.run(deliver)

    def subscribe(self, callback: Callback) -> Subscription:
        self._subscribers.append(callback)

        def dispose() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        subscription = Subscription(dispose)
        if self._value is not _NOTHING:
            callback(self._value)
        return subscription

    def __repr__(self) -> str:
        return f"SignalSource({self.path!r})"


class SignalBundle:
    """
    Provider of live signal streams keyed by path.

    The host feeds values in through update(); terms read them through
    get_stream().
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._sources: Dict[str, SignalSource] = {}
        for path, value in (values or {}).items():
            self.update(path, value)

    def get_stream(self, path: str) -> SignalSource:
        """Return the source for path, creating it on first use."""
        source = self._sources.get(path)
        if source is None:
            source = SignalSource(path)
            self._sources[path] = source
        return source

    def update(self, path: str, value: Any) -> None:
        self.get_stream(path).push(value)

    def value(self, path: str) -> Any:
        source = self._sources.get(path)
        return source.value if source else None

    def paths(self) -> Iterator[str]:
        return iter(sorted(self._sources))
