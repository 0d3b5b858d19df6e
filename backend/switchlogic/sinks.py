"""
Output and status sinks.

The host platform delivers rule outputs and status reports through these
interfaces. Outputs go either as delta updates (notify) or as write
requests (put) acknowledged through a callback.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

PutCallback = Callable[[Dict[str, Any]], None]


class OutputSink(ABC):
    """Destination for rule output values."""

    @abstractmethod
    def notify(self, path: str, value: Any, source: str) -> None:
        """Publish value on path as an update issued by source."""
        ...

    @abstractmethod
    def put(self, path: str, value: Any, callback: PutCallback) -> None:
        """Request a write of value to path; callback receives the response."""
        ...


class StatusSink(ABC):
    """Destination for operator-facing status and error messages."""

    @abstractmethod
    def status(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...



class LoggingStatus(StatusSink):
    """StatusSink that writes to the module logger."""

    def __init__(self, name: str = "switchlogic"):
        self.name = name
        self.last_status: Optional[str] = None
        self.last_error: Optional[str] = None

    def status(self, message: str) -> None:
        self.last_status = message
        logger.info("%s: %s", self.name, message)

    def error(self, message: str) -> None:
        self.last_error = message
        logger.error("%s: %s", self.name, message)


def make_delta(
    source: Optional[str],
    pairs: Union[Dict[str, Any], Iterable[Dict[str, Any]]],
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a delta update message.

    Args:
        source: Name of the issuing entity ("anon" if empty).
        pairs: A single {"path", "value"} dict or an iterable of them.
        timestamp: ISO timestamp; defaults to now (UTC).

    Returns:
        Delta with a single update carrying every pair.
    """
    if isinstance(pairs, dict):
        pairs = [pairs]
    if timestamp is None:
        timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    return {
        "updates": [{
            "source": {"type": "plugin", "src": source or "anon"},
            "timestamp": timestamp,
            "values": [{"path": p["path"], "value": p["value"]} for p in pairs],
        }]
    }


class DeltaSink(OutputSink):
    """
    OutputSink backed by host message handlers.

    Args:
        handle_message: Called with (source, delta) for every notify.
        put_self_path: Called with (path, value, callback) for every put.
            Without it, puts are answered with a 405 response.
    """

    def __init__(
        self,
        handle_message: Callable[[str, Dict[str, Any]], None],
        put_self_path: Optional[Callable[[str, Any, PutCallback], None]] = None,
    ):
        self.handle_message = handle_message
        self.put_self_path = put_self_path

    def notify(self, path: str, value: Any, source: str) -> None:
        self.handle_message(source, make_delta(source, {"path": path, "value": value}))

    def put(self, path: str, value: Any, callback: PutCallback) -> None:
        if self.put_self_path is None:
            callback({
                "state": "COMPLETED",
                "statusCode": 405,
                "message": f"no put handler for {path}",
            })
            return
        self.put_self_path(path, value, callback)


class RecordingSink(OutputSink):
    """OutputSink that keeps every output in memory, in order."""

    def __init__(self, put_response: Optional[Dict[str, Any]] = None):
        self.put_response = put_response or {"state": "COMPLETED", "statusCode": 200}
        self.outputs: List[Dict[str, Any]] = []

    def notify(self, path: str, value: Any, source: str) -> None:
        self.outputs.append({"mode": "notify", "path": path, "value": value, "source": source})

    def put(self, path: str, value: Any, callback: PutCallback) -> None:
        self.outputs.append({"mode": "put", "path": path, "value": value})
        callback(self.put_response)

    def values(self, path: Optional[str] = None) -> List[Any]:
        return [o["value"] for o in self.outputs if path is None or o["path"] == path]

    def clear(self) -> None:
        self.outputs.clear()
