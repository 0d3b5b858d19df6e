"""
Term decoding.

A term is one operand of a rule: a constant, a switch channel, a
notification or a data path with an optional comparison. Terms are
written in a compact string grammar:

    off | false | 0 | ""                  constant 0
    on | true | 1                         constant 1
    [instance,channel]                    electrical.switches.bank.<i>.<c>.state
    [channel]                             electrical.switches.<c>.state
    notifications.<path>[:onstate[:offstate[:message[:method,...]]]]
    <path>                                value of path as 0/1
    <path>:<value>                        path equals value
    <path>:<comparator>:<value>           comparator in eq ne lt le gt ge
    <path>:<onvalue>:<offvalue>           output values for a path target
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .streams import Observable, SignalBundle, constant

logger = logging.getLogger(__name__)


class TermKind(Enum):
    """Kind of a decoded term."""
    OFF = "off"
    ON = "on"
    SWITCH = "switch"
    NOTIFICATION = "notification"
    PATH = "path"
    UNDEFINED = "undefined"


class Comparator(Enum):
    """Comparison applied between a signal value and a term's value."""
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"

    def apply(self, signal: Any, reference: Any) -> bool:
        """
        Compare signal against reference.

        Numeric signals are compared with the reference parsed as a number
        when it parses as one. Values that cannot be ordered against each
        other, such as a number and a word, never satisfy lt, le, gt or ge.
        """
        compare = _COMPARISONS[self]
        left, right = _coerce(signal, reference)
        try:
            return bool(compare(left, right))
        except TypeError:
            return False


_COMPARISONS = {
    Comparator.EQ: operator.eq,
    Comparator.NE: operator.ne,
    Comparator.LT: operator.lt,
    Comparator.LE: operator.le,
    Comparator.GT: operator.gt,
    Comparator.GE: operator.ge,
}

COMPARATOR_NAMES = tuple(c.value for c in Comparator)

OFF_WORDS = ("", "off", "false", "0")
ON_WORDS = ("on", "true", "1")

_BANK_SWITCH = re.compile(r"^\[(.+),(.+)\]$")
_SWITCH = re.compile(r"^\[(.+)\]$")

NOTIFICATION_PREFIX = "notifications."


def _coerce(signal: Any, reference: Any) -> Tuple[Any, Any]:
    if isinstance(signal, bool):
        signal = int(signal)
    if isinstance(signal, (int, float)) and isinstance(reference, str):
        try:
            return signal, float(reference)
        except ValueError:
            pass
    return signal, reference


def as_binary(value: Any) -> Optional[int]:
    """Return 0 or 1 for values that mean off/on, None for anything else."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value) if value in (0, 1) else None
    if isinstance(value, str) and value.strip() in ("0", "1"):
        return int(value.strip())
    return None


def _notification_state(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("state")
    return getattr(value, "state", None)


@dataclass
class Term:
    """
    Decoded rule operand.

    Which optional fields are populated depends on kind:
    - SWITCH: path, channel and, for banked switches, instance
    - NOTIFICATION: path, onstate, offstate, message, methods
    - PATH: path and either comparator+value or onvalue+offvalue
    """

    kind: TermKind
    path: Optional[str] = None
    instance: Optional[str] = None
    channel: Optional[str] = None
    onstate: Optional[str] = None
    offstate: Optional[str] = None
    message: Optional[str] = None
    methods: List[str] = field(default_factory=list)
    comparator: Optional[Comparator] = None
    value: Optional[str] = None
    onvalue: Optional[str] = None
    offvalue: Optional[str] = None
    text: Optional[str] = field(default=None, repr=False, compare=False)
    _stream: Optional[Observable] = field(
        default=None, init=False, repr=False, compare=False
    )

    def is_valid(self) -> bool:
        return self.kind is not TermKind.UNDEFINED

    def get_stream(self, bundle: SignalBundle) -> Optional[Observable]:
        """
        Return the term's observable boolean, building it on first call.

        The stream only carries 0 and 1 and never repeats a value.

        Returns:
            The stream, or None for an undefined term.
        """
        if self._stream is None and self.is_valid():
            self._stream = (
                self._build_stream(bundle)
                .map(as_binary)
                .filter(lambda v: v is not None)
                .skip_duplicates()
            )
        return self._stream

    def _build_stream(self, bundle: SignalBundle) -> Observable:
        kind = self.kind

        if kind is TermKind.OFF:
            return constant(0).do_action(
                lambda v: logger.debug("off stream issuing %s", v)
            )

        if kind is TermKind.ON:
            return constant(1).do_action(
                lambda v: logger.debug("on stream issuing %s", v)
            )

        source = bundle.get_stream(self.path)

        if kind is TermKind.NOTIFICATION:
            onstate = self.onstate

            def active(value: Any) -> int:
                if value is None:
                    return 0
                if onstate is None:
                    return 1
                return 1 if _notification_state(value) == onstate else 0

            return source.map(active).to_property(0).do_action(
                lambda v: logger.debug("notification stream %s issuing %s", self.path, v)
            )

        if kind is TermKind.SWITCH:
            return source.to_property(0).do_action(
                lambda v: logger.debug("switch stream %s issuing %s", self.path, v)
            )

        if kind is TermKind.PATH:
            if self.comparator is None:
                return source.to_property(0).do_action(
                    lambda v: logger.debug("path stream %s issuing %s", self.path, v)
                )
            comparator, reference = self.comparator, self.value
            return source.map(
                lambda v: 0 if v is None else int(comparator.apply(v, reference))
            ).do_action(
                lambda v: logger.debug(
                    "path stream %s %s %s issuing %s",
                    self.path, comparator.value, reference, v
                )
            )

        raise ValueError(f"No stream for term kind {kind}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting unset fields."""
        data: Dict[str, Any] = {"type": self.kind.value}
        for name in (
            "path", "instance", "channel", "onstate", "offstate",
            "message", "value", "onvalue", "offvalue",
        ):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.methods:
            data["methods"] = list(self.methods)
        if self.comparator is not None:
            data["comparator"] = self.comparator.value
        return data


def decode_term(text: Optional[str]) -> Term:
    """
    Decode a term string.

    Grammar branches are tried in order and the first match wins. A
    string that fits no branch decodes to a TermKind.UNDEFINED term.

    Args:
        text: The term as written in a rule.

    Returns:
        The decoded Term.
    """
    if text is None:
        return Term(kind=TermKind.OFF)

    text = text.strip()
    term = _decode(text)
    term.text = text
    return term


def _decode(text: str) -> Term:
    if text in OFF_WORDS:
        return Term(kind=TermKind.OFF)

    if text in ON_WORDS:
        return Term(kind=TermKind.ON)

    match = _BANK_SWITCH.match(text)
    if match:
        instance, channel = match.groups()
        return Term(
            kind=TermKind.SWITCH,
            instance=instance,
            channel=channel,
            path=f"electrical.switches.bank.{instance}.{channel}.state",
        )

    match = _SWITCH.match(text)
    if match:
        channel = match.group(1)
        return Term(
            kind=TermKind.SWITCH,
            channel=channel,
            path=f"electrical.switches.{channel}.state",
        )

    if text.startswith(NOTIFICATION_PREFIX):
        return _decode_notification(text)

    return _decode_path(text)


def _decode_notification(text: str) -> Term:
    """Decode notifications.<path>[:onstate[:offstate[:message[:methods]]]]."""
    parts = [part or None for part in text.split(":")]
    path = parts[0]

    if len(parts) == 1:
        return Term(kind=TermKind.NOTIFICATION, path=path)

    if len(parts) == 2:
        return Term(kind=TermKind.NOTIFICATION, path=path, onstate=parts[1])

    if len(parts) == 3:
        return Term(
            kind=TermKind.NOTIFICATION,
            path=path,
            onstate=parts[1],
            offstate=parts[2],
        )

    if len(parts) == 4:
        return Term(
            kind=TermKind.NOTIFICATION,
            path=path,
            onstate=parts[1],
            offstate=parts[2],
            message=parts[3],
        )

    if len(parts) == 5:
        methods = [m.strip() for m in (parts[4] or "").split(",") if m.strip()]
        return Term(
            kind=TermKind.NOTIFICATION,
            path=path,
            onstate=parts[1],
            offstate=parts[2],
            message=parts[3],
            methods=methods,
        )

    logger.debug("too many segments in notification term '%s'", text)
    return Term(kind=TermKind.UNDEFINED)


def _decode_path(text: str) -> Term:
    """Decode <path>[:value] and <path>:<comparator|onvalue>:<value|offvalue>."""
    parts = text.split(":")

    if not parts[0] or len(parts) > 3:
        logger.debug("cannot decode path term '%s'", text)
        return Term(kind=TermKind.UNDEFINED)

    if len(parts) == 1:
        return Term(kind=TermKind.PATH, path=parts[0])

    if len(parts) == 2:
        return Term(
            kind=TermKind.PATH,
            path=parts[0],
            comparator=Comparator.EQ,
            value=parts[1],
        )

    if parts[1] in COMPARATOR_NAMES:
        return Term(
            kind=TermKind.PATH,
            path=parts[0],
            comparator=Comparator(parts[1]),
            value=parts[2],
        )

    return Term(
        kind=TermKind.PATH,
        path=parts[0],
        onvalue=parts[1],
        offvalue=parts[2],
    )
