"""
Rules and the rule engine.

A rule pairs an input expression with an output term and drives the
output towards agreement with the input: it acts only when the two
disagree, and only in the direction that removes the disagreement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .logic import ExpressionParser, boolean_operators
from .models import ConfigError, RuleConfig, SwitchLogicConfig
from .sinks import LoggingStatus, OutputSink, StatusSink
from .streams import Observable, SignalBundle, Subscription
from .terms import Term, TermKind, decode_term

logger = logging.getLogger(__name__)

PLUGIN_ID = "switchlogic"


class RuleError(RuntimeError):
    """Raised when a rule cannot derive an output value."""


class Action(Enum):
    """What a rule does on a joint input/output update."""
    NONE = -1
    TURN_OFF = 0
    TURN_ON = 1


def compute_action(input_value: Any, output_value: Any) -> Action:
    """
    Decide the action for the latest (input, output) pair.

    Input 1 with output 0 turns the output on; input 0 with output not 0
    turns it off; every other pair needs nothing.
    """
    if input_value == 1 and output_value == 0:
        return Action.TURN_ON
    if input_value == 0 and output_value != 0:
        return Action.TURN_OFF
    return Action.NONE


def output_value(term: Term, action: Action) -> Optional[Any]:
    """
    Derive the value to send to an output term for an action.

    Returns:
        The value, or None when there is nothing to send.

    Raises:
        RuleError: If the term kind cannot be an output.
    """
    if action is Action.NONE:
        return None

    on = action is Action.TURN_ON

    if term.kind is TermKind.SWITCH:
        return 1 if on else 0

    if term.kind is TermKind.NOTIFICATION:
        if on:
            return {
                "state": term.onstate or "normal",
                "message": f"{term.message} (ON)" if term.message else "ON state",
                "method": list(term.methods),
            }
        if not term.offstate:
            return None
        return {
            "state": term.offstate,
            "message": f"{term.message} (OFF)" if term.message else "OFF state",
            "method": list(term.methods),
        }

    if term.kind is TermKind.PATH:
        if on:
            return term.onvalue if term.onvalue else 1
        return term.offvalue if term.offvalue else 0

    raise RuleError(f"bad output type ({term.kind.value})")


@dataclass
class Rule:
    """
    An input expression driving an output term.

    Attributes:
        input_expression: Infix logic expression over terms.
        output: Decoded output term.
        description: Label used in status and error messages.
        use_put: Deliver outputs as put requests instead of delta updates.
    """

    input_expression: str
    output: Term
    description: str = ""
    use_put: bool = False
    source: str = PLUGIN_ID
    _subscription: Optional[Subscription] = field(
        default=None, init=False, repr=False, compare=False
    )
    _status: Optional[StatusSink] = field(
        default=None, init=False, repr=False, compare=False
    )
    _sink: Optional[OutputSink] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not self.description:
            self.description = f"{self.input_expression} => {self.output_text}"

    @property
    def output_text(self) -> str:
        return self.output.text or self.output.path or self.output.kind.value

    @property
    def active(self) -> bool:
        return self._subscription is not None and not self._subscription.disposed

    def actions(self, parser: ExpressionParser, bundle: SignalBundle) -> Optional[Observable]:
        """
        Build the action stream for this rule.

        Returns:
            Stream of Action values, or None if either side cannot be built.
        """
        input_stream = parser.parse_expression(self.input_expression)
        output_stream = self.output.get_stream(bundle)
        logger.debug(
            "rule %s: input stream = %s, output stream = %s",
            self.description, input_stream, output_stream
        )
        if input_stream is None or output_stream is None:
            return None
        return input_stream.combine(output_stream, compute_action)

    def activate(
        self,
        parser: ExpressionParser,
        bundle: SignalBundle,
        sink: OutputSink,
        status: StatusSink,
    ) -> bool:
        """
        Subscribe the rule to its inputs and output.

        Returns:
            True if the rule is now running.
        """
        if self.active:
            return True

        actions = self.actions(parser, bundle)
        if actions is None:
            return False

        self._sink = sink
        self._status = status
        self._subscription = actions.on_value(self.apply)
        return True

    def deactivate(self) -> None:
        """Unsubscribe the rule. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def apply(self, action: Action) -> None:
        """Carry out an action against the rule's output."""
        if action is Action.NONE:
            return

        status = self._status or LoggingStatus()
        status.status(
            f"switching {self.description} "
            f"{'ON' if action is Action.TURN_ON else 'OFF'}"
        )

        try:
            value = output_value(self.output, action)
        except RuleError as e:
            status.error(f"internal error - {e} on rule {self.description}")
            return

        if value is None:
            logger.debug("rule %s: nothing to send for %s", self.description, action.name)
            return

        self._send(value, status)

    def _send(self, value: Any, status: StatusSink) -> None:
        path = self.output.path
        try:
            if self.use_put:
                logger.debug("issuing put request (%s <= %s)", path, value)
                self._sink.put(path, value, self._on_put_response)
            else:
                logger.debug("issuing delta update (%s <= %s)", path, value)
                self._sink.notify(path, value, self.source)
        except Exception as e:
            status.error(f"output to {path} failed on rule {self.description}: {e}")

    def _on_put_response(self, response: Dict[str, Any]) -> None:
        logger.debug("put response: %s", response)


class RuleEngine:
    """
    Runs a set of configured rules against live signal data.

    Provides the plugin lifecycle: start() activates every rule that
    decodes and compiles, stop() tears every subscription down.
    """

    def __init__(
        self,
        bundle: SignalBundle,
        sink: OutputSink,
        status: Optional[StatusSink] = None,
        source: str = PLUGIN_ID,
    ):
        self.bundle = bundle
        self.sink = sink
        self.status = status or LoggingStatus(source)
        self.source = source
        self.parser = ExpressionParser(boolean_operators(self._resolve_operand))
        self.rules: List[Rule] = []
        self.dropped: List[str] = []

    @property
    def running(self) -> bool:
        return bool(self.rules)

    def _resolve_operand(self, token: str) -> Optional[Observable]:
        term = decode_term(token)
        if not term.is_valid():
            logger.warning("cannot decode term '%s'", token)
            return None
        return term.get_stream(self.bundle)

    def start(
        self,
        config: Union[SwitchLogicConfig, Dict[str, Any], None]
    ) -> List[Rule]:
        """
        Activate the configured rules.

        Rules that fail validation, decoding or compilation are reported
        and skipped; they never stop the others from running.

        Returns:
            The rules now running.
        """
        self.stop()
        self.dropped = []

        if not isinstance(config, SwitchLogicConfig):
            try:
                config, dropped = SwitchLogicConfig.from_dict(config)
            except ConfigError as e:
                self.status.error(f"invalid configuration: {e}")
                return self.rules
            for message in dropped:
                self._drop(message)

        if not config.rules:
            self.status.error("configuration 'rules' property is missing or empty")
            return self.rules

        count = len(config.rules)
        self.status.status(f"Operating {count} rule{'' if count == 1 else 's'}")

        for rule_config in config.rules:
            rule = self.build_rule(rule_config, config.use_put)
            if rule is None:
                continue
            if rule.activate(self.parser, self.bundle, self.sink, self.status):
                logger.debug("enabled rule %s", rule.description)
                self.rules.append(rule)
            else:
                self._drop(f"ignoring badly formed rule ({rule.description})")

        return self.rules

    def build_rule(
        self,
        rule_config: RuleConfig,
        use_put_prefixes: Optional[List[str]] = None
    ) -> Optional[Rule]:
        """
        Build an inactive Rule from its configuration.

        Returns:
            The rule, or None if its output term cannot be decoded.
        """
        output = decode_term(rule_config.output)
        if not output.is_valid():
            self._drop(f"cannot decode output '{rule_config.output}'")
            return None

        prefixes = use_put_prefixes or []
        use_put = rule_config.use_put or any(
            output.path and output.path.startswith(prefix) for prefix in prefixes
        )
        return Rule(
            input_expression=rule_config.input,
            output=output,
            description=rule_config.description or "",
            use_put=use_put,
            source=self.source,
        )

    def stop(self) -> None:
        """Deactivate every running rule. Safe to call more than once."""
        for rule in self.rules:
            rule.deactivate()
        self.rules = []

    def _drop(self, message: str) -> None:
        self.dropped.append(message)
        logger.warning("Dropping rule (%s)", message)
