"""
switchlogic: boolean rule engine over live signal values.

Rules combine signal terms with not/and/or and drive switch, notification
and path outputs whenever the combined input disagrees with the output.
"""

from .logic import ExpressionError, ExpressionEvaluator, ExpressionParser
from .models import ConfigError, RuleConfig, SwitchLogicConfig, load_config
from .rules import Action, Rule, RuleEngine, RuleError, compute_action, output_value
from .sinks import DeltaSink, LoggingStatus, OutputSink, RecordingSink, StatusSink, make_delta
from .streams import Observable, SignalBundle, SignalSource, Subscription, constant
from .terms import Comparator, Term, TermKind, decode_term

__version__ = "1.0.0"
__all__ = [
    # Logic
    "ExpressionError",
    "ExpressionEvaluator",
    "ExpressionParser",
    # Configuration
    "ConfigError",
    "RuleConfig",
    "SwitchLogicConfig",
    "load_config",
    # Rules
    "Action",
    "Rule",
    "RuleEngine",
    "RuleError",
    "compute_action",
    "output_value",
    # Sinks
    "DeltaSink",
    "LoggingStatus",
    "OutputSink",
    "RecordingSink",
    "StatusSink",
    "make_delta",
    # Streams
    "Observable",
    "SignalBundle",
    "SignalSource",
    "Subscription",
    "constant",
    # Terms
    "Comparator",
    "Term",
    "TermKind",
    "decode_term",
]
