"""Soft-failure diagnostics for capability operations.

Invariants:
    - A precondition failure never mutates or replaces its input: the
      operation's Outcome carries the unchanged value plus a Diagnostic.
    - Every Diagnostic is logged at WARNING on the sapling logger tree.
    - Nothing is raised unless the caller asks for it, either through
      Outcome.unwrap() or Policy.strict.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from sapling.types import Policy, resolve_policy

logger = logging.getLogger(__name__)


class Violation(str, Enum):
    """Categories of soft failure."""
    PRECONDITION = "precondition_violation"
    CONFIGURATION_NOOP = "configuration_noop"


@dataclass(frozen=True)
class Diagnostic:
    """Which operation refused to act, and why."""
    operation: str
    violation: Violation
    message: str

    def __str__(self) -> str:
        return f"{self.operation}: {self.message}"

    def to_json(self) -> Dict[str, str]:
        return {
            "operation": self.operation,
            "violation": self.violation.value,
            "message": self.message,
        }


class CapabilityError(Exception):
    """A diagnostic escalated to an exception."""

    def __init__(self, diagnostic: Diagnostic):
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic


@dataclass(frozen=True)
class Outcome:
    """Result of a capability operation.

    value is always usable: on failure it is the unchanged input.
    """
    value: Any
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def unwrap(self) -> Any:
        if self.diagnostics:
            raise CapabilityError(self.diagnostics[0])
        return self.value

    def merge(self, other: "Outcome") -> "Outcome":
        """Outcome holding other's value and the diagnostics of both."""
        return Outcome(other.value, self.diagnostics + other.diagnostics)


def diagnose(operation: str, violation: Violation, message: str,
             policy: Optional[Policy] = None) -> Diagnostic:
    """Record a soft failure: log it, or raise it under a strict policy."""
    diagnostic = Diagnostic(operation, violation, message)
    if resolve_policy(policy).strict:
        raise CapabilityError(diagnostic)
    logger.warning(f"{diagnostic} ({violation.value})")
    return diagnostic


def refuse(value: Any, operation: str, violation: Violation, message: str,
           policy: Optional[Policy] = None) -> Outcome:
    """Outcome returning `value` unchanged with a single diagnostic."""
    return Outcome(value, (diagnose(operation, violation, message, policy),))
