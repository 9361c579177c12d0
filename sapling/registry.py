"""Behavior slots and the override mechanism.

A capable node keeps its private behaviors in a single frozen Behaviors
value under a hidden slot. Public methods never change; they look up the
behavior that is installed at call time. Overriding a slot returns a new
node carrying a new Behaviors value, the original node keeps its own.
"""

import logging
from dataclasses import fields, replace
from typing import Any, Callable, Optional

from sapling.diagnostics import Outcome, Violation, refuse
from sapling.fn import assoc
from sapling.types import BEHAVIORS_SLOT, Behaviors, Policy

logger = logging.getLogger(__name__)

SLOTS = tuple(f.name for f in fields(Behaviors))


def behaviors_of(node: Any) -> Optional[Behaviors]:
    """The Behaviors installed on `node`, or None."""
    return getattr(node, "__dict__", {}).get(BEHAVIORS_SLOT)


def has_slot(node: Any, slot: str) -> bool:
    behaviors = behaviors_of(node)
    return behaviors is not None and slot in behaviors.slots()


def install(node: Any, behaviors: Behaviors) -> Any:
    """Copy of `node` carrying `behaviors`."""
    return assoc(node, BEHAVIORS_SLOT, behaviors)


def try_override(slot: str, policy: Optional[Policy] = None
                 ) -> Callable[[Callable], Callable[[Any], Outcome]]:
    """override(slot)(replacement)(node) with an explicit Outcome."""
    def with_replacement(replacement: Callable) -> Callable[[Any], Outcome]:
        def apply(node: Any) -> Outcome:
            if slot not in SLOTS:
                return refuse(node, "override", Violation.CONFIGURATION_NOOP,
                              f"{slot!r} is not a behavior slot (expected one of {SLOTS})",
                              policy)
            if not has_slot(node, slot):
                return refuse(node, "override", Violation.CONFIGURATION_NOOP,
                              f"{slot!r} behavior does not exist on {type(node).__name__}",
                              policy)
            logger.debug(f"Overriding {slot} behavior on {type(node).__name__}")
            new_behaviors = replace(behaviors_of(node), **{slot: replacement})
            return Outcome(install(node, new_behaviors))
        return apply
    return with_replacement


def override(slot: str, policy: Optional[Policy] = None
             ) -> Callable[[Callable], Callable[[Any], Any]]:
    """Replace the `slot` behavior of a node, keeping its public wrapper.

    Usage:
        node = override("propagate")(lambda result: result)(node)
    """
    def with_replacement(replacement: Callable) -> Callable[[Any], Any]:
        attempt = try_override(slot, policy)(replacement)
        return lambda node: attempt(node).value
    return with_replacement
