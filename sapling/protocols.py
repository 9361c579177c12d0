"""Sapling capabilities as Python mixin classes.

Three layers, each gated on the one before:
    1. Commutes          - commit(updater) returns a new node with updated state
    2. Propagates        - every commit result is passed through propagate
    3. TracksPropagation - a parent wires its children's propagate so that
                           committing a child returns a new parent

Attaching a capability never mutates its target. It returns a shallow copy
whose class is a generated subclass of the target's class with the
capability mixed in, so `isinstance(node, Commutes)` tells whether a node
can commit. Generated classes keep the name of the class they extend.

Each construction operation comes in two forms: `try_attach` returns an
Outcome carrying diagnostics, `attach` returns the node alone. A failed
precondition logs a warning and hands back the input unchanged.
"""

import logging
import types
from collections.abc import Mapping
from dataclasses import replace
from functools import lru_cache
from typing import Any, Callable, Iterable, Optional, Tuple

from sapling import registry
from sapling.diagnostics import Outcome, Violation, refuse
from sapling.fn import (
    all_of, append, assoc, dissoc, fold, has_key, identity, negate, pipe,
    retype, when,
)
from sapling.types import (
    LEDGER_SLOT, Behaviors, Capabilities, Policy, TrackedChild,
    DEFAULT_PROPAGATE, child_handle, default_commit, resolve_policy,
)

logger = logging.getLogger(__name__)


def _is_mapping(node: Any) -> bool:
    return isinstance(node, Mapping)


# Fields must live in an instance __dict__ for structural updates.
_is_record = all_of(negate(_is_mapping), has_key("__dict__"))
_has_state = has_key("state")


@lru_cache(maxsize=None)
def _capable_class(capability: type, base: type) -> type:
    if issubclass(base, capability):
        return base

    def body(ns):
        ns["__module__"] = base.__module__
        ns["__qualname__"] = base.__qualname__

    return types.new_class(base.__name__, (capability, base), exec_body=body)


def _augment(node: Any, capability: type) -> Any:
    return retype(node, _capable_class(capability, type(node)))


# ============================================================
# Layer 1: Commutes
# ============================================================

class Commutes:
    """A node "commutes" when its state is exchanged rather than mutated.

    `commit(updater)` returns a new node whose state is `updater(state)`.
    The public method is a fixed delegator to the commit behavior installed
    on the node, which `Commutes.override` can replace.
    """

    def commit(self, updater: Callable[[Any], Any]) -> Any:
        return registry.behaviors_of(self).commit(self, updater)

    @staticmethod
    def try_attach(node: Any, policy: Optional[Policy] = None) -> Outcome:
        policy = resolve_policy(policy)
        if not _is_record(node):
            return refuse(node, "Commutes", Violation.PRECONDITION,
                          f"target must keep its fields as attributes, got {type(node).__name__}",
                          policy)
        if not _has_state(node):
            return refuse(node, "Commutes", Violation.PRECONDITION,
                          "target must have a state key", policy)
        if isinstance(node, Commutes):
            if policy.guard_reattach:
                return refuse(node, "Commutes", Violation.PRECONDITION,
                              "target is already Commutes", policy)
            logger.warning(f"Commutes: re-attaching to {type(node).__name__}, "
                           f"commit behavior is reset")
        previous = registry.behaviors_of(node)
        propagate = previous.propagate if previous is not None else None
        capable = registry.install(_augment(node, Commutes),
                                   Behaviors(commit=default_commit, propagate=propagate))
        logger.debug(f"Attached Commutes to {type(node).__name__}")
        return Outcome(capable)

    @staticmethod
    def attach(node: Any, policy: Optional[Policy] = None) -> Any:
        return Commutes.try_attach(node, policy).value

    @staticmethod
    def override(replacement: Callable[[Any, Callable], Any],
                 policy: Optional[Policy] = None) -> Callable[[Any], Any]:
        """Replace the commit behavior: replacement(node, updater) -> result."""
        return registry.override("commit", policy)(replacement)


# ============================================================
# Layer 2: Propagates
# ============================================================

def _propagating(commit: Callable[[Any, Callable], Any]) -> Callable[[Any, Callable], Any]:
    # propagate is looked up per call: tracking installs it after this wrap.
    if getattr(commit, "propagates", False):
        return commit

    def propagating_commit(node, updater):
        return registry.behaviors_of(node).propagate(commit(node, updater))
    propagating_commit.propagates = True
    return propagating_commit


class Propagates(Commutes):
    """A node "propagates" when its state is contained in another node.

    Attaching Propagates installs an identity propagate behavior and wraps
    commit so that every commit result goes through propagate. On its own
    this changes nothing observable. Once a parent tracks the node,
    propagate returns a new parent, so the child's commit does too.
    """

    def propagate(self, result: Any) -> Any:
        return registry.behaviors_of(self).propagate(result)

    @staticmethod
    def try_attach(node: Any, policy: Optional[Policy] = None) -> Outcome:
        policy = resolve_policy(policy)
        if not isinstance(node, Commutes):
            return refuse(node, "Propagates", Violation.PRECONDITION,
                          "target must also be Commutes", policy)
        if isinstance(node, Propagates):
            if policy.guard_reattach:
                return refuse(node, "Propagates", Violation.PRECONDITION,
                              "target is already Propagates", policy)
            logger.warning(f"Propagates: re-attaching to {type(node).__name__}, "
                           f"propagate behavior is reset")
        # An already propagating commit is kept as is, never wrapped twice.
        commit = registry.behaviors_of(node).commit
        capable = registry.install(
            _augment(node, Propagates),
            Behaviors(commit=_propagating(commit), propagate=DEFAULT_PROPAGATE),
        )
        logger.debug(f"Attached Propagates to {type(node).__name__}")
        return Outcome(capable)

    @staticmethod
    def attach(node: Any, policy: Optional[Policy] = None) -> Any:
        return Propagates.try_attach(node, policy).value

    @staticmethod
    def override(replacement: Callable[[Any], Any],
                 policy: Optional[Policy] = None) -> Callable[[Any], Any]:
        """Replace the propagate behavior: replacement(result) -> anything."""
        return registry.override("propagate", policy)(replacement)


# ============================================================
# Layer 3: TracksPropagation
# ============================================================

class _ParentCell:
    """Late-bound reference to the parent a snapshot-bound child writes into."""
    __slots__ = ("parent",)

    def __init__(self):
        self.parent = None

    def get(self) -> Any:
        return self.parent


def _propagates_itself(node: Any) -> bool:
    return registry.has_slot(node, "propagate")


def _emit(node: Any) -> Any:
    return registry.behaviors_of(node).propagate(node)


def _detach(node: Any) -> Any:
    return registry.install(
        node, replace(registry.behaviors_of(node), propagate=DEFAULT_PROPAGATE))


def propagate_up(parent: Callable[[], Any], slot: str,
                 detach: bool = False) -> Callable[[Any], Any]:
    """Propagate behavior writing a child's result into `slot` of a parent.

    The new parent is itself passed through the parent's own propagate
    behavior when it has one, so tracking chains upward.

    With `detach`, the stored result gets the identity propagate back. The
    hidden slot then never holds a child bound to an earlier parent, and
    committing the stored child returns the child alone.
    """
    return pipe(
        when(_propagates_itself, _detach) if detach else identity,
        lambda result: assoc(parent(), slot, result),
        when(_propagates_itself, _emit),
    )


class TracksPropagation:
    """A parent whose children propagate into it.

    With dynamic binding a tracked child lives in a hidden slot and the
    public key is served on read: each read returns the child with its
    propagate bound to the parent value that was read from. Committing the
    child then yields a copy of exactly that parent with only the child's
    slot replaced, so sibling updates never overwrite each other.

    With snapshot binding the child stays under its public key and always
    propagates into the parent built by the tracking call.
    """

    def __getattribute__(self, name: str) -> Any:
        # The ledger is consulted first so that served keys win over class
        # attributes of the same name, e.g. dataclass field defaults.
        if not name.startswith("__"):
            own = object.__getattribute__(self, "__dict__")
            if name not in own:
                entry = _served_entry(self, name)
                if entry is not None:
                    return _bind_child(self, entry)
        return super().__getattribute__(name)

    def _served_keys(self) -> Tuple[str, ...]:
        own = vars(self)
        keys = (e.key for e in TracksPropagation.ledger(self)
                if e.binding == "dynamic" and e.key not in own)
        return tuple(dict.fromkeys(keys))

    @staticmethod
    def ledger(node: Any) -> Tuple[TrackedChild, ...]:
        """Tracked keys of `node` in the order they were tracked."""
        return getattr(node, "__dict__", {}).get(LEDGER_SLOT, ())

    @staticmethod
    def try_attach(keys: Iterable[str], policy: Optional[Policy] = None
                   ) -> Callable[[Any], Outcome]:
        policy = resolve_policy(policy)
        keys = tuple(keys)

        def apply(parent: Any) -> Outcome:
            if not _is_record(parent):
                return refuse(parent, "TracksPropagation", Violation.PRECONDITION,
                              f"target must keep its fields as attributes, "
                              f"got {type(parent).__name__}", policy)
            tracking = _augment(parent, TracksPropagation)
            if LEDGER_SLOT not in vars(tracking):
                tracking = assoc(tracking, LEDGER_SLOT, ())
            cell = _ParentCell()
            outcome = fold(
                lambda acc, key: acc.merge(_track_key(acc.value, key, policy, cell)),
                keys, Outcome(tracking),
            )
            cell.parent = outcome.value
            return outcome
        return apply

    @staticmethod
    def attach(keys: Iterable[str], policy: Optional[Policy] = None
               ) -> Callable[[Any], Any]:
        attempt = TracksPropagation.try_attach(keys, policy)
        return lambda parent: attempt(parent).value


def _owns(parent: Any, key: str) -> bool:
    return key in vars(parent) or key in parent._served_keys()


def _served_entry(parent: Any, key: str) -> Optional[TrackedChild]:
    for entry in reversed(TracksPropagation.ledger(parent)):
        if entry.key == key and entry.binding == "dynamic":
            return entry
    return None


def _bind_child(parent: Any, entry: TrackedChild) -> Any:
    child = vars(parent)[entry.handle]
    return Propagates.override(
        propagate_up(lambda: parent, entry.handle, detach=True))(child)


def _track_key(parent: Any, key: str, policy: Policy, cell: _ParentCell) -> Outcome:
    ledger = TracksPropagation.ledger(parent)
    if policy.guard_retrack and any(entry.key == key for entry in ledger):
        return refuse(parent, "TracksPropagation", Violation.PRECONDITION,
                      f"key ({key}) is already tracked", policy)
    if not _owns(parent, key):
        return refuse(parent, "TracksPropagation", Violation.PRECONDITION,
                      f"key ({key}) does not exist in target", policy)
    child = getattr(parent, key)
    if not isinstance(child, Propagates):
        return refuse(parent, "TracksPropagation", Violation.CONFIGURATION_NOOP,
                      f"value at key ({key}) does not propagate", policy)

    entry = TrackedChild(key=key, handle=child_handle(key), binding=policy.binding)
    if entry.binding == "dynamic":
        tracked = assoc(dissoc(parent, key), entry.handle, child)
    else:
        bound = Propagates.override(propagate_up(cell.get, key))(child)
        tracked = assoc(assoc(parent, entry.handle, child), key, bound)
    logger.debug(f"Tracking {key} on {type(parent).__name__} ({entry.binding} binding)")
    return Outcome(assoc(tracked, LEDGER_SLOT, append(ledger, entry)))


# ============================================================
# Module-level API
# ============================================================

def tracked_child(node: Any, key: str) -> Any:
    """The child aliased by the ledger entry for `key`, or None.

    The alias carries the identity propagate, so committing it returns the
    child alone. Read the key itself to commit into `node`.
    """
    for entry in reversed(TracksPropagation.ledger(node)):
        if entry.key == key:
            return vars(node).get(entry.handle)
    return None


def capabilities_of(node: Any) -> Capabilities:
    return Capabilities(
        commutes=isinstance(node, Commutes),
        propagates=isinstance(node, Propagates),
        tracks=isinstance(node, TracksPropagation),
    )


attach_commit = Commutes.attach
try_attach_commit = Commutes.try_attach
attach_propagation = Propagates.attach
try_attach_propagation = Propagates.try_attach
track_propagation = TracksPropagation.attach
try_track_propagation = TracksPropagation.try_attach
