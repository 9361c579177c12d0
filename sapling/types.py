"""Core data types for sapling capabilities.

All types are immutable dataclasses: overriding a behavior or extending a
ledger always builds a new value.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

from sapling.fn import HIDDEN_PREFIX, identity, update


BINDINGS = ("dynamic", "snapshot")

# Hidden instance slots installed on capable nodes.
BEHAVIORS_SLOT = f"{HIDDEN_PREFIX}behaviors"
LEDGER_SLOT = f"{HIDDEN_PREFIX}tracking"


def child_handle(key: str) -> str:
    """Hidden slot name holding the tracked child alias for `key`."""
    return f"{HIDDEN_PREFIX}tracked_child[{key}]"


# ============================================================
# Behaviors - the replaceable strategy behind public methods
# ============================================================

@dataclass(frozen=True)
class Behaviors:
    """Private behaviors of a capable node.

    commit:    (node, updater) -> result
    propagate: (result) -> result, None until Propagates is attached
    """
    commit: Callable[[Any, Callable[[Any], Any]], Any]
    propagate: Optional[Callable[[Any], Any]] = None

    def slots(self) -> Tuple[str, ...]:
        """Names of the installed (non-None) behavior slots."""
        return tuple(name for name in ("commit", "propagate")
                     if getattr(self, name) is not None)


def default_commit(node: Any, updater: Callable[[Any], Any]) -> Any:
    return update(node, "state", updater)


DEFAULT_PROPAGATE = identity


# ============================================================
# TrackedChild - one ledger entry
# ============================================================

@dataclass(frozen=True)
class TrackedChild:
    """A tracked key on a parent and the hidden slot aliasing its child.

    binding is the Policy.binding in force when the key was tracked.
    """
    key: str
    handle: str
    binding: str = "dynamic"

    def to_json(self) -> Dict[str, str]:
        return {"key": self.key, "handle": self.handle, "binding": self.binding}

    @classmethod
    def from_json(cls, data: Dict[str, str]) -> "TrackedChild":
        return cls(key=data["key"], handle=data["handle"],
                   binding=data.get("binding", "dynamic"))


# ============================================================
# Capabilities
# ============================================================

@dataclass(frozen=True)
class Capabilities:
    """Advertises which capabilities a node carries."""
    commutes: bool = False
    propagates: bool = False
    tracks: bool = False

    def to_json(self) -> Dict[str, bool]:
        return {
            "commutes": self.commutes,
            "propagates": self.propagates,
            "tracks": self.tracks,
        }

    @classmethod
    def from_json(cls, data: Dict[str, bool]) -> "Capabilities":
        return cls(**data)


# ============================================================
# Policy - configurable guards
# ============================================================

@dataclass(frozen=True)
class Policy:
    """Configurable behavior of the attachment operations.

    binding:
      - dynamic:  a child propagates into whichever parent it was read from
      - snapshot: a child propagates into the parent built at tracking time
    """
    guard_reattach: bool = True
    guard_retrack: bool = True
    binding: str = "dynamic"
    strict: bool = False

    def __post_init__(self):
        if self.binding not in BINDINGS:
            raise ValueError(f"unknown binding {self.binding!r}, expected one of {BINDINGS}")

    def to_json(self) -> Dict[str, Any]:
        return {
            "guard-reattach": self.guard_reattach,
            "guard-retrack": self.guard_retrack,
            "binding": self.binding,
            "strict": self.strict,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Policy":
        return cls(
            guard_reattach=data.get("guard-reattach", True),
            guard_retrack=data.get("guard-retrack", True),
            binding=data.get("binding", "dynamic"),
            strict=data.get("strict", False),
        )


_default_policy = Policy()


def default_policy() -> Policy:
    return _default_policy


def configure(policy: Optional[Policy] = None, **changes: Any) -> Policy:
    """Install a new module default policy. Returns the previous one.

    configure(binding="snapshot") changes single fields;
    configure(previous) reinstalls a saved policy.
    """
    global _default_policy
    previous = _default_policy
    _default_policy = replace(policy if policy is not None else previous, **changes)
    return previous


def resolve_policy(policy: Optional[Policy]) -> Policy:
    return policy if policy is not None else _default_policy
