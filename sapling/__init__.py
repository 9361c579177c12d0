"""Sapling - immutable state composition for nested object trees.

Leaves commit new state without mutation; tracked parents receive the
update as a new parent value that shares every untouched branch.
"""

__version__ = "0.1.0"

from sapling.protocols import (
    Commutes,
    Propagates,
    TracksPropagation,
    attach_commit,
    attach_propagation,
    track_propagation,
    try_attach_commit,
    try_attach_propagation,
    try_track_propagation,
    tracked_child,
    capabilities_of,
)
from sapling.registry import override, try_override
from sapling.diagnostics import CapabilityError, Diagnostic, Outcome, Violation
from sapling.types import (
    Behaviors, Capabilities, Policy, TrackedChild, configure, default_policy,
)
