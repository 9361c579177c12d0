"""Small functional helpers the capabilities are built from.

Every helper is pure: nothing here mutates its arguments. Structural
updates copy one level deep and share everything else by reference.
"""

import copy
from collections.abc import Mapping
from functools import reduce
from typing import Any, Callable, Dict, Iterable, Tuple


HIDDEN_PREFIX = "__sapling_"


# ============================================================
# Structural access and update
# ============================================================

def has(target: Any, key: str) -> bool:
    """True if `key` is readable on `target` (mapping key or attribute)."""
    if isinstance(target, Mapping):
        return key in target
    return hasattr(target, key)


def get(target: Any, key: str, default: Any = None) -> Any:
    if isinstance(target, Mapping):
        return target.get(key, default)
    return getattr(target, key, default)


def assoc(target: Any, key: str, value: Any) -> Any:
    """Copy of `target` with `key` set to `value`, other fields shared.

    Objects are shallow-copied and the instance dictionary is written
    directly, so frozen dataclasses can be updated as well.
    """
    if isinstance(target, Mapping):
        new = dict(target)
        new[key] = value
        return new
    new = copy.copy(target)
    vars(new)[key] = value
    return new


def dissoc(target: Any, key: str) -> Any:
    """Copy of `target` without `key`."""
    if isinstance(target, Mapping):
        return {k: v for k, v in target.items() if k != key}
    new = copy.copy(target)
    vars(new).pop(key, None)
    return new


def update(target: Any, key: str, fn: Callable[[Any], Any]) -> Any:
    """Copy of `target` with `key` replaced by `fn(current value)`."""
    return assoc(target, key, fn(get(target, key)))


def retype(target: Any, cls: type) -> Any:
    """Shallow copy of `target` whose class is `cls`.

    `cls` must be a subclass of the target's class adding no storage.
    """
    new = copy.copy(target)
    try:
        object.__setattr__(new, "__class__", cls)
    except TypeError:
        # builtin bases such as SimpleNamespace refuse __class__ assignment
        new = cls.__new__(cls)
        vars(new).update(vars(target))
    return new


def is_hidden(key: str) -> bool:
    return key.startswith(HIDDEN_PREFIX)


def public_fields(target: Any) -> Dict[str, Any]:
    """Non-hidden fields of `target`, including dynamically served keys."""
    fields = {k: v for k, v in vars(target).items() if not is_hidden(k)}
    for key in getattr(target, "_served_keys", tuple)():
        fields[key] = getattr(target, key)
    return fields


# ============================================================
# Composition
# ============================================================

def identity(value: Any) -> Any:
    return value


def pipe(*fns: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Left-to-right composition: pipe(f, g)(x) == g(f(x))."""
    def piped(value):
        for fn in fns:
            value = fn(value)
        return value
    return piped


def when(predicate: Callable[[Any], bool],
         fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Apply `fn` only if `predicate` holds, else return the input."""
    def conditional(value):
        return fn(value) if predicate(value) else value
    return conditional


# ============================================================
# Sequences
# ============================================================

def fold(step: Callable[[Any, Any], Any], items: Iterable[Any],
         initial: Any) -> Any:
    """Left fold: step(step(initial, a), b) ..."""
    return reduce(step, items, initial)


def append(items: Tuple[Any, ...], item: Any) -> Tuple[Any, ...]:
    return tuple(items) + (item,)


# ============================================================
# Predicates
# ============================================================

def has_key(key: str) -> Callable[[Any], bool]:
    return lambda target: has(target, key)


def all_of(*predicates: Callable[[Any], bool]) -> Callable[[Any], bool]:
    return lambda value: all(p(value) for p in predicates)


def negate(predicate: Callable[[Any], bool]) -> Callable[[Any], bool]:
    return lambda value: not predicate(value)
