"""
Variable state for the macro evaluator

Tracks the three variable scopes:
- Globals: name-indexed variables starting with '_', tagged Normal/Internal
- Normal: numbered and named variables of the top-level program
- Call frames: one numbered/named pair per active subroutine call
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from ngcmacro.config import RETURN_FLAG_VAR, RETURN_VALUE_VAR
from ngcmacro.utils.errors import EvaluationError

logger = logging.getLogger(__name__)

VariableKey = int | str


class VariableKind(Enum):
    """Write permission tag of a global variable"""

    NORMAL = "NORMAL"
    INTERNAL = "INTERNAL"  # only the evaluator's return protocol may write


@dataclass
class GlobalVariable:
    value: float
    kind: VariableKind = VariableKind.NORMAL


@dataclass
class Scope:
    """Numbered and named variables of one scope"""

    numbered: dict[int, float] = field(default_factory=dict)
    named: dict[str, float] = field(default_factory=dict)

    def clear(self) -> None:
        self.numbered.clear()
        self.named.clear()

    def as_dict(self) -> dict:
        return {"numbered": dict(self.numbered), "named": dict(self.named)}


@dataclass
class CallFrame(Scope):
    """Call-local scope of one subroutine invocation"""

    label: VariableKey = 0


def is_global_name(key: VariableKey) -> bool:
    return isinstance(key, str) and key.startswith("_")


class VariableState:
    """Resolves variable keys to the global, call-local or normal scope"""

    INTERNAL_NAMES = frozenset({RETURN_VALUE_VAR, RETURN_FLAG_VAR})

    def __init__(self):
        self.globals: dict[str, GlobalVariable] = {}
        self.normal = Scope()
        self.frames: list[CallFrame] = []

    @property
    def in_call(self) -> bool:
        return bool(self.frames)

    @property
    def call_depth(self) -> int:
        return len(self.frames)

    @property
    def current(self) -> Scope:
        """Scope used for non-global variables right now"""
        return self.frames[-1] if self.frames else self.normal

    def get(self, key: VariableKey) -> float | None:
        """Value of a variable, or None if it is not defined"""
        if is_global_name(key):
            variable = self.globals.get(key)
            return None if variable is None else variable.value
        scope = self.current
        if isinstance(key, int):
            return scope.numbered.get(key)
        return scope.named.get(key)

    def set(self, key: VariableKey, value: float, *, internal: bool = False) -> None:
        """
        Store a variable in the scope its key resolves to

        Args:
            key: Numeric index or name
            value: New value
            internal: Write capability for Internal globals

        Raises:
            EvaluationError: writing an Internal global without `internal`
        """
        value = float(value)
        if is_global_name(key):
            existing = self.globals.get(key)
            protected = key in self.INTERNAL_NAMES or (
                existing is not None and existing.kind is VariableKind.INTERNAL
            )
            if protected and not internal:
                raise EvaluationError(f"Cannot assign to internal global variable #<{key}>")
            kind = VariableKind.INTERNAL if internal else VariableKind.NORMAL
            self._log_write(key, existing is not None, value)
            self.globals[key] = GlobalVariable(value, kind)
            return

        scope = self.current
        target = scope.numbered if isinstance(key, int) else scope.named
        self._log_write(key, key in target, value)
        target[key] = value

    def push_frame(self, label: VariableKey) -> CallFrame:
        frame = CallFrame(label=label)
        self.frames.append(frame)
        return frame

    def pop_frame(self) -> None:
        frame = self.frames.pop()
        frame.clear()

    def reset(self) -> None:
        """Clear every scope"""
        self.globals.clear()
        self.normal.clear()
        self.frames.clear()

    def get_status(self) -> dict:
        """Diagnostic dump of all scopes; not a stable format"""
        return {
            "globals": {
                name: {"value": var.value, "kind": var.kind.value} for name, var in self.globals.items()
            },
            "normal": self.normal.as_dict(),
            "frames": [{"label": frame.label, **frame.as_dict()} for frame in self.frames],
        }

    def _log_write(self, key: VariableKey, exists: bool, value: float) -> None:
        scope = "global" if is_global_name(key) else ("call-local" if self.in_call else "normal")
        if exists:
            logger.debug("Override %s variable %r = %s", scope, key, value)
        else:
            logger.debug("Define new %s variable %r = %s", scope, key, value)
