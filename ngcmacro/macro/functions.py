"""
Numeric function library and binary operators for the macro evaluator.

Trigonometric functions work in degrees. All results are floats; relational
and logical operators yield 0.0 or 1.0.
"""

import math
from collections.abc import Callable

import numpy as np

from ngcmacro.utils.errors import EvaluationError


def _truthy(value: float) -> bool:
    return value != 0.0


def _as_flag(condition: bool) -> float:
    return 1.0 if condition else 0.0


def _divide(left: float, right: float) -> float:
    if right == 0.0:
        raise EvaluationError(f"Division by zero: {left} / {right}")
    return left / right


def _power(left: float, right: float) -> float:
    try:
        return math.pow(left, right)
    except (ValueError, OverflowError) as e:
        raise EvaluationError(f"Invalid power {left} ** {right}: {e}")


BINARY_OPERATORS: dict[str, Callable[[float, float], float]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "**": _power,
    ">": lambda a, b: _as_flag(a > b),
    "<": lambda a, b: _as_flag(a < b),
    ">=": lambda a, b: _as_flag(a >= b),
    "<=": lambda a, b: _as_flag(a <= b),
    "==": lambda a, b: _as_flag(a == b),
    "!=": lambda a, b: _as_flag(a != b),
    "and": lambda a, b: _as_flag(_truthy(a) and _truthy(b)),
    "or": lambda a, b: _as_flag(_truthy(a) or _truthy(b)),
    "xor": lambda a, b: _as_flag(_truthy(a) != _truthy(b)),
}

# Textual spellings of the relational operators
OPERATOR_ALIASES: dict[str, str] = {
    "gt": ">",
    "lt": "<",
    "ge": ">=",
    "le": "<=",
    "eq": "==",
    "ne": "!=",
}


def apply_binary(op: str, left: float, right: float) -> float:
    """
    Apply a binary operator to two evaluated operands

    Raises:
        EvaluationError: unknown operator or arithmetic failure
    """
    func = BINARY_OPERATORS.get(OPERATOR_ALIASES.get(op, op))
    if func is None:
        raise EvaluationError(f"Unknown operator: {op!r}")
    try:
        result = func(left, right)
    except OverflowError as e:
        raise EvaluationError(f"Arithmetic overflow in {left} {op} {right}: {e}")
    return float(result)


# ----- Built-in functions -----


def _check_unit_range(name: str, value: float) -> None:
    if value < -1.0 or value > 1.0:
        raise EvaluationError(f"{name}[{value}] is outside the domain [-1, 1]")


def _sin(x: float) -> float:
    return float(np.sin(np.radians(x)))


def _cos(x: float) -> float:
    return float(np.cos(np.radians(x)))


def _tan(x: float) -> float:
    return float(np.tan(np.radians(x)))


def _asin(x: float) -> float:
    _check_unit_range("asin", x)
    return float(np.degrees(np.arcsin(x)))


def _acos(x: float) -> float:
    _check_unit_range("acos", x)
    return float(np.degrees(np.arccos(x)))


def _atan(y: float, x: float) -> float:
    return float(np.degrees(np.arctan2(y, x)))


def _exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        raise EvaluationError(f"exp[{x}] overflows")


def _ln(x: float) -> float:
    if x <= 0.0:
        raise EvaluationError(f"ln[{x}] requires a positive argument")
    return math.log(x)


def _sqrt(x: float) -> float:
    if x < 0.0:
        raise EvaluationError(f"sqrt[{x}] requires a non-negative argument")
    return math.sqrt(x)


def _round(x: float) -> float:
    # Half away from zero, not Python's banker's rounding
    magnitude = abs(x)
    whole = math.floor(magnitude)
    if magnitude - whole >= 0.5:
        whole += 1
    return math.copysign(whole, x)


FUNCTIONS: dict[str, Callable[..., float]] = {
    "sin": _sin,
    "cos": _cos,
    "tan": _tan,
    "asin": _asin,
    "acos": _acos,
    "atan": _atan,
    "abs": lambda x: abs(x),
    "exp": _exp,
    "fix": lambda x: float(math.floor(x)),
    "fup": lambda x: float(math.ceil(x)),
    "round": _round,
    "ln": _ln,
    "sqrt": _sqrt,
}

# exists[] takes a variable reference and is resolved by the evaluator
EXISTS = "exists"

FUNCTION_NAMES: frozenset[str] = frozenset(FUNCTIONS) | {EXISTS}


def arity(name: str) -> int:
    return 2 if name == "atan" else 1


def call_function(name: str, args: list[float]) -> float:
    """
    Evaluate a value-taking built-in function

    Raises:
        EvaluationError: unknown function, wrong argument count or domain error
    """
    func = FUNCTIONS.get(name)
    if func is None:
        raise EvaluationError(f"Unknown function: {name!r}")
    if len(args) != arity(name):
        raise EvaluationError(f"{name} expects {arity(name)} argument(s), got {len(args)}")
    try:
        return float(func(*args))
    except (OverflowError, ValueError) as e:
        raise EvaluationError(f"{name}{args} failed: {e}")
