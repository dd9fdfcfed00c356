"""
Central configuration for ngcmacro tunables and shared constants.
"""

import logging
import os

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")

TRACE_ENABLED = str(os.getenv("NGCMACRO_TRACE", "0")).lower() in ("1", "true", "yes", "on")


def _get_env_int(name: str, default: int) -> int:
    """
    Safe environment variable parsing for integers.
    Returns default for unset or empty string values.
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name}='{value}' is not a valid integer")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    return default


# Infinite-loop guard: iterations allowed per loop execution
MAX_LOOP_ITERATIONS: int = _get_env_int("NGCMACRO_MAX_LOOP_ITERATIONS", 1000)

# Nested subroutine calls allowed before the evaluator gives up
MAX_CALL_DEPTH: int = _get_env_int("NGCMACRO_MAX_CALL_DEPTH", 64)

# Distance from the nearest integer still accepted as a variable index
INDEX_TOLERANCE: float = 1e-6

# Reading an undefined variable: False -> 0.0, True -> EvaluationError
STRICT_UNDEFINED: bool = _env_bool("NGCMACRO_STRICT_UNDEFINED", False)

LOG_LEVEL_DEFAULT: str = "WARNING"

# Globals written by the subroutine return protocol
RETURN_VALUE_VAR: str = "_value"
RETURN_FLAG_VAR: str = "_value_returned"
