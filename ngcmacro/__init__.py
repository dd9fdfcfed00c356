"""
ngcmacro Python Package

Front end and interpreter for an RS274/NGC-style G-code dialect with
O-word control flow (if/while/repeat/sub/call).

Key components:
- parse: Source text to a typed Program tree
- Evaluator: Runs a Program, producing command groups and variable state
- run_program: Convenience wrapper doing both
- LexError / MacroSyntaxError / EvaluationError: one error kind per stage
"""

from ._version import __version__
from .macro import CommandGroup, Evaluator, Lexer, parse
from .utils.errors import EvaluationError, LexError, MacroError, MacroSyntaxError


def run_program(source: str, **options) -> Evaluator:
    """
    Parse and execute a program in one step

    Args:
        source: Program text
        **options: Keyword options forwarded to Evaluator

    Returns:
        The evaluator after the run, for command and variable inspection
    """
    evaluator = Evaluator(parse(source), **options)
    evaluator.process_program()
    return evaluator


__all__ = [
    "__version__",
    "parse",
    "run_program",
    "Evaluator",
    "CommandGroup",
    "Lexer",
    "MacroError",
    "LexError",
    "MacroSyntaxError",
    "EvaluationError",
]
