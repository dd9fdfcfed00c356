"""
RS274/NGC macro language front end and interpreter

Main components:
- tokens.py: Token kinds
- lexer.py: Source text to tokens, with line/column tracking
- ast.py: Typed syntax tree
- parser.py: Recursive-descent parser with O-word block matching
- functions.py: Built-in numeric functions and binary operators
- state.py: Global, normal and call-local variable scopes
- commands.py: Command groups produced by a run
- evaluator.py: Tree-walking evaluator
"""

from .commands import CommandGroup
from .evaluator import Evaluator, Flow, FlowKind
from .lexer import Lexer, tokenize
from .parser import Parser, parse
from .state import VariableKind, VariableState
from .tokens import Token, TokenKind

__all__ = [
    "CommandGroup",
    "Evaluator",
    "Flow",
    "FlowKind",
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    "VariableKind",
    "VariableState",
    "Token",
    "TokenKind",
]
