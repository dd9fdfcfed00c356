"""
Abstract syntax tree for macro programs.

A closed set of dataclasses: every node the parser can produce is listed
here, and the evaluator dispatches on these types only.
"""

from dataclasses import dataclass, field
from typing import Union


# ----- Expressions -----


@dataclass
class NumberLiteral:
    value: int | float


@dataclass
class NumberIndexedVar:
    """`#n`, `#[expr]` or `##n`: index evaluated at use time"""

    index: "Expression"


@dataclass
class NameIndexedVar:
    """`#<name>`; names starting with '_' are global"""

    name: str


@dataclass
class BinaryExpr:
    op: str
    left: "Expression"
    right: "Expression"


@dataclass
class AssignExpr:
    target: "Expression"
    value: "Expression"


@dataclass
class BuiltinCall:
    name: str
    args: list["Expression"] = field(default_factory=list)


Expression = Union[NumberLiteral, NumberIndexedVar, NameIndexedVar, BinaryExpr, AssignExpr, BuiltinCall]
Variable = Union[NumberIndexedVar, NameIndexedVar]


@dataclass
class Label:
    """
    O-word identity of a block: either a numeric index expression or a name.
    Opening and closing labels of one block must compare equal.
    """

    index: Expression | None = None
    name: str | None = None

    def __str__(self):
        if self.name is not None:
            return f"o<{self.name}>"
        if isinstance(self.index, NumberLiteral):
            return f"o{self.index.value}"
        return "o[...]"


# ----- Statements -----


@dataclass
class CommandStatement:
    """One line of letter/value groups, e.g. G1 X10 Y-2.5"""

    groups: list[tuple[str, Expression]]


@dataclass
class ExpressionStatement:
    expr: Expression


@dataclass
class IfStatement:
    """
    `alternate` holds the else-block, or a single nested IfStatement when
    the source used `elseif`.
    """

    label: Label
    test: Expression
    consequent: list["Statement"]
    alternate: list["Statement"] = field(default_factory=list)


@dataclass
class WhileStatement:
    label: Label
    test: Expression
    body: list["Statement"]


@dataclass
class RepeatStatement:
    label: Label
    count_expr: Expression
    body: list["Statement"]


@dataclass
class SubStatement:
    label: Label
    body: list["Statement"]
    tail_return_expr: Expression | None = None


@dataclass
class CallStatement:
    label: Label
    args: list[Expression] = field(default_factory=list)


@dataclass
class ReturnStatement:
    label: Label
    value_expr: Expression | None = None


@dataclass
class BreakStatement:
    label: Label


@dataclass
class ContinueStatement:
    label: Label


Statement = Union[
    CommandStatement,
    ExpressionStatement,
    IfStatement,
    WhileStatement,
    RepeatStatement,
    SubStatement,
    CallStatement,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
]


@dataclass
class Program:
    body: list[Statement] = field(default_factory=list)
