"""
Tree-walking evaluator for parsed macro programs.

Walks a Program, keeping variable state and collecting one CommandGroup per
command line. Break, continue and return are not host exceptions: every
statement handler returns a Flow result, and each construct consumes the
kinds it understands and hands the rest back to its caller.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from ngcmacro import config
from ngcmacro.config import RETURN_FLAG_VAR, RETURN_VALUE_VAR
from ngcmacro.utils.errors import EvaluationError

from .ast import (
    AssignExpr,
    BinaryExpr,
    BreakStatement,
    BuiltinCall,
    CallStatement,
    CommandStatement,
    ContinueStatement,
    Expression,
    ExpressionStatement,
    IfStatement,
    Label,
    NameIndexedVar,
    NumberIndexedVar,
    NumberLiteral,
    Program,
    RepeatStatement,
    ReturnStatement,
    Statement,
    SubStatement,
    WhileStatement,
)
from .commands import CommandGroup
from .functions import EXISTS, apply_binary, call_function
from .state import VariableKey, VariableState

logger = logging.getLogger(__name__)


class FlowKind(Enum):
    """Pending flow-control state after a statement ran"""

    COMPLETED = "COMPLETED"
    BREAK = "BREAK"
    CONTINUE = "CONTINUE"
    RETURN = "RETURN"


@dataclass(frozen=True)
class Flow:
    """
    Result of executing a statement.
    `label` is the resolved O-word of the break/continue/return that produced
    it; `value` is the optional return value.
    """

    kind: FlowKind
    label: VariableKey | None = None
    value: float | None = None

    @property
    def completed(self) -> bool:
        return self.kind is FlowKind.COMPLETED


COMPLETED = Flow(FlowKind.COMPLETED)


class Evaluator:
    """Executes a Program and exposes the resulting commands and variables"""

    def __init__(
        self,
        program: Program,
        *,
        strict_undefined: bool | None = None,
        max_loop_iterations: int | None = None,
        max_call_depth: int | None = None,
        index_tolerance: float | None = None,
    ):
        """
        Initialize the evaluator

        Args:
            program: Parsed program to execute
            strict_undefined: Reading an undefined variable raises instead of
                yielding 0.0 (default from config.STRICT_UNDEFINED)
            max_loop_iterations: Per-loop iteration cap (default from config)
            max_call_depth: Nested subroutine call limit (default from config)
            index_tolerance: Allowed distance of an index from an integer
        """
        self.program = program
        self.strict_undefined = config.STRICT_UNDEFINED if strict_undefined is None else strict_undefined
        self.max_loop_iterations = (
            config.MAX_LOOP_ITERATIONS if max_loop_iterations is None else max_loop_iterations
        )
        self.max_call_depth = config.MAX_CALL_DEPTH if max_call_depth is None else max_call_depth
        self.index_tolerance = config.INDEX_TOLERANCE if index_tolerance is None else index_tolerance

        self.variables = VariableState()
        self._commands: list[CommandGroup] = []
        self._subroutines: dict[VariableKey, SubStatement] = {}

        self._handlers = {
            CommandStatement: self._process_command,
            ExpressionStatement: self._process_expression,
            IfStatement: self._process_if,
            WhileStatement: self._process_while,
            RepeatStatement: self._process_repeat,
            SubStatement: self._process_sub,
            CallStatement: self._process_call,
            ReturnStatement: self._process_return,
            BreakStatement: self._process_break,
            ContinueStatement: self._process_continue,
        }

    def reset(self, program: Program | None = None) -> None:
        """Clear variables, commands and subroutines before another run"""
        if program is not None:
            self.program = program
        self.variables.reset()
        self._commands = []
        self._subroutines = {}

    def process_program(self) -> list[CommandGroup]:
        """
        Execute the whole program

        Returns:
            The accumulated command list

        Raises:
            EvaluationError: on any semantic failure; the run is aborted
        """
        logger.debug("Processing program with %d top-level statements", len(self.program.body))
        flow = self.process_statement_list(self.program.body)
        if not flow.completed:
            raise EvaluationError(f"{flow.kind.value.lower()} for label {flow.label!r} reached the top level")
        return self.command_list()

    # ----- Inspection -----

    def command_list(self) -> list[CommandGroup]:
        return list(self._commands)

    def get_variable(self, key: VariableKey) -> float:
        value = self.variables.get(key)
        if value is None:
            raise EvaluationError(f"Variable {key!r} is not defined")
        return value

    def find_variable(self, key: VariableKey) -> float | None:
        return self.variables.get(key)

    def has_variable(self, key: VariableKey) -> bool:
        return self.variables.get(key) is not None

    def dump_variables(self) -> dict:
        return self.variables.get_status()

    @property
    def subroutines(self) -> dict[VariableKey, SubStatement]:
        return dict(self._subroutines)

    # ----- Statements -----

    def process_statement_list(self, statements: list[Statement]) -> Flow:
        for statement in statements:
            flow = self.process_statement(statement)
            if not flow.completed:
                return flow
        return COMPLETED

    def process_statement(self, statement: Statement) -> Flow:
        handler = self._handlers.get(type(statement))
        if handler is None:
            raise EvaluationError(f"Unknown statement type: {type(statement).__name__}")
        return handler(statement)

    def _process_command(self, statement: CommandStatement) -> Flow:
        group = CommandGroup([(letter, self.get_value(expr)) for letter, expr in statement.groups])
        self._commands.append(group)
        return COMPLETED

    def _process_expression(self, statement: ExpressionStatement) -> Flow:
        self.get_value(statement.expr)
        return COMPLETED

    def _process_if(self, statement: IfStatement) -> Flow:
        if self.get_value(statement.test) != 0.0:
            return self.process_statement_list(statement.consequent)
        return self.process_statement_list(statement.alternate)

    def _process_while(self, statement: WhileStatement) -> Flow:
        label = self.label_key(statement.label)
        iterations = 0
        while self.get_value(statement.test) != 0.0:
            iterations += 1
            if iterations > self.max_loop_iterations:
                raise EvaluationError(
                    f"Loop o{label} exceeded {self.max_loop_iterations} iterations"
                )
            flow = self.process_statement_list(statement.body)
            if flow.kind is FlowKind.BREAK and flow.label == label:
                break
            if flow.kind is FlowKind.CONTINUE and flow.label == label:
                continue
            if not flow.completed:
                return flow
        return COMPLETED

    def _process_repeat(self, statement: RepeatStatement) -> Flow:
        label = self.label_key(statement.label)
        count = self.to_index(self.get_value(statement.count_expr), "repeat count")
        if count > self.max_loop_iterations:
            raise EvaluationError(
                f"Repeat o{label} count {count} exceeds {self.max_loop_iterations} iterations"
            )
        for _ in range(count):
            flow = self.process_statement_list(statement.body)
            if not flow.completed:
                return flow
        return COMPLETED

    def _process_sub(self, statement: SubStatement) -> Flow:
        label = self.label_key(statement.label)
        if label in self._subroutines:
            logger.warning("Subroutine o%s redefined", label)
        self._subroutines[label] = statement
        logger.debug("Registered subroutine o%s", label)
        return COMPLETED

    def _process_call(self, statement: CallStatement) -> Flow:
        label = self.label_key(statement.label)
        sub = self._subroutines.get(label)
        if sub is None:
            raise EvaluationError(f"Call to undefined subroutine o{label}")
        if self.variables.call_depth >= self.max_call_depth:
            raise EvaluationError(f"Call to o{label} exceeds maximum call depth {self.max_call_depth}")

        # Arguments belong to the caller's scope
        args = [self.get_value(arg) for arg in statement.args]

        self.variables.set(RETURN_FLAG_VAR, 0.0, internal=True)
        self.variables.set(RETURN_VALUE_VAR, 0.0, internal=True)

        logger.debug("Calling subroutine o%s with %s", label, args)
        self.variables.push_frame(label)
        try:
            for index, value in enumerate(args, start=1):
                self.variables.set(index, value)

            flow = self.process_statement_list(sub.body)
            if flow.kind is FlowKind.RETURN:
                returned = flow.value
            elif flow.completed:
                returned = None if sub.tail_return_expr is None else self.get_value(sub.tail_return_expr)
            else:
                raise EvaluationError(
                    f"{flow.kind.value.lower()} for label {flow.label!r} escaped subroutine o{label}"
                )
        finally:
            self.variables.pop_frame()

        if returned is not None:
            self.variables.set(RETURN_VALUE_VAR, returned, internal=True)
            self.variables.set(RETURN_FLAG_VAR, 1.0, internal=True)
        logger.debug("Subroutine o%s returned %s", label, returned)
        return COMPLETED

    def _process_return(self, statement: ReturnStatement) -> Flow:
        value = None if statement.value_expr is None else self.get_value(statement.value_expr)
        return Flow(FlowKind.RETURN, self.label_key(statement.label), value)

    def _process_break(self, statement: BreakStatement) -> Flow:
        return Flow(FlowKind.BREAK, self.label_key(statement.label))

    def _process_continue(self, statement: ContinueStatement) -> Flow:
        return Flow(FlowKind.CONTINUE, self.label_key(statement.label))

    # ----- Expressions -----

    def get_value(self, expr: Expression) -> float:
        """Recursively evaluate any expression to a float"""
        if isinstance(expr, NumberLiteral):
            return float(expr.value)
        if isinstance(expr, (NumberIndexedVar, NameIndexedVar)):
            return self._read_variable(expr)
        if isinstance(expr, BinaryExpr):
            return apply_binary(expr.op, self.get_value(expr.left), self.get_value(expr.right))
        if isinstance(expr, AssignExpr):
            return self._assign(expr)
        if isinstance(expr, BuiltinCall):
            return self._call_builtin(expr)
        raise EvaluationError(f"Cannot evaluate expression: {expr!r}")

    def _read_variable(self, var: NumberIndexedVar | NameIndexedVar) -> float:
        key = self.variable_key(var)
        value = self.variables.get(key)
        if value is None:
            if self.strict_undefined:
                raise EvaluationError(f"Use of undefined variable #{_format_key(key)}")
            return 0.0
        return value

    def _assign(self, expr: AssignExpr) -> float:
        if not isinstance(expr.target, (NumberIndexedVar, NameIndexedVar)):
            raise EvaluationError(f"Invalid assignment target: {expr.target!r}")
        value = self.get_value(expr.value)
        self.variables.set(self.variable_key(expr.target), value)
        return value

    def _call_builtin(self, expr: BuiltinCall) -> float:
        if expr.name == EXISTS:
            # The argument is a reference, it must not be read as a value
            if len(expr.args) != 1 or not isinstance(expr.args[0], (NumberIndexedVar, NameIndexedVar)):
                raise EvaluationError("exists requires a single variable argument")
            return 1.0 if self.variables.get(self.variable_key(expr.args[0])) is not None else 0.0
        return call_function(expr.name, [self.get_value(arg) for arg in expr.args])

    def variable_key(self, var: NumberIndexedVar | NameIndexedVar) -> VariableKey:
        if isinstance(var, NameIndexedVar):
            return var.name
        return self.to_index(self.get_value(var.index), "variable index")

    def label_key(self, label: Label) -> VariableKey:
        """Resolve an O-word to the identity used to match blocks and subroutines"""
        if label.name is not None:
            return label.name
        if label.index is None:
            raise EvaluationError("O-word label has neither a number nor a name")
        return self.to_index(self.get_value(label.index), "O-word number")

    def to_index(self, value: float, what: str = "index") -> int:
        """
        Convert an evaluated value to a non-negative integer

        Raises:
            EvaluationError: value is negative or not within tolerance of an integer
        """
        if not math.isfinite(value):
            raise EvaluationError(f"Invalid {what}: {value}")
        nearest = round(value)
        if abs(value - nearest) >= self.index_tolerance:
            raise EvaluationError(
                f"Invalid {what} {value}: not within {self.index_tolerance} of an integer"
            )
        if nearest < 0:
            raise EvaluationError(f"Invalid {what} {value}: must not be negative")
        return int(nearest)


def _format_key(key: VariableKey) -> str:
    return f"<{key}>" if isinstance(key, str) else str(key)
