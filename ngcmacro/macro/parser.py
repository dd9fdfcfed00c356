"""
Recursive-descent parser for the macro language.

Builds a typed syntax tree from the lexer's token stream using a single
token of lookahead. Structured O-word blocks are matched here: each nested
statement list returns the label that preceded its stop keyword so the
caller can compare it against the opening label.
"""

import logging

from ngcmacro.utils.errors import MacroSyntaxError

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
    Variable,
    WhileStatement,
)
from .functions import EXISTS, FUNCTION_NAMES, OPERATOR_ALIASES
from .lexer import CommentObserver, Lexer
from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)

_IF_STOPS = frozenset({TokenKind.ELSEIF, TokenKind.ELSE, TokenKind.ENDIF})
_ELSE_STOPS = frozenset({TokenKind.ENDIF})
_WHILE_STOPS = frozenset({TokenKind.ENDWHILE})
_REPEAT_STOPS = frozenset({TokenKind.ENDREPEAT})
_SUB_STOPS = frozenset({TokenKind.ENDSUB})


class Parser:
    """One-shot parser; use `parse()` or `Parser(source).parse()`"""

    def __init__(self, source: str, on_comment: CommentObserver | None = None):
        self._lexer = Lexer(source, on_comment)
        self._lookahead: Token | None = self._lexer.next_token()
        # Label of the sub whose body is being parsed, None outside any sub
        self._sub_label: Label | None = None
        # Labels of the enclosing while loops, innermost last
        self._while_labels: list[Label] = []

    @property
    def while_depth(self) -> int:
        return len(self._while_labels)

    def parse(self) -> Program:
        body, _ = self._statement_list(frozenset())
        return Program(body=body)

    # ----- Statements -----

    def _statement_list(self, stops: frozenset[TokenKind]) -> tuple[list[Statement], Label | None]:
        """
        Parse statements until an O-word followed by one of `stops`

        Returns:
            (statements, label read before the stop keyword). The stop
            keyword itself is left as the lookahead.
        """
        statements: list[Statement] = []
        while self._lookahead is not None:
            kind = self._lookahead.kind
            if kind is TokenKind.RTN:
                self._eat(TokenKind.RTN)
                continue
            if kind is TokenKind.O:
                label = self._label()
                if self._lookahead is not None and self._lookahead.kind in stops:
                    return statements, label
                statements.append(self._control_statement(label))
                continue
            statements.append(self._statement())

        if stops:
            expected = ", ".join(sorted(k.value for k in stops))
            raise self._error(f"Unexpected end of input, expected one of: {expected}")
        return statements, None

    def _statement(self) -> Statement:
        if self._lookahead.kind is TokenKind.LETTER:
            return self._command_statement()
        return self._expression_statement()

    def _command_statement(self) -> CommandStatement:
        groups: list[tuple[str, Expression]] = []
        while self._lookahead is not None and self._lookahead.kind is not TokenKind.RTN:
            letter = self._eat(TokenKind.LETTER).text.upper()
            groups.append((letter, self._primary()))
        self._end_of_line()
        return CommandStatement(groups=groups)

    def _expression_statement(self) -> ExpressionStatement:
        expr = self._expression()
        self._end_of_line()
        return ExpressionStatement(expr=expr)

    def _control_statement(self, label: Label) -> Statement:
        if self._lookahead is None:
            raise self._error(f"Unexpected end of input after {label}")

        kind = self._lookahead.kind
        if kind is TokenKind.IF:
            return self._if_statement(label)
        if kind is TokenKind.WHILE:
            return self._while_statement(label)
        if kind is TokenKind.REPEAT:
            return self._repeat_statement(label)
        if kind is TokenKind.SUB:
            return self._sub_statement(label)
        if kind is TokenKind.CALL:
            return self._call_statement(label)
        if kind is TokenKind.RETURN:
            return self._return_statement(label)
        if kind is TokenKind.BREAK:
            return self._break_statement(label)
        if kind is TokenKind.CONTINUE:
            return self._continue_statement(label)
        if kind in (TokenKind.ELSEIF, TokenKind.ELSE, TokenKind.ENDIF, TokenKind.ENDWHILE,
                    TokenKind.ENDREPEAT, TokenKind.ENDSUB):
            raise self._error(f"'{kind.value}' at {label} has no matching opening statement")
        raise self._error(f"Unexpected {self._lookahead.describe()} after {label}")

    def _if_statement(self, label: Label) -> IfStatement:
        self._eat(TokenKind.IF)
        statement = self._if_arm(label)
        logger.debug("Parsed if block %s", label)
        return statement

    def _if_arm(self, label: Label) -> IfStatement:
        # elseif arms recurse here, producing a right-nested chain
        test = self._parenthesized()
        self._eat(TokenKind.RTN)
        consequent, closing = self._statement_list(_IF_STOPS)
        self._check_label(label, closing)

        if self._lookahead.kind is TokenKind.ELSEIF:
            self._eat(TokenKind.ELSEIF)
            nested = self._if_arm(closing)
            return IfStatement(label=label, test=test, consequent=consequent, alternate=[nested])

        alternate: list[Statement] = []
        if self._lookahead.kind is TokenKind.ELSE:
            self._eat(TokenKind.ELSE)
            self._eat(TokenKind.RTN)
            alternate, closing = self._statement_list(_ELSE_STOPS)
            self._check_label(label, closing)

        self._eat(TokenKind.ENDIF)
        self._end_of_line()
        return IfStatement(label=label, test=test, consequent=consequent, alternate=alternate)

    def _while_statement(self, label: Label) -> WhileStatement:
        self._eat(TokenKind.WHILE)
        test = self._parenthesized()
        self._eat(TokenKind.RTN)

        self._while_labels.append(label)
        try:
            body, closing = self._statement_list(_WHILE_STOPS)
        finally:
            self._while_labels.pop()
        self._check_label(label, closing)

        self._eat(TokenKind.ENDWHILE)
        self._end_of_line()
        logger.debug("Parsed while block %s", label)
        return WhileStatement(label=label, test=test, body=body)

    def _repeat_statement(self, label: Label) -> RepeatStatement:
        self._eat(TokenKind.REPEAT)
        count = self._parenthesized()
        self._eat(TokenKind.RTN)

        body, closing = self._statement_list(_REPEAT_STOPS)
        self._check_label(label, closing)

        self._eat(TokenKind.ENDREPEAT)
        self._end_of_line()
        logger.debug("Parsed repeat block %s", label)
        return RepeatStatement(label=label, count_expr=count, body=body)

    def _sub_statement(self, label: Label) -> SubStatement:
        if self._sub_label is not None:
            raise self._error(f"Subroutine {label} cannot be defined inside subroutine {self._sub_label}")
        self._eat(TokenKind.SUB)
        self._eat(TokenKind.RTN)

        # Loops outside the sub are not visible to break/continue inside it
        outer_loops = self._while_labels
        self._sub_label = label
        self._while_labels = []
        try:
            body, closing = self._statement_list(_SUB_STOPS)
        finally:
            self._sub_label = None
            self._while_labels = outer_loops
        self._check_label(label, closing)

        self._eat(TokenKind.ENDSUB)
        tail = None
        if self._lookahead is not None and self._lookahead.kind is TokenKind.LBRACKET:
            tail = self._parenthesized()
        self._end_of_line()
        logger.debug("Parsed sub %s", label)
        return SubStatement(label=label, body=body, tail_return_expr=tail)

    def _call_statement(self, label: Label) -> CallStatement:
        self._eat(TokenKind.CALL)
        args: list[Expression] = []
        while self._lookahead is not None and self._lookahead.kind is TokenKind.LBRACKET:
            args.append(self._parenthesized())
        self._end_of_line()
        return CallStatement(label=label, args=args)

    def _return_statement(self, label: Label) -> ReturnStatement:
        if self._sub_label is None:
            raise self._error(f"{label} return outside of a subroutine")
        if label != self._sub_label:
            raise self._error(f"{label} return does not match enclosing subroutine {self._sub_label}")
        self._eat(TokenKind.RETURN)
        value = None
        if self._lookahead is not None and self._lookahead.kind is TokenKind.LBRACKET:
            value = self._parenthesized()
        self._end_of_line()
        return ReturnStatement(label=label, value_expr=value)

    def _break_statement(self, label: Label) -> BreakStatement:
        self._check_loop_context(label, "break")
        self._eat(TokenKind.BREAK)
        self._end_of_line()
        return BreakStatement(label=label)

    def _continue_statement(self, label: Label) -> ContinueStatement:
        self._check_loop_context(label, "continue")
        self._eat(TokenKind.CONTINUE)
        self._end_of_line()
        return ContinueStatement(label=label)

    def _check_loop_context(self, label: Label, keyword: str) -> None:
        if self.while_depth < 1:
            raise self._error(f"{label} {keyword} outside of a while loop")
        if label not in self._while_labels:
            raise self._error(f"{label} {keyword} does not match any enclosing while loop")

    def _check_label(self, opening: Label, closing: Label | None) -> None:
        if closing != opening:
            raise self._error(f"Label mismatch: block opened with {opening} but closed with {closing}")

    def _label(self) -> Label:
        self._eat(TokenKind.O)
        if self._lookahead is not None and self._lookahead.kind is TokenKind.VAR_NAME:
            return Label(name=self._name_index())
        return Label(index=self._number_index())

    # ----- Expressions -----
    # Precedence, low to high: assignment, logical, relational, additive,
    # multiplicative, power, primary

    def _expression(self) -> Expression:
        return self._assignment()

    def _assignment(self) -> Expression:
        left = self._logical()
        if self._lookahead is None or self._lookahead.kind is not TokenKind.ASSIGN:
            return left

        op_token = self._eat(TokenKind.ASSIGN)
        if not isinstance(left, (NumberIndexedVar, NameIndexedVar)):
            raise self._error("Invalid assignment target: left-hand side must be a variable", op_token)
        return AssignExpr(target=left, value=self._assignment())

    def _binary(self, operand, kind: TokenKind) -> Expression:
        left = operand()
        while self._lookahead is not None and self._lookahead.kind is kind:
            op = self._eat(kind).text
            right = operand()
            left = BinaryExpr(op=OPERATOR_ALIASES.get(op, op), left=left, right=right)
        return left

    def _logical(self) -> Expression:
        return self._binary(self._relational, TokenKind.LOGICAL)

    def _relational(self) -> Expression:
        return self._binary(self._additive, TokenKind.RELATIONAL)

    def _additive(self) -> Expression:
        return self._binary(self._multiplicative, TokenKind.ADDITIVE)

    def _multiplicative(self) -> Expression:
        return self._binary(self._power, TokenKind.MULTIPLICATIVE)

    def _power(self) -> Expression:
        return self._binary(self._primary, TokenKind.POWER)

    def _primary(self, allow_unary: bool = True) -> Expression:
        token = self._lookahead
        if token is None:
            raise self._error("Unexpected end of input, expected an expression")

        kind = token.kind
        if kind is TokenKind.ADDITIVE:
            if not allow_unary:
                raise self._error(f"Repeated unary operator {token.text!r}")
            op = self._eat(TokenKind.ADDITIVE).text
            return BinaryExpr(op=op, left=NumberLiteral(0), right=self._primary(allow_unary=False))
        if kind is TokenKind.INTEGER:
            return NumberLiteral(int(self._eat(TokenKind.INTEGER).text))
        if kind is TokenKind.DOUBLE:
            return NumberLiteral(float(self._eat(TokenKind.DOUBLE).text))
        if kind is TokenKind.LBRACKET:
            return self._parenthesized()
        if kind is TokenKind.HASH:
            return self._variable()
        if kind is TokenKind.IDENTIFIER:
            return self._builtin_call()
        raise self._error(f"Unexpected {token.describe()}, expected an expression")

    def _parenthesized(self) -> Expression:
        self._eat(TokenKind.LBRACKET)
        expr = self._expression()
        self._eat(TokenKind.RBRACKET)
        return expr

    def _variable(self) -> Variable:
        self._eat(TokenKind.HASH)
        if self._lookahead is not None and self._lookahead.kind is TokenKind.VAR_NAME:
            return NameIndexedVar(name=self._name_index())
        return NumberIndexedVar(index=self._number_index())

    def _name_index(self) -> str:
        text = self._eat(TokenKind.VAR_NAME).text
        name = text[1:-1].strip()
        if not name:
            raise self._error("Empty variable name")
        return name

    def _number_index(self) -> Expression:
        token = self._lookahead
        if token is None:
            raise self._error("Unexpected end of input, expected a numeric index")
        if token.kind is TokenKind.INTEGER:
            return NumberLiteral(int(self._eat(TokenKind.INTEGER).text))
        if token.kind is TokenKind.DOUBLE:
            raise self._error(f"Cannot use a floating-point literal {token.text!r} as an index")
        if token.kind is TokenKind.LBRACKET:
            return self._parenthesized()
        if token.kind is TokenKind.HASH:
            return self._variable()
        raise self._error(f"Unexpected index {token.describe()}")

    def _builtin_call(self) -> BuiltinCall:
        token = self._eat(TokenKind.IDENTIFIER)
        name = token.text
        if name not in FUNCTION_NAMES:
            raise self._error(f"Unknown function {name!r}", token)

        if name == EXISTS:
            self._eat(TokenKind.LBRACKET)
            target = self._variable()
            self._eat(TokenKind.RBRACKET)
            return BuiltinCall(name=name, args=[target])

        if name == "atan":
            y = self._parenthesized()
            slash = self._eat(TokenKind.MULTIPLICATIVE)
            if slash.text != "/":
                raise self._error("atan requires the form atan[y]/[x]", slash)
            x = self._parenthesized()
            return BuiltinCall(name=name, args=[y, x])

        return BuiltinCall(name=name, args=[self._parenthesized()])

    # ----- Token helpers -----

    def _end_of_line(self) -> None:
        if self._lookahead is not None:
            self._eat(TokenKind.RTN)

    def _eat(self, kind: TokenKind) -> Token:
        token = self._lookahead
        if token is None:
            raise self._error(f"Unexpected end of input, expected {kind.value}")
        if token.kind is not kind:
            raise self._error(f"Unexpected {token.describe()}, expected {kind.value}")
        self._lookahead = self._lexer.next_token()
        return token

    def _error(self, message: str, token: Token | None = None) -> MacroSyntaxError:
        token = token or self._lookahead
        if token is not None:
            return MacroSyntaxError(message, token.line, token.column, token)
        return MacroSyntaxError(message, self._lexer.line, self._lexer.column, None)


def parse(source: str, on_comment: CommentObserver | None = None) -> Program:
    """
    Parse a complete macro program

    Args:
        source: Program text; lines are statement separators
        on_comment: Optional observer for comments dropped by the lexer

    Returns:
        Program syntax tree

    Raises:
        LexError: unrecognised character
        MacroSyntaxError: any structural problem
    """
    return Parser(source, on_comment).parse()
