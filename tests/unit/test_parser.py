import pytest

from ngcmacro.macro.ast import (
    AssignExpr,
    BinaryExpr,
    BreakStatement,
    BuiltinCall,
    CallStatement,
    CommandStatement,
    ContinueStatement,
    ExpressionStatement,
    IfStatement,
    Label,
    NameIndexedVar,
    NumberIndexedVar,
    NumberLiteral,
    RepeatStatement,
    ReturnStatement,
    SubStatement,
    WhileStatement,
)
from ngcmacro.macro.parser import Parser, parse
from ngcmacro.utils.errors import LexError, MacroSyntaxError


def only_statement(source):
    program = parse(source)
    assert len(program.body) == 1
    return program.body[0]


def lit(value):
    return NumberLiteral(value)


def test_multiplicative_binds_tighter_than_additive():
    stmt = only_statement("#1 = 2 + 3 * 4\n")
    assert stmt == ExpressionStatement(
        AssignExpr(
            target=NumberIndexedVar(lit(1)),
            value=BinaryExpr("+", lit(2), BinaryExpr("*", lit(3), lit(4))),
        )
    )


def test_binary_operators_are_left_associative():
    stmt = only_statement("[10 - 4 - 3]")
    assert stmt.expr == BinaryExpr("-", BinaryExpr("-", lit(10), lit(4)), lit(3))


def test_precedence_ladder():
    # logical < relational < additive < multiplicative < power
    stmt = only_statement("[1 + 2 * 3 ** 2 > 4 and 1]")
    power = BinaryExpr("**", lit(3), lit(2))
    additive = BinaryExpr("+", lit(1), BinaryExpr("*", lit(2), power))
    assert stmt.expr == BinaryExpr("and", BinaryExpr(">", additive, lit(4)), lit(1))


def test_textual_relational_operators_are_normalized():
    stmt = only_statement("[#1 ge 2]")
    assert stmt.expr == BinaryExpr(">=", NumberIndexedVar(lit(1)), lit(2))


def test_assignment_is_right_associative():
    stmt = only_statement("#1 = #2 = 3")
    assert stmt.expr == AssignExpr(NumberIndexedVar(lit(1)), AssignExpr(NumberIndexedVar(lit(2)), lit(3)))


def test_unary_minus_is_rewritten():
    stmt = only_statement("#1 = -#2")
    assert stmt.expr.value == BinaryExpr("-", lit(0), NumberIndexedVar(lit(2)))


def test_repeated_unary_is_rejected():
    with pytest.raises(MacroSyntaxError):
        parse("#1 = --2\n")


def test_command_statement_groups():
    stmt = only_statement("g1 x10 Y-2.5 F[#1 * 2]\n")
    assert isinstance(stmt, CommandStatement)
    assert [letter for letter, _ in stmt.groups] == ["G", "X", "Y", "F"]
    assert stmt.groups[0][1] == lit(1)
    assert stmt.groups[2][1] == BinaryExpr("-", lit(0), lit(2.5))
    assert stmt.groups[3][1] == BinaryExpr("*", NumberIndexedVar(lit(1)), lit(2))


def test_empty_lines_are_skipped():
    program = parse("\n\nG0\n\n(comment only)\n")
    assert len(program.body) == 1


def test_variable_index_forms():
    assert only_statement("#<Name>").expr == NameIndexedVar("Name")
    assert only_statement("#[1 + 1]").expr == NumberIndexedVar(BinaryExpr("+", lit(1), lit(1)))
    assert only_statement("##3").expr == NumberIndexedVar(NumberIndexedVar(lit(3)))


def test_double_literal_index_is_rejected():
    with pytest.raises(MacroSyntaxError):
        parse("#1.5 = 2\n")


def test_invalid_assignment_target():
    with pytest.raises(MacroSyntaxError):
        parse("[1 + 2] = 3\n")


def test_builtin_calls():
    assert only_statement("sin[30]").expr == BuiltinCall("sin", [lit(30)])
    assert only_statement("atan[1]/[2]").expr == BuiltinCall("atan", [lit(1), lit(2)])
    assert only_statement("exists[#<x>]").expr == BuiltinCall("exists", [NameIndexedVar("x")])


def test_builtin_errors():
    with pytest.raises(MacroSyntaxError):
        parse("frobnicate[1]\n")
    with pytest.raises(MacroSyntaxError):
        parse("atan[1]*[2]\n")
    with pytest.raises(MacroSyntaxError):
        parse("exists[1]\n")


def test_if_else_structure():
    stmt = only_statement("o1 if [#1 gt 0]\n  G1\no1 else\n  G0\no1 endif\n")
    assert isinstance(stmt, IfStatement)
    assert stmt.label == Label(index=lit(1))
    assert stmt.test == BinaryExpr(">", NumberIndexedVar(lit(1)), lit(0))
    assert isinstance(stmt.consequent[0], CommandStatement)
    assert isinstance(stmt.alternate[0], CommandStatement)


def test_elseif_is_desugared_into_nested_if():
    source = (
        "o7 if [#1 eq 1]\n"
        "  #2 = 10\n"
        "o7 elseif [#1 eq 2]\n"
        "  #2 = 20\n"
        "o7 else\n"
        "  #2 = 30\n"
        "o7 endif\n"
    )
    stmt = only_statement(source)
    assert len(stmt.alternate) == 1
    nested = stmt.alternate[0]
    assert isinstance(nested, IfStatement)
    assert nested.label == Label(index=lit(7))
    assert nested.test == BinaryExpr("==", NumberIndexedVar(lit(1)), lit(2))
    assert len(nested.alternate) == 1
    assert isinstance(nested.alternate[0], ExpressionStatement)


def test_if_without_else_has_empty_alternate():
    stmt = only_statement("o1 if [1]\nG0\no1 endif")
    assert stmt.alternate == []


def test_label_mismatch_is_rejected():
    with pytest.raises(MacroSyntaxError) as excinfo:
        parse("o1 if [1]\nG0\no2 endif\n")
    assert "mismatch" in str(excinfo.value)


def test_numeric_labels_compare_by_value():
    stmt = only_statement("o01 while [0]\no1 endwhile\n")
    assert isinstance(stmt, WhileStatement)


def test_named_labels():
    stmt = only_statement("o<loop> while [0]\no<loop> endwhile\n")
    assert stmt.label == Label(name="loop")


def test_while_with_break_and_continue():
    stmt = only_statement("o1 while [1]\no1 continue\no1 break\no1 endwhile\n")
    assert stmt.body == [ContinueStatement(Label(index=lit(1))), BreakStatement(Label(index=lit(1)))]


def test_break_may_target_an_outer_loop():
    source = "o1 while [1]\no2 while [1]\no1 break\no2 endwhile\no1 endwhile\n"
    outer = only_statement(source)
    inner = outer.body[0]
    assert inner.body == [BreakStatement(Label(index=lit(1)))]


@pytest.mark.parametrize(
    "source",
    [
        "o1 break\n",
        "o1 continue\n",
        "o1 if [1]\no1 break\no1 endif\n",
        "o1 while [1]\no2 break\no1 endwhile\n",
        # a sub body does not see the loops around its definition
        "o1 while [1]\no2 sub\no1 break\no2 endsub\no1 endwhile\n",
    ],
)
def test_break_outside_matching_while(source):
    with pytest.raises(MacroSyntaxError):
        parse(source)


def test_repeat_statement():
    stmt = only_statement("o3 repeat [5]\nG1\no3 endrepeat\n")
    assert stmt == RepeatStatement(Label(index=lit(3)), lit(5), [CommandStatement([("G", lit(1))])])


def test_sub_with_tail_return_expression():
    stmt = only_statement("o5 sub\n#1 = #1 + 1\no5 endsub [#1]\n")
    assert isinstance(stmt, SubStatement)
    assert stmt.tail_return_expr == NumberIndexedVar(lit(1))
    assert len(stmt.body) == 1


def test_sub_with_return():
    stmt = only_statement("o<f> sub\no<f> return [2]\no<f> endsub\n")
    assert stmt.body == [ReturnStatement(Label(name="f"), lit(2))]
    assert stmt.tail_return_expr is None


def test_return_outside_sub():
    with pytest.raises(MacroSyntaxError):
        parse("o1 return [1]\n")


def test_return_label_must_match_sub():
    with pytest.raises(MacroSyntaxError):
        parse("o1 sub\no2 return\no1 endsub\n")


def test_nested_sub_is_rejected():
    with pytest.raises(MacroSyntaxError):
        parse("o1 sub\no2 sub\no2 endsub\no1 endsub\n")


def test_call_arguments():
    stmt = only_statement("o<f> call [1] [#2] [3 + 4]\n")
    assert stmt == CallStatement(
        Label(name="f"), [lit(1), NumberIndexedVar(lit(2)), BinaryExpr("+", lit(3), lit(4))]
    )
    assert only_statement("o9 call").args == []


def test_unclosed_block_reports_end_of_input():
    with pytest.raises(MacroSyntaxError) as excinfo:
        parse("o1 while [1]\nG0\n")
    assert "end of input" in str(excinfo.value)


def test_closing_keyword_without_opening():
    with pytest.raises(MacroSyntaxError):
        parse("o1 endif\n")


def test_syntax_error_carries_position():
    with pytest.raises(MacroSyntaxError) as excinfo:
        parse("G1\nX]\n")
    err = excinfo.value
    assert err.line == 2
    assert err.column == 2
    assert err.token.text == "]"


def test_lex_errors_propagate_through_parse():
    with pytest.raises(LexError):
        parse("G1 X1 @\n")


def test_parser_tracks_while_depth():
    parser = Parser("G0\n")
    assert parser.while_depth == 0
    parser.parse()
    assert parser.while_depth == 0


def test_comment_observer_through_parse():
    seen = []
    parse("G0 (hello)\n", on_comment=lambda text, line: seen.append(text))
    assert seen == ["hello"]
