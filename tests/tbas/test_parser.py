"""Tests for the TBAS parser and closure converter."""

import pytest

from tbas import TBASDuplicateDefinitionError, TBASSyntaxError
from tbas.tbas_ast import (
    TBASASTArgRef, TBASASTArray, TBASASTCall, TBASASTIdent, TBASASTIf, TBASASTLambda, TBASASTNumber,
    TBASASTNull, TBASASTOn, TBASASTOp, TBASASTTupleParams, TBASASTValue
)
from tbas.tbas_value import TBASClosure, TBASNumber


def _parse(tbas, text, line_number=10):
    return tbas.interpreter.parse_line(line_number, text)


class TestTBASParserStatements:
    """Test statement forms."""

    def test_statements_split_on_colon(self, tbas):
        """Test a line splits into one tree per statement."""
        trees = _parse(tbas, 'X = 1 : PRINT X : END')
        assert len(trees) == 3
        assert isinstance(trees[0], TBASASTOp) and trees[0].op == "="
        assert isinstance(trees[1], TBASASTCall) and trees[1].target == "PRINT"
        assert trees[2] == TBASASTCall("END")

    def test_rem_line(self, tbas):
        """Test a REM line produces no statements."""
        assert _parse(tbas, "REM anything : at all") == []

    @pytest.mark.parametrize("text", ['REM don\'t say "hi', "REM version 1. released", "  rem lower case"])
    def test_rem_line_is_not_tokenized(self, tbas, text):
        """Test REM text that would not lex is still a comment."""
        assert _parse(tbas, text) == []

    def test_name_starting_with_rem(self, tbas):
        """Test a variable whose name begins with REM is not a comment."""
        trees = _parse(tbas, "REMAINDER = 5")
        assert trees == [TBASASTOp("=", (TBASASTIdent("REMAINDER"), TBASASTNumber(5.0)))]

    def test_builtin_call_without_parentheses(self, tbas):
        """Test builtins take arguments without parentheses."""
        tree = _parse(tbas, 'PRINT "A"; "B", 3')[0]
        assert isinstance(tree, TBASASTCall)
        assert len(tree.args) == 3
        assert tree.separators == (";", ",")

    def test_trailing_separator_adds_null_argument(self, tbas):
        """Test a trailing ';' leaves an empty last argument."""
        tree = _parse(tbas, 'PRINT "A";')[0]
        assert len(tree.args) == 2
        assert isinstance(tree.args[1], TBASASTNull)

    def test_dim_statement(self, tbas):
        """Test DIM A(3) becomes an assignment of DIM(3)."""
        tree = _parse(tbas, "DIM A(3)")[0]
        assert tree == TBASASTOp("=", (TBASASTIdent("A"), TBASASTCall("DIM", (TBASASTNumber(3.0),))))

    def test_if_then_else(self, tbas):
        """Test IF statements with both branches."""
        tree = _parse(tbas, 'IF X > 1 THEN PRINT "BIG" ELSE PRINT "SMALL"')[0]
        assert isinstance(tree, TBASASTIf)
        assert isinstance(tree.condition, TBASASTOp) and tree.condition.op == ">"
        assert isinstance(tree.then_branch, TBASASTCall)
        assert isinstance(tree.else_branch, TBASASTCall)

    def test_if_without_else(self, tbas):
        """Test IF statements without ELSE."""
        tree = _parse(tbas, "IF X THEN GOTO 100")[0]
        assert isinstance(tree, TBASASTIf)
        assert tree.else_branch is None

    def test_if_with_assignment_in_condition(self, tbas):
        """Test '=' in an IF condition is rejected with a hint."""
        with pytest.raises(TBASSyntaxError, match="did you mean '=='"):
            _parse(tbas, "IF X = 1 THEN END")

    def test_if_without_then(self, tbas):
        """Test IF needs THEN."""
        with pytest.raises(TBASSyntaxError, match="IF without THEN"):
            _parse(tbas, "IF X > 1 PRINT X")

    def test_on_goto(self, tbas):
        """Test ON ... GOTO with several targets."""
        tree = _parse(tbas, "ON X GOTO 100, 200, 300")[0]
        assert isinstance(tree, TBASASTOn)
        assert tree.kind == "GOTO"
        assert len(tree.targets) == 3

    def test_defun_becomes_assignment_of_lambda(self, tbas):
        """Test DEFUN is rewritten as an assignment of a closure."""
        tree = _parse(tbas, "DEFUN SQ(X) = X * X")[0]
        assert isinstance(tree, TBASASTOp) and tree.op == "="
        assert tree.operands[0] == TBASASTIdent("SQ")
        lambda_node = tree.operands[1]
        assert isinstance(lambda_node, TBASASTLambda)
        assert lambda_node.body == TBASASTOp("*", (TBASASTArgRef(0, 0), TBASASTArgRef(0, 0)))

    def test_empty_statement(self, tbas):
        """Test a doubled ':' is a syntax error."""
        with pytest.raises(TBASSyntaxError, match="Empty statement"):
            _parse(tbas, "X = 1 : : Y = 2")

    def test_unmatched_brackets(self, tbas):
        """Test unbalanced brackets are reported."""
        with pytest.raises(TBASSyntaxError, match="Unmatched brackets") as exc_info:
            _parse(tbas, "X = (1 + 2", 30)

        assert exc_info.value.line == 30


class TestTBASParserExpressions:
    """Test expression splitting and precedence."""

    @pytest.mark.parametrize("text,expected", [
        ("1 + 2 * 3", "(1 + (2 * 3))"),
        ("(1 + 2) * 3", "((1 + 2) * 3)"),
        ("10 - 3 - 2", "((10 - 3) - 2)"),
        ("2 ^ 3 ^ 2", "(2 ^ (3 ^ 2))"),
        ("A < B AND C > D", "((A < B) AND (C > D))"),
        ("1 ! 2 ! NIL", "(1 ! (2 ! NIL))"),
    ])
    def test_precedence_and_associativity(self, tbas, text, expected):
        """Test the loosest operator splits first, honouring associativity."""
        assert tbas.interpreter.parse_line(None, "X = " + text)[0].operands[1].describe() == expected

    def test_unary_minus_folds_into_literal(self, tbas):
        """Test a negated number literal becomes a negative number."""
        tree = _parse(tbas, "X = -5")[0]
        assert tree.operands[1] == TBASASTNumber(-5.0)

    def test_unary_minus_on_expression(self, tbas):
        """Test unary minus on a name stays an operator."""
        tree = _parse(tbas, "X = -Y")[0]
        assert tree.operands[1] == TBASASTOp("UNARYMINUS", (TBASASTIdent("Y"),))

    def test_array_literal(self, tbas):
        """Test braces build an array literal."""
        tree = _parse(tbas, "X = {1, 2, 3}")[0]
        assert isinstance(tree.operands[1], TBASASTArray)
        assert len(tree.operands[1].elements) == 3

    def test_empty_array_element(self, tbas):
        """Test an array literal may not have empty elements."""
        with pytest.raises(TBASSyntaxError, match="Empty array element"):
            _parse(tbas, "X = {1, , 3}")

    def test_function_call_chain(self, tbas):
        """Test F(1)(2) parses as a call of a call."""
        tree = _parse(tbas, "X = F(1)(2)")[0]
        call = tree.operands[1]
        assert isinstance(call, TBASASTCall)
        assert isinstance(call.target, TBASASTCall)
        assert call.target.target == "F"

    def test_parenthesised_callee(self, tbas):
        """Test (expression)(args) calls the expression's value."""
        tree = _parse(tbas, "X = (F ~< 3)(4)")[0]
        call = tree.operands[1]
        assert isinstance(call.target, TBASASTOp)
        assert call.target.op == "~<"

    @pytest.mark.parametrize("text", ["[X, Y] ~> X + Y", "(X, Y) ~> X + Y"])
    def test_lambda_parameter_lists(self, tbas, text):
        """Test both bracket styles for lambda parameters."""
        lambda_node = _parse(tbas, "F = " + text)[0].operands[1]
        assert isinstance(lambda_node, TBASASTLambda)
        assert lambda_node.params.names == ("X", "Y")
        assert lambda_node.body == TBASASTOp("+", (TBASASTArgRef(0, 0), TBASASTArgRef(0, 1)))

    def test_bare_lambda_parameter(self, tbas):
        """Test a single bare name as a lambda parameter."""
        lambda_node = _parse(tbas, "F = X ~> X * 2")[0].operands[1]
        assert lambda_node.params.names == ("X",)

    def test_duplicate_lambda_parameter(self, tbas):
        """Test repeated parameter names are rejected."""
        with pytest.raises(TBASDuplicateDefinitionError, match="Duplicate definition on X"):
            _parse(tbas, "F = [X, X] ~> X")

    def test_missing_right_operand(self, tbas):
        """Test a binary operator needs a right operand."""
        with pytest.raises(TBASSyntaxError, match="Missing right operand"):
            _parse(tbas, "X = 1 +")


class TestTBASClosureConverter:
    """Test parameter resolution and currying."""

    def test_nested_lambda_depths(self, tbas):
        """Test outer parameters are referenced with depth 1 from an inner lambda."""
        outer = _parse(tbas, "F = [X] ~> [Y] ~> X - Y")[0].operands[1]
        inner = outer.body
        assert isinstance(inner, TBASASTLambda)
        assert inner.body == TBASASTOp("-", (TBASASTArgRef(1, 0), TBASASTArgRef(0, 0)))

    def test_shadowing_uses_innermost_binder(self, tbas):
        """Test an inner parameter shadows an outer one with the same name."""
        outer = _parse(tbas, "F = [X] ~> [X] ~> X")[0].operands[1]
        assert outer.body.body == TBASASTArgRef(0, 0)

    def test_free_names_stay_identifiers(self, tbas):
        """Test names that are not parameters stay global identifiers."""
        lambda_node = _parse(tbas, "F = [X] ~> X + Y")[0].operands[1]
        assert lambda_node.body.operands[1] == TBASASTIdent("Y")

    def test_parameter_call_target(self, tbas):
        """Test calling a parameter resolves the call target to an argument reference."""
        lambda_node = _parse(tbas, "F = [G] ~> G(2)")[0].operands[1]
        assert lambda_node.body.target == TBASASTArgRef(0, 0)

    def test_curry_substitutes_first_parameter(self, tbas):
        """Test currying fixes parameter 0 and shifts the remaining parameters."""
        body = TBASASTOp("-", (TBASASTArgRef(0, 0), TBASASTArgRef(0, 1)))
        closure = TBASClosure(2, body, name="SUB")
        curried = tbas.interpreter.closure_converter.curry(closure, TBASNumber(10.0))

        assert curried.arity == 1
        assert curried.body == TBASASTOp("-", (TBASASTValue(TBASNumber(10.0)), TBASASTArgRef(0, 0)))
        assert closure.arity == 2

    def test_curry_reaches_into_inner_lambdas(self, tbas):
        """Test currying substitutes references from inner lambdas at the right depth."""
        inner = TBASASTLambda(TBASASTTupleParams(("Z",)), TBASASTArgRef(1, 0))
        closure = TBASClosure(1, inner)
        curried = tbas.interpreter.closure_converter.curry(closure, TBASNumber(7.0))

        assert curried.arity == 0
        assert curried.body.body == TBASASTValue(TBASNumber(7.0))
