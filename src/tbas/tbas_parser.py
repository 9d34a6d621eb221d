"""Parser for TBAS statements and expressions."""

import logging
from typing import FrozenSet, Iterator, List, Tuple

from tbas.tbas_ast import (
    TBASASTNode, TBASASTNull, TBASASTNumber, TBASASTString, TBASASTBoolean, TBASASTIdent, TBASASTOp,
    TBASASTCall, TBASASTArray, TBASASTTupleParams, TBASASTLambda, TBASASTIf, TBASASTOn, TBASASTDefun
)
from tbas.tbas_elaborator import OPERATOR_PRECEDENCE, RIGHT_ASSOCIATIVE, number_value
from tbas.tbas_error import TBASDuplicateDefinitionError, TBASParseMismatch, TBASSyntaxError
from tbas.tbas_token import TBASToken, TBASTokenState


class TBASParser:
    """
    Parses elaborated tokens into one AST per statement.

    Expressions are split at the most loosely binding operator found outside brackets. Each
    statement form is tried in turn; a form that does not apply raises TBASParseMismatch, which
    never escapes parse_line.
    """

    UNARY_OPERATORS = {
        "-": "UNARYMINUS",
        "+": "UNARYPLUS",
        "NOT": "UNARYLOGICNOT",
        "BNOT": "UNARYBNOT",
        "@": "MRET",
        "`": "MJOIN",
    }

    RESERVED_HEADS = frozenset({"IF", "THEN", "ELSE", "DEFUN", "ON"})

    _OPENING = "([{"
    _CLOSING = ")]}"

    _SEMANTIC_LITERAL_STATES = frozenset({
        TBASTokenState.QUOTED, TBASTokenState.NUMBER, TBASTokenState.BOOLEAN, TBASTokenState.LITERAL
    })

    def __init__(self, builtin_names: FrozenSet[str] = frozenset()) -> None:
        """
        Initialize parser.

        Args:
            builtin_names: Names that may be called without parentheses, e.g. PRINT
        """
        self._builtin_names = builtin_names
        self._line: int | None = None
        self._source = ""
        self._logger = logging.getLogger("TBASParser")

    def parse_line(self, line_number: int | None, tokens: List[TBASToken]) -> List[TBASASTNode | None]:
        """
        Parse one source line.

        Args:
            line_number: Program line number, used for error reporting
            tokens: Elaborated tokens for the whole line

        Returns:
            One AST per ':'-separated statement; REM statements parse to None

        Raises:
            TBASSyntaxError: If any statement cannot be parsed
        """
        self._line = line_number
        self._source = " ".join(token.text for token in tokens)

        if not tokens or tokens[0].is_literal("REM"):
            return []

        self._check_brackets(tokens)

        statements: List[TBASASTNode | None] = []
        start = 0
        for k, token in self._scan_top_level(tokens):
            if token.state == TBASTokenState.SEQUENCE:
                statements.append(self._parse_top_statement(tokens[start:k]))
                start = k + 1

        statements.append(self._parse_top_statement(tokens[start:]))
        return statements

    def _parse_top_statement(self, tokens: List[TBASToken]) -> TBASASTNode | None:
        if not tokens:
            raise self._error("Empty statement", suggestion="Remove the extra ':'")

        try:
            return self._parse_statement(tokens)

        except TBASParseMismatch as e:
            raise self._error(
                "Statement cannot be parsed",
                received=" ".join(token.text for token in tokens),
                context=e.message
            ) from e

    def _error(self, message: str, **kwargs: str | None) -> TBASSyntaxError:
        kwargs.setdefault("context", self._source)
        return TBASSyntaxError(message, line=self._line, **kwargs)

    def _mismatch(self, message: str) -> TBASParseMismatch:
        return TBASParseMismatch(message, line=self._line)

    # Bracket handling

    def _scan_top_level(self, tokens: List[TBASToken]) -> Iterator[Tuple[int, TBASToken]]:
        """Yield the tokens that sit outside every bracket pair."""
        depth = 0
        for k, token in enumerate(tokens):
            if token.state == TBASTokenState.PAREN:
                depth += 1 if token.text in self._OPENING else -1
                continue

            if depth == 0:
                yield k, token

    def _check_brackets(self, tokens: List[TBASToken]) -> None:
        stack: List[str] = []
        for token in tokens:
            if token.state != TBASTokenState.PAREN:
                continue

            if token.text in self._OPENING:
                stack.append(token.text)
                continue

            expected = self._OPENING[self._CLOSING.index(token.text)]
            if not stack or stack.pop() != expected:
                raise self._error("Unmatched brackets", received=token.text)

        if stack:
            raise self._error("Unmatched brackets", received=stack[-1])

    def _matching_close(self, tokens: List[TBASToken], open_index: int) -> int:
        depth = 0
        for k in range(open_index, len(tokens)):
            token = tokens[k]
            if token.state != TBASTokenState.PAREN:
                continue

            depth += 1 if token.text in self._OPENING else -1
            if depth == 0:
                return k

        raise self._error("Unmatched brackets", received=tokens[open_index].text)

    def _is_wrapped(self, tokens: List[TBASToken], opening: str) -> bool:
        """Check that the whole run is one bracket pair of the given kind."""
        if len(tokens) < 2 or not tokens[0].is_paren(opening):
            return False

        return self._matching_close(tokens, 0) == len(tokens) - 1

    def _split_separated(self, tokens: List[TBASToken]) -> Tuple[List[List[TBASToken]], List[str]]:
        """Split a run at top-level ',' and ';' separators."""
        pieces: List[List[TBASToken]] = []
        separators: List[str] = []
        start = 0
        for k, token in self._scan_top_level(tokens):
            if token.state == TBASTokenState.SEPARATOR:
                pieces.append(tokens[start:k])
                separators.append(token.text)
                start = k + 1

        pieces.append(tokens[start:])
        return pieces, separators

    # Statements

    def _parse_statement(self, tokens: List[TBASToken]) -> TBASASTNode | None:
        if not tokens:
            return TBASASTNull()

        if len(tokens) == 1:
            return self._parse_literal(tokens[0], call_mode=True)

        if tokens[0].is_literal("REM"):
            return None

        for alternative in (self._parse_if_statement, self._parse_defun, self._parse_dim, self._parse_on):
            try:
                return alternative(tokens)

            except TBASParseMismatch:
                pass

        if self._is_wrapped(tokens, "("):
            return self._parse_statement(tokens[1:-1])

        return self._parse_expression(tokens)

    def _parse_if_statement(self, tokens: List[TBASToken]) -> TBASASTNode:
        return self._parse_if(tokens, statement_mode=True)

    def _parse_defun(self, tokens: List[TBASToken]) -> TBASASTNode:
        if not tokens[0].is_literal("DEFUN"):
            raise self._mismatch("not a DEFUN")

        if len(tokens) < 5 or tokens[1].state != TBASTokenState.LITERAL or not tokens[2].is_paren("("):
            raise self._error("Malformed DEFUN", expected="DEFUN name(params) = expression",
                              suggestion="DEFUN SQ(X) = X * X")

        close = self._matching_close(tokens, 2)
        if close + 1 >= len(tokens) or tokens[close + 1].text != "=":
            raise self._error("Malformed DEFUN: missing '=' after the parameter list",
                              expected="DEFUN name(params) = expression")

        body_tokens = tokens[close + 2:]
        if not body_tokens:
            raise self._error("Malformed DEFUN: missing function body")

        params = self._parse_param_names(tokens[3:close])
        return TBASASTDefun(tokens[1].text.upper(), params, self._parse_expression(body_tokens),
                            column=tokens[0].column)

    def _parse_dim(self, tokens: List[TBASToken]) -> TBASASTNode:
        if (
            not tokens[0].is_literal("DIM") or len(tokens) < 4
            or tokens[1].state != TBASTokenState.LITERAL or not tokens[2].is_paren("(")
            or self._matching_close(tokens, 2) != len(tokens) - 1
        ):
            raise self._mismatch("not a DIM declaration")

        args, separators = self._parse_arguments(tokens[3:-1])
        if not args:
            raise self._error("DIM needs at least one dimension", suggestion="DIM A(10)")

        target = TBASASTIdent(tokens[1].text.upper(), column=tokens[1].column)
        return TBASASTOp("=", (target, TBASASTCall("DIM", args, separators, column=tokens[0].column)),
                         column=tokens[0].column)

    def _parse_on(self, tokens: List[TBASToken]) -> TBASASTNode:
        if not tokens[0].is_literal("ON"):
            raise self._mismatch("not an ON statement")

        jump_index = None
        for k, token in self._scan_top_level(tokens):
            if k > 0 and (token.is_literal("GOTO") or token.is_literal("GOSUB")):
                jump_index = k
                break

        if jump_index is None:
            raise self._error("ON without GOTO or GOSUB", expected="ON expr GOTO target, target, ...")

        test = self._parse_expression(tokens[1:jump_index])
        pieces, _ = self._split_separated(tokens[jump_index + 1:])
        if isinstance(test, TBASASTNull) or not any(pieces):
            raise self._error("Malformed ON statement", expected="ON expr GOTO target, target, ...")

        targets = tuple(self._parse_expression(piece) for piece in pieces)
        return TBASASTOn(tokens[jump_index].text.upper(), test, targets, column=tokens[0].column)

    # Expressions

    def _parse_expression(self, tokens: List[TBASToken], if_mode: bool = False) -> TBASASTNode:
        if not tokens:
            return TBASASTNull()

        head = tokens[0]
        if len(tokens) == 1 and not (head.state == TBASTokenState.LITERAL and head.text.upper() in self.RESERVED_HEADS):
            return self._parse_literal(head, call_mode=False)

        if self._is_wrapped(tokens, "["):
            return self._parse_tuple(tokens)

        if self._is_wrapped(tokens, "{"):
            return self._parse_array(tokens)

        if self._is_wrapped(tokens, "("):
            return self._parse_expression(tokens[1:-1])

        if head.is_literal("IF"):
            return self._parse_if(tokens, statement_mode=False)

        if (
            head.state == TBASTokenState.LITERAL and head.text.upper() in self._builtin_names
            and not tokens[1].is_paren("(")
        ):
            return self._parse_function_call(tokens)

        operator_index = self._find_top_operator(tokens)
        if operator_index is None:
            return self._parse_function_call(tokens)

        return self._split_at_operator(tokens, operator_index, if_mode)

    def _parse_literal(self, token: TBASToken, call_mode: bool) -> TBASASTNode:
        if token.state == TBASTokenState.QUOTED:
            return TBASASTString(token.text, column=token.column)

        if token.state == TBASTokenState.NUMBER:
            return TBASASTNumber(number_value(token.text), column=token.column)

        if token.state == TBASTokenState.BOOLEAN:
            return TBASASTBoolean(token.text.upper() == "TRUE", column=token.column)

        if token.state in (TBASTokenState.LITERAL, TBASTokenState.OPERATOR):
            name = token.text.upper()
            if call_mode:
                return TBASASTCall(name, column=token.column)

            return TBASASTIdent(name, column=token.column)

        raise self._mismatch(f"unexpected '{token.text}'")

    def _is_semantic_literal(self, token: TBASToken) -> bool:
        """Check whether a token can end a left operand."""
        if token.state == TBASTokenState.PAREN:
            return token.text in self._CLOSING

        return token.state in self._SEMANTIC_LITERAL_STATES

    def _find_top_operator(self, tokens: List[TBASToken]) -> int | None:
        """
        Find the operator to split at: the loosest binding one outside brackets.

        Ties go to the last occurrence for left-associative operators and to the first for
        right-associative ones.
        """
        top_index = None
        top_precedence = 0
        for k, token in self._scan_top_level(tokens):
            if token.state != TBASTokenState.OPERATOR:
                continue

            precedence = OPERATOR_PRECEDENCE.get(token.text)
            if precedence is None:
                continue

            if k > 0 and not self._is_semantic_literal(tokens[k - 1]):
                continue

            if precedence > top_precedence or (
                precedence == top_precedence and token.text not in RIGHT_ASSOCIATIVE
            ):
                top_index = k
                top_precedence = precedence

        return top_index

    def _split_at_operator(self, tokens: List[TBASToken], index: int, if_mode: bool) -> TBASASTNode:
        operator = tokens[index]
        op = operator.text

        if if_mode and op == "=":
            raise self._error("'=' used on IF, did you mean '=='?", received=self._source)

        if index == 0:
            unary = self.UNARY_OPERATORS.get(op)
            if unary is None:
                raise self._mismatch(f"unknown unary operator '{op}'")

            if len(tokens) == 1:
                raise self._error(f"Missing operand for '{op}'")

            return TBASASTOp(unary, (self._parse_expression(tokens[1:]),), column=operator.column)

        left_tokens = tokens[:index]
        right_tokens = tokens[index + 1:]
        if not right_tokens:
            raise self._error(f"Missing right operand for '{op}'")

        if op == "~>":
            return TBASASTLambda(
                self._parse_lambda_params(left_tokens), self._parse_expression(right_tokens), column=operator.column
            )

        return TBASASTOp(
            op, (self._parse_expression(left_tokens), self._parse_expression(right_tokens)), column=operator.column
        )

    def _parse_lambda_params(self, tokens: List[TBASToken]) -> TBASASTTupleParams:
        if len(tokens) == 1 and tokens[0].state == TBASTokenState.LITERAL:
            return TBASASTTupleParams((tokens[0].text.upper(),), column=tokens[0].column)

        if self._is_wrapped(tokens, "[") or self._is_wrapped(tokens, "("):
            return self._parse_param_names(tokens[1:-1])

        raise self._error(
            "Malformed lambda parameter list",
            received=" ".join(token.text for token in tokens),
            expected="[X, Y] ~> expression"
        )

    def _parse_param_names(self, tokens: List[TBASToken]) -> TBASASTTupleParams:
        """Parse a comma separated list of bare names."""
        if not tokens:
            return TBASASTTupleParams(())

        pieces, _ = self._split_separated(tokens)
        names: List[str] = []
        for piece in pieces:
            if len(piece) != 1 or piece[0].state != TBASTokenState.LITERAL:
                raise self._mismatch("parameter names must be single identifiers")

            name = piece[0].text.upper()
            if name in names:
                raise TBASDuplicateDefinitionError(
                    f"Duplicate definition on {name}",
                    line=self._line,
                    context=self._source,
                    suggestion="Give each parameter a distinct name"
                )

            names.append(name)

        return TBASASTTupleParams(tuple(names), column=tokens[0].column)

    def _parse_tuple(self, tokens: List[TBASToken]) -> TBASASTNode:
        return self._parse_param_names(tokens[1:-1])

    def _parse_array(self, tokens: List[TBASToken]) -> TBASASTNode:
        inner = tokens[1:-1]
        if not inner:
            return TBASASTArray((), column=tokens[0].column)

        pieces, _ = self._split_separated(inner)
        if not all(pieces):
            raise self._error("Empty array element", received=self._source)

        return TBASASTArray(tuple(self._parse_expression(piece) for piece in pieces), column=tokens[0].column)

    def _parse_if(self, tokens: List[TBASToken], statement_mode: bool) -> TBASASTNode:
        if not tokens[0].is_literal("IF"):
            raise self._mismatch("not an IF")

        then_index = None
        else_index = None
        nested = 0
        for k, token in self._scan_top_level(tokens):
            if k == 0:
                continue

            if then_index is None:
                if token.is_literal("THEN"):
                    then_index = k

                continue

            if token.is_literal("IF"):
                nested += 1

            elif token.is_literal("ELSE"):
                if nested == 0:
                    else_index = k
                    break

                nested -= 1

        if then_index is None:
            raise self._error("IF without THEN", expected="IF condition THEN statement [ELSE statement]")

        condition = self._parse_expression(tokens[1:then_index], if_mode=True)
        if isinstance(condition, TBASASTNull):
            raise self._error("IF without a condition")

        parse_branch = self._parse_statement if statement_mode else self._parse_expression
        then_end = else_index if else_index is not None else len(tokens)
        then_branch = parse_branch(tokens[then_index + 1:then_end]) or TBASASTNull()

        else_branch = None
        if else_index is not None:
            else_branch = parse_branch(tokens[else_index + 1:]) or TBASASTNull()

        return TBASASTIf(condition, then_branch, else_branch, column=tokens[0].column)

    def _parse_arguments(self, tokens: List[TBASToken]) -> Tuple[Tuple[TBASASTNode, ...], Tuple[str, ...]]:
        if not tokens:
            return (), ()

        pieces, separators = self._split_separated(tokens)
        return tuple(self._parse_expression(piece) for piece in pieces), tuple(separators)

    def _parse_function_call(self, tokens: List[TBASToken]) -> TBASASTNode:
        head = tokens[0]

        if head.is_paren("("):
            close = self._matching_close(tokens, 0)
            target: str | TBASASTNode = self._parse_expression(tokens[1:close])
            rest = tokens[close + 1:]
            if not rest or not rest[0].is_paren("("):
                raise self._mismatch("expected an argument list after a parenthesised callee")

            return self._parse_call_chain(target, rest, head.column)

        if head.state != TBASTokenState.LITERAL:
            raise self._mismatch(f"'{head.text}' is not callable")

        name = head.text.upper()
        rest = tokens[1:]
        if not rest:
            return TBASASTCall(name, column=head.column)

        if rest[0].is_paren("("):
            try:
                return self._parse_call_chain(name, rest, head.column)

            except TBASParseMismatch:
                pass

        args, separators = self._parse_arguments(rest)
        return TBASASTCall(name, args, separators, column=head.column)

    def _parse_call_chain(self, target: "str | TBASASTNode", tokens: List[TBASToken], column: int) -> TBASASTNode:
        """Parse one or more parenthesised argument lists, e.g. F(1)(2)."""
        node: str | TBASASTNode = target
        pos = 0
        while pos < len(tokens):
            if not tokens[pos].is_paren("("):
                raise self._mismatch("unexpected tokens after argument list")

            close = self._matching_close(tokens, pos)
            args, separators = self._parse_arguments(tokens[pos + 1:close])
            node = TBASASTCall(node, args, separators, column=column)
            pos = close + 1

        assert isinstance(node, TBASASTNode)
        return node
