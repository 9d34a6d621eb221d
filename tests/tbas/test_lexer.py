"""Tests for the TBAS lexer and elaborator."""

import pytest

from tbas import TBASLexer, TBASElaborator, TBASTokenState, TBASNumberFormatError, TBASSyntaxError


def _tokens(text):
    return TBASElaborator().elaborate(TBASLexer().tokenize(text, 10))


def _texts(text):
    return [token.text for token in _tokens(text)]


class TestTBASLexer:
    """Test the character-level tokenizer."""

    def test_simple_statement(self):
        """Test a statement splits into literal, operator and number tokens."""
        tokens = TBASLexer().tokenize("X = 42")
        assert [(t.text, t.state) for t in tokens] == [
            ("X", TBASTokenState.LITERAL),
            ("=", TBASTokenState.OPERATOR),
            ("42", TBASTokenState.NUMBER),
        ]

    def test_operator_characters_are_separate_tokens(self):
        """Test every operator character becomes its own token before elaboration."""
        tokens = TBASLexer().tokenize("A<=B")
        assert [t.text for t in tokens] == ["A", "<", "=", "B"]

    def test_quoted_string_excludes_quotes(self):
        """Test string literal text does not include the quotes."""
        tokens = TBASLexer().tokenize('PRINT "HELLO, WORLD"')
        assert tokens[1].text == "HELLO, WORLD"
        assert tokens[1].state == TBASTokenState.QUOTED

    def test_empty_string_literal(self):
        """Test an empty string literal produces an empty quoted token."""
        tokens = TBASLexer().tokenize('X = ""')
        assert tokens[-1].text == ""
        assert tokens[-1].state == TBASTokenState.QUOTED

    def test_literal_may_contain_digits(self):
        """Test identifiers keep trailing digits."""
        assert [t.text for t in TBASLexer().tokenize("A1 = B22")] == ["A1", "=", "B22"]

    def test_brackets_and_separators(self):
        """Test brackets and separators are single-character tokens."""
        tokens = TBASLexer().tokenize("F(1,2;3)")
        assert [t.state for t in tokens] == [
            TBASTokenState.LITERAL, TBASTokenState.PAREN, TBASTokenState.NUMBER, TBASTokenState.SEPARATOR,
            TBASTokenState.NUMBER, TBASTokenState.SEPARATOR, TBASTokenState.NUMBER, TBASTokenState.PAREN,
        ]

    def test_columns_are_recorded(self):
        """Test tokens remember their starting column."""
        tokens = TBASLexer().tokenize("AB + CD")
        assert [t.column for t in tokens] == [0, 3, 5]

    @pytest.mark.parametrize("text", ["3.14", "0x1F", "0b101", "1_000"])
    def test_number_forms(self, text):
        """Test decimal, hex, binary and underscore separated numbers lex as one token."""
        tokens = TBASLexer().tokenize(text)
        assert len(tokens) == 1
        assert tokens[0].state == TBASTokenState.NUMBER

    @pytest.mark.parametrize("text", [
        "X = 1 + 2",
        'PRINT "HI, THERE"; A(1), B',
        'X = ""',
        "IF X <= 10 THEN GOTO 100 ELSE END",
        "F = [X, Y] ~> X * Y",
        "M >>= (V) ~> MRET(V + 0x1F)",
        "A = {1.5, 2, 0b101} : B = A(0) MOD 3",
        "ON N GOSUB 100, 200",
    ])
    def test_round_trip(self, text):
        """Test joining tokens back into a line and lexing again gives the same tokens."""
        tokens = TBASLexer().tokenize(text)
        rejoined = " ".join(
            f'"{token.text}"' if token.state == TBASTokenState.QUOTED else token.text for token in tokens
        )
        again = TBASLexer().tokenize(rejoined)
        assert [(t.text, t.state) for t in again] == [(t.text, t.state) for t in tokens]

    def test_unterminated_string(self):
        """Test an unterminated string literal is a syntax error."""
        with pytest.raises(TBASSyntaxError, match="Unterminated string literal"):
            TBASLexer().tokenize('PRINT "OOPS', 10)

    def test_trailing_numeric_separator(self):
        """Test a number ending in its separator is rejected."""
        with pytest.raises(TBASNumberFormatError) as exc_info:
            TBASLexer().tokenize("X = 1.", 20)

        assert exc_info.value.line == 20

    def test_separator_followed_by_non_digit(self):
        """Test a numeric separator must be followed by a digit run."""
        with pytest.raises(TBASNumberFormatError):
            TBASLexer().tokenize("X = 1. + 2")


class TestTBASElaborator:
    """Test operator fusion and token reclassification."""

    @pytest.mark.parametrize("text,expected", [
        ("A <= B", ["A", "<=", "B"]),
        ("A == B", ["A", "==", "B"]),
        ("A <> B", ["A", "<>", "B"]),
        ("A << 2", ["A", "<<", "2"]),
        ("F ~> X", ["F", "~>", "X"]),
        ("M >>= F", ["M", ">>=", "F"]),
        ("M >>~ N", ["M", ">>~", "N"]),
        ("F ~< 3", ["F", "~<", "3"]),
    ])
    def test_operator_fusion(self, text, expected):
        """Test adjacent operator characters fuse into known operators."""
        assert _texts(text) == expected

    def test_unknown_operator_pair_is_not_fused(self):
        """Test an operator pair that is not a known operator stays split."""
        assert _texts("X = -1") == ["X", "=", "-", "1"]

    def test_keyword_operators_are_reclassified(self):
        """Test word operators become operator tokens, upper-cased."""
        tokens = _tokens("A mod B AND C")
        assert tokens[1].state == TBASTokenState.OPERATOR
        assert tokens[1].text == "MOD"
        assert tokens[3].state == TBASTokenState.OPERATOR

    def test_booleans_are_reclassified(self):
        """Test TRUE and FALSE become boolean tokens."""
        tokens = _tokens("X = true")
        assert tokens[2].state == TBASTokenState.BOOLEAN
        assert tokens[2].text == "TRUE"

    def test_colon_becomes_sequence(self):
        """Test a lone colon separates statements."""
        tokens = _tokens("A = 1 : B = 2")
        assert tokens[3].state == TBASTokenState.SEQUENCE

    def test_binary_literal_is_rewritten_as_decimal(self):
        """Test binary literals are converted to decimal text."""
        tokens = _tokens("0b1010")
        assert tokens[0].text == "10"
        assert tokens[0].state == TBASTokenState.NUMBER

    def test_malformed_number_becomes_literal(self):
        """Test a number-state token that is not a valid number is reclassified as a literal."""
        tokens = _tokens("1B2")
        assert tokens[0].state == TBASTokenState.LITERAL
