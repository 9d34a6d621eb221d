"""Token elaboration: operator fusion and token reclassification."""

import re
from typing import Dict, FrozenSet, List

from tbas.tbas_token import TBASToken, TBASTokenState


# Operator precedence: a larger number binds more loosely.
OPERATOR_PRECEDENCE: Dict[str, int] = {
    "`": 10,
    "^": 20,
    "*": 30,
    "/": 30,
    "\\": 20,
    "MOD": 40,
    "+": 50,
    "-": 50,
    "NOT": 60,
    "BNOT": 60,
    "<<": 70,
    ">>": 70,
    "<": 80,
    ">": 80,
    "<=": 80,
    "=<": 80,
    ">=": 80,
    "=>": 80,
    "==": 90,
    "<>": 90,
    "><": 90,
    "MIN": 100,
    "MAX": 100,
    "BAND": 200,
    "BXOR": 201,
    "BOR": 202,
    "AND": 300,
    "OR": 301,
    "TO": 400,
    "STEP": 401,
    "!": 500,
    "~": 501,
    "#": 502,
    ".": 600,
    "$": 600,
    "~<": 601,
    "@": 700,
    "~>": 1000,
    ">>~": 1000,
    ">>=": 1000,
    "=": 9999,
    "IN": 9999,
}

RIGHT_ASSOCIATIVE: FrozenSet[str] = frozenset({
    "^", "=", "!", "IN", "~>", "$", ".", ">>=", ">>~", "@", "`"
})

_NUMBER_PATTERN = re.compile(
    r"[0-9][0-9_]*"
    r"|[0-9][0-9_]*\.[0-9][0-9_]*(?:[eE][0-9]+)?[fF]?"
    r"|0[xX][0-9A-Fa-f_]+"
    r"|0[bB][01_]+"
)


def is_number_text(text: str) -> bool:
    """Check that a token matches the numeric literal grammar."""
    return _NUMBER_PATTERN.fullmatch(text) is not None


def number_value(text: str) -> float:
    """
    Convert numeric literal text to its value.

    Args:
        text: Text already accepted by is_number_text

    Returns:
        The literal's value as a float
    """
    digits = text.replace("_", "")
    if digits[:2] in ("0x", "0X"):
        return float(int(digits[2:], 16))

    if digits[:2] in ("0b", "0B"):
        return float(int(digits[2:], 2))

    return float(digits.rstrip("fF"))


class TBASElaborator:
    """Reclassifies ambiguous tokens and fuses operator characters into known operators."""

    def elaborate(self, tokens: List[TBASToken]) -> List[TBASToken]:
        """
        Elaborate a token stream produced by the lexer.

        Args:
            tokens: Raw lexer output

        Returns:
            A new token list with operators fused and states corrected
        """
        reclassified = [self._reclassify(token) for token in tokens]
        return self._fuse(reclassified)

    def _reclassify(self, token: TBASToken) -> TBASToken:
        if token.state == TBASTokenState.NUMBER:
            if not is_number_text(token.text):
                return TBASToken(token.text, TBASTokenState.LITERAL, token.column)

            if token.text[:2] in ("0b", "0B"):
                decimal = str(int(token.text[2:].replace("_", ""), 2))
                return TBASToken(decimal, TBASTokenState.NUMBER, token.column)

            return token

        if token.state == TBASTokenState.LITERAL:
            upper = token.text.upper()
            if upper in OPERATOR_PRECEDENCE:
                return TBASToken(upper, TBASTokenState.OPERATOR, token.column)

            if upper in ("TRUE", "FALSE"):
                return TBASToken(upper, TBASTokenState.BOOLEAN, token.column)

        return token

    def _fuse(self, tokens: List[TBASToken]) -> List[TBASToken]:
        fused: List[TBASToken] = []
        k = 0
        while k < len(tokens):
            token = tokens[k]
            if token.state != TBASTokenState.OPERATOR:
                fused.append(token)
                k += 1
                continue

            run = 1
            for width in (3, 2):
                window = tokens[k:k + width]
                if len(window) == width and all(t.state == TBASTokenState.OPERATOR for t in window):
                    text = "".join(t.text for t in window)
                    if text in OPERATOR_PRECEDENCE:
                        fused.append(TBASToken(text, TBASTokenState.OPERATOR, token.column))
                        run = width
                        break

            if run > 1:
                k += run
                continue

            if token.text == ":":
                fused.append(TBASToken(":", TBASTokenState.SEQUENCE, token.column))

            else:
                fused.append(token)

            k += 1

        return fused
