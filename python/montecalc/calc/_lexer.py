"""Formula tokenizer: one regex alternation, longest match first."""

from __future__ import annotations

import re

from montecalc.calc._errors import LexError

# ---------------------------------------------------------------------------
# Token patterns
# ---------------------------------------------------------------------------

# Two-char comparisons must precede their one-char prefixes.
_COMPARISON = r">=|<=|==|!="
# Keywords are whole words only: ANDROID is an identifier.
_KEYWORD = r"(?:AND|OR|NOT)\b"
_PUNCT = r"[-+*/%^(),<>]"
_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_NUMBER = r"[0-9]*\.?[0-9]+"
_SPACE = r"\s+"

_TOKEN_RE = re.compile(
    rf"(?P<space>{_SPACE})|(?P<token>{_COMPARISON}|{_KEYWORD}|{_PUNCT}|{_IDENT}|{_NUMBER})"
)

KEYWORDS = frozenset({"AND", "OR", "NOT"})
COMPARISON_OPS = (">", "<", ">=", "<=", "==", "!=")

IDENT_RE = re.compile(rf"^{_IDENT}$")
NUMBER_RE = re.compile(rf"^{_NUMBER}$")


def tokenize(formula: str) -> list[str]:
    """Split *formula* into token strings, dropping whitespace.

    Raises :class:`LexError` with the offending substring when some part of
    the input matches no token pattern.
    """
    tokens: list[str] = []
    pos = 0
    length = len(formula)

    while pos < length:
        m = _TOKEN_RE.match(formula, pos)
        if m is None:
            # Report everything up to the next recognizable token
            nxt = _TOKEN_RE.search(formula, pos + 1)
            end = nxt.start() if nxt else length
            raise LexError(formula[pos:end], pos)
        if m.lastgroup == "token":
            tokens.append(m.group("token"))
        pos = m.end()

    return tokens


def is_identifier(token: str) -> bool:
    return bool(IDENT_RE.match(token)) and token not in KEYWORDS


def is_number(token: str) -> bool:
    return bool(NUMBER_RE.match(token))
