"""
Converts Tala source text into a flat list of tokens.

Two-character operators (`==`, `<=`, `>=`, `!=`) are not recognised here;
the lexer emits their characters as separate tokens and the parser
assembles them.
"""
import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tala.tala_errors import fatal


class TokenType(enum.Enum):
    Identifier = "Identifier"
    Number = "Number"
    String = "String"

    Semicolon = "Semicolon"

    Var = "Var"
    Const = "Const"

    Function = "Function"
    Return = "Return"

    If = "If"
    Else = "Else"

    While = "While"
    For = "For"
    In = "In"

    Comma = "Comma"
    Colon = "Colon"
    Dot = "Dot"
    OpenBrace = "OpenBrace"
    CloseBrace = "CloseBrace"
    OpenParen = "OpenParen"
    CloseParen = "CloseParen"
    OpenBracket = "OpenBracket"
    CloseBracket = "CloseBracket"
    BinaryOperator = "BinaryOperator"
    Equals = "Equals"
    RightAngleBracket = "RightAngleBracket"
    LeftAngleBracket = "LeftAngleBracket"
    Bang = "Bang"

    EOF = "EOF"


KEYWORDS: Dict[str, TokenType] = {
    "var": TokenType.Var,
    "const": TokenType.Const,
    "function": TokenType.Function,
    "return": TokenType.Return,
    "if": TokenType.If,
    "else": TokenType.Else,
    "while": TokenType.While,
    "for": TokenType.For,
    "in": TokenType.In,
}

SINGLE_CHAR_TOKENS: Dict[str, TokenType] = {
    "(": TokenType.OpenParen,
    ")": TokenType.CloseParen,
    "{": TokenType.OpenBrace,
    "}": TokenType.CloseBrace,
    "[": TokenType.OpenBracket,
    "]": TokenType.CloseBracket,
    ",": TokenType.Comma,
    ".": TokenType.Dot,
    ":": TokenType.Colon,
    ";": TokenType.Semicolon,
    "=": TokenType.Equals,
    "<": TokenType.LeftAngleBracket,
    ">": TokenType.RightAngleBracket,
    "!": TokenType.Bang,
}

ARITHMETIC_OPERATORS = "+-*/%"

ESCAPES: Dict[str, str] = {
    "\\": "\\",
    '"': '"',
    "'": "'",
    "n": "\n",
    "t": "\t",
}

SKIPPABLE = " \n\t\r"


@dataclass(frozen=True)
class Token:
    """A lexeme. Position fields do not take part in equality."""
    type: TokenType
    text: Optional[str] = None
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    @property
    def loc(self) -> Dict[str, int]:
        return {'line': self.line, 'col': self.col}

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.text!r}, line={self.line}, col={self.col})"


def is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class Tokenizer:
    """Single-pass scanner with one character of lookahead."""

    def tokenize(self, source: str) -> List[Token]:
        tokens: List[Token] = []
        pos = 0
        line = 1
        line_start = 0
        n = len(source)

        while pos < n:
            ch = source[pos]
            col = pos - line_start + 1

            if ch == "/" and pos + 1 < n and source[pos + 1] == "/":
                while pos < n and source[pos] != "\n":
                    pos += 1
                continue

            if ch in SINGLE_CHAR_TOKENS:
                tokens.append(Token(SINGLE_CHAR_TOKENS[ch], ch, line, col))
                pos += 1
            elif ch in ARITHMETIC_OPERATORS:
                tokens.append(Token(TokenType.BinaryOperator, ch, line, col))
                pos += 1
            elif ch == '"':
                start_line = line
                pos += 1
                chars = []
                while True:
                    if pos >= n:
                        fatal("Unterminated string literal.", {'line': start_line, 'col': col})
                    c = source[pos]
                    if c == '"':
                        pos += 1
                        break
                    if c == "\\":
                        if pos + 1 >= n:
                            fatal("Unterminated string literal.", {'line': start_line, 'col': col})
                        escaped = source[pos + 1]
                        if escaped not in ESCAPES:
                            fatal(f"Unexpected escaped token ('\\{escaped}').",
                                  {'line': line, 'col': pos - line_start + 1})
                        chars.append(ESCAPES[escaped])
                        pos += 2
                        continue
                    if c == "\n":
                        line += 1
                        line_start = pos + 1
                    chars.append(c)
                    pos += 1
                tokens.append(Token(TokenType.String, "".join(chars), start_line, col))
            elif is_digit(ch):
                start = pos
                # Any run of digits and dots; the parser rejects malformed numbers.
                while pos < n and (is_digit(source[pos]) or source[pos] == "."):
                    pos += 1
                tokens.append(Token(TokenType.Number, source[start:pos], line, col))
            elif is_ident_start(ch):
                start = pos
                while pos < n and is_ident_char(source[pos]):
                    pos += 1
                word = source[start:pos]
                tokens.append(Token(KEYWORDS.get(word, TokenType.Identifier), word, line, col))
            elif ch in SKIPPABLE:
                if ch == "\n":
                    line += 1
                    line_start = pos + 1
                pos += 1
            else:
                fatal(f"Unknown character found ('{ch}').", {'line': line, 'col': col})

        tokens.append(Token(TokenType.EOF, "EndOfFile", line, pos - line_start + 1))
        return tokens


def tokenize(source: str) -> List[Token]:
    return Tokenizer().tokenize(source)
