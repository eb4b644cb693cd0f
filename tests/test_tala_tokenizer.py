import pytest

from tala.tala_errors import FatalError
from tala.tala_tokenizer import Token, TokenType, tokenize


def types(src):
    return [t.type for t in tokenize(src)]


def texts(src):
    return [t.text for t in tokenize(src)]


def test_var_declaration_tokens():
    assert tokenize("var x = 5;") == [
        Token(TokenType.Var, "var"),
        Token(TokenType.Identifier, "x"),
        Token(TokenType.Equals, "="),
        Token(TokenType.Number, "5"),
        Token(TokenType.Semicolon, ";"),
        Token(TokenType.EOF, "EndOfFile"),
    ]


@pytest.mark.parametrize("word, expected", [
    ("var", TokenType.Var),
    ("const", TokenType.Const),
    ("function", TokenType.Function),
    ("return", TokenType.Return),
    ("if", TokenType.If),
    ("else", TokenType.Else),
    ("while", TokenType.While),
    ("for", TokenType.For),
    ("in", TokenType.In),
    ("variable", TokenType.Identifier),
    ("_x1", TokenType.Identifier),
])
def test_keywords_and_identifiers(word, expected):
    assert types(word) == [expected, TokenType.EOF]


@pytest.mark.parametrize("ch, expected", [
    ("(", TokenType.OpenParen),
    (")", TokenType.CloseParen),
    ("{", TokenType.OpenBrace),
    ("}", TokenType.CloseBrace),
    ("[", TokenType.OpenBracket),
    ("]", TokenType.CloseBracket),
    (",", TokenType.Comma),
    (".", TokenType.Dot),
    (":", TokenType.Colon),
    (";", TokenType.Semicolon),
    ("=", TokenType.Equals),
    ("<", TokenType.LeftAngleBracket),
    (">", TokenType.RightAngleBracket),
    ("!", TokenType.Bang),
    ("+", TokenType.BinaryOperator),
    ("%", TokenType.BinaryOperator),
])
def test_single_character_tokens(ch, expected):
    assert types(ch) == [expected, TokenType.EOF]


def test_two_character_operators_are_split():
    assert types("a == b") == [
        TokenType.Identifier, TokenType.Equals, TokenType.Equals, TokenType.Identifier, TokenType.EOF,
    ]
    assert texts("<=")[:2] == ["<", "="]
    assert texts("!=")[:2] == ["!", "="]


def test_number_takes_digits_and_dots():
    assert texts("3.25 10") == ["3.25", "10", "EndOfFile"]
    # Malformed numbers are still one token; the parser rejects them.
    assert texts("1.2.3") == ["1.2.3", "EndOfFile"]


def test_string_escapes():
    toks = tokenize(r'"a\"b\\c\nd\te\'f"')
    assert toks[0] == Token(TokenType.String, "a\"b\\c\nd\te'f")


def test_unknown_escape_is_fatal():
    with pytest.raises(FatalError) as exc:
        tokenize(r'"bad \q"')
    assert "Unexpected escaped token" in str(exc.value)


def test_unterminated_string_is_fatal():
    with pytest.raises(FatalError) as exc:
        tokenize('"never closed')
    assert "Unterminated" in str(exc.value)


def test_unknown_character_is_fatal():
    with pytest.raises(FatalError) as exc:
        tokenize("var x = 1 @ 2;")
    assert "Unknown character" in str(exc.value)
    assert exc.value.loc == {'line': 1, 'col': 11}


def test_comments_are_skipped():
    assert texts("1 // the rest is ignored ;;\n2") == ["1", "2", "EndOfFile"]


def test_division_is_not_a_comment():
    assert texts("4 / 2") == ["4", "/", "2", "EndOfFile"]


def test_positions_track_lines_and_columns():
    toks = tokenize('var a = 1;\n  "two\nlines" b')
    a = toks[1]
    assert (a.line, a.col) == (1, 5)
    string = toks[5]
    assert string.text == "two\nlines"
    assert (string.line, string.col) == (2, 3)
    b = toks[6]
    assert (b.line, b.col) == (3, 8)


def test_empty_source_yields_only_eof():
    assert tokenize("") == [Token(TokenType.EOF, "EndOfFile")]
