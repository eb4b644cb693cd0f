"""
Recursive-descent parser for Tala.

Precedence, loosest to tightest:

    assignment      (right associative)
    comparison      == != < > <= >=
    object literal  { key: value, ... } or fall through
    additive        + -
    multiplicative  * / %
    call / member   f(a)(b), a.b[c]
    primary         identifiers, literals, ( expr ), [ list ], unary -
"""
import enum
from typing import List, Optional

from tala.tala_ast import (
    AssignmentExpr, BinaryExpr, Body, CallExpr, ComparativeExpr, Expr, ForStmt,
    FunctionDeclaration, Identifier, IfStmt, ListLiteral, MemberExpr, NumericLiteral,
    ObjectLiteral, Program, Property, ReturnStmt, Stmt, StringLiteral, VarDeclaration,
    WhileStmt,
)
from tala.tala_errors import Diagnostics, fatal
from tala.tala_tokenizer import Token, Tokenizer, TokenType


class Severity(enum.Enum):
    """How a missing expected token is treated."""
    Warn = "warn"
    Fatal = "fatal"


ADDITIVE_OPERATORS = ("+", "-")
MULTIPLICATIVE_OPERATORS = ("*", "/", "%")


class Parser:
    """Builds a Program from source text. Reusable across calls."""

    def __init__(self, diagnostics: Optional[Diagnostics] = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.tokens: List[Token] = []
        self.pos = 0

    def produce_ast(self, source: str) -> Program:
        self.tokens = Tokenizer().tokenize(source)
        self.pos = 0

        statements: List[Stmt] = []
        while self.not_eof():
            stmt = self.parse_stmt()
            if stmt is not None:
                statements.append(stmt)

        return Program(Body(statements), loc={'line': 1, 'col': 1})

    # -----------------------------------------------------------------
    # Token cursor
    # -----------------------------------------------------------------

    def at(self) -> Token:
        return self.tokens[self.pos]

    def look_ahead(self, amount: int) -> Token:
        idx = min(self.pos + amount, len(self.tokens) - 1)
        return self.tokens[idx]

    def eat(self) -> Token:
        tok = self.tokens[self.pos]
        # The EOF token is never consumed.
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def eat_expect(self, token_type: TokenType, error_msg: str, severity: Severity = Severity.Fatal) -> Token:
        """Consume a token of `token_type`.

        On a mismatch a fatal severity aborts; a warning is reported and the
        current token is returned without being consumed.
        """
        tok = self.at()
        if tok.type != token_type:
            message = f"Parser Error:\n{error_msg} {tok!r}.\nExpecting {token_type.name}"
            if severity is Severity.Fatal:
                fatal(message, tok.loc)
            self.diagnostics.report(message)
            return tok
        return self.eat()

    def not_eof(self) -> bool:
        return self.at().type != TokenType.EOF

    def at_comparative_expr(self) -> int:
        """Number of tokens making up the comparison operator at the cursor (0 if none)."""
        first = self.at().type
        if first == TokenType.EOF:
            return 0
        second = self.look_ahead(1).type

        if second == TokenType.Equals and first in (
            TokenType.Equals, TokenType.RightAngleBracket, TokenType.LeftAngleBracket, TokenType.Bang
        ):
            return 2
        if first in (TokenType.LeftAngleBracket, TokenType.RightAngleBracket):
            return 1
        return 0

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def parse_stmt(self) -> Optional[Stmt]:
        match self.at().type:
            case TokenType.Var | TokenType.Const:
                return self.parse_var_declaration()
            case TokenType.Function:
                return self.parse_function_declaration()
            case TokenType.Return:
                return self.parse_return()
            case TokenType.If:
                return self.parse_if()
            case TokenType.While:
                return self.parse_while()
            case TokenType.For:
                return self.parse_for()
            case TokenType.Semicolon:
                self.eat()
                if self.not_eof() and self.at().type != TokenType.CloseBrace:
                    return self.parse_stmt()
                return None
            case TokenType.OpenBrace:
                return self.parse_body()
            case _:
                return self.parse_expr()

    def parse_body(self) -> Body:
        start = self.eat_expect(TokenType.OpenBrace, "Expected statement body")

        statements: List[Stmt] = []
        while self.at().type != TokenType.CloseBrace and self.not_eof():
            stmt = self.parse_stmt()
            if stmt is None:
                break
            statements.append(stmt)

        self.eat_expect(TokenType.CloseBrace, "Expected closing brace in body")
        return Body(statements, loc=start.loc)

    def parse_if(self) -> IfStmt:
        start = self.eat()
        condition = self.parse_comparative_expr()
        body = self.parse_body()

        else_stmt = None
        if self.at().type == TokenType.Else:
            self.eat()
            if self.at().type == TokenType.OpenBrace:
                else_stmt = self.parse_body()
            elif self.at().type == TokenType.If:
                nested = self.parse_if()
                else_stmt = Body([nested], loc=nested.loc)
            else:
                fatal(f"Parser Error:\nExpected body or if after else {self.at()!r}.", self.at().loc)

        return IfStmt(condition, body, else_stmt, loc=start.loc)

    def parse_while(self) -> WhileStmt:
        start = self.eat()
        condition = self.parse_comparative_expr()
        body = self.parse_body()
        return WhileStmt(condition, body, loc=start.loc)

    def parse_for(self) -> ForStmt:
        start = self.eat()
        parenthesised = self.at().type == TokenType.OpenParen
        if parenthesised:
            self.eat()

        name = self.eat_expect(TokenType.Identifier, "Expected loop variable in for statement").text
        self.eat_expect(TokenType.In, "Expected 'in' in for statement")
        iterable = self.parse_expr()

        if parenthesised:
            self.eat_expect(TokenType.CloseParen, "Expected closing parenthesis in for statement")

        body = self.parse_body()
        return ForStmt(name, iterable, body, loc=start.loc)

    def parse_return(self) -> ReturnStmt:
        start = self.eat()
        value = self.parse_expr()
        self.eat_expect(TokenType.Semicolon, "Expected semicolon after return statement", Severity.Warn)
        return ReturnStmt(value, loc=start.loc)

    def parse_function_declaration(self) -> FunctionDeclaration:
        start = self.eat()
        name = self.eat_expect(TokenType.Identifier, "Unexpected token after function declaration").text

        params: List[str] = []
        for arg in self.parse_args():
            if not isinstance(arg, Identifier):
                fatal("Expected identifier inside function declaration", arg.loc)
            params.append(arg.symbol)

        body = self.parse_body()
        return FunctionDeclaration(name, params, body, loc=start.loc)

    def parse_var_declaration(self) -> VarDeclaration:
        start = self.eat()
        is_constant = start.type == TokenType.Const
        identifier = self.eat_expect(TokenType.Identifier, "Error in var declaration.").text

        if self.at().type == TokenType.Semicolon:
            self.eat()
            if is_constant:
                fatal("Must assign value to const expression. No value provided.", start.loc)
            return VarDeclaration(identifier, False, Identifier("null", loc=start.loc), loc=start.loc)

        self.eat_expect(TokenType.Equals, "Expected equals token in var declaration.")
        declaration = VarDeclaration(identifier, is_constant, self.parse_expr(), loc=start.loc)
        self.eat_expect(TokenType.Semicolon, "Expected semicolon after variable declaration.", Severity.Warn)
        return declaration

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def parse_expr(self) -> Expr:
        return self.parse_assignment_expr()

    def parse_assignment_expr(self) -> Expr:
        left = self.parse_comparative_expr()

        if self.at().type == TokenType.Equals:
            self.eat()
            value = self.parse_assignment_expr()
            if self.at().type == TokenType.Semicolon:
                self.eat()
            return AssignmentExpr(left, value, loc=left.loc)

        return left

    def parse_comparative_expr(self) -> Expr:
        left = self.parse_object_expr()

        while self.not_eof():
            width = self.at_comparative_expr()
            if not width:
                break
            op_token = self.at()
            operator = "".join(self.eat().text for _ in range(width))
            right = self.parse_object_expr()
            left = ComparativeExpr(left, right, operator, loc=op_token.loc)

        return left

    def parse_object_expr(self) -> Expr:
        if self.at().type != TokenType.OpenBrace:
            return self.parse_additive_expr()

        start = self.eat()
        properties: List[Property] = []

        while self.not_eof() and self.at().type != TokenType.CloseBrace:
            key_token = self.eat_expect(TokenType.Identifier, "Unexpected token in object literal creation.")

            # Shorthand `{ key, ... }` / `{ key }`
            if self.at().type == TokenType.Comma:
                self.eat()
                properties.append(Property(key_token.text, None, loc=key_token.loc))
                continue
            if self.at().type == TokenType.CloseBrace:
                properties.append(Property(key_token.text, None, loc=key_token.loc))
                continue

            self.eat_expect(TokenType.Colon, "Missing colon following identifier in object literal creation.")
            value = self.parse_expr()
            properties.append(Property(key_token.text, value, loc=key_token.loc))

            if self.at().type != TokenType.CloseBrace:
                self.eat_expect(TokenType.Comma, "Object literal missing comma.")

        self.eat_expect(TokenType.CloseBrace, "Object literal missing closing brace.")
        return ObjectLiteral(properties, loc=start.loc)

    def parse_additive_expr(self) -> Expr:
        left = self.parse_multiplicative_expr()

        while self.at().type == TokenType.BinaryOperator and self.at().text in ADDITIVE_OPERATORS:
            op_token = self.eat()
            right = self.parse_multiplicative_expr()
            left = BinaryExpr(left, right, op_token.text, loc=op_token.loc)

        return left

    def parse_multiplicative_expr(self) -> Expr:
        left = self.parse_call_member_expr()

        while self.at().type == TokenType.BinaryOperator and self.at().text in MULTIPLICATIVE_OPERATORS:
            op_token = self.eat()
            right = self.parse_call_member_expr()
            left = BinaryExpr(left, right, op_token.text, loc=op_token.loc)

        return left

    def parse_call_member_expr(self) -> Expr:
        member = self.parse_member_expr()
        if self.at().type == TokenType.OpenParen:
            return self.parse_call_expr(member)
        return member

    def parse_call_expr(self, caller: Expr) -> CallExpr:
        call = CallExpr(caller, self.parse_args(), loc=caller.loc)
        # f()() -> CallExpr(CallExpr(f))
        while self.at().type == TokenType.OpenParen:
            call = CallExpr(call, self.parse_args(), loc=caller.loc)
        return call

    def parse_args(self) -> List[Expr]:
        self.eat_expect(TokenType.OpenParen, "Expected open parenthesis when parsing call arguments")

        args: List[Expr] = []
        if self.at().type != TokenType.CloseParen:
            args = self.parse_arguments_list()

        self.eat_expect(TokenType.CloseParen, "Expected closing parenthesis when parsing call arguments")
        return args

    def parse_arguments_list(self) -> List[Expr]:
        args = [self.parse_assignment_expr()]
        while self.at().type == TokenType.Comma and self.not_eof():
            self.eat()
            args.append(self.parse_assignment_expr())
        return args

    def parse_member_expr(self) -> Expr:
        if self.at().type != TokenType.Identifier:
            return self.parse_primary_expr()

        member = self.parse_primary_expr()
        while self.at().type in (TokenType.Dot, TokenType.OpenBracket):
            if self.eat().type == TokenType.Dot:
                member = MemberExpr(member, self.parse_primary_expr(), False, loc=member.loc)
            else:
                prop = self.parse_expr()
                self.eat_expect(TokenType.CloseBracket, "Expected closing bracket in computed member expression")
                member = MemberExpr(member, prop, True, loc=member.loc)
        return member

    def parse_primary_expr(self) -> Expr:
        tok = self.at()

        match tok.type:
            case TokenType.Identifier:
                self.eat()
                return Identifier(tok.text, loc=tok.loc)
            case TokenType.Number:
                self.eat()
                try:
                    number = float(tok.text)
                except ValueError:
                    fatal(f"Problem converting numeric literal ({tok.text!r}).", tok.loc)
                return NumericLiteral(number, loc=tok.loc)
            case TokenType.String:
                self.eat()
                return StringLiteral(tok.text, loc=tok.loc)
            case TokenType.OpenParen:
                self.eat()
                value = self.parse_expr()
                self.eat_expect(TokenType.CloseParen, "Unexpected token found inside parenthesis.")
                return value
            case TokenType.OpenBracket:
                return self.parse_list_expr()
            case TokenType.BinaryOperator if tok.text == "-":
                # Unary minus is sugar for `0 - operand`.
                self.eat()
                operand = self.parse_call_member_expr()
                return BinaryExpr(NumericLiteral(0.0, loc=tok.loc), operand, "-", loc=tok.loc)
            case _:
                fatal(f"Unexpected token found during parsing: {tok!r}", tok.loc)

    def parse_list_expr(self) -> ListLiteral:
        start = self.eat()
        elements: List[Expr] = []

        while self.not_eof() and self.at().type != TokenType.CloseBracket:
            elements.append(self.parse_expr())
            if self.at().type != TokenType.CloseBracket:
                self.eat_expect(TokenType.Comma, "List literal missing comma.")

        self.eat_expect(TokenType.CloseBracket, "List literal missing closing bracket.")
        return ListLiteral(elements, loc=start.loc)


def parse(source: str, diagnostics: Optional[Diagnostics] = None) -> Program:
    return Parser(diagnostics).produce_ast(source)
