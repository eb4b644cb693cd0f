"""
A pretty-printer that turns Tala AST nodes back into source text.
"""
from tala.tala_ast import (
    AssignmentExpr, BinaryExpr, Body, CallExpr, ComparativeExpr, ForStmt,
    FunctionDeclaration, Identifier, IfStmt, ListLiteral, MemberExpr, NumericLiteral,
    ObjectLiteral, Program, Property, ReturnStmt, StringLiteral, VarDeclaration, WhileStmt,
)
from tala.tala_datatypes import format_number
from tala.tala_tokenizer import ESCAPES

_UNESCAPES = {v: "\\" + k for k, v in ESCAPES.items() if k != "'"}


class Printer:
    """Formats AST nodes into readable Tala source that parses back to the same tree."""

    def __init__(self, indent_width=4):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, node, level=0):
        """Public entry point to format a node."""
        handler = self._handlers.get(type(node))
        if handler is None:
            return repr(node)
        return handler(node, level)

    def _create_handlers(self):
        return {
            Program: self._pformat_program,
            Body: self._pformat_body,
            VarDeclaration: self._pformat_var_declaration,
            FunctionDeclaration: self._pformat_function_declaration,
            ReturnStmt: self._pformat_return,
            IfStmt: self._pformat_if,
            WhileStmt: self._pformat_while,
            ForStmt: self._pformat_for,
            Identifier: self._pformat_identifier,
            NumericLiteral: self._pformat_number,
            StringLiteral: self._pformat_string,
            BinaryExpr: self._pformat_binary,
            ComparativeExpr: self._pformat_binary,
            AssignmentExpr: self._pformat_assignment,
            ObjectLiteral: self._pformat_object,
            Property: self._pformat_property,
            ListLiteral: self._pformat_list,
            MemberExpr: self._pformat_member,
            CallExpr: self._pformat_call,
        }

    def _statement(self, node, level):
        text = self.pformat(node, level)
        # Blocks and compound statements carry their own terminators.
        if isinstance(node, (Body, FunctionDeclaration, IfStmt, WhileStmt, ForStmt)):
            return text
        if isinstance(node, ObjectLiteral):
            # A leading `{` would start a block.
            return f"({text});"
        if isinstance(node, AssignmentExpr):
            # An assignment swallows one `;`; a second one keeps statements apart.
            return f"{text};;"
        return f"{text};"

    def _pformat_program(self, node, level):
        return "\n".join(self._statement(s, level) for s in node.body)

    def _pformat_body(self, node, level):
        if not node.body:
            return "{}"
        inner = self._indent_char * (level + 1)
        lines = []
        for stmt in node.body:
            lines.append(inner + self._statement(stmt, level + 1))
        return "{\n" + "\n".join(lines) + "\n" + self._indent_char * level + "}"

    def _pformat_var_declaration(self, node, level):
        keyword = "const" if node.constant else "var"
        if node.value_expr is None:
            return f"{keyword} {node.identifier}"
        return f"{keyword} {node.identifier} = {self._value(node.value_expr, level)}"

    def _pformat_function_declaration(self, node, level):
        params = ", ".join(node.parameters)
        return f"function {node.name}({params}) {self.pformat(node.body, level)}"

    def _pformat_return(self, node, level):
        return f"return {self._value(node.value_expr, level)}"

    def _pformat_if(self, node, level):
        text = f"if {self._operand(node.condition, level)} {self.pformat(node.body, level)}"
        if node.else_stmt is None:
            return text
        nested = node.else_stmt.body
        if len(nested) == 1 and isinstance(nested[0], IfStmt):
            return f"{text} else {self.pformat(nested[0], level)}"
        return f"{text} else {self.pformat(node.else_stmt, level)}"

    def _pformat_while(self, node, level):
        return f"while {self._operand(node.condition, level)} {self.pformat(node.body, level)}"

    def _pformat_for(self, node, level):
        return f"for ({node.identifier} in {self.pformat(node.iterable, level)}) {self.pformat(node.body, level)}"

    def _pformat_identifier(self, node, level):
        return node.symbol

    def _pformat_number(self, node, level):
        text = format_number(node.number)
        if text.startswith("-"):
            return f"(0 - {text[1:]})"
        return text

    def _pformat_string(self, node, level):
        body = "".join(_UNESCAPES.get(ch, ch) for ch in node.string)
        return f'"{body}"'

    def _value(self, node, level):
        text = self.pformat(node, level)
        if isinstance(node, AssignmentExpr):
            return f"({text})"
        return text

    def _operand(self, node, level):
        text = self.pformat(node, level)
        if isinstance(node, (BinaryExpr, ComparativeExpr, AssignmentExpr, ObjectLiteral)):
            return f"({text})"
        return text

    def _pformat_binary(self, node, level):
        return f"{self._operand(node.left, level)} {node.operator} {self._operand(node.right, level)}"

    def _pformat_assignment(self, node, level):
        return f"{self.pformat(node.assignee, level)} = {self.pformat(node.value_expr, level)}"

    def _pformat_property(self, node, level):
        if node.value_expr is None:
            return node.key
        return f"{node.key}: {self.pformat(node.value_expr, level)}"

    def _pformat_object(self, node, level):
        if not node.properties:
            return "{}"
        return "{ " + ", ".join(self.pformat(p, level) for p in node.properties) + " }"

    def _pformat_list(self, node, level):
        return "[" + ", ".join(self.pformat(e, level) for e in node.elements) + "]"

    def _pformat_member(self, node, level):
        base = self.pformat(node.object, level)
        if node.computed:
            return f"{base}[{self.pformat(node.property, level)}]"
        return f"{base}.{self.pformat(node.property, level)}"

    def _pformat_call(self, node, level):
        args = ", ".join(self.pformat(a, level) for a in node.args)
        return f"{self.pformat(node.caller, level)}({args})"
