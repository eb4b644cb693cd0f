"""
The core Tala interpreter: a tree-walking Evaluator over the AST.
"""
import math
import os
import sys
from typing import Any, Dict, List, Optional, Tuple, Union

from tala.tala_ast import (
    AssignmentExpr, BinaryExpr, Body, CallExpr, ComparativeExpr, ForStmt,
    FunctionDeclaration, Identifier, IfStmt, ListLiteral, MemberExpr, NumericLiteral,
    ObjectLiteral, Program, ReturnStmt, Stmt, StringLiteral, VarDeclaration, WhileStmt,
)
from tala.tala_datatypes import (
    NULL, BooleanValue, Environment, FunctionValue, ListValue, NativeFnValue,
    NumberValue, ObjectValue, RuntimeValue, StringValue, ValueType, format_number,
)
from tala.tala_errors import Diagnostics, fatal


class ReturnValue:
    """Control-flow signal produced by `return`, unwrapped by the function-call driver."""
    __slots__ = ("value",)

    def __init__(self, value: RuntimeValue):
        self.value = value

    def __repr__(self) -> str:
        return f"ReturnValue({self.value!r})"


Outcome = Union[RuntimeValue, ReturnValue]


def is_return(x) -> bool:
    return isinstance(x, ReturnValue)


def unwrap_return(x) -> RuntimeValue:
    return x.value if is_return(x) else x


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _modulo(a: float, b: float) -> float:
    # Truncated remainder (sign follows the dividend), NaN where undefined.
    if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
        return math.nan
    return math.fmod(a, b)


class Evaluator:
    """The Tala execution engine."""

    def __init__(self, diagnostics: Optional[Diagnostics] = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.call_stack: List[Dict[str, Any]] = []
        self.current_node: Optional[Stmt] = None

    def _push_frame(self, name: str, args: List[RuntimeValue], call_site: Optional[Stmt]):
        self.call_stack.append({
            'name': name,
            'args': args,
            'call_site': getattr(call_site, 'loc', None),
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("TALA_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def _fatal(self, message: str, node: Optional[Stmt] = None):
        loc = getattr(node if node is not None else self.current_node, 'loc', None)
        fatal(message, loc)

    def evaluate(self, node: Stmt, env: Environment) -> RuntimeValue:
        """Public entry point for evaluation."""
        return unwrap_return(self._eval(node, env))

    def _eval(self, node: Stmt, env: Environment) -> Outcome:
        """Dispatches on node kind."""
        self.current_node = node
        self._dbg("eval", node.kind.value)

        match node:
            # Expressions
            case NumericLiteral():
                return NumberValue(node.value())
            case StringLiteral():
                return StringValue(node.value())
            case Identifier():
                return env.lookup_var(node.symbol)
            case BinaryExpr():
                return self.eval_binary_expr(node, env)
            case ComparativeExpr():
                return self.eval_comparative_expr(node, env)
            case AssignmentExpr():
                return self.eval_assignment(node, env)
            case ObjectLiteral():
                return self.eval_object_expr(node, env)
            case ListLiteral():
                return ListValue([self.evaluate(e, env) for e in node.elements])
            case MemberExpr():
                return self.eval_member_expr(node, env)
            case CallExpr():
                return self.eval_call(node, env)
            # Statements
            case Program():
                result, _ = self.run_body(node.body, env, make_env=False)
                return result
            case Body():
                result, _ = self.run_body(node, env, make_env=True)
                return result
            case VarDeclaration():
                value = self.evaluate(node.value_expr, env) if node.value_expr is not None else NULL
                return env.declare_var(node.identifier, value, node.constant)
            case FunctionDeclaration():
                func = FunctionValue(node.name, node.parameters, env, node.body)
                return env.declare_var(node.name, func, True)
            case ReturnStmt():
                value = self.evaluate(node.value_expr, env)
                if not self.call_stack:
                    self._fatal("Cannot return outside of a function.", node)
                return ReturnValue(value)
            case IfStmt():
                return self.eval_if(node, env)
            case WhileStmt():
                return self.eval_while(node, env)
            case ForStmt():
                return self.eval_for(node, env)
            case _:
                self._fatal(f"This statement has not yet been set up for interpretation:\n{node!r}", node)

    # -----------------------------------------------------------------
    # Blocks and control flow
    # -----------------------------------------------------------------

    def run_body(self, body: Body, env: Environment, make_env: bool = True) -> Tuple[Outcome, Environment]:
        """Runs a block, in a fresh child scope when `make_env` is set.

        Returns the last statement's value (or a ReturnValue that stopped the
        block) together with the environment the statements ran in.
        """
        scope = Environment(parent=env) if make_env else env
        last: Outcome = NULL
        for stmt in body:
            last = self._eval(stmt, scope)
            if is_return(last):
                break
        return last, scope

    def eval_if(self, node: IfStmt, env: Environment) -> Outcome:
        if self.evaluate(node.condition, env).is_truthy():
            result, _ = self.run_body(node.body, env)
        elif node.else_stmt is not None:
            result, _ = self.run_body(node.else_stmt, env)
        else:
            return NULL
        return result if is_return(result) else NULL

    def eval_while(self, node: WhileStmt, env: Environment) -> Outcome:
        # The condition always sees the enclosing scope; each pass gets a new body scope.
        while self.evaluate(node.condition, env).is_truthy():
            result, _ = self.run_body(node.body, env)
            if is_return(result):
                return result
        return NULL

    def eval_for(self, node: ForStmt, env: Environment) -> Outcome:
        iterable = self.evaluate(node.iterable, env)
        if not isinstance(iterable, ListValue):
            self._fatal(f"Cannot iterate over {iterable.type.value}; for loops require a list.", node)
        if not iterable.elements:
            return NULL

        # The loop variable lives in the enclosing scope, not in the per-pass body scope.
        if node.identifier not in env:
            env.declare_var(node.identifier, NULL)

        for i in range(len(iterable.elements)):
            env.assign_var(node.identifier, iterable.elements[i])
            result, _ = self.run_body(node.body, env)
            if is_return(result):
                return result
        return NULL

    # -----------------------------------------------------------------
    # Operators
    # -----------------------------------------------------------------

    def eval_binary_expr(self, node: BinaryExpr, env: Environment) -> RuntimeValue:
        lhs = self.evaluate(node.left, env)
        rhs = self.evaluate(node.right, env)
        op = node.operator

        match (lhs.type, rhs.type):
            case (ValueType.Number, ValueType.Number):
                return self.eval_numeric_binary_expr(lhs.value, rhs.value, op)
            case (ValueType.String, ValueType.String):
                if op == "+":
                    return StringValue(lhs.value + rhs.value)
                self.diagnostics.report(f"Cannot use operator '{op}' between two strings.")
                return StringValue("")
            case (ValueType.String, ValueType.Number):
                return self.eval_string_number_expr(lhs.value, rhs.value, op, string_first=True)
            case (ValueType.Number, ValueType.String):
                return self.eval_string_number_expr(rhs.value, lhs.value, op, string_first=False)
            case _:
                return NULL

    def eval_numeric_binary_expr(self, lhs: float, rhs: float, op: str) -> NumberValue:
        match op:
            case "+":
                return NumberValue(lhs + rhs)
            case "-":
                return NumberValue(lhs - rhs)
            case "*":
                return NumberValue(lhs * rhs)
            case "/":
                return NumberValue(_divide(lhs, rhs))
            case "%":
                return NumberValue(_modulo(lhs, rhs))
            case _:
                self._fatal(f"Unknown arithmetic operator '{op}'.")

    def eval_string_number_expr(self, text: str, number: float, op: str, string_first: bool) -> StringValue:
        """`+` concatenates on the string's side; `*` repeats the string."""
        if op == "+":
            rendered = format_number(number)
            return StringValue(text + rendered if string_first else rendered + text)
        if op == "*":
            if not math.isfinite(number):
                self.diagnostics.report(f"Cannot repeat a string {format_number(number)} times.")
                return StringValue("")
            return StringValue(text * math.floor(number))
        self.diagnostics.report(f"Cannot use operator '{op}' between a string and a number.")
        return StringValue("")

    def eval_comparative_expr(self, node: ComparativeExpr, env: Environment) -> BooleanValue:
        lhs = self.evaluate(node.left, env)
        rhs = self.evaluate(node.right, env)
        op = node.operator

        if lhs.type != rhs.type:
            if op in ("<", ">"):
                self.diagnostics.report(f"Cannot order {lhs.type.value} against {rhs.type.value}.")
            return BooleanValue(op == "!=")

        match op:
            case "==":
                return BooleanValue(lhs.equals(rhs))
            case "!=":
                return BooleanValue(not lhs.equals(rhs))
            case "<":
                return BooleanValue(lhs.compare(rhs) < 0)
            case ">":
                return BooleanValue(lhs.compare(rhs) > 0)
            case "<=":
                return BooleanValue(lhs.equals(rhs) or lhs.compare(rhs) < 0)
            case ">=":
                return BooleanValue(lhs.equals(rhs) or lhs.compare(rhs) > 0)
            case _:
                self._fatal(f"Unknown comparison operator '{op}'.", node)

    # -----------------------------------------------------------------
    # Assignment, literals and member access
    # -----------------------------------------------------------------

    def eval_assignment(self, node: AssignmentExpr, env: Environment) -> RuntimeValue:
        match node.assignee:
            case Identifier(symbol=name):
                value = self.evaluate(node.value_expr, env)
                return env.assign_var(name, value)
            case MemberExpr(object=Identifier(symbol=base_name)) as member:
                # Copy-on-write: fetch a copy of the container, mutate it, rebind it.
                container = env.lookup_var(base_name)
                key = self._assignment_key(member, container, env)
                value = self.evaluate(node.value_expr, env)

                if isinstance(container, ObjectValue):
                    container.properties[key] = value.clone()
                elif isinstance(container, ListValue):
                    container.elements[key] = value.clone()
                else:
                    self._fatal(f"Cannot assign a member of {container.type.value}.", member)

                env.assign_var(base_name, container)
                return value
            case MemberExpr() as member:
                self._fatal("Member assignment is only supported on a variable (e.g. a.b = x).", member)
            case _:
                self._fatal(f"Invalid LHS inside assignment expression: {node.assignee!r}", node)

    def _assignment_key(self, member: MemberExpr, container: RuntimeValue, env: Environment):
        if isinstance(container, ListValue):
            if not member.computed:
                self._fatal("Lists can only be indexed with [number].", member)
            return self._list_index(container, self.evaluate(member.property, env), member)

        if not member.computed:
            if not isinstance(member.property, Identifier):
                self._fatal("Unexpected value found in member expression.", member)
            return member.property.symbol

        key = self.evaluate(member.property, env)
        if not isinstance(key, StringValue):
            self._fatal(f"Computed property must be a string, got {key.type.value}.", member)
        return key.value

    def eval_object_expr(self, node: ObjectLiteral, env: Environment) -> ObjectValue:
        obj = ObjectValue()
        for prop in node.properties:
            if prop.value_expr is not None:
                obj.properties[prop.key] = self.evaluate(prop.value_expr, env)
            else:
                obj.properties[prop.key] = env.lookup_var(prop.key)
        return obj

    def _list_index(self, lst: ListValue, index: RuntimeValue, node: Stmt) -> int:
        if not isinstance(index, NumberValue) or math.isnan(index.value) or math.isinf(index.value):
            self._fatal(f"List index must be a number, got {index.to_string()}.", node)
        i = int(index.value)  # truncates toward zero
        size = len(lst.elements)
        if i == -1 and size:
            return size - 1
        if i < 0 or i >= size:
            self._fatal(f"List index {i} out of range (length {size}).", node)
        return i

    def eval_member_expr(self, node: MemberExpr, env: Environment) -> RuntimeValue:
        base = self.evaluate(node.object, env)

        if isinstance(base, ObjectValue):
            if not node.computed:
                if not isinstance(node.property, Identifier):
                    self._fatal("Unexpected value found in member expression.", node)
                key = node.property.symbol
            else:
                prop = self.evaluate(node.property, env)
                if not isinstance(prop, StringValue):
                    self._fatal(f"Computed property must be a string, got {prop.type.value}.", node)
                key = prop.value
            if key not in base.properties:
                self._fatal(f"Object has no property '{key}'.", node)
            return base.properties[key].clone()

        if isinstance(base, ListValue):
            if not node.computed:
                self._fatal("Lists can only be indexed with [number].", node)
            i = self._list_index(base, self.evaluate(node.property, env), node)
            return base.elements[i].clone()

        self._fatal(f"Invalid member expression on {base.type.value}.", node)

    # -----------------------------------------------------------------
    # Calls
    # -----------------------------------------------------------------

    def eval_call(self, node: CallExpr, env: Environment) -> RuntimeValue:
        func = self.evaluate(node.caller, env)
        args = [self.evaluate(arg, env) for arg in node.args]
        return self.call(func, args, env, node)

    def call(self, func: RuntimeValue, args: List[RuntimeValue], env: Environment,
             call_site: Optional[Stmt] = None) -> RuntimeValue:
        match func:
            case NativeFnValue():
                self._push_frame(func.name, args, call_site)
                self._dbg("native call", func.name, "argc", len(args))
                result = func.func(args, env)
                self._pop_frame()
                return result

            case FunctionValue():
                if len(args) != len(func.parameters):
                    self._fatal(
                        f"Function {func.name} expects {len(func.parameters)} arguments, got {len(args)}.",
                        call_site,
                    )
                self._push_frame(func.name, args, call_site)

                # The call scope hangs off the captured scope, not the caller's.
                call_env = Environment(parent=func.closure)
                for name, value in zip(func.parameters, args):
                    call_env.declare_var(name, value, False)
                self._dbg("call", func.name, "bindings", list(call_env.keys()))

                result: Outcome = NULL
                for stmt in func.body:
                    result = self._eval(stmt, call_env)
                    if is_return(result):
                        break

                self._pop_frame()
                return unwrap_return(result)

            case _:
                self._fatal(f"Cannot call {func.type.value}.", call_site)
