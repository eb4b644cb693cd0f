# tala_runtime.py

import inspect
import math
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TextIO

from tala.tala_ast import Program
from tala.tala_datatypes import (
    NULL, Environment, ListValue, NativeFnValue, NumberValue, ObjectValue,
    RuntimeValue, StringValue, FunctionValue,
)
from tala.tala_errors import Diagnostics, ExitRequest, FatalError, fatal
from tala.tala_interpreter import Evaluator
from tala.tala_parser import Parser


# ===================================================================
# 1. Standard Library
# ===================================================================

class StdLib:
    """The builtin functions installed into the root environment.

    Every method named `_<name>` becomes the builtin `<name>`. Builtins take
    the evaluated argument list and the calling environment.
    """

    def __init__(self, stdout: Optional[TextIO] = None, stdin: Optional[TextIO] = None):
        self.stdout = stdout
        self.stdin = stdin

    def builtins(self) -> Dict[str, RuntimeValue]:
        table: Dict[str, RuntimeValue] = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                table[name[1:]] = NativeFnValue(member, name[1:])
        return table

    @property
    def out(self) -> TextIO:
        return self.stdout if self.stdout is not None else sys.stdout

    @property
    def inp(self) -> TextIO:
        return self.stdin if self.stdin is not None else sys.stdin

    def expect_arity(self, name: str, args: List[RuntimeValue], *allowed: int):
        if len(args) not in allowed:
            counts = " or ".join(str(n) for n in allowed)
            fatal(f"{name} expects {counts} argument(s), got {len(args)}.")

    def _print(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        print(" ".join(a.to_string() for a in args), file=self.out)
        return NULL

    def _time(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        return NumberValue(time.time())

    def _sleep(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        self.expect_arity("sleep", args, 1)
        seconds = args[0]
        if not isinstance(seconds, NumberValue):
            fatal(f"sleep expects a number, got {seconds.type.value}.")
        if seconds.value < 0 or math.isnan(seconds.value):
            fatal(f"sleep expects a non-negative duration, got {seconds.to_string()}.")
        time.sleep(seconds.value)
        return NULL

    def _input(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        self.expect_arity("input", args, 0, 1)
        if args:
            if not isinstance(args[0], StringValue):
                fatal(f"input expects a string prompt, got {args[0].type.value}.")
            self.out.write(args[0].value)
            self.out.flush()
        line = self.inp.readline()
        return StringValue(line.rstrip("\r\n"))

    def _exit(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        self.expect_arity("exit", args, 0, 1)
        code = 0
        if args:
            if not isinstance(args[0], NumberValue) or not math.isfinite(args[0].value):
                fatal(f"exit expects a finite number, got {args[0].to_string()}.")
            code = int(args[0].value)
        raise ExitRequest(code)

    def _str(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        self.expect_arity("str", args, 1)
        return StringValue(args[0].to_string())

    def _int(self, args: List[RuntimeValue], env: Environment) -> RuntimeValue:
        self.expect_arity("int", args, 1)
        value = args[0]
        if isinstance(value, NumberValue):
            return value
        if isinstance(value, StringValue):
            try:
                return NumberValue(float(value.value.strip()))
            except ValueError:
                fatal(f"Cannot convert {value.value!r} to a number.")
        fatal(f"int expects a string or a number, got {value.type.value}.")


# ===================================================================
# 2. Script Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error', 'exit']
    value: RuntimeValue = NULL
    error_message: Optional[str] = None
    error_token: Optional[Dict[str, Any]] = None
    exit_code: Optional[int] = None
    reported: List[str] = field(default_factory=list)
    source: str = ""

    def format_error(self) -> str:
        """Formats a fatal error with line and column and a source excerpt if available."""
        if self.status != 'error':
            return ""
        parts = [f"FATAL ERROR: {self.error_message or 'Unknown error'}"]
        loc = self.error_token or {}
        if loc.get('line'):
            where = f"line {loc['line']}"
            if loc.get('col'):
                where += f", col {loc['col']}"
            parts.append(f"({where})")
            excerpt = self.source_excerpt()
            if excerpt:
                parts.append(excerpt)
        return "\n".join(parts)

    def source_excerpt(self, radius: int = 2) -> str:
        """The source lines around the error, with a caret under its column."""
        loc = self.error_token or {}
        line, col = loc.get('line'), loc.get('col')
        lines = self.source.splitlines()
        if not line or not 1 <= line <= len(lines):
            return ""
        first = max(line - radius, 1)
        window = lines[first - 1:line + radius]
        gutter = len(str(first + len(window) - 1))
        out = []
        for number, text in enumerate(window, start=first):
            marker = ">" if number == line else " "
            out.append(f"{marker} {number:>{gutter}} | {text}")
            if number == line and col:
                out.append(f"  {'':>{gutter}} | {'^':>{col}}")
        return "\n".join(out)


# A Tala call nests about ten host frames.
HOST_RECURSION_LIMIT = 10000


class ScriptRunner:
    """Parses and executes Tala code against a persistent root environment."""

    def __init__(self, stdout: Optional[TextIO] = None, stdin: Optional[TextIO] = None,
                 diagnostics: Optional[Diagnostics] = None):
        if sys.getrecursionlimit() < HOST_RECURSION_LIMIT:
            sys.setrecursionlimit(HOST_RECURSION_LIMIT)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.parser = Parser(self.diagnostics)
        self.evaluator = Evaluator(self.diagnostics)
        self.stdlib = StdLib(stdout=stdout, stdin=stdin)
        self.root_scope = Environment.create_root(self.stdlib.builtins())

    def reset(self):
        """Discards every binding made so far."""
        self.root_scope = Environment.create_root(self.stdlib.builtins())

    def parse(self, source: str) -> Program:
        return self.parser.produce_ast(source)

    def _current_loc(self) -> Optional[Dict[str, Any]]:
        return getattr(self.evaluator.current_node, 'loc', None)

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        frames = []
        for frame in stack:
            args = " ".join(_short(a) for a in frame.get('args') or [])
            frames.append(f"({frame.get('name') or '<call>'}{' ' + args if args else ''})")
        return "Tala stacktrace: " + " ".join(frames)

    def handle_script(self, source: str) -> ExecutionResult:
        self.diagnostics.clear()
        self.evaluator.call_stack = []
        self.evaluator.current_node = None
        try:
            program = self.parse(source)
            value = self.evaluator.evaluate(program, self.root_scope)
        except ExitRequest as e:
            return ExecutionResult('exit', exit_code=e.code, reported=list(self.diagnostics.reported), source=source)
        except FatalError as e:
            message = e.message
            trace = self._format_stacktrace()
            if trace:
                message = f"{message}\n{trace}"
            return ExecutionResult(
                'error', error_message=message, error_token=e.loc or self._current_loc(),
                reported=list(self.diagnostics.reported), source=source,
            )
        except RecursionError:
            return ExecutionResult(
                'error', error_message="Maximum recursion depth exceeded.",
                reported=list(self.diagnostics.reported), source=source,
            )
        return ExecutionResult('success', value=value, reported=list(self.diagnostics.reported), source=source)


def _short(value: RuntimeValue) -> str:
    match value:
        case ObjectValue():
            return "{...}"
        case ListValue():
            return f"[{len(value)}]"
        case FunctionValue():
            return value.name
        case StringValue():
            return repr(value.value)
        case _:
            return value.to_string()
