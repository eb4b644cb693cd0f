"""
Defines the core runtime data types for the Tala interpreter.

This module provides the runtime value classes the evaluator produces and
consumes, and the Environment class that implements lexical scoping.
"""
import decimal
import enum
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from tala.tala_errors import fatal

if TYPE_CHECKING:
    from tala.tala_ast import Body


class ValueType(enum.Enum):
    Null = "null"
    Boolean = "boolean"
    Number = "number"
    String = "string"
    Object = "object"
    List = "list"
    NativeFn = "native-function"
    Function = "function"


def pad_each_line(amount: int, text: str) -> str:
    pad = " " * amount
    return "\n".join(pad + line for line in text.splitlines())


def format_number(value: float) -> str:
    """Canonical rendering: integral values print without a fractional part."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == int(value):
        return str(int(value))
    text = repr(value)
    if "e" in text:
        # Positional notation, e.g. 1e-07 -> 0.0000001
        text = format(decimal.Decimal(text), "f")
    return text


# =================================================================
# Abstract Base Class
# =================================================================

class RuntimeValue(ABC):
    """The capability every runtime value shares."""
    type: ValueType

    @abstractmethod
    def to_string(self) -> str:
        raise NotImplementedError

    def is_truthy(self) -> bool:
        return True

    @abstractmethod
    def equals(self, other: 'RuntimeValue') -> bool:
        raise NotImplementedError

    def compare(self, other: 'RuntimeValue') -> int:
        """Ordering: negative, zero or positive. Only Numbers are ordered."""
        fatal(f"Cannot order values of type {self.type.value}.")

    def clone(self) -> 'RuntimeValue':
        return self

    def to_builtin(self) -> Any:
        """Plain Python rendering, used by serialization."""
        return self.to_string()

    def __eq__(self, other):
        if not isinstance(other, RuntimeValue):
            return NotImplemented
        return self.type == other.type and self.equals(other)

    def __hash__(self):
        return hash((self.type, self.to_string()))

    def __str__(self) -> str:
        return self.to_string()


# =================================================================
# Core Runtime Types
# =================================================================

class NullValue(RuntimeValue):
    type = ValueType.Null

    def to_string(self) -> str:
        return "null"

    def is_truthy(self) -> bool:
        return False

    def equals(self, other: RuntimeValue) -> bool:
        return other.type == ValueType.Null

    def to_builtin(self) -> Any:
        return None

    def __repr__(self) -> str:
        return "NullValue()"


class BooleanValue(RuntimeValue):
    type = ValueType.Boolean

    def __init__(self, value: bool):
        self.value = bool(value)

    def to_string(self) -> str:
        return "true" if self.value else "false"

    def is_truthy(self) -> bool:
        return self.value

    def equals(self, other: RuntimeValue) -> bool:
        return other.type == ValueType.Boolean and self.value == other.value

    def to_builtin(self) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"BooleanValue({self.value})"


class NumberValue(RuntimeValue):
    type = ValueType.Number

    def __init__(self, value: float):
        self.value = float(value)

    def to_string(self) -> str:
        return format_number(self.value)

    def is_truthy(self) -> bool:
        return self.value != 0 and not math.isnan(self.value)

    def equals(self, other: RuntimeValue) -> bool:
        return other.type == ValueType.Number and self.value == other.value

    def compare(self, other: RuntimeValue) -> int:
        if other.type != ValueType.Number:
            fatal(f"Cannot order number against {other.type.value}.")
        if self.value < other.value:
            return -1
        if self.value > other.value:
            return 1
        return 0

    def to_builtin(self) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"NumberValue({self.to_string()})"


class StringValue(RuntimeValue):
    type = ValueType.String

    def __init__(self, value: str):
        self.value = value

    def to_string(self) -> str:
        return self.value

    def is_truthy(self) -> bool:
        return self.value != ""

    def equals(self, other: RuntimeValue) -> bool:
        return other.type == ValueType.String and self.value == other.value

    def to_builtin(self) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"StringValue({self.value!r})"


class ObjectValue(RuntimeValue):
    """A record of named properties. Insertion order is kept for printing."""
    type = ValueType.Object

    def __init__(self, properties: Optional[Dict[str, RuntimeValue]] = None):
        self.properties: Dict[str, RuntimeValue] = dict(properties or {})

    def to_string(self) -> str:
        if not self.properties:
            return "{}"
        lines = [pad_each_line(4, f"{key}: {value.to_string()}") for key, value in self.properties.items()]
        return "{\n" + "\n".join(lines) + "\n}"

    def is_truthy(self) -> bool:
        return bool(self.properties)

    def _canonical(self) -> List[Tuple[str, str]]:
        return sorted((key, value.to_string()) for key, value in self.properties.items())

    def equals(self, other: RuntimeValue) -> bool:
        # Same size, then the same rendering per key; key order is ignored.
        if other.type != ValueType.Object:
            return False
        if len(self.properties) != len(other.properties):
            return False
        return self._canonical() == other._canonical()

    def __hash__(self):
        return hash((self.type, tuple(self._canonical())))

    def clone(self) -> 'ObjectValue':
        return ObjectValue({k: v.clone() for k, v in self.properties.items()})

    def to_builtin(self) -> Any:
        return {k: v.to_builtin() for k, v in self.properties.items()}

    def __repr__(self) -> str:
        keys = ', '.join(self.properties.keys())
        return f"<ObjectValue keys=[{keys}]>"


class ListValue(RuntimeValue):
    type = ValueType.List

    def __init__(self, elements: Optional[List[RuntimeValue]] = None):
        self.elements: List[RuntimeValue] = list(elements or [])

    def to_string(self) -> str:
        return "[" + ", ".join(e.to_string() for e in self.elements) + "]"

    def is_truthy(self) -> bool:
        return bool(self.elements)

    def equals(self, other: RuntimeValue) -> bool:
        if other.type != ValueType.List or len(self.elements) != len(other.elements):
            return False
        return all(a == b for a, b in zip(self.elements, other.elements))

    def clone(self) -> 'ListValue':
        return ListValue([e.clone() for e in self.elements])

    def to_builtin(self) -> Any:
        return [e.to_builtin() for e in self.elements]

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        return f"ListValue({self.elements!r})"


NativeCallable = Callable[[List[RuntimeValue], 'Environment'], RuntimeValue]


class NativeFnValue(RuntimeValue):
    """Wraps a host callable taking (args, env)."""
    type = ValueType.NativeFn

    def __init__(self, func: NativeCallable, name: Optional[str] = None):
        self.func = func
        self.name = name or getattr(func, '__name__', '<native>')

    def to_string(self) -> str:
        return "NativeFn"

    def equals(self, other: RuntimeValue) -> bool:
        return other.type == ValueType.NativeFn and self.func == other.func

    def __hash__(self):
        return hash(self.func)

    def __repr__(self) -> str:
        return f"<NativeFnValue {self.name}>"


class FunctionValue(RuntimeValue):
    """A user function: its parameters, its body and the scope it was declared in.

    The body is shared with the declaring FunctionDeclaration and the closure
    is held by reference, so it outlives the call frame that created it.
    """
    type = ValueType.Function

    def __init__(self, name: str, parameters: List[str], closure: 'Environment', body: 'Body'):
        self.name = name
        self.parameters = list(parameters)
        self.closure = closure
        self.body = body

    def to_string(self) -> str:
        return f"function {self.name}({', '.join(self.parameters)})"

    def equals(self, other: RuntimeValue) -> bool:
        return other.type == ValueType.Function and self.closure is other.closure

    def __hash__(self):
        return hash(id(self.closure))

    def __repr__(self) -> str:
        return f"<FunctionValue {self.to_string()}>"


NULL = NullValue()


# =================================================================
# Environment
# =================================================================

class Environment:
    """A lexical scope: name bindings, constant names and an optional parent.

    Lookups and assignments walk outward to the innermost scope that declares
    the name. Declarations always land in this scope.
    """
    def __init__(self, parent: Optional['Environment'] = None):
        self.parent = parent
        self.variables: Dict[str, RuntimeValue] = {}
        self.constants: Set[str] = set()

    @classmethod
    def create_root(cls, builtins: Optional[Dict[str, RuntimeValue]] = None) -> 'Environment':
        """A parentless scope holding the literal names and the given builtins, all constant."""
        env = cls()
        env.declare_var("null", NULL, True)
        env.declare_var("true", BooleanValue(True), True)
        env.declare_var("false", BooleanValue(False), True)
        for name, value in (builtins or {}).items():
            env.declare_var(name, value, True)
        return env

    def declare_var(self, name: str, value: RuntimeValue, constant: bool = False) -> RuntimeValue:
        if name in self.variables:
            fatal(f"Cannot declare variable {name} as it is already defined.")
        if constant:
            self.constants.add(name)
        self.variables[name] = value.clone()
        return value

    def assign_var(self, name: str, value: RuntimeValue) -> RuntimeValue:
        env = self.resolve(name)
        if env.is_constant(name):
            fatal(f"Cannot re-assign a constant variable ({name}).")
        env.variables[name] = value.clone()
        return value

    def lookup_var(self, name: str) -> RuntimeValue:
        return self.resolve(name).variables[name].clone()

    def find_owner(self, name: str) -> Optional['Environment']:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.variables:
                return env
            env = env.parent
        return None

    def resolve(self, name: str) -> 'Environment':
        owner = self.find_owner(name)
        if owner is None:
            fatal(f"Cannot resolve {name}")
        return owner

    def is_constant(self, name: str) -> bool:
        owner = self.find_owner(name)
        return owner is not None and name in owner.constants

    def keys(self):
        """Names bound in this scope only."""
        return self.variables.keys()

    def __contains__(self, name: Any) -> bool:
        return isinstance(name, str) and self.find_owner(name) is not None

    def __repr__(self) -> str:
        keys = ', '.join(self.variables.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Environment bindings=[{keys}]{parent_id}>"
