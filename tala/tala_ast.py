"""
Defines the AST node model produced by the parser and walked by the evaluator.

The node set is closed. Every node carries a `kind` tag; expression nodes
derive from `Expr`, which itself derives from `Stmt`, so an expression is
usable anywhere a statement is expected.
"""
import copy
import enum
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Union


class NodeType(enum.Enum):
    # Statements
    Program = "Program"
    Body = "Body"
    VarDeclaration = "VarDeclaration"
    FunctionDeclaration = "FunctionDeclaration"
    Return = "Return"
    If = "If"
    While = "While"
    For = "For"
    # Expressions
    Identifier = "Identifier"
    NumericLiteral = "NumericLiteral"
    StringLiteral = "StringLiteral"
    BinaryExpr = "BinaryExpr"
    ComparativeExpr = "ComparativeExpr"
    AssignmentExpr = "AssignmentExpr"
    Property = "Property"
    ObjectLiteral = "ObjectLiteral"
    ListLiteral = "ListLiteral"
    MemberExpr = "MemberExpr"
    CallExpr = "CallExpr"


@dataclass
class Stmt:
    """Base for every node. `loc` is source metadata and is ignored by `==`."""
    kind: ClassVar[NodeType]
    loc: Optional[Dict[str, int]] = field(default=None, compare=False, repr=False, kw_only=True)

    def value(self) -> Union[float, str, None]:
        """The literal payload of the node, if it has one."""
        return None

    def clone(self) -> 'Stmt':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data rendering used for AST dumps."""
        out: Dict[str, Any] = {'kind': self.kind.value}
        for f in fields(self):
            if f.name == 'loc':
                continue
            out[f.name] = _plain(getattr(self, f.name))
        return out


def _plain(v: Any) -> Any:
    if isinstance(v, Stmt):
        return v.to_dict()
    if isinstance(v, list):
        return [_plain(x) for x in v]
    return v


@dataclass
class Expr(Stmt):
    """Base for nodes that evaluate to a value."""
    pass


# =================================================================
# Statements
# =================================================================

@dataclass
class Body(Stmt):
    """An ordered statement sequence; the unit of block scoping."""
    kind: ClassVar[NodeType] = NodeType.Body
    body: List[Stmt] = field(default_factory=list)

    def __iter__(self):
        return iter(self.body)

    def __len__(self) -> int:
        return len(self.body)


@dataclass
class Program(Stmt):
    kind: ClassVar[NodeType] = NodeType.Program
    body: Body = field(default_factory=Body)


@dataclass
class VarDeclaration(Stmt):
    kind: ClassVar[NodeType] = NodeType.VarDeclaration
    identifier: str
    constant: bool = False
    value_expr: Optional[Expr] = None


@dataclass
class FunctionDeclaration(Stmt):
    kind: ClassVar[NodeType] = NodeType.FunctionDeclaration
    name: str
    parameters: List[str]
    body: Body


@dataclass
class ReturnStmt(Stmt):
    kind: ClassVar[NodeType] = NodeType.Return
    value_expr: Expr


@dataclass
class IfStmt(Stmt):
    """`else if` chains are stored as an else-Body holding a single IfStmt."""
    kind: ClassVar[NodeType] = NodeType.If
    condition: Expr
    body: Body
    else_stmt: Optional[Body] = None


@dataclass
class WhileStmt(Stmt):
    kind: ClassVar[NodeType] = NodeType.While
    condition: Expr
    body: Body


@dataclass
class ForStmt(Stmt):
    kind: ClassVar[NodeType] = NodeType.For
    identifier: str
    iterable: Expr
    body: Body


# =================================================================
# Expressions
# =================================================================

@dataclass
class Identifier(Expr):
    kind: ClassVar[NodeType] = NodeType.Identifier
    symbol: str

    def value(self) -> str:
        return self.symbol


@dataclass
class NumericLiteral(Expr):
    kind: ClassVar[NodeType] = NodeType.NumericLiteral
    number: float

    def value(self) -> float:
        return self.number


@dataclass
class StringLiteral(Expr):
    kind: ClassVar[NodeType] = NodeType.StringLiteral
    string: str

    def value(self) -> str:
        return self.string


@dataclass
class BinaryExpr(Expr):
    """Arithmetic: `+ - * / %`."""
    kind: ClassVar[NodeType] = NodeType.BinaryExpr
    left: Expr
    right: Expr
    operator: str


@dataclass
class ComparativeExpr(Expr):
    """Relational and equality: `== != < > <= >=`."""
    kind: ClassVar[NodeType] = NodeType.ComparativeExpr
    left: Expr
    right: Expr
    operator: str


@dataclass
class AssignmentExpr(Expr):
    kind: ClassVar[NodeType] = NodeType.AssignmentExpr
    assignee: Expr
    value_expr: Expr


@dataclass
class Property(Stmt):
    """An object literal entry. A missing `value_expr` is shorthand for `key: key`."""
    kind: ClassVar[NodeType] = NodeType.Property
    key: str
    value_expr: Optional[Expr] = None


@dataclass
class ObjectLiteral(Expr):
    kind: ClassVar[NodeType] = NodeType.ObjectLiteral
    properties: List[Property] = field(default_factory=list)


@dataclass
class ListLiteral(Expr):
    kind: ClassVar[NodeType] = NodeType.ListLiteral
    elements: List[Expr] = field(default_factory=list)


@dataclass
class MemberExpr(Expr):
    """`object.property` when `computed` is False, `object[property]` otherwise."""
    kind: ClassVar[NodeType] = NodeType.MemberExpr
    object: Expr
    property: Expr
    computed: bool = False


@dataclass
class CallExpr(Expr):
    kind: ClassVar[NodeType] = NodeType.CallExpr
    caller: Expr
    args: List[Expr] = field(default_factory=list)
