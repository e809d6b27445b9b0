from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Located:
    line: int
    column: int
    end_line: Optional[int] = None
    end_column: Optional[int] = None


@dataclass
class TypeExpr:
    name: str
    args: List["TypeExpr"] = field(default_factory=list)

    def __str__(self) -> str:
        if self.name == "Optional" and self.args:
            return f"{self.args[0]}?"
        return self.name


@dataclass
class Param:
    name: str
    type_expr: TypeExpr


@dataclass
class FieldDecl:
    loc: Located
    name: str
    type_expr: TypeExpr
    mutable: bool
    default: Optional["Expr"] = None


@dataclass
class MethodDecl:
    loc: Located
    name: str
    params: List[Param]
    return_type: Optional[TypeExpr]
    mutating: bool = False


@dataclass
class InitDecl:
    loc: Located
    params: List[Param]


@dataclass
class SubscriptDecl:
    loc: Located
    params: List[Param]
    element_type: TypeExpr
    settable: bool = False


@dataclass
class StructDef:
    name: str
    fields: List[FieldDecl]
    methods: List[MethodDecl]
    inits: List[InitDecl]
    subscripts: List[SubscriptDecl]
    loc: Located


class Stmt:
    loc: Located


@dataclass
class VarDecl(Stmt):
    loc: Located
    name: str
    type_expr: Optional[TypeExpr]
    value: Optional["Expr"]
    mutable: bool = False


@dataclass
class AssignStmt(Stmt):
    loc: Located
    target: "Expr"
    value: "Expr"
    op: str = "="


@dataclass
class ExprStmt(Stmt):
    loc: Located
    value: "Expr"


class Expr:
    loc: Located


@dataclass
class Literal(Expr):
    loc: Located
    value: object


@dataclass
class NilLiteral(Expr):
    loc: Located


@dataclass
class Name(Expr):
    loc: Located
    ident: str


@dataclass
class Attr(Expr):
    loc: Located
    value: Expr
    attr: str


@dataclass
class OptionalUnwrap(Expr):
    """Postfix `?`: `a?.b` parses as `Attr(OptionalUnwrap(a), "b")`."""

    loc: Located
    value: Expr


@dataclass
class Index(Expr):
    loc: Located
    value: Expr
    index: List[Expr]


@dataclass
class Call(Expr):
    loc: Located
    func: Expr
    args: List[Expr]


@dataclass
class Group(Expr):
    loc: Located
    value: Expr


@dataclass
class Binary(Expr):
    loc: Located
    op: str
    left: Expr
    right: Expr


@dataclass
class Prefix(Expr):
    loc: Located
    op: str
    operand: Expr


@dataclass
class Postfix(Expr):
    loc: Located
    op: str
    operand: Expr


@dataclass
class Program:
    structs: List[StructDef]
    statements: List[Stmt]
