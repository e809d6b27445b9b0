from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree

from .ast import (
    AssignStmt,
    Attr,
    Binary,
    Call,
    Expr,
    ExprStmt,
    FieldDecl,
    Group,
    Index,
    InitDecl,
    Literal,
    Located,
    MethodDecl,
    Name,
    NilLiteral,
    OptionalUnwrap,
    Param,
    Postfix,
    Prefix,
    Program,
    StructDef,
    SubscriptDecl,
    TypeExpr,
    VarDecl,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()


class TerminatorInserter:
    always_accept = ("NEWLINE", "SEMI")

    TERMINABLE = {
        "NAME",
        "INT",
        "NIL",
        "QMARK",
        "PLUSPLUS",
        "MINUSMINUS",
        "RPAR",
        "RSQB",
        "RBRACE",
        "GET",
        "SET",
    }

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.paren_depth = 0
        self.bracket_depth = 0
        self.can_terminate = False

    def process(self, stream):
        self._reset()
        last: Optional[Token] = None
        for token in stream:
            ttype = token.type
            if ttype in self.always_accept:
                if self._should_emit_terminator():
                    yield Token.new_borrow_pos("TERMINATOR", token.value, token)
                    self.can_terminate = False
                continue
            yield token
            last = token
            self._update_depth(ttype)
            self.can_terminate = ttype in self.TERMINABLE
        # A final statement does not need a trailing newline.
        if last is not None and self._should_emit_terminator():
            yield Token.new_borrow_pos("TERMINATOR", "", last)

    def _update_depth(self, ttype: str) -> None:
        if ttype == "LPAR":
            self.paren_depth += 1
        elif ttype == "RPAR" and self.paren_depth:
            self.paren_depth -= 1
        elif ttype == "LSQB":
            self.bracket_depth += 1
        elif ttype == "RSQB" and self.bracket_depth:
            self.bracket_depth -= 1

    def _should_emit_terminator(self) -> bool:
        return (
            self.paren_depth == 0
            and self.bracket_depth == 0
            and self.can_terminate
        )


_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    start="program",
    propagate_positions=True,
    maybe_placeholders=False,
    postlex=TerminatorInserter(),
)


def parse_program(source: str) -> Program:
    tree = _PARSER.parse(source)
    return _build_program(tree)


def _build_program(tree: Tree) -> Program:
    structs: List[StructDef] = []
    statements = []
    for child in tree.children:
        if not isinstance(child, Tree):
            continue
        kind = _name(child)
        if kind == "struct_def":
            structs.append(_build_struct_def(child))
        elif kind == "var_decl":
            statements.append(_build_var_decl(child))
        elif kind == "assign_stmt":
            statements.append(_build_assign_stmt(child))
        elif kind == "compound_stmt":
            statements.append(_build_assign_stmt(child))
        elif kind == "expr_stmt":
            statements.append(ExprStmt(loc=_loc(child), value=_build_expr(child.children[0])))
        else:
            raise ValueError(f"Unexpected top-level node: {kind}")
    return Program(structs=structs, statements=statements)


def _build_struct_def(tree: Tree) -> StructDef:
    name_token = _first_token(tree, "NAME")
    fields: List[FieldDecl] = []
    methods: List[MethodDecl] = []
    inits: List[InitDecl] = []
    subscripts: List[SubscriptDecl] = []
    for child in tree.children:
        if not isinstance(child, Tree):
            continue
        kind = _name(child)
        if kind == "field_decl":
            fields.append(_build_field_decl(child))
        elif kind == "method_decl":
            methods.append(_build_method_decl(child))
        elif kind == "init_decl":
            inits.append(InitDecl(loc=_loc(child), params=_build_params(child)))
        elif kind == "subscript_decl":
            subscripts.append(_build_subscript_decl(child))
    return StructDef(
        name=name_token.value,
        fields=fields,
        methods=methods,
        inits=inits,
        subscripts=subscripts,
        loc=_loc(tree),
    )


def _build_field_decl(tree: Tree) -> FieldDecl:
    binder = _first_child(tree, "binder")
    type_node = _first_child(tree, "type_expr")
    value_nodes = [child for child in tree.children if isinstance(child, Tree) and child not in (binder, type_node)]
    return FieldDecl(
        loc=_loc(tree),
        name=_first_token(tree, "NAME").value,
        type_expr=_build_type_expr(type_node),
        mutable=_binder_is_mutable(binder),
        default=_build_expr(value_nodes[0]) if value_nodes else None,
    )


def _build_method_decl(tree: Tree) -> MethodDecl:
    return_sig = _first_child(tree, "return_sig")
    mutating = any(isinstance(child, Token) and child.type == "MUTATING" for child in tree.children)
    return MethodDecl(
        loc=_loc(tree),
        name=_first_token(tree, "NAME").value,
        params=_build_params(tree),
        return_type=_build_return_sig(return_sig) if return_sig is not None else None,
        mutating=mutating,
    )


def _build_subscript_decl(tree: Tree) -> SubscriptDecl:
    accessors = _first_child(tree, "accessors")
    settable = accessors is not None and _first_token(accessors, "SET") is not None
    return SubscriptDecl(
        loc=_loc(tree),
        params=_build_params(tree),
        element_type=_build_return_sig(_first_child(tree, "return_sig")),
        settable=settable,
    )


def _build_return_sig(tree: Tree) -> TypeExpr:
    return _build_type_expr(_first_child(tree, "type_expr"))


def _build_params(tree: Tree) -> List[Param]:
    params_node = _first_child(tree, "params")
    if params_node is None:
        return []
    return [_build_param(p) for p in params_node.children if isinstance(p, Tree)]


def _build_param(tree: Tree) -> Param:
    name_token = _first_token(tree, "NAME")
    type_node = _first_child(tree, "type_expr")
    return Param(name=name_token.value, type_expr=_build_type_expr(type_node))


def _build_type_expr(tree: Tree) -> TypeExpr:
    name_token = _first_token(tree, "NAME")
    type_expr = TypeExpr(name=name_token.value)
    for child in tree.children:
        if isinstance(child, Token) and child.type == "QMARK":
            type_expr = TypeExpr(name="Optional", args=[type_expr])
    return type_expr


def _build_var_decl(tree: Tree) -> VarDecl:
    binder = _first_child(tree, "binder")
    type_node = _first_child(tree, "type_expr")
    value_nodes = [child for child in tree.children if isinstance(child, Tree) and child not in (binder, type_node)]
    return VarDecl(
        loc=_loc(tree),
        name=_first_token(tree, "NAME").value,
        type_expr=_build_type_expr(type_node) if type_node is not None else None,
        value=_build_expr(value_nodes[0]) if value_nodes else None,
        mutable=_binder_is_mutable(binder),
    )


def _binder_is_mutable(node: Tree) -> bool:
    for child in node.children:
        if isinstance(child, Token):
            if child.type == "VAR":
                return True
    return False


def _build_assign_stmt(tree: Tree) -> AssignStmt:
    target_node, op_token, value_node = tree.children
    return AssignStmt(
        loc=_loc(tree),
        target=_build_expr(target_node),
        value=_build_expr(value_node),
        op=op_token.value,
    )


def _build_expr(node) -> Expr:
    if isinstance(node, Tree):
        name = _name(node)
    else:
        raise TypeError(f"Unexpected node type: {type(node)}")

    if name == "var":
        return Name(loc=_loc(node), ident=node.children[0].value)
    if name == "int_lit":
        return Literal(loc=_loc(node), value=int(node.children[0].value))
    if name == "nil_lit":
        return NilLiteral(loc=_loc(node))
    if name == "group":
        inner = next(child for child in node.children if isinstance(child, Tree))
        return Group(loc=_loc(node), value=_build_expr(inner))
    if name == "attr":
        base, _dot, attr_token = node.children
        return Attr(loc=_loc(node), value=_build_expr(base), attr=attr_token.value)
    if name == "opt_unwrap":
        return OptionalUnwrap(loc=_loc(node), value=_build_expr(node.children[0]))
    if name == "index":
        base = node.children[0]
        return Index(loc=_loc(node), value=_build_expr(base), index=_build_args(_first_child(node, "args")))
    if name == "call":
        base = node.children[0]
        return Call(loc=_loc(node), func=_build_expr(base), args=_build_args(_first_child(node, "args")))
    if name == "binary":
        left, op_token, right = node.children
        return Binary(loc=_loc_from_token(op_token), op=op_token.value, left=_build_expr(left), right=_build_expr(right))
    if name == "prefix_op":
        op_token, operand = node.children
        return Prefix(loc=_loc(node), op=op_token.value, operand=_build_expr(operand))
    if name == "postfix_op":
        operand, op_token = node.children
        return Postfix(loc=_loc(node), op=op_token.value, operand=_build_expr(operand))
    raise ValueError(f"Unsupported expression node: {name}")


def _build_args(node: Optional[Tree]) -> List[Expr]:
    if node is None:
        return []
    return [_build_expr(arg) for arg in node.children if isinstance(arg, Tree)]


def _first_child(tree: Tree, kind: str) -> Optional[Tree]:
    return next(
        (child for child in tree.children if isinstance(child, Tree) and _name(child) == kind),
        None,
    )


def _first_token(tree: Tree, ttype: str) -> Optional[Token]:
    return next(
        (child for child in tree.children if isinstance(child, Token) and child.type == ttype),
        None,
    )


def _loc(tree: Tree) -> Located:
    meta = tree.meta
    return Located(
        line=meta.line,
        column=meta.column,
        end_line=getattr(meta, "end_line", None),
        end_column=getattr(meta, "end_column", None),
    )


def _loc_from_token(token: Token) -> Located:
    return Located(line=token.line, column=token.column, end_line=token.end_line, end_column=token.end_column)


def _name(node: Tree | Token) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    if isinstance(node, Token):
        return node.type
    return str(node)
