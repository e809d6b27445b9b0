"""Optional-chain lvalue resolution for a small struct language."""

from .assign import AssignOp, check_assignment, check_binary_operands, check_prefix_operator
from .chain import ChainResult, evaluate_chain
from .checker import CheckedProgram, Checker, check_source
from .diagnostics import Diagnostic, DiagnosticKind
from .lvalue import ResolvedExpr, narrow
from .options import CheckOptions
from .parser import parse_program
from .symbols import SymbolTable
from .types import is_optional, unwrap_one, wrap
from .verify import VerifyResult, verify_source

__all__ = [
    "AssignOp",
    "ChainResult",
    "CheckOptions",
    "CheckedProgram",
    "Checker",
    "Diagnostic",
    "DiagnosticKind",
    "ResolvedExpr",
    "SymbolTable",
    "VerifyResult",
    "check_assignment",
    "check_binary_operands",
    "check_prefix_operator",
    "check_source",
    "evaluate_chain",
    "is_optional",
    "narrow",
    "parse_program",
    "unwrap_one",
    "verify_source",
    "wrap",
]
