"""
Symbol table management for the RoboML validator.

Provides scoped symbol tables for tracking parameters and variable
declarations while walking a function body.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Optional

from .ast import AstNode
from .types import ExprType


class SymbolKind(Enum):
    """The kind of symbol being tracked."""
    VARIABLE = auto()
    PARAMETER = auto()


@dataclass
class Symbol:
    """A symbol in the symbol table."""
    name: str
    kind: SymbolKind
    type: ExprType
    node: Optional[AstNode] = None  # Where it was defined


@dataclass
class Scope:
    """A single lexical scope: a function body or a nested block."""
    symbols: Dict[str, Symbol] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = ""  # For debugging: "function square", "loop body", etc.

    def define(self, symbol: Symbol) -> None:
        self.symbols[symbol.name] = symbol

    def lookup_local(self, name: str) -> Optional[Symbol]:
        return self.symbols.get(name)

    def lookup(self, name: str) -> Optional[Symbol]:
        """Look up a symbol in this scope or any enclosing scope."""
        symbol = self.symbols.get(name)
        if symbol is not None:
            return symbol
        if self.parent is not None:
            return self.parent.lookup(name)
        return None


class SymbolTable:
    """
    Manages the chain of lexical scopes during validation.

    There is no global scope for variables: each function starts a fresh
    chain, so one function never sees another function's locals.
    """

    def __init__(self):
        self._current_scope: Optional[Scope] = None

    @property
    def current_scope(self) -> Optional[Scope]:
        return self._current_scope

    @property
    def depth(self) -> int:
        depth = 0
        scope = self._current_scope
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth

    def push_scope(self, name: str = "") -> Scope:
        self._current_scope = Scope(parent=self._current_scope, name=name)
        return self._current_scope

    def pop_scope(self) -> Scope:
        if self._current_scope is None:
            raise RuntimeError("pop_scope() without a matching push_scope()")
        scope = self._current_scope
        self._current_scope = scope.parent
        return scope

    def define(self, symbol: Symbol) -> bool:
        """
        Define a symbol in the current scope.

        Returns False if the name is already defined in this same scope;
        the earlier definition is kept.
        """
        if self._current_scope is None:
            raise RuntimeError("define() outside of any scope")
        if self._current_scope.lookup_local(symbol.name) is not None:
            return False
        self._current_scope.define(symbol)
        return True

    def lookup(self, name: str) -> Optional[Symbol]:
        if self._current_scope is None:
            return None
        return self._current_scope.lookup(name)

    def lookup_local(self, name: str) -> Optional[Symbol]:
        if self._current_scope is None:
            return None
        return self._current_scope.lookup_local(name)
