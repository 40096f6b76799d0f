"""
RoboML exceptions and diagnostics.

Error code ranges:
- E3xx: Semantic errors reported by the validator
- W3xx: Semantic warnings reported by the validator

Runtime failures are exceptions rather than diagnostics: they abort the
current evaluation run and carry the offending name or the exceeded
counters.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from .ast import AstNode, SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single validator message bound to a tree node."""
    code: str                       # E301, W301, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    node: AstNode                   # The offending node
    prop: Optional[str] = None      # Field of the node at fault, if any

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.node.span

    @property
    def is_error(self) -> bool:
        return self.severity == ErrorSeverity.ERROR

    def format(self) -> str:
        """Format the diagnostic for display."""
        loc = f"{self.span.start}: " if self.span is not None else ""
        at = f" (property: {self.prop})" if self.prop else ""
        return f"{loc}{self.severity.value}[{self.code}]: {self.message}{at}"

    def __str__(self) -> str:
        return self.format()

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data: dict = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "node": type(self.node).__name__,
            "property": self.prop,
        }
        if self.span is not None:
            data["range"] = {
                "start": {"line": self.span.start.line, "column": self.span.start.column},
                "end": {"line": self.span.end.line, "column": self.span.end.column},
            }
        return data


class DiagnosticCollector:
    """Collects diagnostics in the order they are reported."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0


class DslError(Exception):
    """Base exception for errors that carry a diagnostic."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class MalformedTreeError(ValueError):
    """The Program Tree violates a structural precondition.

    Raised by the emitter and evaluator for missing required parts and by
    the loader for documents it cannot turn into a tree. This signals a bug
    in whatever produced the tree, not a user mistake.
    """

    def __init__(self, message: str, node: Any = None):
        self.node = node
        super().__init__(message)


# --- Runtime errors ---

class EvaluationError(RuntimeError):
    """A fatal condition that aborts the current evaluation run."""
    pass


class UndeclaredVariableError(EvaluationError):
    """A name was read or assigned without being declared in the current frame."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undeclared variable '{name}'")


class UnresolvedFunctionError(EvaluationError):
    """A call named a function that the program does not declare."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unresolved function '{name}'")


class BudgetExceededError(EvaluationError):
    """A safety ceiling was crossed, most likely by a non-terminating loop."""

    def __init__(self, reason: str, iterations: int, elapsed: float, limit: Any = None):
        self.reason = reason
        self.iterations = iterations
        self.elapsed = elapsed
        self.limit = limit
        super().__init__(
            f"Execution budget exceeded ({reason}, limit {limit}): "
            f"{iterations} loop iteration(s), {elapsed:.3f}s elapsed"
        )


class RunCancelledError(EvaluationError):
    """The caller cancelled the run; its partial scene is discarded."""

    def __init__(self, iterations: int, elapsed: float):
        self.iterations = iterations
        self.elapsed = elapsed
        super().__init__(
            f"Run cancelled after {iterations} loop iteration(s), {elapsed:.3f}s elapsed"
        )
