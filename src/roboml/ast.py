"""
Program Tree node definitions for the RoboML robot scripting language.

The tree is produced by an external front end and is read-only for the
whole lifetime of the core: the validator, the evaluator and the emitter
all consume the same nodes without modifying them.

Statements and expressions are closed families. Every backend dispatches
over them with an isinstance chain that ends in an explicit failure, so a
new node kind has to be handled in all three places.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Iterator, Optional, Sequence, Union


# =============================================================================
# Source positions
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int = 0     # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


# =============================================================================
# Enumerations
# =============================================================================

class VariableType(Enum):
    """Declared type of a variable or parameter."""
    NUMBER = "number"
    BOOLEAN = "boolean"


class ReturnType(Enum):
    """Declared return type of a function."""
    NUMBER = "number"
    BOOLEAN = "boolean"
    VOID = "void"


class Direction(Enum):
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class RotationDirection(Enum):
    CLOCK = "CLOCK"
    COUNTERCLOCK = "COUNTERCLOCK"


class LengthUnit(Enum):
    MM = "MM"
    CM = "CM"
    DM = "DM"
    M = "M"


class SpeedUnit(Enum):
    MM_PER_SEC = "MM_PER_SEC"
    CM_PER_SEC = "CM_PER_SEC"
    DM_PER_SEC = "DM_PER_SEC"
    M_PER_SEC = "M_PER_SEC"


class ArithmeticOperator(Enum):
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"


class ComparisonOperator(Enum):
    LESS = "<"
    LESS_EQ = "<="
    GREATER = ">"
    GREATER_EQ = ">="
    EQUALS = "=="
    NOT_EQUALS = "!="


class UnaryOperator(Enum):
    NEGATE = "negate"
    NOT = "not"


class SensorKind(Enum):
    DISTANCE = "DISTANCE"
    TIMESTAMP = "TIMESTAMP"


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode:
    """Base class for all Program Tree nodes."""
    # Optional; trees built in code usually carry no position
    span: Optional[SourceSpan] = field(default=None, kw_only=True, compare=False, repr=False)


@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class NumberLiteral(Expression):
    value: Union[int, float]


@dataclass(frozen=True)
class BooleanLiteral(Expression):
    value: bool


@dataclass(frozen=True)
class VariableReference(Expression):
    """A reference to a variable or parameter by name."""
    name: str


@dataclass(frozen=True)
class ArithmeticExpression(Expression):
    """A binary arithmetic operation (e.g., a + b)."""
    left: Expression
    operator: ArithmeticOperator
    right: Expression


@dataclass(frozen=True)
class ComparisonExpression(Expression):
    """A binary comparison (e.g., a < b). Always yields a boolean."""
    left: Expression
    operator: ComparisonOperator
    right: Expression


@dataclass(frozen=True)
class UnaryExpression(Expression):
    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class UnitExpression(Expression):
    """A quantity with an explicit length unit (e.g., 10 cm)."""
    value: Expression
    unit: LengthUnit


@dataclass(frozen=True)
class SensorRead(Expression):
    sensor: SensorKind


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class VariableDeclaration(Statement):
    """A variable declaration.

    Both the type and the initializer are optional, but at least one of them
    is expected from a well-formed front end.
    """
    name: str
    type: Optional[VariableType] = None
    initializer: Optional[Expression] = None


@dataclass(frozen=True)
class Assignment(Statement):
    """An assignment to an existing variable or parameter."""
    target: str
    value: Expression


@dataclass(frozen=True)
class Loop(Statement):
    """A while-style loop; the condition is tested before every iteration."""
    condition: Expression
    body: Sequence[Statement] = ()


@dataclass(frozen=True)
class Condition(Statement):
    condition: Expression
    then_body: Sequence[Statement] = ()
    else_body: Sequence[Statement] = ()


@dataclass(frozen=True)
class Movement(Statement):
    """Translate the robot. Direction and unit are required by the validator."""
    direction: Optional[Direction]
    distance: Expression
    unit: Optional[LengthUnit]


@dataclass(frozen=True)
class Rotation(Statement):
    """Turn the robot in place by an angle given in degrees."""
    direction: Optional[RotationDirection]
    angle: Expression


@dataclass(frozen=True)
class SetSpeed(Statement):
    speed: Expression
    unit: Optional[SpeedUnit]


@dataclass(frozen=True)
class FunctionCall(Statement, Expression):
    """A call to a declared function, usable both as statement and expression."""
    name: str
    arguments: Sequence[Expression] = ()


@dataclass(frozen=True)
class ReturnStatement(Statement):
    value: Optional[Expression] = None


# =============================================================================
# Declarations
# =============================================================================

@dataclass(frozen=True)
class Parameter(AstNode):
    name: str
    type: VariableType


@dataclass(frozen=True)
class Function(AstNode):
    """A function declaration. The entry function has no name."""
    name: Optional[str]
    parameters: Sequence[Parameter] = ()
    return_type: Optional[ReturnType] = ReturnType.VOID
    body: Sequence[Statement] = ()

    @property
    def is_entry(self) -> bool:
        return self.name is None


@dataclass(frozen=True)
class Program(AstNode):
    """A complete robot script: named functions plus one anonymous entry."""
    functions: Sequence[Function] = ()
    entry: Optional[Function] = None

    def function_table(self) -> dict:
        """Map each function name to its first declaration."""
        table = {}
        for func in self.functions:
            if func.name is not None and func.name not in table:
                table[func.name] = func
        return table


# =============================================================================
# Traversal Helpers
# =============================================================================

def children(node: AstNode) -> Iterator[AstNode]:
    """Yield the direct child nodes of a node, in field order."""
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, AstNode):
            yield value
        elif isinstance(value, (list, tuple)):
            for item in value:
                if isinstance(item, AstNode):
                    yield item


def walk(node: AstNode) -> Iterator[AstNode]:
    """Yield a node and all of its descendants, depth first."""
    yield node
    for child in children(node):
        yield from walk(child)


def print_ast(node: AstNode, indent: int = 0) -> None:
    """Print an AST node for debugging."""
    pad = "  " * indent
    print(f"{pad}{node.__class__.__name__}")
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, AstNode):
            print(f"{pad}  {f.name}:")
            print_ast(value, indent + 2)
        elif isinstance(value, (list, tuple)):
            print(f"{pad}  {f.name}: [")
            for item in value:
                if isinstance(item, AstNode):
                    print_ast(item, indent + 2)
                else:
                    print(f"{pad}    {item!r}")
            print(f"{pad}  ]")
        elif isinstance(value, Enum):
            print(f"{pad}  {f.name}: {value.name}")
        else:
            print(f"{pad}  {f.name}: {value!r}")
