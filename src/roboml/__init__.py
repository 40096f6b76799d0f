"""
RoboML - a small language for scripting a wheeled robot.

This module provides:
- Program Tree: Immutable node dataclasses handed over by a front end
- Validator: Static semantic checks producing diagnostics
- Evaluator: Executes a program against a simulated arena, yielding a Scene
- Emitter: Lowers a program to Arduino source for an Omni4WD platform
- Loader: Builds Program Trees from YAML/JSON documents

Usage:
    from roboml import load_program, validate, run, emit

    program = load_program("square.yaml")
    result = validate(program)
    if result.has_errors:
        for diag in result.diagnostics:
            print(diag)

    outcome = run(program)
    if outcome.success:
        for snap in outcome.scene.snapshots:
            print(snap.time, snap.position)

    sketch = emit(program)
"""

from .ast import (
    # Locations
    SourceLocation,
    SourceSpan,

    # Enums
    VariableType,
    ReturnType,
    Direction,
    RotationDirection,
    LengthUnit,
    SpeedUnit,
    ArithmeticOperator,
    ComparisonOperator,
    UnaryOperator,
    SensorKind,

    # Base classes
    AstNode,
    Expression,
    Statement,

    # Expressions
    NumberLiteral,
    BooleanLiteral,
    VariableReference,
    ArithmeticExpression,
    ComparisonExpression,
    UnaryExpression,
    UnitExpression,
    SensorRead,

    # Statements
    VariableDeclaration,
    Assignment,
    Loop,
    Condition,
    Movement,
    Rotation,
    SetSpeed,
    FunctionCall,
    ReturnStatement,

    # Declarations
    Parameter,
    Function,
    Program,

    # Helpers
    walk,
    print_ast,
)

from .types import ExprType

from .errors import (
    ErrorSeverity,
    Diagnostic,
    DiagnosticCollector,
    DslError,
    MalformedTreeError,
    EvaluationError,
    UndeclaredVariableError,
    UnresolvedFunctionError,
    BudgetExceededError,
    RunCancelledError,
)

from .checker import (
    Validator,
    CheckResult,
    validate,
)

from .config import (
    SimulationConfig,
    load_config,
)

from .runtime import (
    Scene,
    Snapshot,
    Robot,
    Entity,
    Vector,
    CancellationToken,
    Evaluator,
    ExecutionResult,
    evaluate,
    run,
)

from .emitter import (
    ArduinoEmitter,
    emit,
)

from .loader import (
    program_from_dict,
    load_program,
)

__all__ = [
    # Locations
    'SourceLocation',
    'SourceSpan',

    # Enums
    'VariableType',
    'ReturnType',
    'Direction',
    'RotationDirection',
    'LengthUnit',
    'SpeedUnit',
    'ArithmeticOperator',
    'ComparisonOperator',
    'UnaryOperator',
    'SensorKind',
    'ExprType',

    # AST
    'AstNode',
    'Expression',
    'Statement',
    'NumberLiteral',
    'BooleanLiteral',
    'VariableReference',
    'ArithmeticExpression',
    'ComparisonExpression',
    'UnaryExpression',
    'UnitExpression',
    'SensorRead',
    'VariableDeclaration',
    'Assignment',
    'Loop',
    'Condition',
    'Movement',
    'Rotation',
    'SetSpeed',
    'FunctionCall',
    'ReturnStatement',
    'Parameter',
    'Function',
    'Program',
    'walk',
    'print_ast',

    # Errors
    'ErrorSeverity',
    'Diagnostic',
    'DiagnosticCollector',
    'DslError',
    'MalformedTreeError',
    'EvaluationError',
    'UndeclaredVariableError',
    'UnresolvedFunctionError',
    'BudgetExceededError',
    'RunCancelledError',

    # Validator
    'Validator',
    'CheckResult',
    'validate',

    # Configuration
    'SimulationConfig',
    'load_config',

    # Evaluator
    'Scene',
    'Snapshot',
    'Robot',
    'Entity',
    'Vector',
    'CancellationToken',
    'Evaluator',
    'ExecutionResult',
    'evaluate',
    'run',

    # Emitter
    'ArduinoEmitter',
    'emit',

    # Loader
    'program_from_dict',
    'load_program',
]

__version__ = "0.1.0"
