"""
Execution context for the RoboML evaluator.

Holds an explicit stack of call frames. Each frame owns the name→value
mapping of one active function call; the innermost frame is the current
scope. Names are looked up in the current frame only, so a callee never
sees its caller's variables.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from ..errors import EvaluationError, UndeclaredVariableError

logger = logging.getLogger(__name__)

RuntimeValue = Union[float, bool]


@dataclass
class Frame:
    """The variables of one active function call."""
    function: str
    variables: Dict[str, RuntimeValue] = field(default_factory=dict)

    # Control flow flags
    returned: bool = False
    return_value: Optional[RuntimeValue] = None

    def signal_return(self, value: Optional[RuntimeValue]) -> None:
        self.returned = True
        self.return_value = value


class ExecutionContext:
    """Scope stack for one evaluation run."""

    def __init__(self):
        self._frames: List[Frame] = []

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def current(self) -> Frame:
        if not self._frames:
            raise EvaluationError("no active call frame")
        return self._frames[-1]

    @contextmanager
    def call_frame(self, function: str, bindings: Optional[Dict[str, RuntimeValue]] = None) -> Iterator[Frame]:
        """
        Push a frame for a call and pop it when the call ends.

        The frame is popped on every exit path, errors included.

        Usage:
            with ctx.call_frame("square", {"side": 100.0}) as frame:
                ...
        """
        frame = Frame(function=function, variables=dict(bindings or {}))
        self._frames.append(frame)
        logger.debug("push frame %s (depth %d)", function, len(self._frames))
        try:
            yield frame
        finally:
            self._frames.pop()
            logger.debug("pop frame %s (depth %d)", function, len(self._frames))

    def declare(self, name: str, value: RuntimeValue) -> None:
        """Bind a name in the current frame, replacing any earlier binding."""
        self.current.variables[name] = value

    def lookup(self, name: str) -> RuntimeValue:
        variables = self.current.variables
        if name not in variables:
            raise UndeclaredVariableError(name)
        return variables[name]

    def assign(self, name: str, value: RuntimeValue) -> None:
        variables = self.current.variables
        if name not in variables:
            raise UndeclaredVariableError(name)
        variables[name] = value
