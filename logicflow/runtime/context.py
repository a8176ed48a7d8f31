"""
Execution Context - Per-firing state handed to the interpreter.
Created when a trigger fires and discarded afterwards; only the variable
map is shared (with the session and every other firing).
"""

from typing import Optional, Dict, Any

from logicflow.runtime.document import Document, Element


class ExecutionContext:
    """
    `variables` is the session's live store, mutated in place.
    `stop_execution` is cooperative: loop nodes check it before each iteration.
    """

    def __init__(
        self,
        variables: Optional[Dict[str, Any]] = None,
        event: Any = None,
        element: Optional[Element] = None,
        document: Optional[Document] = None,
        flow_id: str = "",
    ):
        self.variables: Dict[str, Any] = variables if variables is not None else {}
        self.event = event
        self.element = element
        self.document = document
        self.flow_id = flow_id
        self.stop_execution = False
        self.steps = 0

    def get_variable(self, variable_id: str) -> Any:
        return self.variables.get(variable_id)

    def set_variable(self, variable_id: str, value: Any) -> None:
        self.variables[variable_id] = value

    def stop(self) -> None:
        self.stop_execution = True
