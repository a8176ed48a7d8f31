"""Logic Runtime - Graph interpreter and live document sessions"""
from .context import ExecutionContext
from .conditions import evaluate_condition
from .document import Document, Element, VirtualDocument, VirtualElement
from .interpreter import GraphInterpreter, CycleBudgetExceeded, execute_graph, execute_node
from .session import RuntimeSession

__all__ = [
    "ExecutionContext",
    "evaluate_condition",
    "Document",
    "Element",
    "VirtualDocument",
    "VirtualElement",
    "GraphInterpreter",
    "CycleBudgetExceeded",
    "execute_graph",
    "execute_node",
    "RuntimeSession",
]
