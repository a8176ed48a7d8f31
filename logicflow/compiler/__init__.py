"""Logic Compiler - Authoring records → graph IR → standalone JavaScript handlers"""
from .manifest import (
    StateVariable, LogicAction, LogicFlow,
    GraphNode, LogicGraph, NodeKind,
    LogicFlowSchema, LogicNode, LogicNodeType, TriggerKind,
)
from .builder import flow_to_graph, schema_to_graph
from .codegen import graph_to_javascript, generate_all_handlers, compile_flow_schema
from .registry import ProjectRegistry

__all__ = [
    "StateVariable",
    "LogicAction",
    "LogicFlow",
    "GraphNode",
    "LogicGraph",
    "NodeKind",
    "LogicFlowSchema",
    "LogicNode",
    "LogicNodeType",
    "TriggerKind",
    "flow_to_graph",
    "schema_to_graph",
    "graph_to_javascript",
    "generate_all_handlers",
    "compile_flow_schema",
    "ProjectRegistry",
]
