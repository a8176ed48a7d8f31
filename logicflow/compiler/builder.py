"""
Graph Builder - Authoring formats → LogicGraph.
Both builders are total and deterministic: any well-typed record produces
a graph, and the same record always produces the same graph.
"""

import json
from typing import Optional, Dict, Any

from logicflow.compiler.manifest import (
    LogicFlow, LogicFlowSchema, LogicNode, LogicNodeType,
    GraphNode, LogicGraph, NodeKind,
)


def trigger_node_id(flow_id: str) -> str:
    return f"trigger_{flow_id}"


def action_node_id(action_id: str) -> str:
    return f"action_{action_id}"


def flow_to_graph(flow: LogicFlow) -> LogicGraph:
    """
    Convert an ordered LogicFlow into a simple path:
    trigger → action_1 → action_2 → ... → action_n.
    """
    action_ids = [action_node_id(a.id) for a in flow.actions]

    trigger = GraphNode(
        id=trigger_node_id(flow.id),
        type=NodeKind.TRIGGER,
        data={"event": flow.event, "component_id": flow.component_id},
        next_nodes=action_ids[:1],
    )
    nodes = [trigger]

    for index, action in enumerate(flow.actions):
        nodes.append(GraphNode(
            id=action_ids[index],
            type=NodeKind.ACTION,
            data={"action_type": action.type, "params": dict(action.params)},
            next_nodes=action_ids[index + 1:index + 2],
        ))

    return LogicGraph(
        id=flow.id,
        name=flow.name,
        nodes=nodes,
        entry_point=trigger.id,
    )


# ── Rich schema ───────────────────────────────────────────────────

# editor node type → (action verb, {schema data key: action param key})
_ACTION_NODE_MAP: Dict[LogicNodeType, Any] = {
    LogicNodeType.DELAY: ("delay", {"ms": "ms"}),
    LogicNodeType.SET_VARIABLE: ("set-variable", {
        "variableName": "variableId",
        "variableId": "variableId",
        "value": "value",
        "sourceVariableId": "sourceVariableId",
    }),
    LogicNodeType.NAVIGATE: ("navigate", {"path": "url", "url": "url", "target": "target"}),
    LogicNodeType.ALERT: ("alert", {"message": "message"}),
    LogicNodeType.TOGGLE_CLASS: ("toggle-class", {"className": "className"}),
    LogicNodeType.SET_PROPERTY: ("set-attribute", {"property": "attribute", "value": "value"}),
    LogicNodeType.LOG: ("console-log", {"message": "message"}),
    LogicNodeType.FETCH_API: ("fetch", {"url": "url", "method": "method", "resultVar": "resultVariable"}),
    LogicNodeType.HTTP_REQUEST: ("fetch", {"url": "url", "method": "method", "resultVar": "resultVariable"}),
    LogicNodeType.CUSTOM_CODE: ("custom-code", {"code": "code"}),
}

_OPERATOR_ALIASES = {"===": "==", "!==": "!="}


def _condition_expression(data: Dict[str, Any]) -> str:
    """Reduce condition node data to the `<var> <op> <literal>` / `<var>` grammar."""
    condition = data.get("condition")
    if isinstance(condition, str):
        return condition.strip()

    left = data.get("left")
    if not isinstance(left, str) or not left.strip():
        return ""
    if "operator" not in data and "right" not in data:
        return left.strip()

    op = str(data.get("operator") or "==")
    op = _OPERATOR_ALIASES.get(op, op)
    try:
        right = json.dumps(data.get("right", True))
    except (TypeError, ValueError):
        return ""
    return f"{left.strip()} {op} {right}"


def _loop_count(data: Dict[str, Any]) -> Optional[Any]:
    for key in ("count", "maxIterations", "max_iterations"):
        if data.get(key) is not None:
            return data[key]
    return None


def logic_node_to_graph_node(node: LogicNode) -> GraphNode:
    """Map one editor node onto the graph IR, keeping its id and edges."""
    data = node.data or {}
    meta = {"label": node.label} if node.label else {}

    if node.node_type == LogicNodeType.CONDITION:
        kind = NodeKind.CONDITION
        payload = {"condition": _condition_expression(data), **meta}
    elif node.node_type in (LogicNodeType.FOR_EACH, LogicNodeType.WHILE):
        kind = NodeKind.LOOP
        payload = {"count": _loop_count(data), **meta}
    else:
        kind = NodeKind.ACTION
        verb, key_map = _ACTION_NODE_MAP[node.node_type]
        params = {
            param_key: data[data_key]
            for data_key, param_key in key_map.items()
            if data_key in data
        }
        payload = {"action_type": verb, "params": params, **meta}

    return GraphNode(
        id=node.id,
        type=kind,
        data=payload,
        next_nodes=list(node.next_nodes),
        else_nodes=list(node.else_nodes) if kind == NodeKind.CONDITION else [],
    )


def schema_to_graph(schema: LogicFlowSchema) -> LogicGraph:
    """
    Convert a graph-editor flow into the IR. A trigger node carrying the
    trigger kind is prepended and leads to the entry node (the explicit
    entry_node_id, else the first node).
    """
    entry = schema.entry_node_id or (schema.nodes[0].id if schema.nodes else None)

    trigger_data: Dict[str, Any] = {"trigger": schema.trigger_kind.value}
    trigger_data.update(schema.trigger.model_dump(exclude={"type"}))
    if schema.event_name:
        trigger_data["event"] = schema.event_name

    trigger = GraphNode(
        id=trigger_node_id(schema.id),
        type=NodeKind.TRIGGER,
        data=trigger_data,
        next_nodes=[entry] if entry else [],
    )

    return LogicGraph(
        id=schema.id,
        name=schema.name,
        nodes=[trigger] + [logic_node_to_graph_node(n) for n in schema.nodes],
        entry_point=trigger.id,
    )
