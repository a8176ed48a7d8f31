"""
Graph Interpreter - Walks a LogicGraph and performs its effects immediately.

Differences from the code generator are intentional:
- No visit-once deduplication: a node reachable through two paths runs twice.
- No incidental recursion limit: every firing has a step budget and a depth
  budget, and exceeding either raises CycleBudgetExceeded.

Condition and loop nodes do not fall through to their own successors; the
branch or body they select is the whole continuation.
"""

import logging
from typing import Optional, Dict

import httpx

from logicflow.config.settings import Settings, settings as default_settings
from logicflow.compiler.manifest import LogicGraph, GraphNode, NodeKind, loop_count
from logicflow.compiler.actions import parse_action
from logicflow.runtime.context import ExecutionContext
from logicflow.runtime.conditions import evaluate_condition
from logicflow.runtime.effects import EffectDispatcher

logger = logging.getLogger(__name__)


class CycleBudgetExceeded(RuntimeError):
    """A firing executed more nodes, or nested deeper, than its budget allows."""

    def __init__(self, graph_id: str, node_id: str, limit: int, kind: str = "steps"):
        self.graph_id = graph_id
        self.node_id = node_id
        self.limit = limit
        self.kind = kind
        super().__init__(
            f"Graph '{graph_id}' exceeded its {kind} budget of {limit} at node '{node_id}'"
        )


class GraphInterpreter:
    """Executes graphs against an ExecutionContext."""

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        effects: Optional[EffectDispatcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._cfg = cfg or default_settings
        self._effects = effects or EffectDispatcher(self._cfg, transport=transport)
        self.max_steps = self._cfg.max_execution_steps
        self.max_depth = self._cfg.max_execution_depth

    async def execute_graph(self, graph: LogicGraph, ctx: ExecutionContext) -> None:
        node_map = graph.node_map()
        entry = node_map.get(graph.entry_point)
        if entry is None:
            logger.debug(f"[INTERPRETER] Graph '{graph.id}' has no entry node '{graph.entry_point}'")
            return
        if not ctx.flow_id:
            ctx.flow_id = graph.id
        await self.execute_node(entry, node_map, ctx)

    async def execute_node(
        self,
        node: GraphNode,
        node_map: Dict[str, GraphNode],
        ctx: ExecutionContext,
        depth: int = 0,
    ) -> None:
        """
        Execute `node` and its continuation. The last successor of a node is
        run in place (tail position), so straight chains do not nest; only
        fan-out and loop bodies add depth.
        """
        current: Optional[GraphNode] = node
        while current is not None:
            ctx.steps += 1
            if ctx.steps > self.max_steps:
                raise CycleBudgetExceeded(ctx.flow_id, current.id, self.max_steps, "steps")
            if depth > self.max_depth:
                raise CycleBudgetExceeded(ctx.flow_id, current.id, self.max_depth, "depth")

            if current.type == NodeKind.ACTION:
                action = parse_action(current.data.get("action_type", ""), current.data.get("params") or {})
                await self._effects.dispatch(action, ctx)
                successors = current.next_nodes

            elif current.type == NodeKind.CONDITION:
                result = evaluate_condition(current.data.get("condition"), ctx.variables)
                successors = current.next_nodes if result else current.else_nodes

            elif current.type == NodeKind.LOOP:
                count = loop_count(current.data, self._cfg.default_loop_count)
                for _ in range(count):
                    if ctx.stop_execution:
                        break
                    for body_id in current.next_nodes:
                        body = node_map.get(body_id)
                        if body is not None:
                            await self.execute_node(body, node_map, ctx, depth + 1)
                return

            else:
                successors = current.next_nodes

            resolved = [node_map[n] for n in successors if n in node_map]
            if not resolved:
                return
            for branch in resolved[:-1]:
                await self.execute_node(branch, node_map, ctx, depth + 1)
            current = resolved[-1]


_default_interpreter: Optional[GraphInterpreter] = None


def _get_interpreter() -> GraphInterpreter:
    global _default_interpreter
    if _default_interpreter is None:
        _default_interpreter = GraphInterpreter()
    return _default_interpreter


async def execute_graph(graph: LogicGraph, ctx: ExecutionContext) -> None:
    """Run a graph with the default interpreter."""
    await _get_interpreter().execute_graph(graph, ctx)


async def execute_node(node: GraphNode, node_map: Dict[str, GraphNode], ctx: ExecutionContext) -> None:
    """Run one node and everything it leads to with the default interpreter."""
    await _get_interpreter().execute_node(node, node_map, ctx)
