"""
Tests for graph building — LogicFlow and LogicFlowSchema → LogicGraph.
Run: pytest tests/test_graph_builder.py -v
"""
import pytest
from logicflow.compiler.manifest import (
    LogicFlowSchema, LogicNode, LogicNodeType, NodeKind,
    EventTrigger, MountTrigger, ScheduleTrigger, loop_count,
)
from logicflow.compiler.builder import flow_to_graph, schema_to_graph


# ══════════════════════════════════════════════════════════════════
# ORDERED FLOWS
# ══════════════════════════════════════════════════════════════════


class TestFlowToGraph:

    def test_node_count_and_entry(self, make_flow):
        flow = make_flow(actions=[("alert", {"message": "hi"}), ("focus", {})])
        graph = flow_to_graph(flow)
        assert len(graph.nodes) == 3
        assert graph.entry_point == "trigger_f1"
        assert graph.get_entry_node().type == NodeKind.TRIGGER

    def test_actions_form_a_path(self, make_flow):
        flow = make_flow(actions=[("alert", {}), ("blur", {}), ("focus", {})])
        graph = flow_to_graph(flow)
        assert graph.reachable_ids() == [
            "trigger_f1", "action_f1_a0", "action_f1_a1", "action_f1_a2",
        ]
        last = graph.get_node("action_f1_a2")
        assert last.next_nodes == []

    def test_empty_flow_is_trigger_only(self, make_flow):
        graph = flow_to_graph(make_flow(actions=[]))
        assert len(graph.nodes) == 1
        assert graph.nodes[0].next_nodes == []

    def test_trigger_payload(self, make_flow):
        graph = flow_to_graph(make_flow(component_id="submit", event="input"))
        trigger = graph.get_entry_node()
        assert trigger.data == {"event": "input", "component_id": "submit"}

    def test_action_payload_copies_params(self, make_flow):
        flow = make_flow(actions=[("set-variable", {"variableId": "x", "value": 5})])
        graph = flow_to_graph(flow)
        node = graph.get_node("action_f1_a0")
        assert node.data == {"action_type": "set-variable", "params": {"variableId": "x", "value": 5}}
        node.data["params"]["value"] = 6
        assert flow.actions[0].params["value"] == 5

    def test_deterministic(self, make_flow):
        flow = make_flow(actions=[("alert", {"message": "a"}), ("delay", {"ms": 5})])
        assert flow_to_graph(flow) == flow_to_graph(flow)


# ══════════════════════════════════════════════════════════════════
# GRAPH-EDITOR SCHEMAS
# ══════════════════════════════════════════════════════════════════


class TestSchemaToGraph:

    def _schema(self, **kwargs):
        return LogicFlowSchema(id="s1", name="Schema One", **kwargs)

    def test_trigger_leads_to_first_node(self):
        schema = self._schema(trigger=EventTrigger(target="btn", event="click"))
        schema.with_node(LogicNode(id="n1", node_type=LogicNodeType.ALERT, data={"message": "x"}))
        schema.with_node(LogicNode(id="n2", node_type=LogicNodeType.LOG))
        graph = schema_to_graph(schema)
        trigger = graph.get_entry_node()
        assert trigger.id == "trigger_s1"
        assert trigger.next_nodes == ["n1"]
        assert trigger.data["trigger"] == "event"
        assert trigger.data["target"] == "btn"
        assert trigger.data["event"] == "click"

    def test_explicit_entry_node(self):
        schema = self._schema(entry_node_id="n2")
        schema.nodes = [
            LogicNode(id="n1", node_type=LogicNodeType.ALERT),
            LogicNode(id="n2", node_type=LogicNodeType.ALERT),
        ]
        assert schema_to_graph(schema).get_entry_node().next_nodes == ["n2"]

    def test_empty_schema(self):
        graph = schema_to_graph(self._schema())
        assert len(graph.nodes) == 1
        assert graph.get_entry_node().next_nodes == []
        assert graph.get_entry_node().data["trigger"] == "manual"

    def test_action_nodes_are_mapped_to_verbs(self):
        schema = self._schema()
        schema.with_node(LogicNode(
            id="set", node_type=LogicNodeType.SET_VARIABLE,
            data={"variableName": "count", "value": 3},
        ))
        schema.with_node(LogicNode(id="nav", node_type=LogicNodeType.NAVIGATE, data={"path": "/home"}))
        schema.with_node(LogicNode(
            id="api", node_type=LogicNodeType.FETCH_API,
            data={"url": "https://example.test/items", "method": "POST", "resultVar": "items"},
        ))
        schema.with_node(LogicNode(
            id="prop", node_type=LogicNodeType.SET_PROPERTY,
            data={"property": "aria-label", "value": "Close"},
        ))
        graph = schema_to_graph(schema)

        assert graph.get_node("set").data["action_type"] == "set-variable"
        assert graph.get_node("set").data["params"] == {"variableId": "count", "value": 3}
        assert graph.get_node("nav").data["params"] == {"url": "/home"}
        assert graph.get_node("api").data["action_type"] == "fetch"
        assert graph.get_node("api").data["params"]["resultVariable"] == "items"
        assert graph.get_node("prop").data["action_type"] == "set-attribute"
        assert graph.get_node("prop").data["params"] == {"attribute": "aria-label", "value": "Close"}

    def test_custom_code_node(self):
        schema = self._schema()
        schema.with_node(LogicNode(
            id="code", node_type=LogicNodeType.CUSTOM_CODE,
            data={"code": "console.log(1);"},
        ))
        node = schema_to_graph(schema).get_node("code")
        assert node.data["action_type"] == "custom-code"
        assert node.data["params"] == {"code": "console.log(1);"}

    def test_condition_node_from_condition_string(self):
        schema = self._schema()
        schema.with_node(
            LogicNode(id="c", node_type=LogicNodeType.CONDITION, data={"condition": " a == 1 "})
            .then("yes").otherwise("no")
        )
        node = schema_to_graph(schema).get_node("c")
        assert node.type == NodeKind.CONDITION
        assert node.data["condition"] == "a == 1"
        assert node.next_nodes == ["yes"]
        assert node.else_nodes == ["no"]

    def test_condition_node_from_operands(self):
        schema = self._schema()
        schema.with_node(LogicNode(
            id="c", node_type=LogicNodeType.CONDITION,
            data={"left": "status", "operator": "===", "right": "done"},
        ))
        assert schema_to_graph(schema).get_node("c").data["condition"] == 'status == "done"'

    def test_condition_node_bare_variable(self):
        schema = self._schema()
        schema.with_node(LogicNode(id="c", node_type=LogicNodeType.CONDITION, data={"left": "ready"}))
        assert schema_to_graph(schema).get_node("c").data["condition"] == "ready"

    def test_loop_node(self):
        schema = self._schema()
        schema.with_node(
            LogicNode(id="l", node_type=LogicNodeType.FOR_EACH, data={"maxIterations": 4}).then("body")
        )
        node = schema_to_graph(schema).get_node("l")
        assert node.type == NodeKind.LOOP
        assert node.data["count"] == 4
        assert node.next_nodes == ["body"]

    def test_else_edges_dropped_for_non_conditions(self):
        schema = self._schema()
        schema.with_node(LogicNode(id="a", node_type=LogicNodeType.ALERT).otherwise("x"))
        assert schema_to_graph(schema).get_node("a").else_nodes == []

    def test_label_carried_into_payload(self):
        schema = self._schema()
        schema.with_node(LogicNode(id="a", node_type=LogicNodeType.ALERT, label="Say hello"))
        assert schema_to_graph(schema).get_node("a").data["label"] == "Say hello"

    def test_trigger_kinds(self):
        mount = self._schema(trigger=MountTrigger(target="panel"))
        assert mount.target_id == "panel"
        assert mount.event_name is None
        scheduled = self._schema(trigger=ScheduleTrigger(cron="*/5 * * * *"))
        assert schema_to_graph(scheduled).get_entry_node().data["cron"] == "*/5 * * * *"

    def test_trigger_parsed_from_dict(self):
        schema = LogicFlowSchema.model_validate({
            "id": "s2",
            "trigger": {"type": "event", "target": "btn"},
        })
        assert isinstance(schema.trigger, EventTrigger)
        assert schema.event_name == "click"


# ══════════════════════════════════════════════════════════════════
# LOOP COUNT
# ══════════════════════════════════════════════════════════════════


class TestLoopCount:

    @pytest.mark.parametrize("raw,expected", [
        (3, 3),
        ("4", 4),
        (2.9, 2),
        (0, 0),
        (-5, 0),
        (None, 10),
        ("", 10),
        ("many", 10),
        (True, 10),
    ])
    def test_values(self, raw, expected):
        assert loop_count({"count": raw}, 10) == expected

    def test_missing_key(self):
        assert loop_count({}, 7) == 7
