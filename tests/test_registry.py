"""
Tests for ProjectRegistry — flows, schemas, variables, subscriptions, export.
Run: pytest tests/test_registry.py -v
"""
from datetime import datetime, timezone

import pytest
from logicflow.compiler.manifest import StateVariable, LogicFlowSchema, LogicNode, LogicNodeType


class TestFlows:

    def test_add_and_get(self, registry, make_flow):
        flow = registry.add_flow(make_flow(actions=[("alert", {})]))
        assert registry.get_flow(flow.id) is flow

    def test_duplicate_rejected(self, registry, make_flow):
        registry.add_flow(make_flow())
        with pytest.raises(ValueError):
            registry.add_flow(make_flow())

    def test_get_nonexistent(self, registry):
        assert registry.get_flow("missing") is None

    def test_update(self, registry, make_flow):
        registry.add_flow(make_flow())
        updated = registry.update_flow("f1", {"event": "dblclick", "id": "hijack"})
        assert updated.event == "dblclick"
        assert updated.id == "f1"
        assert registry.get_flow("f1").event == "dblclick"

    def test_update_nonexistent(self, registry):
        assert registry.update_flow("missing", {"name": "x"}) is None

    def test_delete(self, registry, make_flow):
        registry.add_flow(make_flow())
        assert registry.delete_flow("f1") is True
        assert registry.delete_flow("f1") is False

    def test_list_by_component(self, registry, make_flow):
        registry.add_flow(make_flow(flow_id="a", component_id="btn"))
        registry.add_flow(make_flow(flow_id="b", component_id="card"))
        assert [f.id for f in registry.list_flows("card")] == ["b"]
        assert len(registry.list_flows()) == 2


class TestSchemas:

    def test_archive_hides_from_listing(self, registry):
        registry.add_schema(LogicFlowSchema(id="s1"))
        registry.add_schema(LogicFlowSchema(id="s2"))
        assert registry.archive_schema("s1").archived is True
        assert [s.id for s in registry.list_schemas()] == ["s2"]
        assert len(registry.list_schemas(include_archived=True)) == 2

    def test_archive_nonexistent(self, registry):
        assert registry.archive_schema("missing") is None

    def test_delete(self, registry):
        registry.add_schema(LogicFlowSchema(id="s1"))
        assert registry.delete_schema("s1") is True
        assert registry.get_schema("s1") is None

    def test_export_modules_skips_archived(self, registry):
        live = LogicFlowSchema(id="s1", name="Live flow")
        live.with_node(LogicNode(id="n1", node_type=LogicNodeType.ALERT))
        registry.add_schema(live)
        registry.add_schema(LogicFlowSchema(id="s2", name="Old flow", archived=True))
        modules = registry.export_modules()
        assert [m.path for m in modules] == ["logic/liveFlow.js"]


class TestVariables:

    def test_update_notifies(self, registry):
        seen = []
        registry.subscribe(lambda v: seen.append(v.default_value))
        registry.add_variable(StateVariable(id="count", default_value=0))
        updated = registry.update_variable("count", {"default_value": 3})
        assert updated.default_value == 3
        assert seen == [0, 3]

    def test_update_keeps_id(self, registry):
        registry.add_variable(StateVariable(id="count", name="Count"))
        updated = registry.update_variable("count", {"id": "other", "name": "Total"})
        assert updated.id == "count"
        assert updated.name == "Total"

    def test_update_accepts_structured_values(self, registry):
        registry.add_variable(StateVariable(id="items"))
        updated = registry.update_variable("items", {"default_value": {"rows": [1, 2]}})
        assert updated.default_value == {"rows": [1, 2]}

    def test_update_unknown_is_ignored(self, registry):
        seen = []
        registry.subscribe(seen.append)
        assert registry.update_variable("ghost", {"default_value": 1}) is None
        assert seen == []

    def test_unsubscribe(self, registry):
        seen = []
        unsubscribe = registry.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        registry.add_variable(StateVariable(id="a"))
        assert seen == []

    def test_failing_listener_does_not_block_others(self, registry, caplog):
        seen = []

        def broken(variable):
            raise RuntimeError("panel closed")

        registry.subscribe(broken)
        registry.subscribe(lambda v: seen.append(v.id))
        registry.add_variable(StateVariable(id="a"))
        assert seen == ["a"]
        assert "Variable listener failed for 'a'" in caplog.text

    def test_delete(self, registry):
        registry.add_variable(StateVariable(id="a"))
        assert registry.delete_variable("a") is True
        assert registry.list_variables() == []

    def test_alias_input(self, registry):
        variable = StateVariable.model_validate({"id": "v", "defaultValue": 4})
        assert registry.add_variable(variable).default_value == 4


class TestExport:

    def test_export_handlers(self, registry, make_flow):
        registry.add_flow(make_flow(actions=[("set-variable", {"variableId": "a", "value": 2})]))
        registry.add_variable(StateVariable(id="a", default_value=1))
        code = registry.export_handlers(generated_at=datetime(2024, 5, 1, tzinfo=timezone.utc))
        assert "Generated at: 2024-05-01T00:00:00+00:00" in code
        assert '_state.set("a", 1);' in code
        assert 'setVariable("a", 2);' in code

    def test_snapshot_is_a_copy(self, registry):
        registry.add_variable(StateVariable(id="a", default_value={"n": 1}))
        snapshot = registry.snapshot()
        snapshot["variables"][0].default_value["n"] = 99
        assert registry.get_variable("a").default_value == {"n": 1}

    def test_stats(self, registry, make_flow):
        registry.add_flow(make_flow(actions=[("alert", {}), ("focus", {})]))
        registry.add_schema(LogicFlowSchema(id="s1", archived=True))
        registry.add_variable(StateVariable(id="a"))
        registry.subscribe(lambda v: None)
        assert registry.get_stats() == {
            "total_flows": 1,
            "total_schemas": 1,
            "archived_schemas": 1,
            "total_variables": 1,
            "total_actions": 2,
            "subscribers": 1,
        }
