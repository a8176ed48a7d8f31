"""
Tests for action verbs and condition parsing.
Run: pytest tests/test_actions.py -v
"""
import pytest
from pydantic import ValidationError
from logicflow.compiler.actions import (
    parse_action, ALL_VARIANTS, ACTION_TYPES,
    SetVariableAction, AlertAction, NavigateAction, SetStyleAction,
    DelayAction, FetchAction, ToggleClassAction, FocusAction, CustomCodeAction, UnknownAction,
)
from logicflow.compiler.codegen import ACTION_TEMPLATES
from logicflow.compiler.predicates import parse_condition
from logicflow.runtime.effects import EffectDispatcher


class TestParseAction:

    def test_set_variable_aliases(self):
        action = parse_action("set-variable", {"variableId": "x", "value": 5})
        assert isinstance(action, SetVariableAction)
        assert action.variable_id == "x"
        assert action.value == 5

    def test_defaults_applied(self):
        assert parse_action("alert", {}).message == "Alert!"
        assert parse_action("navigate", {"url": "/a"}).target == "_blank"
        assert parse_action("set-style", {}).style_property == "display"
        assert parse_action("fetch", {"url": "/a"}).method == "GET"
        assert parse_action("delay", {}).ms is None

    def test_empty_strings_mean_default(self):
        action = parse_action("navigate", {"url": "/a", "target": ""})
        assert isinstance(action, NavigateAction)
        assert action.target == "_blank"

    def test_empty_value_is_kept(self):
        action = parse_action("set-variable", {"variableId": "x", "value": ""})
        assert action.value == ""

    def test_none_params(self):
        assert isinstance(parse_action("focus", None), FocusAction)

    def test_numeric_message_accepted(self):
        assert parse_action("alert", {"message": 42}).message == 42

    def test_delay_from_string(self):
        action = parse_action("delay", {"ms": "250"})
        assert isinstance(action, DelayAction)
        assert action.ms == 250

    @pytest.mark.parametrize("ms", ["Infinity", "-Infinity", "NaN", float("inf"), float("nan")])
    def test_non_finite_delay_rejected(self, ms):
        action = parse_action("delay", {"ms": ms})
        assert isinstance(action, UnknownAction)
        assert action.reason == "invalid params for delay"

    def test_custom_code(self):
        action = parse_action("custom-code", {"code": "console.log(1);"})
        assert isinstance(action, CustomCodeAction)
        assert action.code == "console.log(1);"

    def test_fetch_result_variable(self):
        action = parse_action("fetch", {"url": "/api", "resultVariable": "data"})
        assert isinstance(action, FetchAction)
        assert action.result_variable == "data"

    def test_unknown_verb(self):
        action = parse_action("teleport", {"where": "moon"})
        assert isinstance(action, UnknownAction)
        assert action.raw_type == "teleport"
        assert action.params == {"where": "moon"}
        assert action.reason == "unknown verb"

    def test_missing_verb(self):
        action = parse_action("", {})
        assert isinstance(action, UnknownAction)

    def test_invalid_params_fall_back(self):
        action = parse_action("delay", {"ms": "soon"})
        assert isinstance(action, UnknownAction)
        assert action.reason == "invalid params for delay"

    def test_extra_params_ignored(self):
        action = parse_action("toggle-class", {"className": "open", "extra": 1})
        assert isinstance(action, ToggleClassAction)
        assert action.class_name == "open"

    def test_verb_param_does_not_override(self):
        action = parse_action("alert", {"verb": "navigate", "message": "m"})
        assert isinstance(action, AlertAction)
        assert action.verb == "alert"

    def test_actions_are_frozen(self):
        action = parse_action("set-style", {"property": "color", "value": "red"})
        assert isinstance(action, SetStyleAction)
        with pytest.raises(ValidationError):
            action.value = "blue"


class TestVariantCoverage:

    def test_every_variant_has_a_template(self):
        assert set(ALL_VARIANTS) == set(ACTION_TEMPLATES)

    def test_every_variant_has_an_effect(self):
        assert set(ALL_VARIANTS) == EffectDispatcher().handled_types

    def test_verbs_match_registry_keys(self):
        for verb, cls in ACTION_TYPES.items():
            assert cls().verb == verb


class TestParseCondition:

    def test_comparison(self):
        predicate = parse_condition("count >= 3")
        assert predicate.variable_id == "count"
        assert predicate.operator == ">="
        assert predicate.literal == 3

    @pytest.mark.parametrize("op", ["==", "!=", ">", "<", ">=", "<="])
    def test_all_operators(self, op):
        predicate = parse_condition(f"x {op} 1")
        assert predicate.operator == op

    def test_string_literal(self):
        assert parse_condition('status == "done"').literal == "done"

    def test_no_spaces(self):
        predicate = parse_condition("x<=2")
        assert predicate.operator == "<="
        assert predicate.literal == 2

    def test_bare_variable(self):
        predicate = parse_condition("ready")
        assert predicate.variable_id == "ready"
        assert not predicate.is_comparison

    @pytest.mark.parametrize("expr", [
        "",
        "   ",
        None,
        42,
        "x == ",
        "x == done",
        "a && b",
        "getVariable('x') == 1",
        "x === 1",
    ])
    def test_rejected(self, expr):
        assert parse_condition(expr) is None
