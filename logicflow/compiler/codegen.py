"""
Handler Code Generator - LogicGraph → standalone JavaScript event handlers.

The generated source runs without the editor: it carries its own variable
store, helper functions and DOM bindings. Generation never raises; missing
or invalid data is replaced with fixed placeholders so the output stays
well-formed.

Walk policy: depth-first from the entry point with a single visited set.
Every node is emitted at most once, so cycles terminate and a node reached
by two paths is only emitted under the first predecessor that reaches it.
"""

import re
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any, Callable, Type
from pydantic import BaseModel

from logicflow.config.settings import Settings, settings as default_settings
from logicflow.compiler.manifest import (
    LogicFlow, LogicFlowSchema, StateVariable, LogicGraph, GraphNode, NodeKind, TriggerKind,
    loop_count,
)
from logicflow.compiler.actions import (
    ActionBase, parse_action,
    SetVariableAction, AlertAction, NavigateAction, ConsoleLogAction,
    ToggleClassAction, AddClassAction, RemoveClassAction,
    SetAttributeAction, RemoveAttributeAction, SetStyleAction,
    SetTextAction, SetHtmlAction, FocusAction, BlurAction, ScrollToAction,
    DelayAction, FetchAction, CustomCodeAction, UnknownAction,
)
from logicflow.compiler.builder import flow_to_graph, schema_to_graph
from logicflow.compiler.predicates import parse_condition, EQUALITY_OPERATORS, ORDERED_TYPES

logger = logging.getLogger(__name__)

INDENT = "  "


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def sanitize_id(value: str) -> str:
    """Make an id usable as a JavaScript identifier fragment."""
    return re.sub(r"[^a-zA-Z0-9_]", "_", str(value or ""))


def handler_name(flow_id: str) -> str:
    return f"handle_{sanitize_id(flow_id)}"


def to_camel_case(name: str) -> str:
    words = [w for w in re.split(r"[^a-zA-Z0-9]", name or "") if w]
    if not words:
        return ""
    return words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])


def js_literal(value: Any) -> str:
    """Render a Python value as a JavaScript literal (JSON subset)."""
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return json.dumps(str(value))


def comment_text(value: Any) -> str:
    """Single-line text safe to place after `//`."""
    return re.sub(r"[\r\n\u2028\u2029]+", " ", str(value))


def render_predicate(expression: Any) -> str:
    """Lower a condition to JavaScript using the same grammar the interpreter accepts."""
    predicate = parse_condition(expression)
    if predicate is None:
        return "false"
    getter = f"getVariable({js_literal(predicate.variable_id)})"
    if not predicate.is_comparison:
        return f"Boolean({getter})"
    literal = js_literal(predicate.literal)
    if predicate.operator in EQUALITY_OPERATORS:
        op = "===" if predicate.operator == "==" else "!=="
        return f"{getter} {op} {literal}"
    if predicate.literal_type not in ORDERED_TYPES:
        return "false"
    # No coercion: ordering holds only between two numbers or two strings.
    return f"(typeof {getter} === {js_literal(predicate.literal_type)} && {getter} {predicate.operator} {literal})"


def _format_ms(ms: float) -> str:
    return str(int(ms)) if float(ms).is_integer() else str(ms)


# ══════════════════════════════════════════════════════════════════════════════
# ACTION TEMPLATES
# ══════════════════════════════════════════════════════════════════════════════

def _set_variable(a: SetVariableAction, cfg: Settings) -> List[str]:
    if not a.variable_id:
        return ["// set-variable: missing variableId"]
    if a.source_variable_id:
        value = f"getVariable({js_literal(a.source_variable_id)})"
    else:
        value = js_literal(a.value)
    return [f"setVariable({js_literal(a.variable_id)}, {value});"]


def _alert(a: AlertAction, cfg: Settings) -> List[str]:
    return [f"alert({js_literal(a.message)});"]


def _navigate(a: NavigateAction, cfg: Settings) -> List[str]:
    if not a.url:
        return ["// navigate: missing url"]
    return [f"window.open({js_literal(a.url)}, {js_literal(a.target)});"]


def _console_log(a: ConsoleLogAction, cfg: Settings) -> List[str]:
    return [f"console.log({js_literal(a.message)});"]


def _class_op(method: str) -> Callable[[Any, Settings], List[str]]:
    def render(a: Any, cfg: Settings) -> List[str]:
        if not a.class_name:
            return [f"// {a.verb}: missing className"]
        return [f"element?.classList.{method}({js_literal(a.class_name)});"]
    return render


def _set_attribute(a: SetAttributeAction, cfg: Settings) -> List[str]:
    return [f"element?.setAttribute({js_literal(a.attribute)}, {js_literal(a.value)});"]


def _remove_attribute(a: RemoveAttributeAction, cfg: Settings) -> List[str]:
    if not a.attribute:
        return ["// remove-attribute: missing attribute"]
    return [f"element?.removeAttribute({js_literal(a.attribute)});"]


def _set_style(a: SetStyleAction, cfg: Settings) -> List[str]:
    return [f"if (element) element.style[{js_literal(a.style_property)}] = {js_literal(a.value)};"]


def _set_text(a: SetTextAction, cfg: Settings) -> List[str]:
    return [f"if (element) element.textContent = {js_literal(a.text)};"]


def _set_html(a: SetHtmlAction, cfg: Settings) -> List[str]:
    return [f"if (element) element.innerHTML = {js_literal(a.html)};"]


def _element_call(method: str, args: str = "") -> Callable[[Any, Settings], List[str]]:
    def render(a: Any, cfg: Settings) -> List[str]:
        return [f"element?.{method}({args});"]
    return render


def _delay(a: DelayAction, cfg: Settings) -> List[str]:
    ms = a.ms if a.ms is not None else cfg.default_delay_ms
    return [f"await new Promise((resolve) => setTimeout(resolve, {_format_ms(max(ms, 0))}));"]


def _fetch(a: FetchAction, cfg: Settings) -> List[str]:
    if not a.url:
        return ["// fetch: missing url"]
    call = f"fetch({js_literal(a.url)}, {{ method: {js_literal(a.method.upper())} }})"
    if not a.result_variable:
        return [f"await {call};"]
    return [
        "{",
        f"{INDENT}const _response = await {call};",
        f"{INDENT}const _body = await _response.text();",
        f"{INDENT}let _value = _body;",
        f"{INDENT}try {{ _value = JSON.parse(_body); }} catch (_e) {{}}",
        f"{INDENT}setVariable({js_literal(a.result_variable)}, _value);",
        "}",
    ]


def _custom_code(a: CustomCodeAction, cfg: Settings) -> List[str]:
    lines = [line.rstrip() for line in a.code.splitlines()]
    if not any(lines):
        return ["// custom-code: missing code"]
    return lines


def _unknown(a: UnknownAction, cfg: Settings) -> List[str]:
    if a.reason == "unknown verb":
        return [f"// Unknown action: {comment_text(a.raw_type)}"]
    return [f"// Skipped action: {comment_text(a.reason)}"]


ACTION_TEMPLATES: Dict[Type[ActionBase], Callable[[Any, Settings], List[str]]] = {
    SetVariableAction: _set_variable,
    AlertAction: _alert,
    NavigateAction: _navigate,
    ConsoleLogAction: _console_log,
    ToggleClassAction: _class_op("toggle"),
    AddClassAction: _class_op("add"),
    RemoveClassAction: _class_op("remove"),
    SetAttributeAction: _set_attribute,
    RemoveAttributeAction: _remove_attribute,
    SetStyleAction: _set_style,
    SetTextAction: _set_text,
    SetHtmlAction: _set_html,
    FocusAction: _element_call("focus"),
    BlurAction: _element_call("blur"),
    ScrollToAction: _element_call("scrollIntoView", "{ behavior: 'smooth' }"),
    DelayAction: _delay,
    FetchAction: _fetch,
    CustomCodeAction: _custom_code,
    UnknownAction: _unknown,
}


def render_action(data: Dict[str, Any], cfg: Optional[Settings] = None) -> List[str]:
    """Render an action node payload as JavaScript statements (unindented)."""
    cfg = cfg or default_settings
    action = parse_action(data.get("action_type", ""), data.get("params") or {})
    if isinstance(action, UnknownAction):
        logger.debug(f"[CODEGEN] Placeholder for action '{action.raw_type}' ({action.reason})")
    return ACTION_TEMPLATES[type(action)](action, cfg)


# ══════════════════════════════════════════════════════════════════════════════
# GRAPH WALK
# ══════════════════════════════════════════════════════════════════════════════

class HandlerGenerator:
    """Emits the body of one handler function from a LogicGraph."""

    def __init__(self, cfg: Optional[Settings] = None):
        self._cfg = cfg or default_settings

    def _loop_count(self, node: GraphNode) -> int:
        return loop_count(node.data, self._cfg.default_loop_count)

    def emit_body(self, graph: LogicGraph, base_level: int = 1) -> List[str]:
        """
        Depth-first emission using an explicit work stack. Work items are
        either pending nodes or literal lines (block closers), pushed in
        reverse so they pop in source order.
        """
        lines: List[str] = []
        nodes = graph.node_map()
        visited = set()
        stack: List[tuple] = [("node", graph.entry_point, base_level, 0)]

        while stack:
            item = stack.pop()
            if item[0] == "line":
                _, text, level = item
                lines.append(INDENT * level + text)
                continue

            _, node_id, level, loop_depth = item
            if node_id in visited:
                continue
            visited.add(node_id)
            node = nodes.get(node_id)
            if node is None:
                continue

            pad = INDENT * level
            label = node.data.get("label")
            if label and node.type != NodeKind.TRIGGER:
                lines.append(f"{pad}// {comment_text(label)}")

            if node.type == NodeKind.TRIGGER:
                trigger = node.data.get("event") or node.data.get("trigger") or "unknown"
                lines.append(f"{pad}// Trigger: {comment_text(trigger)}")

            elif node.type == NodeKind.ACTION:
                for line in render_action(node.data, self._cfg):
                    lines.append(pad + line)

            elif node.type == NodeKind.CONDITION:
                lines.append(f"{pad}if ({render_predicate(node.data.get('condition'))}) {{")
                work: List[tuple] = [("node", n, level + 1, loop_depth) for n in node.next_nodes]
                if node.else_nodes:
                    work.append(("line", "} else {", level))
                    work.extend(("node", n, level + 1, loop_depth) for n in node.else_nodes)
                work.append(("line", "}", level))
                stack.extend(reversed(work))
                continue

            elif node.type == NodeKind.LOOP:
                var = f"_i{loop_depth}"
                count = self._loop_count(node)
                lines.append(f"{pad}for (let {var} = 0; {var} < {count}; {var}++) {{")
                work = [("node", n, level + 1, loop_depth + 1) for n in node.next_nodes]
                work.append(("line", "}", level))
                stack.extend(reversed(work))
                continue

            stack.extend(reversed([("node", n, level, loop_depth) for n in node.next_nodes]))

        return lines


def graph_to_javascript(
    graph: LogicGraph,
    cfg: Optional[Settings] = None,
    export: bool = False,
    function_name: Optional[str] = None,
) -> str:
    """Generate one async handler function for a graph."""
    function_name = function_name or handler_name(graph.id)
    lines = [
        f"// Auto-generated handler for: {comment_text(graph.name or graph.id)}",
        f"{'export ' if export else ''}async function {function_name}(event, context) {{",
        f"{INDENT}const {{ getVariable, setVariable, element }} = context;",
        "",
    ]
    lines.extend(HandlerGenerator(cfg).emit_body(graph))
    lines.append("}")
    lines.append("")
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════════════
# BUNDLES
# ══════════════════════════════════════════════════════════════════════════════

def unique_handler_names(flow_ids: List[str]) -> List[str]:
    """
    One function name per id, in order. Ids that sanitize to the same name
    (`a-b` and `a_b`, or a flow and a schema sharing an id) get `_2`, `_3`, ...
    """
    taken = set()
    names = []
    for flow_id in flow_ids:
        base = handler_name(flow_id)
        name, n = base, 2
        while name in taken:
            name = f"{base}_{n}"
            n += 1
        taken.add(name)
        names.append(name)
    return names


def _binding_block(function_name: str, target_id: str, event: Optional[str]) -> List[str]:
    el = f"el_{sanitize_id(target_id)}"
    ctx = f"{{ getVariable, setVariable, element: {el} }}"
    lines = [
        f"{INDENT}{{",
        f"{INDENT * 2}const {el} = document.getElementById({js_literal(target_id)});",
        f"{INDENT * 2}if ({el}) {{",
    ]
    if event is None:
        lines.append(f"{INDENT * 3}{function_name}(null, {ctx});")
    else:
        lines.append(f"{INDENT * 3}{el}.addEventListener({js_literal(event)}, (e) => {{")
        lines.append(f"{INDENT * 4}{function_name}(e, {ctx});")
        lines.append(f"{INDENT * 3}}});")
    lines.append(f"{INDENT * 2}}}")
    lines.append(f"{INDENT}}}")
    return lines


def generate_all_handlers(
    flows: List[LogicFlow],
    variables: List[StateVariable],
    schemas: Optional[List[LogicFlowSchema]] = None,
    generated_at: Optional[datetime] = None,
    cfg: Optional[Settings] = None,
) -> str:
    """
    Build a standalone script: variable store initialization, helpers,
    one handler per flow, and the DOM bindings that attach each handler
    to its target element.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    active_schemas = [s for s in (schemas or []) if not s.archived]
    names = unique_handler_names([f.id for f in flows] + [s.id for s in active_schemas])
    flow_names, schema_names = names[:len(flows)], names[len(flows):]

    parts: List[str] = [
        "/**",
        " * Auto-generated Logic Handlers",
        f" * Generated at: {generated_at.isoformat()}",
        " */",
        "",
        "// Initialize state variables",
        "const _state = new Map();",
    ]
    for v in variables:
        parts.append(f"_state.set({js_literal(v.id)}, {js_literal(v.default_value)});")
    parts.extend([
        "",
        "// Helper functions",
        "function getVariable(id) { return _state.get(id); }",
        "function setVariable(id, value) { _state.set(id, value); }",
        "",
    ])

    for flow, name in zip(flows, flow_names):
        parts.append(graph_to_javascript(flow_to_graph(flow), cfg, function_name=name))
    for schema, name in zip(active_schemas, schema_names):
        parts.append(graph_to_javascript(schema_to_graph(schema), cfg, function_name=name))

    callable_schemas = [
        (s, name) for s, name in zip(active_schemas, schema_names)
        if s.trigger_kind in (TriggerKind.MANUAL, TriggerKind.API, TriggerKind.SCHEDULE)
    ]
    if callable_schemas:
        parts.append("// Callable handlers (manual, api and scheduled triggers)")
        parts.append("window.logicHandlers = window.logicHandlers || {};")
        for s, name in callable_schemas:
            parts.append(
                f"window.logicHandlers[{js_literal(s.id)}] = (event) => "
                f"{name}(event, {{ getVariable, setVariable, element: null }});"
            )
        parts.append("")

    parts.append("// Event bindings")
    parts.append('document.addEventListener("DOMContentLoaded", () => {')
    for flow, name in zip(flows, flow_names):
        parts.extend(_binding_block(name, flow.component_id, flow.event))
    for s, name in zip(active_schemas, schema_names):
        if s.trigger_kind == TriggerKind.EVENT:
            parts.extend(_binding_block(name, s.target_id or "", s.event_name))
        elif s.trigger_kind == TriggerKind.MOUNT:
            parts.extend(_binding_block(name, s.target_id or "", None))
    parts.append("});")
    parts.append("")

    return "\n".join(parts)


class CompiledHandler(BaseModel):
    """One graph-editor flow compiled to its own module file."""
    flow_id: str
    path: str
    code: str
    trigger: TriggerKind


def compile_flow_schema(schema: LogicFlowSchema, cfg: Optional[Settings] = None) -> CompiledHandler:
    module_name = to_camel_case(schema.name) or sanitize_id(schema.id)
    return CompiledHandler(
        flow_id=schema.id,
        path=f"logic/{module_name}.js",
        code=graph_to_javascript(schema_to_graph(schema), cfg, export=True),
        trigger=schema.trigger_kind,
    )


def compile_all_schemas(
    schemas: List[LogicFlowSchema],
    cfg: Optional[Settings] = None,
) -> List[CompiledHandler]:
    return [compile_flow_schema(s, cfg) for s in schemas if not s.archived]
