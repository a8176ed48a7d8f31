"""
Logic Graph Schema - Authoring records and the graph intermediate representation.
Flows and state variables come from the project model; LogicGraph is the
derived form consumed by both the code generator and the interpreter.
"""

from typing import Optional, Dict, List, Any, Union, Literal, Annotated
from enum import Enum
from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════════
# PROJECT RECORDS
# ══════════════════════════════════════════════════════════════════════════════

class VariableType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class StateVariable(BaseModel):
    """A project-wide variable mutated at runtime by set-variable actions."""
    id: str
    name: str = ""
    type: VariableType = VariableType.STRING
    default_value: Any = Field(default=None, alias="defaultValue")

    model_config = {"populate_by_name": True}


class LogicAction(BaseModel):
    """One step of a flow. `type` is the open verb string from the editor."""
    id: str
    type: str
    params: Dict[str, Any] = Field(default_factory=dict)


class LogicFlow(BaseModel):
    """Authored, strictly ordered list of actions bound to one element event."""
    id: str
    name: str = ""
    component_id: str = Field(default="", alias="componentId")
    event: str = "click"
    actions: List[LogicAction] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════════
# GRAPH IR
# ══════════════════════════════════════════════════════════════════════════════

class NodeKind(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    LOOP = "loop"


class GraphNode(BaseModel):
    """
    A node in the logic graph. `next_nodes` are the "then" successors;
    `else_nodes` are only followed by condition nodes whose predicate is false.
    Successor ids that do not resolve are skipped.
    """
    id: str
    type: NodeKind
    data: Dict[str, Any] = Field(default_factory=dict)
    next_nodes: List[str] = Field(default_factory=list)
    else_nodes: List[str] = Field(default_factory=list)


class LogicGraph(BaseModel):
    """Derived, disposable graph with a single trigger entry point."""
    id: str
    name: str = ""
    nodes: List[GraphNode] = Field(default_factory=list)
    entry_point: str = ""

    def node_map(self) -> Dict[str, GraphNode]:
        return {n.id: n for n in self.nodes}

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def get_entry_node(self) -> Optional[GraphNode]:
        return self.get_node(self.entry_point)

    def reachable_ids(self) -> List[str]:
        """Node ids reachable from the entry point, in depth-first order."""
        nodes = self.node_map()
        seen: List[str] = []
        stack = [self.entry_point]
        while stack:
            nid = stack.pop()
            if nid in seen or nid not in nodes:
                continue
            seen.append(nid)
            node = nodes[nid]
            stack.extend(reversed(node.else_nodes))
            stack.extend(reversed(node.next_nodes))
        return seen


# ══════════════════════════════════════════════════════════════════════════════
# RICH AUTHORING FORMAT
# ══════════════════════════════════════════════════════════════════════════════

class TriggerKind(str, Enum):
    MANUAL = "manual"
    EVENT = "event"
    API = "api"
    MOUNT = "mount"
    SCHEDULE = "schedule"


class ManualTrigger(BaseModel):
    type: Literal["manual"] = "manual"


class EventTrigger(BaseModel):
    type: Literal["event"] = "event"
    target: str
    event: str = "click"


class ApiTrigger(BaseModel):
    type: Literal["api"] = "api"
    api_id: str


class MountTrigger(BaseModel):
    type: Literal["mount"] = "mount"
    target: str


class ScheduleTrigger(BaseModel):
    type: Literal["schedule"] = "schedule"
    cron: str


TriggerType = Annotated[
    Union[ManualTrigger, EventTrigger, ApiTrigger, MountTrigger, ScheduleTrigger],
    Field(discriminator="type"),
]


class LogicNodeType(str, Enum):
    """Node palette of the graph editor."""
    # Control flow
    CONDITION = "condition"
    FOR_EACH = "for_each"
    WHILE = "while"
    DELAY = "delay"
    # Data
    SET_VARIABLE = "set_variable"
    # UI actions
    NAVIGATE = "navigate"
    ALERT = "alert"
    TOGGLE_CLASS = "toggle_class"
    SET_PROPERTY = "set_property"
    LOG = "log"
    # Network
    FETCH_API = "fetch_api"
    HTTP_REQUEST = "http_request"
    # Custom
    CUSTOM_CODE = "custom_code"


class NodePosition(BaseModel):
    x: float = 0.0
    y: float = 0.0


class LogicNode(BaseModel):
    """A node as authored in the graph editor canvas."""
    id: str
    node_type: LogicNodeType
    data: Dict[str, Any] = Field(default_factory=dict)
    label: Optional[str] = None
    next_nodes: List[str] = Field(default_factory=list)
    else_nodes: List[str] = Field(default_factory=list)
    position: NodePosition = Field(default_factory=NodePosition)

    def then(self, node_id: str) -> "LogicNode":
        self.next_nodes.append(node_id)
        return self

    def otherwise(self, node_id: str) -> "LogicNode":
        self.else_nodes.append(node_id)
        return self


class LogicFlowSchema(BaseModel):
    """
    Graph-editor flow: an arbitrary directed graph with explicit branch and
    loop nodes and a typed trigger. Maps onto the same LogicGraph IR as
    LogicFlow.
    """
    id: str
    name: str = ""
    description: Optional[str] = None
    trigger: TriggerType = Field(default_factory=ManualTrigger)
    nodes: List[LogicNode] = Field(default_factory=list)
    entry_node_id: Optional[str] = None
    archived: bool = False

    def with_node(self, node: LogicNode) -> "LogicFlowSchema":
        """Append a node; the first one added becomes the entry node."""
        if self.entry_node_id is None:
            self.entry_node_id = node.id
        self.nodes.append(node)
        return self

    @property
    def trigger_kind(self) -> TriggerKind:
        return TriggerKind(self.trigger.type)

    @property
    def target_id(self) -> Optional[str]:
        return getattr(self.trigger, "target", None)

    @property
    def event_name(self) -> Optional[str]:
        if isinstance(self.trigger, EventTrigger):
            return self.trigger.event
        return None


def loop_count(data: Dict[str, Any], default: int) -> int:
    """Iteration count of a loop node; missing or unusable values fall back to the default."""
    raw = data.get("count")
    if raw is None or raw == "" or isinstance(raw, bool):
        return default
    try:
        count = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(count, 0)
