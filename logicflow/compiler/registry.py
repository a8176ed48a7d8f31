"""
Project Registry - In-memory store for a project's flows, graph-editor
schemas and state variables. It is the authoritative side of the variable
store: runtime sessions push values back through update_variable(), and
panels subscribe to be told when a variable changes.
"""

import copy
import logging
from typing import Optional, Dict, List, Any, Callable
from datetime import datetime, timezone

from logicflow.compiler.manifest import LogicFlow, LogicFlowSchema, StateVariable
from logicflow.compiler.codegen import generate_all_handlers, compile_all_schemas, CompiledHandler

logger = logging.getLogger(__name__)

VariableListener = Callable[[StateVariable], None]


class ProjectRegistry:
    """
    CRUD for flows, schemas and variables, plus change notification for
    variables and handler export for the whole project.
    """

    def __init__(self):
        self._flows: Dict[str, LogicFlow] = {}
        self._schemas: Dict[str, LogicFlowSchema] = {}
        self._variables: Dict[str, StateVariable] = {}
        self._subscribers: List[VariableListener] = []
        self.updated_at = datetime.now(timezone.utc)

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    # ── Flows ─────────────────────────────────────────────────────────

    def add_flow(self, flow: LogicFlow) -> LogicFlow:
        if flow.id in self._flows:
            raise ValueError(f"Flow '{flow.id}' already exists")
        self._flows[flow.id] = flow
        self._touch()
        return flow

    def get_flow(self, flow_id: str) -> Optional[LogicFlow]:
        return self._flows.get(flow_id)

    def update_flow(self, flow_id: str, updates: Dict[str, Any]) -> Optional[LogicFlow]:
        existing = self.get_flow(flow_id)
        if not existing:
            return None
        data = existing.model_dump()
        data.update(updates)
        data["id"] = flow_id
        updated = LogicFlow(**data)
        self._flows[flow_id] = updated
        self._touch()
        return updated

    def delete_flow(self, flow_id: str) -> bool:
        removed = self._flows.pop(flow_id, None)
        if removed is not None:
            self._touch()
        return removed is not None

    def list_flows(self, component_id: Optional[str] = None) -> List[LogicFlow]:
        flows = list(self._flows.values())
        if component_id:
            flows = [f for f in flows if f.component_id == component_id]
        return flows

    # ── Graph-editor schemas ──────────────────────────────────────────

    def add_schema(self, schema: LogicFlowSchema) -> LogicFlowSchema:
        if schema.id in self._schemas:
            raise ValueError(f"Flow schema '{schema.id}' already exists")
        self._schemas[schema.id] = schema
        self._touch()
        return schema

    def get_schema(self, schema_id: str) -> Optional[LogicFlowSchema]:
        return self._schemas.get(schema_id)

    def archive_schema(self, schema_id: str) -> Optional[LogicFlowSchema]:
        """Soft delete: archived schemas are kept but never bound or exported."""
        schema = self.get_schema(schema_id)
        if not schema:
            return None
        schema.archived = True
        self._touch()
        return schema

    def delete_schema(self, schema_id: str) -> bool:
        removed = self._schemas.pop(schema_id, None)
        if removed is not None:
            self._touch()
        return removed is not None

    def list_schemas(self, include_archived: bool = False) -> List[LogicFlowSchema]:
        schemas = list(self._schemas.values())
        if not include_archived:
            schemas = [s for s in schemas if not s.archived]
        return schemas

    # ── Variables ─────────────────────────────────────────────────────

    def add_variable(self, variable: StateVariable) -> StateVariable:
        if variable.id in self._variables:
            raise ValueError(f"Variable '{variable.id}' already exists")
        self._variables[variable.id] = variable
        self._touch()
        self._notify(variable)
        return variable

    def get_variable(self, variable_id: str) -> Optional[StateVariable]:
        return self._variables.get(variable_id)

    def update_variable(self, variable_id: str, updates: Dict[str, Any]) -> Optional[StateVariable]:
        """Apply a partial update and notify subscribers. Unknown ids are ignored."""
        existing = self.get_variable(variable_id)
        if not existing:
            return None
        data = existing.model_dump()
        data.update({k: v for k, v in updates.items() if k != "id"})
        updated = StateVariable(**data)
        self._variables[variable_id] = updated
        self._touch()
        self._notify(updated)
        return updated

    def delete_variable(self, variable_id: str) -> bool:
        removed = self._variables.pop(variable_id, None)
        if removed is not None:
            self._touch()
        return removed is not None

    def list_variables(self) -> List[StateVariable]:
        return list(self._variables.values())

    # ── Subscriptions ─────────────────────────────────────────────────

    def subscribe(self, listener: VariableListener) -> Callable[[], None]:
        """Register a variable-change listener. Returns an unsubscribe function."""
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    def _notify(self, variable: StateVariable) -> None:
        for listener in list(self._subscribers):
            try:
                listener(variable)
            except Exception as e:
                logger.warning(f"[REGISTRY] Variable listener failed for '{variable.id}': {e}")

    # ── Export ────────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        """Deep copies of the current flows, schemas and variables."""
        return {
            "flows": copy.deepcopy(self.list_flows()),
            "schemas": copy.deepcopy(self.list_schemas()),
            "variables": copy.deepcopy(self.list_variables()),
        }

    def export_handlers(self, generated_at: Optional[datetime] = None) -> str:
        return generate_all_handlers(
            self.list_flows(),
            self.list_variables(),
            schemas=self.list_schemas(),
            generated_at=generated_at,
        )

    def export_modules(self) -> List[CompiledHandler]:
        return compile_all_schemas(self.list_schemas())

    # ── Stats ─────────────────────────────────────────────────────────

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_flows": len(self._flows),
            "total_schemas": len(self._schemas),
            "archived_schemas": sum(1 for s in self._schemas.values() if s.archived),
            "total_variables": len(self._variables),
            "total_actions": sum(len(f.actions) for f in self._flows.values()),
            "subscribers": len(self._subscribers),
        }
