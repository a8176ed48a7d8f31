"""
Runtime Session - Binds logic flows to a live document.

A session is an explicit object holding its document provider, flows,
variable store and listener bookkeeping, so several sessions can run side
by side. Lifecycle: stopped ⇄ running.

- start: bind one listener per flow whose target element exists; flows
  whose target is missing are skipped with a warning.
- stop: remove every listener (best effort) and disconnect observers.
- hot_reload: merge the new variable set into the live store (existing
  values kept, new defaults seeded, undeclared ids dropped), then restart.
- change detection: an attribute observer (style/class, diagnostics only)
  and a structural observer that fully rebinds when a bound target element
  is added or removed.
"""

import asyncio
import logging
from typing import Optional, Dict, List, Any, Callable, Set

from logicflow.config.settings import Settings, settings as default_settings
from logicflow.compiler.manifest import (
    LogicFlow, LogicFlowSchema, StateVariable, LogicGraph, TriggerKind,
)
from logicflow.compiler.builder import flow_to_graph, schema_to_graph
from logicflow.runtime.context import ExecutionContext
from logicflow.runtime.document import Document, Element, MutationRecord, Observer
from logicflow.runtime.interpreter import GraphInterpreter

logger = logging.getLogger(__name__)

DocumentProvider = Callable[[], Optional[Document]]
VariableUpdater = Callable[[str, Dict[str, Any]], Any]


class FlowBinding:
    """What the session needs to know about one flow, whichever format it was authored in."""

    def __init__(self, source: Any):
        self.source = source
        if isinstance(source, LogicFlow):
            self.flow_id = source.id
            self.name = source.name or source.id
            self.kind = TriggerKind.EVENT
            self.target_id: Optional[str] = source.component_id
            self.event: Optional[str] = source.event
        else:
            self.flow_id = source.id
            self.name = source.name or source.id
            self.kind = source.trigger_kind
            self.target_id = source.target_id
            self.event = source.event_name

    def build_graph(self) -> LogicGraph:
        if isinstance(self.source, LogicFlow):
            return flow_to_graph(self.source)
        return schema_to_graph(self.source)


class _Listener:
    def __init__(self, flow_id: str, element: Element, event: str, handler: Callable[[Any], None]):
        self.flow_id = flow_id
        self.element = element
        self.event = event
        self.handler = handler


class RuntimeSession:
    """
    Live interpreter session for one document.

    `update_variable` receives `(variable_id, {"default_value": value})`
    after every firing so the authoritative store (and any panel
    subscribed to it) sees the runtime values. Last write wins.
    """

    def __init__(
        self,
        document_provider: DocumentProvider,
        flows: Optional[List[LogicFlow]] = None,
        variables: Optional[List[StateVariable]] = None,
        update_variable: Optional[VariableUpdater] = None,
        schemas: Optional[List[LogicFlowSchema]] = None,
        cfg: Optional[Settings] = None,
        interpreter: Optional[GraphInterpreter] = None,
    ):
        self._cfg = cfg or default_settings
        self._document_provider = document_provider
        self._flows: List[LogicFlow] = list(flows or [])
        self._schemas: List[LogicFlowSchema] = list(schemas or [])
        self._variables: List[StateVariable] = list(variables or [])
        self._update_variable = update_variable
        self._interpreter = interpreter or GraphInterpreter(self._cfg)

        self._variable_state: Dict[str, Any] = {v.id: v.default_value for v in self._variables}
        self._listeners: List[_Listener] = []
        self._document: Optional[Document] = None
        self._running = False
        self._hot_reload_enabled = self._cfg.hot_reload_enabled
        self._style_observer: Optional[Observer] = None
        self._component_observer: Optional[Observer] = None
        self._tasks: Set[asyncio.Task] = set()
        self._active_contexts: Set[ExecutionContext] = set()

    # ── Lifecycle ─────────────────────────────────────────────────────

    def start(self) -> int:
        """Attach listeners for every resolvable flow. Returns the number bound."""
        self._teardown()
        self._running = True

        doc = self._locate_document()
        if doc is None:
            logger.warning("[RUNTIME] Cannot access canvas document; no flows bound.")
            return 0
        self._document = doc

        self._bind_all(doc)
        if self._hot_reload_enabled:
            self._setup_observers(doc)
        self._run_mount_flows(doc)

        logger.info(
            f"[RUNTIME] Started with {len(self._listeners)} event listeners "
            f"and {len(self._variable_state)} variables."
        )
        return len(self._listeners)

    def stop(self) -> None:
        """Remove all listeners and observers. Safe to call repeatedly."""
        for ctx in list(self._active_contexts):
            ctx.stop()
        was_running = self._running
        self._teardown()
        if was_running:
            logger.info("[RUNTIME] Stopped.")

    def hot_reload(
        self,
        flows: List[LogicFlow],
        variables: List[StateVariable],
        schemas: Optional[List[LogicFlowSchema]] = None,
    ) -> bool:
        """
        Swap in a new flow/variable set. Returns True when the session was
        running and has been rebound; a stopped session only records the
        new set for its next start.
        """
        self._flows = list(flows)
        if schemas is not None:
            self._schemas = list(schemas)
        self._variables = list(variables)

        declared = {v.id for v in self._variables}
        for v in self._variables:
            if v.id not in self._variable_state:
                self._variable_state[v.id] = v.default_value
        for stale_id in [vid for vid in self._variable_state if vid not in declared]:
            del self._variable_state[stale_id]

        if not self._running:
            return False

        logger.info("[RUNTIME] Hot reloading...")
        self._teardown()
        self.start()
        logger.info("[RUNTIME] Hot reload complete.")
        return True

    def set_hot_reload_enabled(self, enabled: bool) -> None:
        """Attach or detach change observers. Listener bindings are left alone."""
        self._hot_reload_enabled = enabled
        if not self._running:
            return
        if enabled:
            doc = self._locate_document()
            if doc is not None:
                self._document = doc
                self._setup_observers(doc)
        else:
            self._disconnect_observers()

    def _teardown(self) -> None:
        self._remove_listeners()
        self._disconnect_observers()
        self._running = False

    # ── Binding ───────────────────────────────────────────────────────

    def bindings(self) -> List[FlowBinding]:
        return [FlowBinding(f) for f in self._flows] + [
            FlowBinding(s) for s in self._schemas if not s.archived
        ]

    def _find_binding(self, flow_id: str) -> Optional[FlowBinding]:
        for b in self.bindings():
            if b.flow_id == flow_id:
                return b
        return None

    def _bind_all(self, doc: Document) -> None:
        for binding in self.bindings():
            if binding.kind != TriggerKind.EVENT:
                continue
            element = doc.get_element_by_id(binding.target_id or "")
            if element is None:
                logger.warning(
                    f"[RUNTIME] Element with ID '{binding.target_id}' not found; "
                    f"flow '{binding.name}' not bound."
                )
                continue
            handler = self._make_handler(binding, element)
            element.add_event_listener(binding.event, handler)
            self._listeners.append(_Listener(binding.flow_id, element, binding.event, handler))

    def _make_handler(self, binding: FlowBinding, element: Element) -> Callable[[Any], None]:
        def handler(event: Any) -> None:
            self._spawn(self._execute(binding, event, element))
        return handler

    def _remove_listeners(self) -> None:
        for listener in self._listeners:
            try:
                listener.element.remove_event_listener(listener.event, listener.handler)
            except Exception as e:
                logger.debug(f"[RUNTIME] Could not remove listener for flow '{listener.flow_id}': {e}")
        self._listeners = []

    def _rebind(self) -> None:
        doc = self._document
        if doc is None or not self._running:
            return
        self._remove_listeners()
        self._bind_all(doc)
        logger.info(f"[RUNTIME] Rebound {len(self._listeners)} listeners after structure change.")

    def _run_mount_flows(self, doc: Document) -> None:
        for binding in self.bindings():
            if binding.kind != TriggerKind.MOUNT:
                continue
            element = doc.get_element_by_id(binding.target_id or "")
            if element is None:
                logger.warning(
                    f"[RUNTIME] Mount target '{binding.target_id}' not found; "
                    f"flow '{binding.name}' skipped."
                )
                continue
            self._spawn(self._execute(binding, None, element))

    # ── Change detection ──────────────────────────────────────────────

    def _setup_observers(self, doc: Document) -> None:
        self._disconnect_observers()
        self._style_observer = doc.observe_attributes(self._on_attribute_mutations, ["style", "class"])
        self._component_observer = doc.observe_children(self._on_structure_mutations)

    def _disconnect_observers(self) -> None:
        for observer in (self._style_observer, self._component_observer):
            if observer is None:
                continue
            try:
                observer.disconnect()
            except Exception as e:
                logger.debug(f"[RUNTIME] Observer disconnect failed: {e}")
        self._style_observer = None
        self._component_observer = None

    def _on_attribute_mutations(self, records: List[MutationRecord]) -> None:
        for record in records:
            target = record.target
            label = getattr(target, "id", "") or getattr(target, "tag", "element")
            logger.debug(f"[RUNTIME] {record.attribute_name} changed on element: {label}")

    def _on_structure_mutations(self, records: List[MutationRecord]) -> None:
        """Rebind when a bound target appears or disappears. Safe to run for coalesced bursts."""
        target_ids = {b.target_id for b in self.bindings() if b.kind == TriggerKind.EVENT and b.target_id}
        if not target_ids:
            return
        for record in records:
            for node in list(record.added_nodes) + list(record.removed_nodes):
                if _subtree_ids(node) & target_ids:
                    self._rebind()
                    return

    # ── Execution ─────────────────────────────────────────────────────

    def _spawn(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous host: run the firing to completion.
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, binding: FlowBinding, event: Any, element: Optional[Element]) -> bool:
        """Run one firing. Errors are logged and contained to this firing."""
        logger.info(f"[RUNTIME] Executing flow: {binding.name}")
        ctx = ExecutionContext(
            variables=self._variable_state,
            event=event,
            element=element,
            document=self._document,
            flow_id=binding.flow_id,
        )
        self._active_contexts.add(ctx)
        ok = True
        try:
            await self._interpreter.execute_graph(binding.build_graph(), ctx)
        except Exception:
            ok = False
            logger.exception(f"[RUNTIME] Error executing flow {binding.name}")
        finally:
            self._active_contexts.discard(ctx)
        self._sync_variables()
        return ok

    async def fire(self, flow_id: str, event: Any = None) -> bool:
        """
        Run a flow directly, whatever its trigger kind (manual and api calls,
        scheduler ticks). Returns False if the flow is unknown or failed.
        """
        binding = self._find_binding(flow_id)
        if binding is None:
            logger.warning(f"[RUNTIME] Unknown flow '{flow_id}'")
            return False
        if self._document is None:
            self._document = self._locate_document()
        element = None
        if binding.target_id and self._document is not None:
            element = self._document.get_element_by_id(binding.target_id)
        return await self._execute(binding, event, element)

    async def drain(self) -> None:
        """Wait for every in-flight firing, including ones started while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _sync_variables(self) -> None:
        if self._update_variable is None:
            return
        for variable_id, value in list(self._variable_state.items()):
            try:
                self._update_variable(variable_id, {"default_value": value})
            except Exception as e:
                logger.error(f"[RUNTIME] Variable sync failed for '{variable_id}': {e}")

    def _locate_document(self) -> Optional[Document]:
        try:
            return self._document_provider()
        except Exception as e:
            logger.warning(f"[RUNTIME] Document lookup failed: {e}")
            return None

    # ── Variables & status ────────────────────────────────────────────

    def get_variable_value(self, variable_id: str) -> Any:
        return self._variable_state.get(variable_id)

    def set_variable_value(self, variable_id: str, value: Any) -> None:
        self._variable_state[variable_id] = value
        if self._update_variable is not None:
            self._update_variable(variable_id, {"default_value": value})

    @property
    def variable_state(self) -> Dict[str, Any]:
        return dict(self._variable_state)

    def is_active(self) -> bool:
        return self._running

    def is_hot_reload_enabled(self) -> bool:
        return self._hot_reload_enabled

    def listener_count(self) -> int:
        return len(self._listeners)

    def bound_flow_ids(self) -> List[str]:
        return [l.flow_id for l in self._listeners]


def _subtree_ids(node: Any) -> Set[str]:
    ids: Set[str] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        node_id = getattr(current, "id", "")
        if node_id:
            ids.add(node_id)
        stack.extend(getattr(current, "children", []) or [])
    return ids
