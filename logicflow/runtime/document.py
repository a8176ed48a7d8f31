"""
Document Capability - The small surface the runtime needs from a live document.

The session and interpreter only talk to `Document` / `Element`, so they run
against a browser bridge, a headless renderer, or the in-memory
VirtualDocument below without change.

VirtualDocument queues mutation records and delivers them in batches on
flush_mutations(), the way a browser coalesces a burst of DOM changes into
one observer callback.
"""

import logging
from typing import Optional, Dict, List, Any, Callable, Protocol, runtime_checkable
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


class MutationType(str, Enum):
    ATTRIBUTES = "attributes"
    CHILD_LIST = "childList"


class MutationRecord(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: MutationType
    target: Any
    attribute_name: Optional[str] = None
    added_nodes: List[Any] = Field(default_factory=list)
    removed_nodes: List[Any] = Field(default_factory=list)


MutationCallback = Callable[[List[MutationRecord]], None]


class DomEvent(BaseModel):
    """Event payload passed to listeners."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: str
    target: Any = None
    detail: Dict[str, Any] = Field(default_factory=dict)


# ══════════════════════════════════════════════════════════════════════════════
# CAPABILITY INTERFACE
# ══════════════════════════════════════════════════════════════════════════════

@runtime_checkable
class Observer(Protocol):
    def disconnect(self) -> None: ...


@runtime_checkable
class Element(Protocol):
    id: str

    def add_event_listener(self, event: str, handler: EventHandler) -> None: ...
    def remove_event_listener(self, event: str, handler: EventHandler) -> None: ...

    def toggle_class(self, class_name: str) -> None: ...
    def add_class(self, class_name: str) -> None: ...
    def remove_class(self, class_name: str) -> None: ...
    def set_attribute(self, name: str, value: str) -> None: ...
    def remove_attribute(self, name: str) -> None: ...
    def set_style(self, prop: str, value: str) -> None: ...
    def set_text(self, text: str) -> None: ...
    def set_html(self, html: str) -> None: ...
    def focus(self) -> None: ...
    def blur(self) -> None: ...
    def scroll_into_view(self) -> None: ...


@runtime_checkable
class Document(Protocol):
    def get_element_by_id(self, element_id: str) -> Optional[Element]: ...

    def observe_attributes(self, callback: MutationCallback, attribute_filter: List[str]) -> Observer: ...
    def observe_children(self, callback: MutationCallback) -> Observer: ...

    def alert(self, message: str) -> None: ...
    def navigate(self, url: str, target: str = "_blank") -> None: ...


# ══════════════════════════════════════════════════════════════════════════════
# IN-MEMORY IMPLEMENTATION
# ══════════════════════════════════════════════════════════════════════════════

class VirtualElement:
    """A DOM-like element tree node."""

    def __init__(self, element_id: str = "", tag: str = "div", text: str = ""):
        self.id = element_id
        self.tag = tag
        self.text = text
        self.html = ""
        self.classes: List[str] = []
        self.attributes: Dict[str, str] = {}
        self.style: Dict[str, str] = {}
        self.children: List["VirtualElement"] = []
        self.parent: Optional["VirtualElement"] = None
        self.document: Optional["VirtualDocument"] = None
        self.focused = False
        self.scroll_count = 0
        self._listeners: Dict[str, List[EventHandler]] = {}

    # ── Tree ──────────────────────────────────────────────────────────

    def append_child(self, child: "VirtualElement") -> "VirtualElement":
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        child._attach(self.document)
        if self.document:
            self.document._record(MutationRecord(
                type=MutationType.CHILD_LIST, target=self, added_nodes=[child],
            ))
        return child

    def remove_child(self, child: "VirtualElement") -> None:
        if child not in self.children:
            return
        self.children.remove(child)
        child.parent = None
        doc = self.document
        child._attach(None)
        if doc:
            doc._record(MutationRecord(
                type=MutationType.CHILD_LIST, target=self, removed_nodes=[child],
            ))

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def _attach(self, document: Optional["VirtualDocument"]) -> None:
        self.document = document
        for c in self.children:
            c._attach(document)

    def iter_tree(self):
        yield self
        for c in self.children:
            yield from c.iter_tree()

    @property
    def is_connected(self) -> bool:
        return self.document is not None

    # ── Events ────────────────────────────────────────────────────────

    def add_event_listener(self, event: str, handler: EventHandler) -> None:
        handlers = self._listeners.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def remove_event_listener(self, event: str, handler: EventHandler) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(h) for h in self._listeners.values())

    def dispatch_event(self, event: str, detail: Optional[Dict[str, Any]] = None) -> DomEvent:
        """Invoke every listener for `event` synchronously, in registration order."""
        payload = DomEvent(type=event, target=self, detail=detail or {})
        for handler in list(self._listeners.get(event, [])):
            handler(payload)
        return payload

    def click(self) -> DomEvent:
        return self.dispatch_event("click")

    # ── Mutations ─────────────────────────────────────────────────────

    def _attribute_changed(self, name: str) -> None:
        if self.document:
            self.document._record(MutationRecord(
                type=MutationType.ATTRIBUTES, target=self, attribute_name=name,
            ))

    def toggle_class(self, class_name: str) -> None:
        if class_name in self.classes:
            self.classes.remove(class_name)
        else:
            self.classes.append(class_name)
        self._attribute_changed("class")

    def add_class(self, class_name: str) -> None:
        if class_name not in self.classes:
            self.classes.append(class_name)
            self._attribute_changed("class")

    def remove_class(self, class_name: str) -> None:
        if class_name in self.classes:
            self.classes.remove(class_name)
            self._attribute_changed("class")

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value
        self._attribute_changed(name)

    def remove_attribute(self, name: str) -> None:
        if self.attributes.pop(name, None) is not None:
            self._attribute_changed(name)

    def set_style(self, prop: str, value: str) -> None:
        self.style[prop] = value
        self._attribute_changed("style")

    def set_text(self, text: str) -> None:
        self.text = text

    def set_html(self, html: str) -> None:
        self.html = html

    def focus(self) -> None:
        self.focused = True

    def blur(self) -> None:
        self.focused = False

    def scroll_into_view(self) -> None:
        self.scroll_count += 1

    def __repr__(self) -> str:
        return f"<VirtualElement {self.tag}#{self.id}>"


class _VirtualObserver:
    def __init__(self, document: "VirtualDocument", kind: MutationType,
                 callback: MutationCallback, attribute_filter: Optional[List[str]] = None):
        self._document = document
        self.kind = kind
        self.callback = callback
        self.attribute_filter = attribute_filter
        self.connected = True

    def accepts(self, record: MutationRecord) -> bool:
        if record.type != self.kind:
            return False
        if self.kind == MutationType.ATTRIBUTES and self.attribute_filter:
            return record.attribute_name in self.attribute_filter
        return True

    def disconnect(self) -> None:
        if self.connected:
            self.connected = False
            self._document._observers.remove(self)


class VirtualDocument:
    """In-memory document with a body element, observers, and host effects."""

    def __init__(self):
        self.body = VirtualElement("", tag="body")
        self.body._attach(self)
        self._observers: List[_VirtualObserver] = []
        self._pending: List[MutationRecord] = []
        self.alerts: List[str] = []
        self.navigations: List[Dict[str, str]] = []

    # ── Lookup ────────────────────────────────────────────────────────

    def get_element_by_id(self, element_id: str) -> Optional[VirtualElement]:
        if not element_id:
            return None
        for el in self.body.iter_tree():
            if el.id == element_id:
                return el
        return None

    def create_element(self, element_id: str = "", tag: str = "div", text: str = "") -> VirtualElement:
        return VirtualElement(element_id, tag=tag, text=text)

    def add(self, element_id: str, tag: str = "div", parent: Optional[VirtualElement] = None) -> VirtualElement:
        """Create an element and append it (to the body by default)."""
        return (parent or self.body).append_child(self.create_element(element_id, tag))

    # ── Observers ─────────────────────────────────────────────────────

    def observe_attributes(self, callback: MutationCallback, attribute_filter: List[str]) -> _VirtualObserver:
        observer = _VirtualObserver(self, MutationType.ATTRIBUTES, callback, list(attribute_filter))
        self._observers.append(observer)
        return observer

    def observe_children(self, callback: MutationCallback) -> _VirtualObserver:
        observer = _VirtualObserver(self, MutationType.CHILD_LIST, callback)
        self._observers.append(observer)
        return observer

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _record(self, record: MutationRecord) -> None:
        if self._observers:
            self._pending.append(record)

    def flush_mutations(self) -> int:
        """Deliver queued records, one batched callback per observer. Returns records delivered."""
        pending, self._pending = self._pending, []
        for observer in list(self._observers):
            batch = [r for r in pending if observer.accepts(r)]
            if batch and observer.connected:
                observer.callback(batch)
        return len(pending)

    # ── Host effects ──────────────────────────────────────────────────

    def alert(self, message: str) -> None:
        self.alerts.append(message)

    def navigate(self, url: str, target: str = "_blank") -> None:
        self.navigations.append({"url": url, "target": target})
