"""
Shared fixtures for the logic flow engine test suite.
"""
import sys
import os
import pytest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Set env vars before any imports that read them
os.environ["LOGICFLOW_ENVIRONMENT"] = "test"
os.environ.setdefault("LOGICFLOW_DEFAULT_DELAY_MS", "0")


@pytest.fixture
def cfg():
    """Settings with small budgets so runaway graphs fail fast."""
    from logicflow.config.settings import Settings
    return Settings(
        max_execution_steps=500,
        max_execution_depth=50,
        default_loop_count=10,
        default_delay_ms=0,
    )


@pytest.fixture
def document():
    """Empty in-memory document."""
    from logicflow.runtime.document import VirtualDocument
    return VirtualDocument()


@pytest.fixture
def interpreter(cfg):
    """Interpreter bound to the test settings."""
    from logicflow.runtime.interpreter import GraphInterpreter
    return GraphInterpreter(cfg)


@pytest.fixture
def registry():
    """Fresh ProjectRegistry instance (in-memory)."""
    from logicflow.compiler.registry import ProjectRegistry
    return ProjectRegistry()


@pytest.fixture
def make_flow():
    """Build a LogicFlow from (type, params) pairs."""
    from logicflow.compiler.manifest import LogicFlow, LogicAction

    def _make(flow_id="f1", component_id="btn", event="click", actions=(), name=None):
        return LogicFlow(
            id=flow_id,
            name=name or f"Flow {flow_id}",
            component_id=component_id,
            event=event,
            actions=[
                LogicAction(id=f"{flow_id}_a{i}", type=t, params=p)
                for i, (t, p) in enumerate(actions)
            ],
        )
    return _make


@pytest.fixture
def make_session(cfg, document):
    """RuntimeSession over the shared in-memory document."""
    from logicflow.runtime.session import RuntimeSession

    def _make(**kwargs):
        kwargs.setdefault("cfg", cfg)
        return RuntimeSession(lambda: document, **kwargs)
    return _make
