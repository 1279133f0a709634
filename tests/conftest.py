"""Shared test fixtures for pytest."""

import pytest

from metacog.schemas.mcp import ParameterKind, ParameterSpec, ToolDescriptor
from metacog.tools.registry import ToolRegistry


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Isolate settings from the developer's environment."""
    import metacog.config

    monkeypatch.setenv("METACOG_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("METACOG_DEBUG", "false")
    monkeypatch.delenv("METACOG_ICON_URL", raising=False)
    metacog.config.get_settings.cache_clear()
    yield
    metacog.config.get_settings.cache_clear()


def _explode(args):
    raise RuntimeError("boom")


@pytest.fixture
def registry():
    """An unsealed registry with a string tool, an array tool and a broken tool."""
    registry = ToolRegistry()

    @registry.tool(
        "greet",
        "Greet someone",
        {"name": ParameterSpec(kind=ParameterKind.STRING, description="Who to greet")},
    )
    def greet(args):
        return f"Hello, {args['name']}!"

    @registry.tool(
        "join",
        "Join words",
        {
            "words": ParameterSpec(kind=ParameterKind.STRING_ARRAY, description="Words"),
            "sep": ParameterSpec(kind=ParameterKind.STRING, description="Separator", required=False),
        },
    )
    def join(args):
        return args.get("sep", " ").join(args["words"])

    registry.register(
        ToolDescriptor(name="explode", description="Always fails"),
        _explode,
    )
    return registry


@pytest.fixture
def client():
    """Test client for the server with the built-in tools."""
    from fastapi.testclient import TestClient

    from metacog.server import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def custom_client(registry):
    """Test client serving the fixture registry."""
    from fastapi.testclient import TestClient

    from metacog.server import create_app

    app = create_app(registry)
    with TestClient(app) as test_client:
        yield test_client
