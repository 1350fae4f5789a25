"""Pytest fixtures for azure-vars tests."""

import pytest

from azure_vars.core.auth import AccessToken, TokenProvider
from azure_vars.core.cache import HierarchicalCache
from azure_vars.core.models import Organization, Project, Variable, VariableGroup


class StaticBridge:
    """Auth bridge that hands out numbered tokens and counts calls."""

    def __init__(self):
        self.calls = 0

    def get_token(self):
        self.calls += 1
        return AccessToken(value=f"token-{self.calls}")


class RecordingDispatcher:
    """Dispatcher that records fetch requests and scheduled retries."""

    def __init__(self):
        self.requests = []
        self.retries = []

    def dispatch_fetch(self, request):
        self.requests.append(request)

    def schedule_retry(self, path, delay):
        self.retries.append((path, delay))


@pytest.fixture
def bridge():
    return StaticBridge()


@pytest.fixture
def token_provider(bridge):
    return TokenProvider(bridge)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def cache():
    return HierarchicalCache()


@pytest.fixture
def org_a():
    return Organization(id="a-1", name="OrgA")


@pytest.fixture
def org_b():
    return Organization(id="b-1", name="OrgB")


@pytest.fixture
def proj1():
    return Project(id="p-1", org_name="OrgA", name="Proj1", description="Main project")


@pytest.fixture
def group1():
    return VariableGroup(
        id="1",
        project_id="p-1",
        name="Group1",
        variables=(
            Variable(key="key", value="A", is_secret=False),
            Variable(key="otherKey", value="B", is_secret=False),
            Variable(key="password", value="secret1", is_secret=True),
        ),
    )


@pytest.fixture
def no_env_vars(monkeypatch):
    """Remove environment variables that change behaviour."""
    for name in ("ADO_PAT", "ADO_ORGANIZATION", "ADO_PROJECT", "AZURE_VARS_LOG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point the config store at a temporary directory."""
    path = tmp_path / "azure-vars"
    monkeypatch.setenv("AZURE_VARS_CONFIG_DIR", str(path))
    return path
