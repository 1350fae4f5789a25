"""Unit tests for HierarchicalCache."""

import pytest

from azure_vars.core.cache import CacheError
from azure_vars.core.devops_client import NetworkError, NotFound
from azure_vars.core.models import ROOT, NodeKind, Project, VariableGroup

ORG = ("OrgA",)
PROJ = ("OrgA", "p-1")
GROUP = ("OrgA", "p-1", "1")


@pytest.fixture
def loaded_cache(cache, org_a, org_b, proj1, group1):
    """Cache with OrgA > Proj1 > Group1 fully loaded."""
    cache.begin_load(ROOT)
    cache.complete_load(ROOT, children=[org_a, org_b])
    cache.begin_load(ORG)
    cache.complete_load(ORG, children=[proj1])
    cache.begin_load(PROJ)
    cache.complete_load(PROJ, children=[group1])
    return cache


class TestLoading:
    """Test the load lifecycle."""

    def test_root_starts_not_loaded(self, cache):
        root = cache.get_node(ROOT)

        assert root.kind is NodeKind.ROOT
        assert root.load_state.is_not_loaded
        assert root.name == "Organizations"
        assert len(cache) == 1

    def test_begin_and_complete(self, cache, org_a, org_b):
        assert cache.begin_load(ROOT) is True
        assert cache.get_node(ROOT).load_state.is_loading

        cache.complete_load(ROOT, children=[org_a, org_b])

        assert cache.get_node(ROOT).load_state.is_loaded
        assert [c.name for c in cache.children(ROOT)] == ["OrgA", "OrgB"]
        assert cache.get_node(ORG).kind is NodeKind.ORGANIZATION

    def test_begin_load_is_idempotent(self, cache):
        assert cache.begin_load(ROOT) is True
        assert cache.begin_load(ROOT) is False

    def test_loaded_node_not_reloaded(self, loaded_cache):
        assert loaded_cache.begin_load(ORG) is False

    def test_child_requires_loaded_parent(self, loaded_cache):
        loaded_cache.invalidate(ROOT)

        assert loaded_cache.begin_load(ORG) is False

    def test_groups_arrive_loaded(self, loaded_cache):
        group = loaded_cache.get_node(GROUP)

        assert group.kind is NodeKind.VARIABLE_GROUP
        assert group.load_state.is_loaded
        assert group.fetches_children is False
        assert loaded_cache.begin_load(GROUP) is False

    def test_unknown_path(self, cache):
        with pytest.raises(CacheError):
            cache.get_node(("nope",))

    def test_version_increments(self, cache, org_a):
        start = cache.version
        cache.begin_load(ROOT)
        cache.complete_load(ROOT, children=[org_a])

        assert cache.version == start + 2


class TestFailures:
    """Test failed loads and stale snapshots."""

    def test_failure_records_reason(self, cache):
        cache.begin_load(ROOT)
        cache.complete_load(ROOT, error=NetworkError("boom", transient=True))

        state = cache.get_node(ROOT).load_state
        assert state.is_failed
        assert state.reason == "boom"
        assert state.retryable is True

    def test_failure_keeps_previous_children(self, loaded_cache):
        loaded_cache.invalidate(ORG)
        loaded_cache.begin_load(ORG)
        loaded_cache.complete_load(ORG, error=NotFound("gone"))

        org = loaded_cache.get_node(ORG)
        assert org.load_state.is_failed
        assert org.load_state.retryable is False
        assert org.stale is True
        assert [c.name for c in loaded_cache.children(ORG)] == ["Proj1"]

    def test_failed_node_can_be_retried(self, cache):
        cache.begin_load(ROOT)
        cache.complete_load(ROOT, error=NetworkError("boom"))

        assert cache.begin_load(ROOT) is True

    def test_completion_for_vanished_node_dropped(self, loaded_cache, org_a):
        loaded_cache.invalidate(ROOT)
        loaded_cache.begin_load(ROOT)
        loaded_cache.complete_load(ROOT, children=[org_a])
        assert ("OrgB",) not in loaded_cache

        assert loaded_cache.complete_load(("OrgB",), children=[]) is False


class TestReplaceChildren:
    """Test atomic child replacement on refresh."""

    def test_refresh_updates_items_and_keeps_subtrees(self, loaded_cache, org_a):
        renamed = Project(id="p-1", org_name="OrgA", name="Proj One")
        loaded_cache.invalidate(ORG)
        loaded_cache.begin_load(ORG)
        loaded_cache.complete_load(ORG, children=[renamed])

        proj = loaded_cache.get_node(PROJ)
        assert proj.name == "Proj One"
        assert GROUP in loaded_cache

    def test_removed_children_drop_their_subtree(self, loaded_cache):
        loaded_cache.invalidate(ORG)
        loaded_cache.begin_load(ORG)
        loaded_cache.complete_load(ORG, children=[])

        assert PROJ not in loaded_cache
        assert GROUP not in loaded_cache
        assert loaded_cache.children(ORG) == []

    def test_group_contents_replaced(self, loaded_cache, group1):
        updated = VariableGroup(id="1", project_id="p-1", name="Group1", variables=())
        loaded_cache.invalidate(PROJ)
        loaded_cache.begin_load(PROJ)
        loaded_cache.complete_load(PROJ, children=[updated])

        group = loaded_cache.get_node(GROUP)
        assert group.item.variables == ()
        assert group.stale is False
        assert group.load_state.is_loaded


class TestInvalidate:
    """Test subtree invalidation."""

    def test_subtree_reset_and_marked_stale(self, loaded_cache):
        loaded_cache.invalidate(ORG)

        assert loaded_cache.get_node(ORG).load_state.is_not_loaded
        assert loaded_cache.get_node(ORG).stale is True
        assert loaded_cache.get_node(PROJ).load_state.is_not_loaded
        assert loaded_cache.get_node(GROUP).stale is True
        # Snapshot is still there until the refresh lands
        assert GROUP in loaded_cache

    def test_siblings_untouched(self, loaded_cache):
        loaded_cache.invalidate(ORG)

        assert loaded_cache.get_node(ROOT).load_state.is_loaded
        assert loaded_cache.get_node(("OrgB",)).stale is False

    def test_loading_target_stays_loading(self, cache):
        cache.begin_load(ROOT)
        cache.invalidate(ROOT)

        assert cache.get_node(ROOT).load_state.is_loading

    def test_walk_order(self, loaded_cache):
        paths = [n.path for n in loaded_cache.walk()]

        assert paths == [ROOT, ORG, PROJ, GROUP, ("OrgB",)]

    def test_ancestors(self, loaded_cache):
        assert [n.path for n in loaded_cache.ancestors(GROUP)] == [ROOT, ORG, PROJ]
