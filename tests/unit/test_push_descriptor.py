"""Unit tests for push descriptors."""

import pytest

from refresher.errors import InvalidRefKind
from refresher.git.graph import BLANK_SHA, is_blank
from refresher.push.descriptor import PushDescriptor, commits_since, is_branch_ref, parse_ref
from refresher.state.models import MergeRequest, Project


@pytest.fixture
def project():
    return Project(id=1, path="group/project", default_branch="master")


@pytest.fixture
def history(graph, project):
    """root <- a <- b <- c on master, with d branching from a."""
    shas = {}
    shas["root"] = graph.commit("root")
    shas["a"] = graph.commit("a", shas["root"])
    shas["b"] = graph.commit("b", shas["a"])
    shas["c"] = graph.commit("c", shas["b"])
    shas["d"] = graph.commit("d", shas["a"])
    graph.set_branch(project, "master", shas["c"])
    return shas


class TestParseRef:
    """Tests for ref parsing."""

    def test_branch(self):
        assert parse_ref("refs/heads/master") == "master"

    def test_nested_branch(self):
        assert parse_ref("refs/heads/feature/login") == "feature/login"

    @pytest.mark.parametrize("ref", ["refs/tags/v1.0", "refs/merge-requests/1/head", "master", "refs/heads/"])
    def test_non_branch_refs(self, ref):
        assert not is_branch_ref(ref)
        with pytest.raises(InvalidRefKind, match="not a branch"):
            parse_ref(ref)

    def test_blank(self):
        assert is_blank(BLANK_SHA)
        assert is_blank("")
        assert not is_blank("a" * 40)


class TestPushDescriptorFlags:
    """Tests for create/delete/restore flags."""

    def test_update(self):
        push = PushDescriptor.parse(1, "a" * 40, "b" * 40, "refs/heads/master")
        assert push.branch_name == "master"
        assert not push.is_create
        assert not push.is_delete

    def test_create(self):
        push = PushDescriptor.parse(1, BLANK_SHA, "b" * 40, "refs/heads/master")
        assert push.is_create

    def test_delete(self):
        push = PushDescriptor.parse(1, "a" * 40, BLANK_SHA, "refs/heads/master")
        assert push.is_delete

    def test_restore_only_for_matching_source(self):
        push = PushDescriptor.parse(2, BLANK_SHA, "b" * 40, "refs/heads/master")
        fork_mr = MergeRequest(
            id=1, source_project_id=2, source_branch="master", target_project_id=1, target_branch="feature"
        )
        origin_mr = MergeRequest(
            id=2, source_project_id=1, source_branch="master", target_project_id=1, target_branch="feature"
        )
        assert push.is_restore_for(fork_mr)
        assert not push.is_restore_for(origin_mr)

    def test_update_is_not_restore(self):
        push = PushDescriptor.parse(1, "a" * 40, "b" * 40, "refs/heads/master")
        merge_request = MergeRequest(
            id=1, source_project_id=1, source_branch="master", target_project_id=1, target_branch="feature"
        )
        assert not push.is_restore_for(merge_request)


class TestCommitRange:
    """Tests for the commits introduced by a push."""

    def test_fast_forward(self, graph, project, history):
        push = PushDescriptor.build(project, history["a"], history["c"], "refs/heads/master", graph)
        assert push.commits == [history["c"], history["b"]]
        assert push.commit_count == 2

    def test_same_revision(self, graph, project, history):
        push = PushDescriptor.build(project, history["c"], history["c"], "refs/heads/master", graph)
        assert push.commits == []

    def test_delete(self, graph, project, history):
        push = PushDescriptor.build(project, history["c"], BLANK_SHA, "refs/heads/master", graph)
        assert push.commits == []

    def test_force_push_counts_from_merge_base(self, graph, project, history):
        push = PushDescriptor.build(project, history["c"], history["d"], "refs/heads/topic", graph)
        assert push.commits == [history["d"]]

    def test_new_branch_measured_against_default_branch(self, graph, project, history):
        topic = graph.commit("topic", history["c"])
        push = PushDescriptor.build(project, BLANK_SHA, topic, "refs/heads/topic", graph)
        assert push.commits == [topic]

    def test_new_branch_without_default_branch(self, graph, history):
        bare = Project(id=5, path="group/bare", default_branch="main")
        push = PushDescriptor.build(bare, BLANK_SHA, history["c"], "refs/heads/topic", graph)
        assert push.commits == []

    def test_invalid_ref(self, graph, project, history):
        with pytest.raises(InvalidRefKind):
            PushDescriptor.build(project, history["a"], history["c"], "refs/tags/v1", graph)

    def test_commits_since_earlier_tip(self, graph, project, history):
        assert commits_since(project, history["d"], history["c"], graph) == [history["c"], history["b"]]

    def test_commits_since_unrelated_tip(self, graph, project, history):
        orphan = graph.commit("orphan")
        assert commits_since(project, orphan, history["c"], graph) == []
