"""
Tests for the preload executor.

Tests for:
- Execution order and single invocation of builders
- Persisting dict drafts, unsaved instances and saved records
- Per-record failure collection and the aggregated report
- Strict (subset) runs
"""

import io

import pytest

from factorydata import (
    CyclicDependencyError,
    PreloadExecutor,
    PreloadFailure,
    ResultCache,
    UnknownDependencyError,
)
from factorydata.report import REPORT_HEADER, format_failure_report

from sample_models import Post, User

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def cache(store) -> ResultCache:
    return ResultCache(store)


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def executor(registry, store, cache, stream) -> PreloadExecutor:
    return PreloadExecutor(registry, store, cache, stream=stream)


# =============================================================================
# Execution Tests
# =============================================================================


class TestExecuteAll:
    """Tests for full runs."""

    def test_builders_run_once_in_dependency_order(self, registry, executor):
        """Test each builder runs exactly once, dependencies first."""
        calls = []
        registry.register("c", User, lambda data: calls.append("c"), depends_on=["a", "b"])
        registry.register("b", User, lambda data: calls.append("b"), depends_on=["a"])
        registry.register("a", User, lambda data: calls.append("a"))

        run = executor.execute_all()

        assert calls == ["a", "b", "c"]
        assert run.plan == ["a", "b", "c"]
        assert run.executed == ["a", "b", "c"]
        assert run.strict is False
        assert run.completed is True
        assert set(run.group_timings) == {"a", "b", "c"}

    def test_builder_receives_empty_dict(self, registry, executor):
        """Test builders get a fresh empty mapping."""
        received = []
        registry.register("users", User, lambda data: received.append(dict(data)))

        executor.execute_all()

        assert received == [{}]

    def test_dict_drafts_are_created(self, registry, store, cache, executor):
        """Test attribute dicts are created as the group's model."""

        def build(data):
            data["thom"] = {"first_name": "Thom", "last_name": "York"}

        registry.register("users", User, build)
        run = executor.execute_all()

        assert run.success
        assert store.count(User) == 1
        thom = cache.get("users", "thom")
        assert isinstance(thom, User)
        assert (thom.first_name, thom.last_name) == ("Thom", "York")

    def test_unsaved_instances_are_saved(self, registry, store, cache, executor):
        """Test an unsaved instance is saved in place."""
        george = User(first_name="George", last_name="Washington")
        registry.register("users", User, lambda data: data.update(george=george))

        executor.execute_all()

        assert store.is_persisted(george)
        assert cache.get("users", "george") is george

    def test_saved_records_are_not_saved_again(self, registry, store, executor):
        """Test records already persisted by the builder are kept as-is."""

        def build(data):
            data["thom"] = store.create(User, {"first_name": "Thom", "last_name": "York"})

        registry.register("users", User, build)
        executor.execute_all()

        assert store.count(User) == 1

    def test_model_override_is_used(self, registry, cache, executor):
        """Test the registered model decides the created type."""
        registry.register(
            "posts",
            User,
            lambda data: data.update(george={"first_name": "George", "last_name": "W"}),
        )

        executor.execute_all()

        assert type(cache.get("posts", "george")) is User

    def test_resolution_errors_raise_before_building(self, registry, store, executor):
        """Test a bad plan runs no builders at all."""
        calls = []
        registry.register("users", User, lambda data: calls.append("users"))
        registry.register("posts", Post, lambda data: calls.append("posts"), depends_on=["tags"])

        with pytest.raises(UnknownDependencyError):
            executor.execute_all()

        assert calls == []
        assert executor.current_run is None

    def test_cycle_raises(self, registry, executor):
        """Test cyclic registrations fail when executed."""
        registry.register("a", User, lambda data: None, depends_on="b")
        registry.register("b", User, lambda data: None, depends_on="a")

        with pytest.raises(CyclicDependencyError):
            executor.execute_all()

    def test_reentrant_run_rejected(self, registry, executor):
        """Test a builder cannot start another run."""
        registry.register("users", User, lambda data: executor.execute_all())

        run = executor.execute_all()

        assert len(run.failures) == 1
        assert "already in progress" in run.failures[0].errors["base"][0]

    def test_run_to_dict(self, registry, executor):
        """Test the audit dict of a run."""
        registry.register("users", User, lambda data: None)

        summary = executor.execute_all().to_dict()

        assert summary["plan"] == ["users"]
        assert summary["success"] is True
        assert summary["failure_count"] == 0


# =============================================================================
# Failure Tests
# =============================================================================


class TestFailureCollection:
    """Tests for per-record failures."""

    def test_invalid_record_does_not_abort_run(self, registry, store, cache, executor, stream):
        """Test one invalid and one valid record: valid saved, invalid reported."""

        def build_users(data):
            data["bob"] = {"first_name": "Bob"}
            data["thom"] = {"first_name": "Thom", "last_name": "York"}

        def build_posts(data):
            data["tour"] = {"user_id": cache.get("users", "thom").id, "title": "Tour!"}

        registry.register("users", User, build_users)
        registry.register("posts", Post, build_posts, depends_on="users")

        run = executor.execute_all()

        assert run.success is False
        assert run.executed == ["users", "posts"]
        assert run.failures == [
            PreloadFailure(
                group="users",
                key="bob",
                model_name="User",
                errors={"last_name": ["Field required"]},
            )
        ]
        assert run.failed_keys("users") == {"bob"}
        assert store.count(User) == 1
        assert store.count(Post) == 1
        assert cache.has("users", "thom")
        assert not cache.has("users", "bob")

        report = stream.getvalue()
        assert report.startswith(REPORT_HEADER)
        assert "User 'bob' (group: users) could not be saved." in report
        assert "last_name: Field required" in report

    def test_raising_builder_is_recorded(self, registry, store, executor, stream):
        """Test a builder exception is a failure, later groups still run."""

        def build_users(data):
            data["thom"] = {"first_name": "Thom", "last_name": "York"}
            raise RuntimeError("boom")

        registry.register("users", User, build_users)
        registry.register("posts", Post, lambda data: data.update(p={"user_id": 1, "title": "t"}))

        run = executor.execute_all()

        assert run.executed == ["users", "posts"]
        assert run.failures[0].key is None
        assert run.failures[0].errors == {"base": ["RuntimeError: boom"]}
        assert store.count(User) == 1
        assert store.count(Post) == 1
        assert "Preloader 'users' raised an error while building." in stream.getvalue()

    def test_no_report_on_success(self, registry, executor, stream):
        """Test nothing is written when every record saved."""
        registry.register("users", User, lambda data: None)

        executor.execute_all()

        assert stream.getvalue() == ""

    def test_report_disabled(self, registry, store, cache, stream):
        """Test report_failures=False keeps the stream quiet."""
        registry.register("users", User, lambda data: data.update(bob={"first_name": "Bob"}))
        executor = PreloadExecutor(registry, store, cache, stream=stream, report_failures=False)

        run = executor.execute_all()

        assert not run.success
        assert stream.getvalue() == ""

    def test_report_defaults_to_stderr(self, registry, store, cache, capsys):
        """Test the report goes to stderr without an explicit stream."""
        registry.register("users", User, lambda data: data.update(bob={"first_name": "Bob"}))

        PreloadExecutor(registry, store, cache).execute_all()

        captured = capsys.readouterr()
        assert REPORT_HEADER in captured.err
        assert captured.out == ""


class TestFailureReport:
    """Tests for format_failure_report()."""

    def test_empty(self):
        """Test no failures format to an empty string."""
        assert format_failure_report([]) == ""

    def test_multiple_failures_in_one_report(self):
        """Test every failure appears under one header."""
        report = format_failure_report(
            [
                PreloadFailure("users", "bob", "User", {"last_name": ["Field required"]}),
                PreloadFailure(
                    "posts",
                    "draft",
                    "Post",
                    {"title": ["Field required"], "user_id": ["Field required"]},
                ),
            ]
        )

        assert report.count(REPORT_HEADER) == 1
        assert report.splitlines() == [
            "Error preloading factory data.",
            "  User 'bob' (group: users) could not be saved.",
            "    Errors:",
            "      last_name: Field required",
            "  Post 'draft' (group: posts) could not be saved.",
            "    Errors:",
            "      title: Field required",
            "      user_id: Field required",
        ]


# =============================================================================
# Subset Tests
# =============================================================================


class TestExecuteSubset:
    """Tests for strict subset runs."""

    def test_subset_runs_requested_and_dependencies(self, registry, executor):
        """Test only requested groups and their dependencies run."""
        calls = []
        registry.register("users", User, lambda data: calls.append("users"))
        registry.register("posts", Post, lambda data: calls.append("posts"), depends_on="users")
        registry.register("tags", User, lambda data: calls.append("tags"))

        run = executor.execute_subset(["posts"])

        assert calls == ["users", "posts"]
        assert run.strict is True
        assert run.has_run("users")
        assert not run.has_run("tags")

    def test_full_run_counts_every_group_as_run(self, registry, executor):
        """Test a non-strict run treats groups registered later as run."""
        registry.register("users", User, lambda data: None)
        run = executor.execute_all()

        registry.register("late", User, lambda data: None)

        assert run.has_run("late")

    def test_full_run_in_progress_counts_only_executed_groups(self, registry, executor):
        """Test groups still waiting in a full run do not count as run."""
        seen = {}

        def users(data):
            run = executor.current_run
            seen["users"] = run.has_run("users")
            seen["posts"] = run.has_run("posts")

        registry.register("users", User, users)
        registry.register("posts", Post, lambda data: None)

        run = executor.execute_all()

        assert seen == {"users": True, "posts": False}
        assert run.has_run("posts")

    def test_new_run_replaces_previous(self, registry, executor):
        """Test strictness is decided per run."""
        registry.register("users", User, lambda data: None)
        registry.register("tags", User, lambda data: None)

        strict_run = executor.execute_subset(["users"])
        full_run = executor.execute_all()

        assert not strict_run.has_run("tags")
        assert full_run.has_run("tags")
        assert executor.current_run is full_run

    def test_forget(self, registry, executor):
        """Test forget() drops the current run."""
        registry.register("users", User, lambda data: None)
        executor.execute_all()

        executor.forget()

        assert executor.current_run is None

