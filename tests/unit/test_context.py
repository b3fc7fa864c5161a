"""Tests for ExecutionContext."""

from __future__ import annotations

from aceryx.tools.context import ANONYMOUS_USER, DEFAULT_TIMEOUT, ExecutionContext


class TestDefaults:
    def test_defaults(self) -> None:
        ctx = ExecutionContext()
        assert ctx.user_id == ANONYMOUS_USER
        assert ctx.flow_id is None
        assert ctx.node_id is None
        assert ctx.timeout == DEFAULT_TIMEOUT
        assert ctx.variables == {}

    def test_request_id_unique_per_context(self) -> None:
        ids = {ExecutionContext().request_id for _ in range(100)}
        assert len(ids) == 100

    def test_variables_not_shared_between_instances(self) -> None:
        a = ExecutionContext()
        b = ExecutionContext()
        a.set_variable("k", 1)
        assert b.get_variable("k") is None


class TestBuilders:
    def test_with_flow(self) -> None:
        ctx = ExecutionContext(user_id="alice")
        flowed = ctx.with_flow("flow-1", "node-7")
        assert flowed.flow_id == "flow-1"
        assert flowed.node_id == "node-7"
        assert flowed.user_id == "alice"
        assert ctx.flow_id is None

    def test_with_timeout(self) -> None:
        ctx = ExecutionContext()
        assert ctx.with_timeout(2.5).timeout == 2.5
        assert ctx.timeout == DEFAULT_TIMEOUT

    def test_with_variables_copies_mapping(self) -> None:
        source = {"a": 1}
        ctx = ExecutionContext().with_variables(source)
        ctx.set_variable("b", 2)
        assert source == {"a": 1}
        assert ctx.variables == {"a": 1, "b": 2}


class TestVariables:
    def test_get_default(self) -> None:
        assert ExecutionContext().get_variable("missing", "fallback") == "fallback"

    def test_set_and_get(self) -> None:
        ctx = ExecutionContext()
        ctx.set_variable("count", 3)
        assert ctx.get_variable("count") == 3


class TestFork:
    def test_fork_isolates_variables(self) -> None:
        parent = ExecutionContext(variables={"shared": True})
        child = parent.fork()
        child.set_variable("local", 1)
        assert parent.variables == {"shared": True}
        assert child.get_variable("shared") is True

    def test_fork_keeps_request_id(self) -> None:
        parent = ExecutionContext(user_id="bob", timeout=3)
        child = parent.fork()
        assert child.request_id == parent.request_id
        assert child.user_id == "bob"
        assert child.timeout == 3
