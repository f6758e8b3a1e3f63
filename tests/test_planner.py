"""Tests for dependency-ordered deletion planning."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from sweeper.cleanup.planner import plan
from sweeper.exceptions import ConfigurationError, PlanningError
from sweeper.registry import DELETE_BEFORE

TYPES = [f"t{i}" for i in range(8)]


@st.composite
def dags(draw):
    """Random acyclic graphs over TYPES: edges only run from lower to higher index."""
    edges = {}
    for i, source in enumerate(TYPES):
        targets = draw(st.sets(st.sampled_from(TYPES[i + 1 :]), max_size=3)) if i + 1 < len(TYPES) else set()
        if targets:
            edges[source] = targets
    return edges


def reachable(graph, source):
    seen, stack = set(), list(graph.get(source, ()))
    while stack:
        node = stack.pop()
        if node not in seen:
            seen.add(node)
            stack.extend(graph.get(node, ()))
    return seen


class TestPlan:
    def test_independent_types_share_a_wave(self):
        result = plan(["b", "a"], {}, declaration_order=["a", "b"])

        assert result.waves == [["a", "b"]]

    def test_direct_edge_orders_waves(self):
        result = plan(["aws_vpc", "aws_subnet"], {"aws_subnet": {"aws_vpc"}})

        assert result.waves == [["aws_subnet"], ["aws_vpc"]]

    def test_transitive_edge_through_unconfigured_type(self):
        graph = {"aws_instance": {"aws_subnet"}, "aws_subnet": {"aws_vpc"}}

        result = plan(["aws_vpc", "aws_instance"], graph)

        assert result.waves == [["aws_instance"], ["aws_vpc"]]

    def test_wave_sorted_by_declaration_order(self):
        result = plan(["z", "m", "a"], {}, declaration_order=["m", "z", "a"])

        assert result.waves == [["m", "z", "a"]]

    def test_undeclared_types_sort_last_by_name(self):
        result = plan(["y", "x", "a"], {}, declaration_order=["a"])

        assert result.waves == [["a", "x", "y"]]

    def test_cycle_raises_planning_error(self):
        with pytest.raises(PlanningError):
            plan(["a", "b"], {"a": {"b"}, "b": {"a"}})

    def test_cycle_through_unconfigured_type(self):
        with pytest.raises(PlanningError):
            plan(["a"], {"a": {"b"}, "b": {"a"}})

    def test_planning_error_is_configuration_error(self):
        assert issubclass(PlanningError, ConfigurationError)

    def test_empty_configuration(self):
        result = plan([], DELETE_BEFORE)

        assert result.is_empty()
        assert result.order() == []

    def test_default_graph_instance_before_vpc(self):
        result = plan(["aws_vpc", "aws_security_group", "aws_instance"], DELETE_BEFORE)

        order = result.order()
        assert order.index("aws_instance") < order.index("aws_security_group")
        assert order.index("aws_security_group") < order.index("aws_vpc")

    @settings(max_examples=200, deadline=5000)
    @given(graph=dags(), configured=st.sets(st.sampled_from(TYPES), min_size=1))
    def test_plan_respects_every_ordering_constraint(self, graph, configured):
        """Every configured type appears once and after all its predecessors."""
        result = plan(configured, graph, declaration_order=TYPES)

        order = result.order()
        assert sorted(order) == sorted(configured)

        wave_of = {t: i for i, wave in enumerate(result.waves) for t in wave}
        for source in configured:
            for target in reachable(graph, source) & configured:
                assert wave_of[source] < wave_of[target]

    @settings(max_examples=100, deadline=5000)
    @given(graph=dags(), configured=st.sets(st.sampled_from(TYPES), min_size=1))
    def test_plan_is_deterministic(self, graph, configured):
        first = plan(list(configured), graph, declaration_order=TYPES)
        second = plan(sorted(configured, reverse=True), graph, declaration_order=TYPES)

        assert first.waves == second.waves
