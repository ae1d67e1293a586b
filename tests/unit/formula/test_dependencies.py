"""Unit tests for FormulaDependencyGraph."""

import pytest

from formlogic.core.exceptions import CircularDependencyError
from formlogic.formula.dependencies import FormulaDependencyGraph, field_dependencies
from formlogic.schemas.field import FormField, load_fields


def graph_of(edges: dict[str, list[str]]) -> FormulaDependencyGraph:
    graph = FormulaDependencyGraph()
    for position, node in enumerate(sorted({*edges, *(d for deps in edges.values() for d in deps)})):
        graph.add_node(node, (position, position))
    for field_id, deps in edges.items():
        graph.set_dependencies(field_id, deps)
    return graph


class TestFieldDependencies:
    """Tests for field_dependencies()."""

    def test_declared_then_parsed(self):
        """Test declared dependencies come first, parsed extras follow."""
        field = FormField.model_validate(
            {
                "id": "total",
                "calculation": {
                    "enabled": True,
                    "formula": "{{b}} + {{c}} + {{a}}",
                    "dependencies": ["a", "b"],
                },
            }
        )
        assert field_dependencies(field) == ["a", "b", "c"]

    def test_disabled_calculation(self):
        """Test fields without an enabled calculation have no edges."""
        field = FormField.model_validate(
            {"id": "x", "calculation": {"enabled": False, "formula": "{{a}}"}}
        )
        assert field_dependencies(field) == []


class TestFormulaDependencyGraph:
    """Tests for FormulaDependencyGraph class."""

    def test_initialization(self):
        """Test that graph initializes empty."""
        graph = FormulaDependencyGraph()
        assert len(graph.dependencies) == 0
        assert len(graph.reverse) == 0
        assert graph.nodes == []

    def test_set_dependencies(self):
        """Test edges are stored in both directions."""
        graph = FormulaDependencyGraph()
        graph.set_dependencies("subtotal", ["quantity", "price"])
        assert graph.reverse["subtotal"] == ["quantity", "price"]
        assert graph.dependencies["quantity"] == {"subtotal"}
        assert graph.dependencies["price"] == {"subtotal"}

    def test_set_dependencies_replaces_old_edges(self):
        """Test updating a field's dependencies drops stale edges."""
        graph = FormulaDependencyGraph()
        graph.set_dependencies("a", ["b"])
        graph.set_dependencies("a", ["c"])
        assert graph.reverse["a"] == ["c"]
        assert graph.dependencies["b"] == set()

    def test_from_fields(self, order_fields):
        """Test building from form fields."""
        graph = FormulaDependencyGraph.from_fields(load_fields(order_fields))
        assert graph.formula_fields == ["subtotal", "tax_amount", "total", "final_total"]
        assert graph.to_dict()["subtotal"] == ["quantity", "price"]
        assert "quantity" not in graph.to_dict()
        assert graph.unknown_references() == []

    def test_unknown_references(self):
        """Test edges to fields missing from the form."""
        fields = load_fields(
            [
                {"id": "a"},
                {"id": "b", "calculation": {"enabled": True, "formula": "{{a}} + {{ghost}}"}},
            ]
        )
        graph = FormulaDependencyGraph.from_fields(fields)
        assert graph.unknown_references() == [("b", "ghost")]

    def test_copy_is_independent(self):
        """Test edits to a copy leave the original untouched."""
        graph = graph_of({"a": ["b"]})
        clone = graph.copy()
        clone.set_dependencies("b", ["a"])
        assert graph.find_cycle() is None
        assert clone.find_cycle() is not None
        assert "b" not in graph.reverse

    def test_repr(self):
        """Test the debugging representation."""
        graph = graph_of({"a": ["b", "c"]})
        assert repr(graph) == "FormulaDependencyGraph(fields=1, edges=2)"


class TestCycleDetection:
    """Tests for circular reference detection."""

    def test_acyclic(self):
        """Test a chain without cycles."""
        graph = graph_of({"c": ["b"], "b": ["a"]})
        assert graph.find_cycle() is None
        graph.check_acyclic()

    def test_self_reference(self):
        """Test a field depending on itself."""
        graph = graph_of({"a": ["a"]})
        assert graph.find_cycle() == ["a", "a"]

    def test_direct_cycle(self):
        """Test A -> B -> A."""
        graph = graph_of({"a": ["b"], "b": ["a"]})
        assert graph.find_cycle() == ["a", "b", "a"]

    def test_indirect_cycle(self):
        """Test A -> B -> C -> A."""
        graph = graph_of({"a": ["b"], "b": ["c"], "c": ["a"]})
        cycle = graph.find_cycle()
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_cycle_reachable_from_acyclic_part(self):
        """Test a cycle that is only entered through another field."""
        graph = graph_of({"a": ["b"], "b": ["c"], "c": ["b"]})
        assert graph.find_cycle() == ["b", "c", "b"]

    def test_diamond_is_not_a_cycle(self):
        """Test shared dependencies do not look like cycles."""
        graph = graph_of({"d": ["b", "c"], "b": ["a"], "c": ["a"]})
        assert graph.find_cycle() is None

    def test_check_acyclic_raises(self):
        """Test the raising variant names the chain."""
        graph = graph_of({"a": ["b"], "b": ["a"]})
        with pytest.raises(CircularDependencyError) as exc_info:
            graph.check_acyclic()
        assert "Circular dependency detected" in exc_info.value.message
        assert "a -> b -> a" in exc_info.value.message
        assert exc_info.value.cycle == ["a", "b", "a"]

    def test_detect_circular_reference_hypothetical(self):
        """Test checking a proposed edit without applying it."""
        graph = graph_of({"b": ["a"], "c": ["b"]})
        assert graph.detect_circular_reference("a", ["c"]) == ["a", "c", "b", "a"]
        assert graph.detect_circular_reference("a", ["x"]) is None
        assert "a" not in graph.reverse

    def test_long_chain(self):
        """Test deep graphs do not hit the recursion limit."""
        edges = {f"f{i}": [f"f{i + 1}"] for i in range(5000)}
        graph = FormulaDependencyGraph()
        for field_id, deps in edges.items():
            graph.set_dependencies(field_id, deps)
        assert graph.find_cycle() is None
        graph.set_dependencies("f5000", ["f0"])
        assert graph.find_cycle() is not None


class TestEvaluationOrder:
    """Tests for topological ordering."""

    def test_chain(self, order_fields):
        """Test dependencies always come before their dependents."""
        graph = FormulaDependencyGraph.from_fields(load_fields(order_fields))
        order = graph.get_evaluation_order()
        for field_id in graph.formula_fields:
            for dep in graph.reverse[field_id]:
                assert order.index(dep) < order.index(field_id)

    def test_restricted_to_calculated_fields(self, order_fields):
        """Test filtering the order to a subset of fields."""
        fields = load_fields(order_fields)
        graph = FormulaDependencyGraph.from_fields(fields)
        calculated = [f.id for f in fields if f.is_calculated]
        assert graph.get_evaluation_order(calculated) == [
            "subtotal",
            "tax_amount",
            "total",
            "final_total",
        ]

    def test_ties_broken_by_display_order(self):
        """Test independent fields follow their display order."""
        fields = load_fields(
            [
                {"id": "z", "order": 1, "calculation": {"enabled": True, "formula": "1"}},
                {"id": "a", "order": 2, "calculation": {"enabled": True, "formula": "2"}},
            ]
        )
        graph = FormulaDependencyGraph.from_fields(fields)
        assert graph.get_evaluation_order() == ["z", "a"]

    def test_dependency_listed_later_in_form(self):
        """Test a field whose dependency is displayed after it."""
        fields = load_fields(
            [
                {"id": "total", "order": 1, "calculation": {"enabled": True, "formula": "{{base}} * 2"}},
                {"id": "base", "order": 2, "calculation": {"enabled": True, "formula": "{{x}} + 1"}},
                {"id": "x", "order": 3},
            ]
        )
        graph = FormulaDependencyGraph.from_fields(fields)
        assert graph.get_evaluation_order(["total", "base"]) == ["base", "total"]

    def test_cycle_raises(self):
        """Test ordering a cyclic graph."""
        graph = graph_of({"a": ["b"], "b": ["a"]})
        with pytest.raises(CircularDependencyError):
            graph.get_evaluation_order()


class TestAffectedFields:
    """Tests for get_affected_fields()."""

    def test_transitive_dependents(self, order_fields):
        """Test a change ripples through the chain."""
        graph = FormulaDependencyGraph.from_fields(load_fields(order_fields))
        assert graph.get_affected_fields("price") == [
            "subtotal",
            "tax_amount",
            "total",
            "final_total",
        ]

    def test_leaf_change(self, order_fields):
        """Test a field nothing depends on."""
        graph = FormulaDependencyGraph.from_fields(load_fields(order_fields))
        assert graph.get_affected_fields("final_total") == []

    def test_partial_chain(self, order_fields):
        """Test only downstream fields are affected."""
        graph = FormulaDependencyGraph.from_fields(load_fields(order_fields))
        assert graph.get_affected_fields("discount") == ["final_total"]
