"""Tests for the built-in project types."""


class TestBuiltinProjectTypes:
    """The seed data compiles into the expected catalog."""

    def test_three_project_types(self, catalog):
        names = [pt.name for pt in catalog.project_types()]
        assert names == ["Software Engineering", "Business Plan", "Product Design"]

    def test_software_engineering_chain(self, catalog):
        """Requirements feed the C4 diagrams in dependency order."""
        software = catalog.get_project_type_by_name("Software Engineering")
        graph = catalog.graph_for(software.id)

        order = [graph.name_of(tid) for tid in graph.topological_order()]
        assert order == [
            "Vision Document",
            "Functional Requirements",
            "Non-Functional Requirements",
            "Use Cases",
            "C4 Context",
            "C4 Container",
            "C4 Component",
        ]

    def test_repeatable_types(self, catalog):
        """Use cases and components are repeatable with list context keys."""
        software = catalog.get_project_type_by_name("Software Engineering")
        use_cases = catalog.resolve_artifact_type("Use Cases", software.id)
        component = catalog.resolve_artifact_type("C4 Component", software.id)

        assert use_cases.repeatable and use_cases.context_key == "use_cases"
        assert component.repeatable and component.context_key == "c4_components"
        assert component.syntax == "mermaid"

    def test_business_plan_is_linear(self, catalog):
        """Each business plan artifact depends on the one before it."""
        plan = catalog.get_project_type_by_name("Business Plan")
        graph = catalog.graph_for(plan.id)
        types = catalog.artifact_types_for(plan.id)

        assert graph.dependencies_of(types[0].id) == []
        for previous, current in zip(types, types[1:]):
            assert graph.dependencies_of(current.id) == [previous.id]

    def test_design_system_shares_mockups_dependency(self, catalog):
        """Two prototyping types both depend on Mockups."""
        design = catalog.get_project_type_by_name("Product Design")
        mockups = catalog.resolve_artifact_type("Mockups", design.id)
        dependents = catalog.graph_for(design.id).dependents_of(mockups.id)

        names = sorted(catalog.get_artifact_type(tid).name for tid in dependents)
        assert names == ["Design System", "Interactive Prototype"]