"""Tests for the project type catalog."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from artifect.domain.catalog import (
    Catalog,
    ProjectTypeDefinition,
    load_definitions,
    slugify,
)
from artifect.domain.errors import (
    DependencyCycleError,
    InvalidArtifactTypeError,
    UnknownArtifactTypeError,
    ValidationError,
)


def _definition(**overrides):
    data = {
        "name": "Research Paper",
        "phases": [
            {
                "name": "Drafting",
                "order": 1,
                "artifact_types": [
                    {"name": "Abstract", "slug": "abstract"},
                    {"name": "Method", "slug": "method", "depends_on": ["Abstract"]},
                ],
            },
        ],
    }
    data.update(overrides)
    return ProjectTypeDefinition.model_validate(data)


class TestSlugify:
    """Tests for slugify."""

    def test_slugify(self):
        assert slugify("Non-Functional Requirements") == "non_functional_requirements"
        assert slugify("  C4 Context ") == "c4_context"


class TestProjectTypeDefinition:
    """Tests for definition validation."""

    def test_slug_defaults_from_name(self):
        """A missing slug is derived from the name."""
        assert _definition().slug == "research_paper"

    def test_bad_slug_rejected(self):
        """Slugs must be lowercase machine keys."""
        with pytest.raises(PydanticValidationError):
            _definition(phases=[{
                "name": "Drafting",
                "order": 1,
                "artifact_types": [{"name": "Abstract", "slug": "Bad Slug"}],
            }])

    def test_duplicate_phase_order_rejected(self):
        """Phase orders are unique within a project type."""
        with pytest.raises(PydanticValidationError, match="Duplicate phase order"):
            _definition(phases=[
                {"name": "One", "order": 1},
                {"name": "Two", "order": 1},
            ])

    def test_duplicate_slug_rejected(self):
        """Slugs and plural slugs share one namespace."""
        with pytest.raises(PydanticValidationError, match="Duplicate artifact type slug"):
            _definition(phases=[{
                "name": "Drafting",
                "order": 1,
                "artifact_types": [
                    {"name": "Figure", "slug": "figure", "repeatable": True, "plural_slug": "figures"},
                    {"name": "Figures", "slug": "figures"},
                ],
            }])

    def test_unknown_dependency_rejected(self):
        """depends_on must name a type in the same project type."""
        with pytest.raises(PydanticValidationError, match="unknown type 'Outline'"):
            _definition(phases=[{
                "name": "Drafting",
                "order": 1,
                "artifact_types": [{"name": "Abstract", "slug": "abstract", "depends_on": ["Outline"]}],
            }])

    def test_requires_a_phase(self):
        with pytest.raises(PydanticValidationError):
            _definition(phases=[])


class TestCatalogBuild:
    """Tests for compiling definitions."""

    def test_assigns_ids(self):
        """Project types, phases and artifact types get sequential ids."""
        catalog = Catalog.build([_definition()])
        project_type = catalog.get_project_type(1)

        assert project_type.name == "Research Paper"
        assert [p.id for p in project_type.phases] == [1]
        assert [t.name for t in catalog.artifact_types_for(1)] == ["Abstract", "Method"]

    def test_graph_is_built(self):
        """Each project type gets its dependency graph."""
        catalog = Catalog.build([_definition()])
        method = catalog.resolve_artifact_type("Method", 1)

        assert [t.name for t in catalog.dependency_types(method)] == ["Abstract"]

    def test_cycle_fails_build(self):
        """Cyclic dependencies fail at build time."""
        definition = _definition(phases=[{
            "name": "Drafting",
            "order": 1,
            "artifact_types": [
                {"name": "Abstract", "slug": "abstract", "depends_on": ["Method"]},
                {"name": "Method", "slug": "method", "depends_on": ["Abstract"]},
            ],
        }])
        with pytest.raises(DependencyCycleError):
            Catalog.build([definition])

    def test_phases_sorted_by_order(self):
        """Phases compile in order regardless of declaration order."""
        definition = _definition(phases=[
            {"name": "Review", "order": 2},
            {"name": "Drafting", "order": 1},
        ])
        catalog = Catalog.build([definition])

        assert [p.name for p in catalog.get_project_type(1).phases] == ["Drafting", "Review"]


class TestCatalogLookups:
    """Tests for lookups against the built-in catalog."""

    def test_project_type_by_name_or_slug(self, catalog):
        """Project types resolve by display name or slug."""
        by_name = catalog.get_project_type_by_name("Business Plan")
        assert catalog.get_project_type_by_name("business_plan") == by_name

    def test_unknown_project_type(self, catalog):
        with pytest.raises(ValidationError):
            catalog.get_project_type_by_name("Novel")

    def test_resolve_unknown_artifact_type(self, catalog):
        """A name no project type declares is unknown."""
        with pytest.raises(UnknownArtifactTypeError):
            catalog.resolve_artifact_type("Screenplay", 1)

    def test_resolve_artifact_type_from_other_project_type(self, catalog):
        """A name from another project type is invalid here."""
        software = catalog.get_project_type_by_name("Software Engineering")
        with pytest.raises(InvalidArtifactTypeError, match="Software Engineering"):
            catalog.resolve_artifact_type("Market Analysis", software.id)

    def test_artifact_types_in_phase(self, catalog):
        software = catalog.get_project_type_by_name("Software Engineering")
        design = [p for p in software.phases if p.name == "Design"][0]

        names = [t.name for t in catalog.artifact_types_in_phase(design.id)]
        assert names == ["C4 Context", "C4 Container", "C4 Component"]

    def test_artifact_format(self, catalog):
        """Delimiters come from the upper-cased slug."""
        software = catalog.get_project_type_by_name("Software Engineering")
        vision = catalog.resolve_artifact_type("Vision Document", software.id)
        fmt = catalog.artifact_format(vision)

        assert fmt.start_tag == "[VISION]"
        assert fmt.end_tag == "[/VISION]"
        assert fmt.commentary_start_tag == "[COMMENTARY]"
        assert fmt.syntax == "md"


class TestLoadDefinitions:
    """Tests for YAML loading."""

    def test_load_list(self, tmp_path):
        """A top-level list of project types loads."""
        path = tmp_path / "types.yaml"
        path.write_text(
            "- name: Research Paper\n"
            "  phases:\n"
            "    - name: Drafting\n"
            "      order: 1\n"
            "      artifact_types:\n"
            "        - name: Abstract\n"
            "          slug: abstract\n"
        )
        definitions = load_definitions(path)

        assert [d.name for d in definitions] == ["Research Paper"]
        assert definitions[0].phases[0].artifact_types[0].syntax == "md"

    def test_load_keyed(self, tmp_path):
        """A project_types: key is also accepted."""
        path = tmp_path / "types.yaml"
        path.write_text(
            "project_types:\n"
            "  - name: Research Paper\n"
            "    phases:\n"
            "      - name: Drafting\n"
            "        order: 1\n"
        )
        assert len(load_definitions(path)) == 1

    def test_load_rejects_scalar(self, tmp_path):
        path = tmp_path / "types.yaml"
        path.write_text("just a string\n")
        with pytest.raises(ValidationError):
            load_definitions(path)
