"""
Seed data for the built-in project types.

Each project type lists its phases in order; each artifact type names the
artifact types it depends on (by name, within the same project type).
"""

from typing import Any, Dict, List

from artifect.domain.catalog import ProjectTypeDefinition


# =============================================================================
# SOFTWARE ENGINEERING
# =============================================================================

SOFTWARE_ENGINEERING: Dict[str, Any] = {
    "name": "Software Engineering",
    "slug": "software_engineering",
    "description": "Requirements through architecture for a software system.",
    "phases": [
        {
            "name": "Requirements",
            "order": 1,
            "artifact_types": [
                {"name": "Vision Document", "slug": "vision"},
                {
                    "name": "Functional Requirements",
                    "slug": "functional_requirements",
                    "depends_on": ["Vision Document"],
                },
                {
                    "name": "Non-Functional Requirements",
                    "slug": "non_functional_requirements",
                    "depends_on": ["Functional Requirements"],
                },
                {
                    "name": "Use Cases",
                    "slug": "use_cases",
                    "repeatable": True,
                    "depends_on": ["Non-Functional Requirements"],
                },
            ],
        },
        {
            "name": "Design",
            "order": 2,
            "artifact_types": [
                {
                    "name": "C4 Context",
                    "slug": "c4_context",
                    "syntax": "mermaid",
                    "depends_on": ["Use Cases"],
                },
                {
                    "name": "C4 Container",
                    "slug": "c4_container",
                    "syntax": "mermaid",
                    "depends_on": ["C4 Context"],
                },
                {
                    "name": "C4 Component",
                    "slug": "c4_component",
                    "plural_slug": "c4_components",
                    "syntax": "mermaid",
                    "repeatable": True,
                    "depends_on": ["C4 Container"],
                },
            ],
        },
    ],
}


# =============================================================================
# BUSINESS PLAN
# =============================================================================

def _linear_chain(phases: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Make every artifact type depend on the one declared before it."""
    previous = None
    for phase in phases:
        for artifact_type in phase["artifact_types"]:
            if previous is not None:
                artifact_type["depends_on"] = [previous]
            previous = artifact_type["name"]
    return phases


BUSINESS_PLAN: Dict[str, Any] = {
    "name": "Business Plan",
    "slug": "business_plan",
    "description": "A complete business plan, from mission to funding request.",
    "phases": _linear_chain([
        {
            "name": "Strategy",
            "order": 1,
            "artifact_types": [
                {"name": "Mission and Vision", "slug": "mission_and_vision"},
                {"name": "Market Analysis", "slug": "market_analysis"},
            ],
        },
        {
            "name": "Planning",
            "order": 2,
            "artifact_types": [
                {"name": "Product Description", "slug": "product_description"},
                {"name": "Management Plan", "slug": "management_plan"},
                {"name": "Operational Plan", "slug": "operational_plan"},
            ],
        },
        {
            "name": "Financial",
            "order": 3,
            "artifact_types": [
                {"name": "Marketing Strategy", "slug": "marketing_strategy"},
                {"name": "Financial Projections", "slug": "financial_projections"},
            ],
        },
        {
            "name": "Legal",
            "order": 4,
            "artifact_types": [
                {"name": "Legal Structure", "slug": "legal_structure"},
                {"name": "Risk Assessment", "slug": "risk_assessment"},
            ],
        },
        {
            "name": "Summary",
            "order": 5,
            "artifact_types": [
                {"name": "Funding Request", "slug": "funding_request"},
                {"name": "Executive Summary", "slug": "executive_summary"},
            ],
        },
    ]),
}


# =============================================================================
# PRODUCT DESIGN
# =============================================================================

PRODUCT_DESIGN: Dict[str, Any] = {
    "name": "Product Design",
    "slug": "product_design",
    "description": "User research through usability testing for a product.",
    "phases": [
        {
            "name": "Research",
            "order": 1,
            "artifact_types": [
                {"name": "User Research", "slug": "user_research"},
                {
                    "name": "Design Brief",
                    "slug": "design_brief",
                    "depends_on": ["User Research"],
                },
            ],
        },
        {
            "name": "Concept",
            "order": 2,
            "artifact_types": [
                {
                    "name": "Wireframes",
                    "slug": "wireframes",
                    "depends_on": ["Design Brief"],
                },
                {
                    "name": "Mockups",
                    "slug": "mockups",
                    "depends_on": ["Wireframes"],
                },
            ],
        },
        {
            "name": "Prototyping",
            "order": 3,
            "artifact_types": [
                {
                    "name": "Interactive Prototype",
                    "slug": "interactive_prototype",
                    "depends_on": ["Mockups"],
                },
                {
                    "name": "Design System",
                    "slug": "design_system",
                    "depends_on": ["Mockups"],
                },
            ],
        },
        {
            "name": "Testing",
            "order": 4,
            "artifact_types": [
                {
                    "name": "Usability Test Plan",
                    "slug": "usability_test_plan",
                    "depends_on": ["Interactive Prototype"],
                },
                {
                    "name": "Usability Test Results",
                    "slug": "usability_test_results",
                    "depends_on": ["Usability Test Plan"],
                },
            ],
        },
    ],
}


PROJECT_TYPES: List[Dict[str, Any]] = [
    SOFTWARE_ENGINEERING,
    BUSINESS_PLAN,
    PRODUCT_DESIGN,
]


def default_definitions() -> List[ProjectTypeDefinition]:
    """Validated definitions for the built-in project types."""
    return [ProjectTypeDefinition.model_validate(data) for data in PROJECT_TYPES]
