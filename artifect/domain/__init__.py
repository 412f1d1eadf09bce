"""
Artifact lifecycle domain.

- Models, states and the state machine
- Type dependency graph and project type catalog
- Context assembly and the workflow orchestrator
"""
