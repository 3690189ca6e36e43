"""
Clusterhealth - Cluster Health Report Generator

Builds a human-readable health report for an OpenShift/Kubernetes cluster
by running a fixed set of diagnostic commands and rendering their output.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- api: Shared data models (invocations, results, responses)
- executor: Bounded-time external command execution
- report: Section catalog and report assembly
- config: Environment-driven configuration
"""

__version__ = "1.0.0"
