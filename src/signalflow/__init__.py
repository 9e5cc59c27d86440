"""
signalflow: Orchestration core for auditable trading-signal pipelines.

Sequences enrichment/scoring stages as a dependency graph, traces every
node a signal passes through, and replays stored signals to detect drift.
"""

__version__ = "0.4.0"
