"""Core analysis: findings, pipeline orchestration, reconciliation, BOM synthesis."""
