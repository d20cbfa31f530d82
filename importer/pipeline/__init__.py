"""Batch orchestration, job tracking and the service facade for imports."""
