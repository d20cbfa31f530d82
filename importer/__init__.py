"""Bulk entity import service."""
