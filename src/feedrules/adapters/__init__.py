"""Concrete adapters that satisfy the core ports."""
