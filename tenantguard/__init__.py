"""Tenant isolation core: request resolution, session tenant context,
privileged database functions and row-level security."""

__version__ = "0.1.0"
