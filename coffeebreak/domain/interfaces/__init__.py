"""Domain Interfaces (Abstract Base Classes).

Defines the contracts the waiters and the CLI depend on.
"""
