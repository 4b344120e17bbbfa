"""Core Application Layer.

Contains application services that drive the waiters for the CLI.
"""
