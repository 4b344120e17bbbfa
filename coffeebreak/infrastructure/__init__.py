"""Infrastructure Layer.

Concrete implementations: the waiters and their sleep primitive, the call
queue, configuration loading, logging setup and the rich console display.
"""
