"""Domain Event definitions.

Payloads handed to the start-waiting, tick and end-waiting callbacks.
"""
