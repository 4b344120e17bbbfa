"""API Resilience Implementations.

Contains the waiters that pace outbound API calls against fixed quotas or
header-reported limits, the call queue that serializes them and the shared
sleep-with-ticks primitive.
Bounded Context: API Resilience
"""
