"""
Order lifecycle package.

Validation, status state machine, orchestration service and persistence
adapters for restaurant orders.
"""
