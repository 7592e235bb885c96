"""
config_store.observability

Structured logging for the storage core.
"""
