"""
config_store.services

Use-case layer invoked by the boundary (HTTP, workers, CLIs).
"""
