"""
config_store.domain

Wire-level record types and write policy.
"""
