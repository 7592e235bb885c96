"""
config_store.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for tenant namespace tables.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories stay thin: write policy lives in the validation gate and
# use-case orchestration in services.
