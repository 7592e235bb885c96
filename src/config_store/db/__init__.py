"""
config_store.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide the tenant pool registry, namespace provisioning, statement
  execution, transactions, result caching, and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Only `db.namespaces` knows which engine is behind the URL; everything else
# speaks plain SQLAlchemy.
