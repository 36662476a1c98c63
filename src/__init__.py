"""
Market Override Engine
======================

Override-aware market aggregation for product research.

Features:
- Field-level merge of user overrides onto base products
- Market statistics and 41-bucket letter grades
- Persisted market overrides (PostgreSQL upsert)
- Dashboard cache invalidation via Redis
- Background recalculation via arq

"""

__version__ = "1.0.0"
