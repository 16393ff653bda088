# =============================================================================
# shopfloor_core/__init__.py
# Shop-Floor Job Tracker - persistence core
# =============================================================================
"""
Core package for the shop-floor job tracker.

Operators clock time against production jobs; administrators manage jobs,
users and settings. All data access goes through
``ShopDataService`` in :mod:`shopfloor_core.offline`, which uses the
remote store when reachable and a local SQLite store otherwise.
"""

__version__ = "1.0.0"
