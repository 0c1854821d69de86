"""
Per-domain repository modules for database access.

Each module exposes plain functions taking a ``Session`` first; routers and
services import the module they need, e.g.
``from bazaar.db.repositories import ads as repo_ads``.
"""
