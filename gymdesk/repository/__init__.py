"""Repository layer: DB access helpers (SQLite).

Keep functions thin and focused, so services/domains avoid SQL strings.
Every search query is assembled with ``domain.query_builder.QueryBuilder``.
"""
from __future__ import annotations
