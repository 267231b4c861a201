"""Data core for a cryptocurrency dashboard.

Upstream market-data clients behind TTL caches, a pure indicator engine and
a freshness evaluator.
"""

__version__ = "0.1.0"
