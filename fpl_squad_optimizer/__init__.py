"""
FPL Squad Optimizer Package

Builds a Fantasy Premier League squad from per-player valuations: a 15-player
squad under budget, position quotas and a per-team cap, the best legal
starting eleven, and a captain and vice-captain.
"""

__version__ = "0.1.0"
