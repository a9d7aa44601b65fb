"""
Periodic maintenance.

- scheduler.py: PeriodicSweeper (cache, quota and identity sweeps)
"""

from classification_proxy.maintenance.scheduler import PeriodicSweeper, SweepJob

__all__ = ["PeriodicSweeper", "SweepJob"]
