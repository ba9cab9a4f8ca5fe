"""
Warden - Temp Roles Package
===========================

Expiry tracking for time-boxed role grants.
"""

from .scheduler import SweepResult, TempRoleScheduler

__all__ = ["TempRoleScheduler", "SweepResult"]
