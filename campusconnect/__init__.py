"""
CampusConnect progression core.

Turns portal activity (college views, mentor bookings, weekly missions) into
XP, derives levels from XP and keeps mission state consistent with awarded
and revoked XP.
"""

__version__ = "1.0.0"
