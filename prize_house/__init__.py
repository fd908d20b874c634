"""
Prize House

Classroom reward-points kiosk: students exchange points for prizes from a
teacher-managed catalog. Every exchange debits points, decrements stock and
appends to the redemption log as one atomic snapshot transition.
"""

__version__ = "1.0.0"
