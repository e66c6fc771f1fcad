"""
slotbook - half-hour appointment booking against a shared calendar.
"""

__version__ = "0.1.0"
