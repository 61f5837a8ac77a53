"""
slotkeeper - availability and conflict resolution for executive calendars.
"""

__version__ = "0.1.0"
