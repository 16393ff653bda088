"""
External Integrations Module
Interfaces for the purchase-order field extractor and calendar sync
"""

from .connectors import (
    FieldExtractor,
    CalendarEventCreator,
    MockFieldExtractor,
    MockCalendarCreator,
)

__all__ = [
    # Base classes
    "FieldExtractor",
    "CalendarEventCreator",

    # Test doubles
    "MockFieldExtractor",
    "MockCalendarCreator",
]
