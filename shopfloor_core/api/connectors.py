"""
External collaborators for job intake.
The field extractor reads a purchase order (text or photo) and returns the
raw model reply; the calendar creator books a due-date event for a job.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from shopfloor_core.data.models import Job


class FieldExtractor(ABC):
    """Abstract base class for purchase-order field extractors"""

    @abstractmethod
    def extract_from_text(self, text: str) -> str:
        """
        Extract job fields from pasted text

        Returns:
            Raw reply, expected to contain a JSON object

        Raises:
            ExtractionError: the extractor could not produce a reply
        """
        pass

    @abstractmethod
    def extract_from_image(self, image: bytes, mime_type: str = "image/jpeg") -> str:
        """Extract job fields from a photographed purchase order"""
        pass


class CalendarEventCreator(ABC):
    """Abstract base class for due-date calendar integrations"""

    @abstractmethod
    def create_event(self, job: Job) -> bool:
        """
        Add the job's due date to a calendar

        Returns:
            True if an event was created
        """
        pass


class MockFieldExtractor(FieldExtractor):
    """Mock extractor for testing; replies with a fixed payload"""

    def __init__(self, reply: str = "{}", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.requests: List[str] = []

    def extract_from_text(self, text: str) -> str:
        self.requests.append(text)
        if self.error:
            raise self.error
        return self.reply

    def extract_from_image(self, image: bytes, mime_type: str = "image/jpeg") -> str:
        self.requests.append(mime_type)
        if self.error:
            raise self.error
        return self.reply


class MockCalendarCreator(CalendarEventCreator):
    """Mock calendar for testing; records the jobs it was asked to book"""

    def __init__(self, succeed: bool = True, error: Optional[Exception] = None):
        self.succeed = succeed
        self.error = error
        self.events: List[Job] = []

    def create_event(self, job: Job) -> bool:
        if self.error:
            raise self.error
        self.events.append(job)
        return self.succeed
