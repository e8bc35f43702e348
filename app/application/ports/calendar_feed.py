from abc import ABC, abstractmethod


class CalendarFeedPort(ABC):
    @abstractmethod
    def fetch(self) -> str:
        """Return the raw calendar feed text. Raises CalendarFeedError on failure."""
        raise NotImplementedError
