from abc import ABC, abstractmethod
from typing import Any


class SettingsProviderPort(ABC):
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def reload(self) -> None:
        """Drop any cached values so the next read sees the current source."""
        raise NotImplementedError
