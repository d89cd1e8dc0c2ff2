"""
Speaker Role Classifier Interface
"""
from abc import ABC, abstractmethod
from typing import Dict, List


class SpeakerRoleClassifier(ABC):
    """Picks which anonymous speaker tag behaves like the technician"""

    @abstractmethod
    async def classify(self, samples: Dict[str, List[str]]) -> str:
        """
        Args:
            samples: Sample utterances keyed by speaker tag

        Returns:
            str: The tag of the technician
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass
