from abc import ABC, abstractmethod

from scout.models import Job, SearchCriteria


class JobSource(ABC):
    @abstractmethod
    def generate(self, criteria: SearchCriteria) -> Job:
        pass
