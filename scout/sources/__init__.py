from .base import JobSource
from .mock import MockSource, generate_mock_job

from scout.log import get_logger

log = get_logger(__name__)

__all__ = ["JobSource", "MockSource", "generate_mock_job", "get_source"]


def get_source(rng=None) -> JobSource:
    # Synthetic listings only
    log.debug("Using MockSource")
    return MockSource(rng=rng)
