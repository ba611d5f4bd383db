"""Job scout: mock job ingestion, enrichment and AI fit analysis."""

__version__ = "0.1.0"
