"""tenderDraft: reference-corpus ingestion, retrieval and answer drafting for tender responses."""

__version__ = "0.1.0"
