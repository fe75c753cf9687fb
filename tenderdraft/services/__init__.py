"""Business logic services: ingestion, retrieval, corpus and project management and drafting."""
