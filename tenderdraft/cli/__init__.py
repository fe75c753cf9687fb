"""Command-line tools for tenderDraft.

- ``python -m tenderdraft.cli`` -- create corpora, ingest files, search and
  list the corpus (see :mod:`tenderdraft.cli.ingest`).
"""
