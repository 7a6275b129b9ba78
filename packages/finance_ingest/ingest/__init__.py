"""Heuristic ingestion: text extraction, statement/receipt parsers, artifact helpers."""
