"""Ingestion layer.

This package turns route documents into ordered, enriched track points:
:mod:`~pygpxreplay.ingestion.gpx` parses, :mod:`~pygpxreplay.ingestion.enrich`
derives heading/speed.
"""

__all__: list[str] = []
