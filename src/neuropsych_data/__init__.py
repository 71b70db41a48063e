"""
Neuropsych score ingestion and query toolkit.

Typical use:

    from neuropsych_data import load_data, query

    load_data("data/csv", "data", output_format="all")
    query("SELECT scale, z FROM neurocog ORDER BY z", "data")
"""
from neuropsych_data.core.pipeline import IngestResult, load_data
from neuropsych_data.core.query_engine import query

__all__ = ["IngestResult", "load_data", "query"]
