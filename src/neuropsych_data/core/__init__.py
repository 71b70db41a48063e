"""
Core data layer.

This package contains:
- data_loader: discover score exports and reconcile them into one union schema
- classifier: deduplicate and split records into neuropsych/neurocog/neurobehav/validity
- lookup: immutable score-type mappings and footnotes
- zscore: percentile -> z conversion
- aggregation: grouped z mean/SD attached to each row
- writer: csv/parquet/feather persistence with per-format fallbacks
- query_engine: SQL over persisted datasets, whatever their format
- audit: per-domain statistics consumed by the report layer
- pipeline: one ingestion run end to end
"""
