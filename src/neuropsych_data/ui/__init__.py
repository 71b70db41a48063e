"""
Streamlit developer app over the ingestion pipeline and query engine.
"""
