from __future__ import annotations

import logging
import time
import traceback
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st

from neuropsych_data.config import (
    APP_NAME,
    APP_VERSION,
    DATASET_NAMES,
    FILE_PATTERN,
    INPUT_DIR,
    LOG_LEVEL,
    OUTPUT_DIR,
    OUTPUT_FORMAT,
    SCORE_LOOKUP_PATH,
)
from neuropsych_data.core.audit import DomainStatsIndex, summarize_domains
from neuropsych_data.core.classifier import ScoreClassifier
from neuropsych_data.core.errors import InputError, PersistenceError, QueryError, ValidationError
from neuropsych_data.core.lookup import ScoreTypeLookup, load_score_type_lookup
from neuropsych_data.core.pipeline import load_data
from neuropsych_data.core.query_engine import (
    discover_artifacts,
    get_example_queries,
    query,
)
from neuropsych_data.core.writer import OutputFormat

logger = logging.getLogger(__name__)

FORMAT_OPTIONS = [f.value for f in OutputFormat]


def _get_lookup() -> ScoreTypeLookup:
    if SCORE_LOOKUP_PATH:
        try:
            return load_score_type_lookup(SCORE_LOOKUP_PATH)
        except (FileNotFoundError, ValueError) as exc:
            st.warning(f"Score-type lookup not loaded ({exc}); using built-in mappings.")
    return ScoreTypeLookup.default()


def _render_score_types(df: pd.DataFrame, lookup: ScoreTypeLookup) -> None:
    if df.empty:
        return
    classifier = ScoreClassifier(lookup)
    score_types = sorted({t for t in (classifier.score_type_for(r) for _, r in df.iterrows()) if t})
    for text in lookup.get_footnotes(score_types).values():
        st.caption(text)


def _render_ingestion() -> None:
    with st.expander("Ingest score files", expanded=True):
        col1, col2 = st.columns(2)
        with col1:
            input_dir = st.text_input("Score file directory:", value=str(INPUT_DIR))
            pattern = st.text_input("File pattern:", value=FILE_PATTERN)
        with col2:
            output_dir = st.text_input("Output directory:", value=str(OUTPUT_DIR))
            default_fmt = OUTPUT_FORMAT if OUTPUT_FORMAT in FORMAT_OPTIONS else "csv"
            fmt = st.selectbox("Output format", options=FORMAT_OPTIONS, index=FORMAT_OPTIONS.index(default_fmt))
            dry_run = st.checkbox("Process only (do not write files)", value=False)

        if st.button("Run ingestion", key="run_ingestion_btn"):
            status = st.status("Processing score files…", expanded=True)
            t0 = time.perf_counter()
            lookup = _get_lookup()
            try:
                result = load_data(
                    input_dir,
                    output_dir=output_dir,
                    output_format=fmt,
                    return_data=dry_run,
                    lookup=lookup,
                    pattern=pattern,
                )
            except (InputError, ValidationError, PersistenceError) as err:
                status.update(label="Ingestion failed.", state="error")
                st.error(f"Ingestion failed: {err}")
                st.text_area("Traceback", value=traceback.format_exc(), height=240)
                return
            except Exception as e:
                status.update(label="Unexpected error.", state="error")
                st.error("Unexpected error while processing score files.")
                st.code(repr(e))
                st.text_area("Traceback", value=traceback.format_exc(), height=240)
                return

            status.write(f"Reconciled columns: {list(result.schema.columns)}")
            status.write(f"Source files: {len(result.schema.sources)}")
            coerced = {k: v for k, v in result.coerced_counts.items() if v}
            if coerced:
                status.write(f"Non-numeric cells set to null: {coerced}")
            for art in result.artifacts:
                status.write(f"[OK] {art.dataset} → {art.path} ({art.format}, {art.writer}, {art.rows} rows)")
            status.update(label=f"Done in {time.perf_counter() - t0:0.2f}s.", state="complete")

            for name in DATASET_NAMES:
                df = result.datasets.get(name, pd.DataFrame())
                st.write(f"**{name}** — {len(df)} row(s)")
                st.dataframe(df, use_container_width=True)
                if name == "neurocog":
                    _render_score_types(df, lookup)

            st.write("Domain summary:")
            st.dataframe(summarize_domains(result.datasets, by_stream=True), use_container_width=True)
            st.session_state["stats_index"] = DomainStatsIndex.from_dataset(
                result.datasets.get("neurocog", pd.DataFrame())
            )


def _render_domain_stats() -> None:
    index: Optional[DomainStatsIndex] = st.session_state.get("stats_index")
    if index is None or not index.domains():
        return
    with st.expander("Domain statistics (neurocog)", expanded=False):
        domain = st.selectbox("Domain", options=index.domains())
        key = st.selectbox("Grouping key", options=["subdomain", "narrow", "pass", "verbal", "timed", "domain"])
        facts = index.get(domain, key)
        if not facts:
            st.write("No statistics for this combination.")
            return
        st.dataframe(pd.DataFrame([f.__dict__ for f in facts]), use_container_width=True)


def _render_query_tester() -> None:
    with st.expander("Query persisted datasets (developer view)", expanded=True):
        data_dir = st.text_input("Data directory:", value=str(OUTPUT_DIR), key="query_data_dir")

        try:
            artifacts = discover_artifacts(data_dir)
            st.write(f"Relations: {', '.join(f'{n} ({p.suffix})' for n, p in sorted(artifacts.items())) or '(none)'}")
        except InputError as err:
            st.warning(str(err))

        examples = get_example_queries()
        choice = st.selectbox("Example query", options=["(custom)"] + sorted(examples))
        default_sql = examples.get(choice, "SELECT * FROM neuropsych LIMIT 20").strip()
        sql = st.text_area("SQL", value=default_sql, height=200)

        if st.button("Run query", key="run_query_btn"):
            t0 = time.perf_counter()
            try:
                df = query(sql, Path(data_dir))
            except (QueryError, InputError) as err:
                st.error(f"Query failed: {err}")
                return
            st.success(f"{len(df)} row(s) in {time.perf_counter() - t0:0.2f}s")
            st.dataframe(df, use_container_width=True)


def run_app() -> None:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    st.set_page_config(page_title=APP_NAME, page_icon="🧠", layout="wide")
    st.title(APP_NAME)
    st.caption(f"Prototype version {APP_VERSION}")

    _render_ingestion()
    _render_domain_stats()
    _render_query_tester()
