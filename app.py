"""Order Attribution Matrix - Streamlit dashboard."""

import datetime

import streamlit as st

from attribution.excel_exporter import AttributionWorkbookWriter
from attribution.ingestion import read_report_buffer
from attribution.logger import LOG_FILE, get_logger
from attribution.pipeline import AttributionSession
from attribution.visuals import render_dashboard

logger = get_logger(__name__)

st.set_page_config(
    page_title="Order Attribution Matrix",
    layout="wide",
)

# Initialize session state
if "session" not in st.session_state:
    st.session_state.session = AttributionSession()
if "processing_log" not in st.session_state:
    st.session_state.processing_log = []
if "uploader_key" not in st.session_state:
    st.session_state.uploader_key = 0

session: AttributionSession = st.session_state.session


def log_ingestion(files: list[str], failed: list[str], rows: int) -> None:
    st.session_state.processing_log.append(
        {
            "timestamp": datetime.datetime.now().isoformat(),
            "files": list(files),
            "failed": list(failed),
            "rows": rows,
        }
    )


def reset_session() -> None:
    session.reset()
    st.session_state.uploader_key += 1


# --- Sidebar: Data Source ---

st.sidebar.header("Attribution Reports")

uploaded = st.sidebar.file_uploader(
    "Upload CSV reports",
    type=["csv"],
    accept_multiple_files=True,
    key=f"uploader-{st.session_state.uploader_key}",
)
if uploaded and st.sidebar.button("Load into session", type="primary", use_container_width=True):
    sources = [read_report_buffer(f.name, f.getvalue()) for f in uploaded]
    rows = session.upload(sources)
    log_ingestion(session.store.source_names, session.store.failed_sources, rows)
    if rows:
        st.sidebar.success(f"Loaded {rows:,} rows from {len(session.store.source_names)} report(s).")
    else:
        st.sidebar.error("No rows could be loaded from the selected files.")

if session.is_loaded:
    st.sidebar.caption(f"{session.store.files_uploaded} report(s) ready")
    st.sidebar.button("Clear all data", on_click=reset_session, use_container_width=True)

    workbook = AttributionWorkbookWriter().to_bytes(session.views, session.store.source_names)
    st.sidebar.download_button(
        "Download Excel workbook",
        data=workbook,
        file_name=f"attribution_{datetime.datetime.now():%Y%m%d_%H%M%S}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        use_container_width=True,
    )

# Debug Mode section
st.sidebar.divider()
if st.sidebar.checkbox("Enable Verbose Debugging", value=False):
    with st.sidebar.expander("Debug Log", expanded=True):
        if LOG_FILE.exists():
            try:
                lines = LOG_FILE.read_text(encoding="utf-8").splitlines()[-50:]
                if lines:
                    st.code("\n".join(lines), language="text")
                else:
                    st.info("Debug log is empty.")
            except OSError as e:
                st.error(f"Error reading debug log: {e}")
        else:
            st.info("Debug log file not found.")

# --- Main area ---

st.title("Order Attribution Matrix")

if session.is_loaded:
    render_dashboard(session)
else:
    st.info(
        "Upload one or more order attribution CSV exports in the sidebar.\n\n"
        "The dashboard will:\n"
        "1. Combine the rows of every report\n"
        "2. Pivot orders and units by content, creator and product\n"
        "3. Let you filter every view by SKU and search by id"
    )

# Processing log
if st.session_state.processing_log:
    with st.expander("Processing log"):
        for entry in reversed(st.session_state.processing_log):
            st.json(entry)
