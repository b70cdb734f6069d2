import io
import os
from pathlib import Path

import pandas as pd
import streamlit as st

OUTPUT_DIR = os.environ.get("OUTPUT_DIR", "output")


def latest_batch_file(output_dir=OUTPUT_DIR):
    files = sorted(Path(output_dir).glob("fmcsa_batch_*.csv"), key=lambda p: p.stat().st_mtime)
    return files[-1] if files else None


# Load data
def load_data(path):
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return df


def filter_data(df, states=None, operation_types=None):
    filtered = df
    if states is not None and "state" in df.columns:
        filtered = filtered[filtered["state"].isin(states)]
    if operation_types is not None and "operation_type" in df.columns:
        filtered = filtered[filtered["operation_type"].isin(operation_types)]
    return filtered


def main():
    st.set_page_config(page_title="FMCSA Carrier Dashboard", layout="wide")
    st.title("FMCSA Carrier Dashboard")

    batch_files = sorted(Path(OUTPUT_DIR).glob("fmcsa_batch_*.csv"), reverse=True)
    if not batch_files:
        st.info(f"No batch CSV found in {OUTPUT_DIR}. Run the scraper first.")
        return
    default = latest_batch_file(OUTPUT_DIR)
    names = [p.name for p in batch_files]
    chosen = st.sidebar.selectbox("Batch file", names, index=names.index(default.name))
    df = load_data(Path(OUTPUT_DIR) / chosen)

    # --- Sidebar Filters ---
    st.sidebar.header("Filters")
    selected_states = None
    if "state" in df.columns:
        states = sorted(df["state"].unique())
        selected_states = st.sidebar.multiselect("State", states, default=states)
    selected_ops = None
    if "operation_type" in df.columns:
        ops = sorted(df["operation_type"].unique())
        selected_ops = st.sidebar.multiselect("Operation Type", ops, default=ops)

    filtered = filter_data(df, selected_states, selected_ops)

    # Always show data if present, even if filters are too restrictive
    if filtered.empty and not df.empty:
        st.warning("No carriers match the selected filters. Showing all carriers.")
        filtered = df.copy()

    st.write(f"Showing {len(filtered)} carriers")
    st.dataframe(filtered, use_container_width=True)

    with st.expander("Export Options", expanded=True):
        col1, col2 = st.columns([1, 1])
        with col1:
            csv = filtered.to_csv(index=False)
            st.download_button("Export CSV", csv, "carriers.csv", "text/csv")
        with col2:
            excel_buffer = io.BytesIO()
            filtered.to_excel(excel_buffer, index=False, engine='openpyxl')
            st.download_button("Export Excel", excel_buffer.getvalue(), "carriers.xlsx",
                               "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")

    st.caption("Reload this page after a new batch finishes to pick up the newest CSV.")


if __name__ == "__main__":
    main()
