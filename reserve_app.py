"""Streamlit front-end for the household drug reserve.

Shows the visible drugs with their remaining stock, dosage and how many weeks
the stock lasts, colors rows that need replenishing, and offers forms to
replenish a drug or to take a number of days of dosage. Query parameters:
``columns`` picks a column profile from the config, ``hide-ui=1`` hides the
forms (for a wall display).
"""
# Standard library imports first
import logging
import os
import re
from datetime import datetime
from io import StringIO
from typing import Dict, List, Optional

# Third-party imports
import pandas as pd
import streamlit as st

# Local imports
from reserve_config import ColumnKind, ReserveConfig, load_config
from reserve_engine import DrugView, ReserveView, UrgencyClass, apply_action, build_view
from reserve_errors import PersistenceError, ReserveError
from reserve_fractions import format_decimal, format_fraction
from reserve_model import ReserveStore

logger = logging.getLogger(__name__)

URGENCY_COLORS = {
    UrgencyClass.OK: "",
    UrgencyClass.REPLENISH_SOON: "background-color: #fff3cd",
    UrgencyClass.REPLENISH_NOW: "background-color: #f8d7da",
}


@st.cache_resource
def get_config() -> ReserveConfig:
    return load_config()


@st.cache_resource
def get_store(data_path: str) -> ReserveStore:
    # One store per process; every session shares it and its lock.
    return ReserveStore.load(data_path)


def format_weeks(weeks: Optional[int]) -> str:
    return "" if weeks is None else str(weeks)


def column_cells(kind: ColumnKind, view: DrugView) -> Dict[str, str]:
    """Table cells contributed by one column kind for one drug."""
    drug = view.drug
    if kind is ColumnKind.OBVERSE_PHOTO:
        return {"obverse": drug.obverse_photo or ""}
    if kind is ColumnKind.REVERSE_PHOTO:
        return {"reverse": drug.reverse_photo or ""}
    if kind is ColumnKind.TRADE_NAME:
        return {"trade name": drug.trade_name}
    if kind is ColumnKind.COMPONENTS:
        return {"components": ", ".join(
            f"{c.generic_name} {format_fraction(c.amount)} {c.unit}" for c in drug.components
        )}
    if kind is ColumnKind.DESCRIPTION:
        return {"description": drug.description}
    if kind is ColumnKind.REMAINING:
        return {
            "remaining": format_fraction(drug.remaining),
            "weeks left": format_weeks(view.remaining_weeks),
        }
    if kind is ColumnKind.PRESCRIPTION:
        return {
            "per prescription": format_fraction(drug.prescription_units()),
            "weeks per prescription": format_weeks(view.weeks_per_prescription),
        }
    if kind is ColumnKind.DOSAGE:
        return {"dosage": " - ".join(format_fraction(d) for d in (
            drug.dosage_morning, drug.dosage_noon, drug.dosage_evening, drug.dosage_night
        ))}
    if kind is ColumnKind.REPLENISH:
        return {"#": str(view.index)}
    raise ValueError(f"unhandled column kind {kind!r}")


def view_rows(view: ReserveView) -> List[dict]:
    rows = []
    for dv in view.drugs_to_display:
        row: Dict[str, str] = {}
        for kind in view.profile_columns:
            row.update(column_cells(kind, dv))
        rows.append(row)
    return rows


def coerce_arrow_friendly_dataframe(rows: List[dict]) -> "pd.DataFrame":
    """Return a DataFrame whose columns Arrow can serialize.

    Cells are strings already (fractions are rendered before they get here);
    empty strings become NA and every column uses pandas' string dtype.
    """
    if not rows:
        return pd.DataFrame()

    df = pd.DataFrame(rows)
    for col in df.columns:
        df[col] = df[col].replace("", pd.NA).astype("string")
    return df


def style_by_urgency(df: "pd.DataFrame", views: List[DrugView]):
    colors = [URGENCY_COLORS[v.urgency] for v in views]
    return df.style.apply(lambda row: [colors[row.name]] * len(row), axis=1)


def format_csv(df: "pd.DataFrame", summary: Optional[dict] = None) -> str:
    """CSV text of the table, preceded by ``# key: value`` summary lines."""
    output = StringIO()
    if summary:
        for k, v in summary.items():
            output.write(f"# {k}: {v}\n")
        output.write("\n")
    if not df.empty:
        df.to_csv(output, index=False)
    return output.getvalue()


def slugify(value: str) -> str:
    """Simple filename-safe slugifier: keep alphanum and underscores."""
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9 _-]", "", value)
    value = re.sub(r"[\s-]+", "_", value)
    return value


def submit(store: ReserveStore, form: Dict[str, str], success: str) -> None:
    """Apply a form and rerun so the page shows the stored state."""
    try:
        apply_action(store, form)
    except PersistenceError as e:
        logger.exception("stock changed in memory but not saved")
        st.session_state["_flash"] = ("warning", f"Changed, but saving to disk failed: {e}")
        st.rerun()
    except ReserveError as e:
        st.error(str(e))
        return
    st.session_state["_flash"] = ("success", success)
    st.rerun()


def action_forms(store: ReserveStore, views: List[DrugView]) -> None:
    with st.sidebar:
        st.markdown("### Replenish")
        with st.form("replenish_form", clear_on_submit=True):
            choice = st.selectbox(
                "Drug",
                options=[v.index for v in views],
                format_func=lambda i: next(v.drug.trade_name for v in views if v.index == i),
            )
            amount = st.text_input("Amount (e.g. 30, 1/2, 2½, 7.5)")
            action = st.radio("Change", options=("Add", "Remove"), horizontal=True)
            if st.form_submit_button("Apply") and choice is not None:
                do = "replenish" if action == "Add" else "reduce"
                submit(store, {"do": do, "drug-index": str(choice), "amount": amount},
                       f"Updated stock by {amount}")

        st.markdown("### Take days")
        with st.form("take_days_form"):
            days = st.number_input("Days", min_value=1, max_value=365, value=1, step=1)
            if st.form_submit_button("Take days"):
                submit(store, {"do": "take-days", "days": str(int(days))}, f"Took {int(days)} day(s)")
        if st.button("Take one week"):
            submit(store, {"do": "take-week"}, "Took one week")


def main():
    logging.basicConfig(level=os.environ.get("RESERVE_LOG_LEVEL", "INFO"))
    st.set_page_config(page_title="Drug Reserve", layout="wide")

    try:
        config = get_config()
        store = get_store(config.data_path)
    except ReserveError as e:
        st.error(f"Unable to start: {e}")
        st.stop()

    profile = st.query_params.get("columns", "")
    hide_ui = st.query_params.get("hide-ui", "") == "1"
    view = build_view(store, config, profile=profile, hide_ui=hide_ui)

    if not hide_ui:
        st.title("Drug Reserve")
        flash = st.session_state.pop("_flash", None)
        if flash:
            level, message = flash
            getattr(st, level)(message)

    rows = view_rows(view)
    df = coerce_arrow_friendly_dataframe(rows)
    if df.empty:
        st.info("No drugs to display.")
    else:
        st.dataframe(style_by_urgency(df, view.drugs_to_display), hide_index=True, use_container_width=True)

    counts = view.pill_counts
    cols = st.columns(5)
    for col, (label, value) in zip(cols, (
        ("Morning", counts.morning), ("Noon", counts.noon), ("Evening", counts.evening),
        ("Night", counts.night), ("Per day", counts.total()),
    )):
        col.metric(label, format_fraction(value), help=format_decimal(value))

    if hide_ui:
        return

    st.caption(f"Highlighted rows last fewer than {view.min_weeks_per_prescription} weeks.")
    action_forms(store, view.drugs_to_display)

    summary = {
        "GeneratedAtUTC": datetime.utcnow().isoformat(),
        "PillsPerDay": format_fraction(counts.total()),
    }
    filename = f"{slugify('drug reserve ' + datetime.utcnow().strftime('%Y%m%dT%H%M%SZ'))}.csv"
    st.download_button("Download table CSV", data=format_csv(df, summary=summary),
                       file_name=filename, mime="text/csv")


if __name__ == "__main__":
    main()
