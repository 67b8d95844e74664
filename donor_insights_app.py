"""Streamlit dashboard for donor contribution imports and analytics."""

from __future__ import annotations

import json
from datetime import date

import pandas as pd
import streamlit as st

from donor_insights import (
    DonorStore,
    ImportOptions,
    analyze_donors,
    compare_periods,
    correlate,
    donor_display_name,
    filter_donations_by_period,
    format_currency,
    month_bounds,
    read_indicator_csv,
)
from donor_insights.analytics import shift_month
from donor_insights.models import AnalysisResult, Donor


FREQUENCY_FILTERS = ["All", "frequent", "regular", "occasional", "one-time"]
SORT_OPTIONS = {
    "Total Given": "total_amount",
    "Gift Count": "donation_count",
    "Average Gift": "average_donation",
    "Last Gift": "last_donation",
    "Name": "name",
}
TREND_ICONS = {"up": "Rising", "down": "Falling", "stable": "Stable"}


def _store() -> DonorStore:
    if "donor_store" not in st.session_state:
        st.session_state.donor_store = DonorStore()
    return st.session_state.donor_store


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
          .insights-hero {
            background: linear-gradient(124deg, #032d60, #0176d3);
            border-radius: 18px;
            color: #ffffff;
            padding: 1.2rem 1.25rem;
            margin-bottom: 1rem;
          }

          .insights-hero h1,
          .insights-hero p {
            color: #ffffff;
            margin: 0;
          }

          .metric-card {
            background: #ffffff;
            border: 1px solid #c9c7c5;
            border-radius: 14px;
            padding: 0.8rem 0.95rem;
          }

          .metric-label {
            font-size: 0.8rem;
            margin: 0;
            text-transform: uppercase;
          }

          .metric-value {
            font-size: 1.45rem;
            font-weight: 700;
            margin: 0.2rem 0;
          }

          .metric-sub,
          .section-note {
            color: #3e3e3c;
            font-size: 0.85rem;
            margin: 0;
          }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_metric_card(title: str, value: str, subtitle: str) -> None:
    st.markdown(
        f"""
        <div class="metric-card">
          <p class="metric-label">{title}</p>
          <p class="metric-value">{value}</p>
          <p class="metric-sub">{subtitle}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _hero() -> None:
    st.markdown(
        """
        <div class="insights-hero">
          <h1>Donor Insights</h1>
          <p>Import contribution exports, then review trends, retention, forecasts, and economic context.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _table_or_info(frame: pd.DataFrame, empty_message: str) -> None:
    if frame.empty:
        st.info(empty_message)
        return
    st.dataframe(frame, use_container_width=True, hide_index=True)


def _directory_frame(donors: list[Donor]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Donor": donor_display_name(donor),
                "Email": donor.email or "-",
                "Phone": donor.phone or "-",
                "Total Given": format_currency(donor.total_amount),
                "Gifts": donor.donation_count,
                "Average Gift": format_currency(donor.average_donation),
                "First Gift": donor.first_donation.isoformat() if donor.first_donation else "-",
                "Last Gift": donor.last_donation.isoformat() if donor.last_donation else "-",
                "Frequency": donor.frequency,
            }
            for donor in donors
        ]
    )


def render_import_panel() -> None:
    store = _store()
    st.markdown("### Import Donations")
    st.markdown(
        "<p class='section-note'>New files are merged into the donors already loaded, matched by name.</p>",
        unsafe_allow_html=True,
    )

    uploaded_file = st.file_uploader(
        "Donation export",
        type=["csv"],
        help="Any CSV with donor name, amount, and date or month columns.",
        key="donation-upload",
    )
    date_undated = st.checkbox(
        "Date rows without a date as today",
        value=False,
        help="Off by default: rows without a date or month are skipped.",
    )

    left, right = st.columns([1, 1])
    with left:
        if st.button("Import File", use_container_width=True, disabled=uploaded_file is None):
            options = ImportOptions(undated_rows="today" if date_undated else "reject")
            result = store.import_file(uploaded_file, options)
            if result.success:
                st.success(
                    f"Imported {result.records_processed} of {result.rows_read} rows: "
                    f"{result.donors_created} new donors, {result.donors_updated} updated."
                )
                if result.rows_skipped:
                    st.warning(f"{result.rows_skipped} rows were skipped (missing name, amount, or date).")
            else:
                st.error(f"Upload failed: {result.error}")
    with right:
        if st.button("Clear Loaded Data", use_container_width=True, disabled=len(store) == 0):
            store.clear()
            st.rerun()


def render_overview(analysis: AnalysisResult) -> None:
    metric_columns = st.columns(4)
    with metric_columns[0]:
        _render_metric_card("Donors", str(analysis.total_donors), "Unique names")
    with metric_columns[1]:
        _render_metric_card(
            "Total Raised",
            format_currency(analysis.total_amount),
            f"{analysis.donation_count} gifts",
        )
    with metric_columns[2]:
        _render_metric_card("Average Gift", format_currency(analysis.average_donation), "Across all gifts")
    with metric_columns[3]:
        retention = analysis.donor_retention
        _render_metric_card(
            "Retention",
            f"{retention.retention_rate:.0%}",
            "Month over month" if retention.method == "cohort" else "Estimated from gift frequency",
        )

    st.markdown("#### Donations by Month")
    trends_df = pd.DataFrame([trend.to_dict() for trend in analysis.monthly_trends])
    if trends_df.empty:
        st.info("No donation records yet. Import a file to populate trends.")
    else:
        trends_df["month_start"] = pd.to_datetime(
            trends_df[["year", "month_number"]].rename(columns={"month_number": "month"}).assign(day=1)
        )
        st.bar_chart(trends_df.set_index("month_start")["amount"], color="#0176D3")

    st.markdown("#### Top Donors")
    _table_or_info(_directory_frame(analysis.top_donors), "No donors loaded.")


def render_retention_and_forecast(analysis: AnalysisResult) -> None:
    retention = analysis.donor_retention
    forecast = analysis.forecast

    left, right = st.columns(2, gap="large")
    with left:
        st.markdown("#### Retention")
        if retention.method == "frequency":
            st.caption(
                "The latest two months do not both have donors, so these figures are "
                "estimated from gift frequency and are not true cohort retention."
            )
        st.metric("New Donors", retention.new_donors)
        st.metric("Returning Donors", retention.returning_donors)
        st.metric("Retention Rate", f"{retention.retention_rate:.1%}")
        st.metric("Churn Rate", f"{retention.churn_rate:.1%}")

    with right:
        st.markdown("#### Forecast")
        if len(analysis.monthly_trends) < 3:
            st.info("At least three months of donations are needed for a forecast.")
        st.metric("Next Month", format_currency(forecast.next_month.predicted_amount))
        st.metric("Next Quarter (monthly average)", format_currency(forecast.next_quarter.predicted_amount))
        st.metric("Confidence", f"{forecast.next_month.confidence:.0%}")
        st.metric("Trend", TREND_ICONS.get(forecast.trend_direction, forecast.trend_direction))


def render_directory() -> None:
    store = _store()
    st.markdown("#### All Donors")
    controls = st.columns([2, 1, 1, 1])
    with controls[0]:
        search_term = st.text_input("Search", placeholder="Name or email", key="directory-search")
    with controls[1]:
        frequency = st.selectbox("Frequency", FREQUENCY_FILTERS, key="directory-frequency")
    with controls[2]:
        sort_label = st.selectbox("Sort By", list(SORT_OPTIONS), key="directory-sort")
    with controls[3]:
        descending = st.radio("Order", ["Descending", "Ascending"], key="directory-order") == "Descending"

    donors = store.list_donors(
        search_term=search_term,
        smart_search=st.toggle("Smart search (nicknames, typos)", value=False),
        frequency=None if frequency == "All" else frequency,
        sort_by=SORT_OPTIONS[sort_label],
        descending=descending,
    )
    st.caption(
        f"Showing {len(donors)} of {len(store)} donors. "
        f"Total: {format_currency(sum(donor.total_amount for donor in donors))}"
    )
    _table_or_info(_directory_frame(donors), "No donors match the current filters.")


def render_correlation(analysis: AnalysisResult) -> None:
    st.markdown("#### Economic Correlation")
    st.markdown(
        "<p class='section-note'>Upload a CSV with <code>date</code> and <code>value</code> columns "
        "for an indicator such as consumer sentiment or unemployment.</p>",
        unsafe_allow_html=True,
    )
    indicator_file = st.file_uploader("Indicator series", type=["csv"], key="indicator-upload")
    if indicator_file is None:
        return

    try:
        indicator = read_indicator_csv(indicator_file)
    except ValueError as exc:
        st.error(f"Could not read indicator: {exc}")
        return

    st.caption(
        f"{indicator.name}: current value {indicator.current_value:,.2f}, trend {indicator.trend}"
    )
    result = correlate(analysis.monthly_trends, indicator)
    if result is None:
        st.info("Fewer than three months overlap with the donation history; no correlation available.")
        return

    metric_columns = st.columns(4)
    metric_columns[0].metric("Coefficient", f"{result.coefficient:.3f}")
    metric_columns[1].metric("Strength", result.strength)
    metric_columns[2].metric("Direction", result.direction)
    metric_columns[3].metric("Significance (approx.)", result.significance)

    aligned_df = pd.DataFrame(
        [
            {
                "Month": f"{point.year}-{point.month:02d}",
                "Donations": point.donation_amount,
                indicator.name: point.economic_value,
            }
            for point in result.aligned
        ]
    ).set_index("Month")
    st.line_chart(aligned_df)


def render_period_comparison() -> None:
    store = _store()
    st.markdown("#### Month over Month")
    latest = max((donor.last_donation for donor in store.donors if donor.last_donation), default=None)
    if latest is None:
        st.info("Import donations to compare periods.")
        return

    current = month_bounds(latest)
    previous_year, previous_month = shift_month(latest.year, latest.month, 1)
    previous = month_bounds(date(previous_year, previous_month, 1))

    comparison = compare_periods(
        filter_donations_by_period(store.donors, previous.start, previous.end),
        filter_donations_by_period(store.donors, current.start, current.end),
    )
    metric_columns = st.columns(3)
    metric_columns[0].metric(
        "Donors",
        comparison.second.total_donors,
        f"{comparison.donor_growth:+.0%}",
    )
    metric_columns[1].metric(
        "Raised",
        format_currency(comparison.second.total_amount),
        f"{comparison.amount_growth:+.0%}",
    )
    metric_columns[2].metric(
        "Average Gift",
        format_currency(comparison.second.average_donation),
        f"{comparison.average_donation_growth:+.0%}",
    )


def main() -> None:
    st.set_page_config(
        page_title="Donor Insights",
        page_icon=":bar_chart:",
        layout="wide",
    )
    _inject_styles()
    _hero()

    with st.sidebar:
        render_import_panel()

    analysis = analyze_donors(_store().donors)

    tabs = st.tabs(["Overview", "Retention & Forecast", "Donors", "Economic Context"])
    with tabs[0]:
        render_overview(analysis)
        render_period_comparison()
        st.download_button(
            "Download Analysis (JSON)",
            data=json.dumps(analysis.to_dict(), indent=2),
            file_name="donor_analysis.json",
            mime="application/json",
        )
    with tabs[1]:
        render_retention_and_forecast(analysis)
    with tabs[2]:
        render_directory()
    with tabs[3]:
        render_correlation(analysis)


if __name__ == "__main__":
    main()
