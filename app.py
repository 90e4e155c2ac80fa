"""
Captain Performance Dashboard — Interactive Dashboard

Run with:  streamlit run app.py
"""

import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from captain_dashboard.config import (
    ALL,
    DASHBOARD_TITLE,
    DEFAULT_RISK_CONFIG,
    DEFAULT_SCORING_SCHEME,
    DEFAULT_TARGET_COUNT,
    RISK_FACTORS,
    SCORING_SCHEMES,
    TOP_PERFORMER_CRITERIA,
)
from captain_dashboard.dashboard import (
    company_distribution,
    compute_captain_stats,
    compute_global_kpis,
    compute_time_series,
    get_captain_analysis,
    get_driver_management_overview,
    high_failure_captains,
    package_performance,
    select_at_risk_drivers,
    select_top_drivers,
    success_rate_distribution,
    top_captains_by_volume,
)
from captain_dashboard.export import (
    export_at_risk_csv,
    export_captain_stats_csv,
    export_top_drivers_csv,
)
from captain_dashboard.filters import filter_options
from captain_dashboard.loaders import load_shipments
from captain_dashboard.scoring import sort_leaderboard
from captain_dashboard.simulator import generate_shipments

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title=DASHBOARD_TITLE,
    page_icon="🚚",
    layout="wide",
    initial_sidebar_state="expanded",
)

BAND_COLORS = {
    "Excellent": "#2ecc71",
    "Good": "#f39c12",
    "Needs Improvement": "#e74c3c",
}

LEADERBOARD_FIELDS = {
    "Captain": "captain",
    "Total Shipments": "total_shipments",
    "Delivered": "delivered",
    "Failed": "failed",
    "Success Rate": "success_rate",
    "Failure Rate": "failure_rate",
    "Cost per Delivered": "cost_per_delivered",
    "Companies Served": "companies_served",
}


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------
@st.cache_data
def load_sample_data() -> pd.DataFrame:
    return generate_shipments()


def current_records() -> pd.DataFrame:
    result = st.session_state.get("load_result")
    if result is not None and result.ok:
        return result.records
    return load_sample_data()


# ---------------------------------------------------------------------------
# Sidebar: upload
# ---------------------------------------------------------------------------
st.sidebar.title(DASHBOARD_TITLE)
st.sidebar.markdown("Delivery captain analytics")
st.sidebar.divider()

uploaded = st.sidebar.file_uploader("Upload shipments", type=["xlsx", "xlsm", "csv"])
if uploaded is not None and st.session_state.get("upload_name") != uploaded.name:
    try:
        result = load_shipments(uploaded, name=uploaded.name)
    except Exception as e:
        st.sidebar.error(f"Could not read {uploaded.name}: {e}")
    else:
        # A new upload replaces the previous dataset
        st.session_state["load_result"] = result
        st.session_state["upload_name"] = uploaded.name
        if result.ok:
            st.sidebar.success(result.message)
        else:
            st.sidebar.warning(result.message)

if st.session_state.get("load_result") is not None:
    if st.sidebar.button("Reset to sample data"):
        st.session_state.pop("load_result", None)
        st.session_state.pop("upload_name", None)
        st.rerun()
else:
    st.sidebar.caption("Showing sample data")

records = current_records()
as_of = records["date"].max() if not records.empty else pd.Timestamp.today().normalize()

# ---------------------------------------------------------------------------
# Sidebar: filters
# ---------------------------------------------------------------------------
st.sidebar.divider()
options = filter_options(records)
company = st.sidebar.selectbox("Company", [ALL] + options["companies"])
captain_filter = st.sidebar.selectbox("Captain", [ALL] + options["captains"])
package_code = st.sidebar.selectbox("Package Code", [ALL] + options["package_codes"])
date_range = st.sidebar.date_input("Date range", value=())

filters = {"company": company, "captain": captain_filter, "package_code": package_code}
if len(date_range) >= 1:
    filters["date_from"] = date_range[0]
if len(date_range) == 2:
    filters["date_to"] = date_range[1]

st.sidebar.divider()
page = st.sidebar.radio("Navigate", ["Overview", "Captain Analysis", "Driver Management"])


# ---------------------------------------------------------------------------
# Helper: band-coloured cell
# ---------------------------------------------------------------------------
def color_band(val):
    color = BAND_COLORS.get(val, "#95a5a6")
    return f"background-color: {color}22; color: {color}"


# ===========================================================================
# PAGE: Overview
# ===========================================================================
if page == "Overview":
    st.title("Overview")

    kpis = compute_global_kpis(records, filters)
    cols = st.columns(4)
    cols[0].metric("Total Shipments", f"{kpis['total_shipments']:,}")
    cols[1].metric("Success Rate", f"{kpis['success_rate']:.1f}%")
    cols[2].metric("Failure Rate", f"{kpis['failure_rate']:.1f}%")
    cols[3].metric("Avg Cost / Delivered", f"{kpis['avg_cost_per_delivered']:,.2f}")

    cols = st.columns(4)
    cols[0].metric("Delivered", f"{kpis['total_delivered']:,}")
    cols[1].metric("Failed", f"{kpis['total_failed']:,}")
    cols[2].metric("Captains", kpis["captains"])
    cols[3].metric("Companies", kpis["companies_served"])

    st.divider()

    stats = compute_captain_stats(records, filters)
    if stats.empty:
        st.warning("No shipments match the selected filters.")
    else:
        col1, col2 = st.columns(2)

        with col1:
            top = top_captains_by_volume(stats)
            fig = go.Figure(go.Bar(
                x=top["total_shipments"],
                y=top["captain"],
                orientation="h",
                marker_color="#3498db",
            ))
            fig.update_layout(
                title="Top Captains by Volume",
                height=400,
                yaxis=dict(autorange="reversed"),
                plot_bgcolor="rgba(0,0,0,0)",
            )
            st.plotly_chart(fig, use_container_width=True)

        with col2:
            worst = high_failure_captains(stats)
            fig = go.Figure(go.Bar(
                x=worst["captain"],
                y=worst["failure_rate"],
                marker_color="#e74c3c",
            ))
            fig.update_layout(
                title="Highest Failure Rates (min 200 shipments)",
                yaxis_title="Failure rate %",
                height=400,
                plot_bgcolor="rgba(0,0,0,0)",
            )
            st.plotly_chart(fig, use_container_width=True)

        col1, col2 = st.columns(2)

        with col1:
            dist = success_rate_distribution(stats)
            fig = px.pie(dist, names="range", values="count", title="Success Rate Distribution")
            st.plotly_chart(fig, use_container_width=True)

        with col2:
            granularity = st.radio("Trend", ["week", "month"], horizontal=True)
            trend = compute_time_series(records, filters, granularity)
            fig = go.Figure()
            fig.add_trace(go.Bar(x=trend["label"], y=trend["delivered"], name="Delivered", marker_color="#2ecc71"))
            fig.add_trace(go.Bar(x=trend["label"], y=trend["failed"], name="Failed", marker_color="#e74c3c"))
            fig.update_layout(
                title="Shipments Over Time",
                barmode="stack",
                height=400,
                plot_bgcolor="rgba(0,0,0,0)",
            )
            st.plotly_chart(fig, use_container_width=True)

        st.subheader("Captain Leaderboard")
        col1, col2 = st.columns([3, 1])
        sort_label = col1.selectbox("Sort by", list(LEADERBOARD_FIELDS), index=1)
        descending = col2.toggle("Descending", value=True)
        board = sort_leaderboard(stats, LEADERBOARD_FIELDS[sort_label], ascending=not descending)
        st.dataframe(board, use_container_width=True, hide_index=True)
        st.download_button(
            "Download leaderboard",
            export_captain_stats_csv(board),
            file_name="captain-stats.csv",
            mime="text/csv",
        )


# ===========================================================================
# PAGE: Captain Analysis
# ===========================================================================
elif page == "Captain Analysis":
    st.title("Captain Analysis")

    if not options["captains"]:
        st.warning("No captains in the current dataset.")
    else:
        default = options["captains"].index(captain_filter) if captain_filter in options["captains"] else 0
        captain = st.selectbox("Captain", options["captains"], index=default)
        analysis = get_captain_analysis(records, captain, filters, as_of=as_of)
        k = analysis["kpis"]
        rank = analysis["rank"]

        if not analysis["found"]:
            st.info(f"No shipments for {captain} match the selected filters.")

        cols = st.columns(4)
        cols[0].metric("Total Shipments", f"{k['total_shipments']:,}")
        cols[1].metric(
            "Success Rate",
            f"{k['success_rate']:.1f}%",
            delta=f"{k['success_rate'] - analysis['overall']['success_rate']:+.1f} vs overall",
        )
        cols[2].metric("Last 30 Days", f"{k['monthly_success_rate']:.1f}%")
        cols[3].metric("Last 7 Days", f"{k['weekly_success_rate']:.1f}%")
        st.caption(f"Driver rank: **{rank['rank'] or '-'}** of {rank['total_drivers']}")

        col1, col2 = st.columns(2)

        with col1:
            monthly = analysis["monthly_trend"]
            fig = go.Figure()
            fig.add_trace(go.Scatter(
                x=monthly["label"], y=monthly["success_rate"],
                name="Success rate", mode="lines+markers",
                line=dict(color="#3498db", width=2),
            ))
            fig.add_hline(
                y=analysis["overall"]["success_rate"],
                line_dash="dash", line_color="#888",
                annotation_text="Overall",
            )
            fig.update_layout(title="Monthly Success Rate", yaxis_title="%", height=350, plot_bgcolor="rgba(0,0,0,0)")
            st.plotly_chart(fig, use_container_width=True)

        with col2:
            weekly = analysis["weekly_trend"]
            fig = go.Figure(go.Bar(x=weekly["label"], y=weekly["shipments"], marker_color="#3498db"))
            fig.update_layout(title="Weekly Shipments", height=350, plot_bgcolor="rgba(0,0,0,0)")
            st.plotly_chart(fig, use_container_width=True)

        col1, col2 = st.columns(2)

        with col1:
            companies = analysis["company_distribution"]
            if not companies.empty:
                fig = px.pie(companies, names="company", values="shipments", title="Company Distribution")
                st.plotly_chart(fig, use_container_width=True)

        with col2:
            st.markdown("**Package Performance**")
            packages = analysis["package_performance"]
            st.dataframe(packages.style.map(color_band, subset=["band"]), use_container_width=True, hide_index=True)


# ===========================================================================
# PAGE: Driver Management
# ===========================================================================
elif page == "Driver Management":
    st.title("Driver Management")

    stats = compute_captain_stats(records, filters)
    overview = get_driver_management_overview(stats)
    cols = st.columns(5)
    cols[0].metric("Total Drivers", overview["total_drivers"])
    cols[1].metric("90%+ Success", overview["excellent"])
    cols[2].metric("80-89% Success", overview["good"])
    cols[3].metric("Below 80%", overview["needs_attention"])
    cols[4].metric("No Shipments", overview["inactive"])

    tab1, tab2, tab3 = st.tabs(["Top Performers", "Underperforming", "Selection Criteria"])

    with tab1:
        col1, col2 = st.columns(2)
        schemes = list(SCORING_SCHEMES)
        scheme = col1.selectbox("Scoring scheme", schemes, index=schemes.index(DEFAULT_SCORING_SCHEME))
        target = col2.number_input("Drivers to keep", min_value=1, max_value=200, value=DEFAULT_TARGET_COUNT)

        pool = select_top_drivers(records, filters, weights=scheme, target_count=int(target), as_of=as_of)
        st.caption(f"{int(pool['selected'].sum())} selected of {len(pool)} candidates")
        st.dataframe(pool, use_container_width=True, hide_index=True)

        selected = pool.loc[pool["selected"], "captain"].tolist()
        st.download_button(
            "Export selected drivers",
            export_top_drivers_csv(pool, selected),
            file_name=f"top-{len(selected)}-drivers.csv",
            mime="text/csv",
            disabled=not selected,
        )

    with tab2:
        threshold = st.slider(
            "Maximum success rate", min_value=0, max_value=100,
            value=int(DEFAULT_RISK_CONFIG.max_success_rate),
        )
        at_risk = select_at_risk_drivers(records, filters, max_success_rate=threshold)
        if at_risk.empty:
            st.success(f"No drivers at or below {threshold}% success.")
        else:
            st.dataframe(at_risk, use_container_width=True, hide_index=True)
            picked = st.multiselect("Drivers to export", at_risk["captain"].tolist(), default=at_risk["captain"].tolist())
            st.download_button(
                "Export for review",
                export_at_risk_csv(at_risk, picked),
                file_name=f"underperforming-drivers-{len(picked)}.csv",
                mime="text/csv",
                disabled=not picked,
            )

    with tab3:
        col1, col2 = st.columns(2)
        with col1:
            st.markdown("**Top performer criteria**")
            for name, description in TOP_PERFORMER_CRITERIA.items():
                st.markdown(f"- **{name.replace('_', ' ').title()}**: {description}")
            weights = SCORING_SCHEMES[DEFAULT_SCORING_SCHEME]
            st.caption(
                f"{weights.version}: success {weights.success_weight:.0%}, "
                f"volume {weights.volume_weight:.0%}, consistency {weights.consistency_weight:.0%}"
            )
        with col2:
            st.markdown("**Risk factors**")
            for name, description in RISK_FACTORS.items():
                st.markdown(f"- **{name}**: {description}")
