"""Streamlit UI for the Campaign Attribution & Customer Journey dashboard."""

import logging
import tempfile
from datetime import datetime
from io import BytesIO
from pathlib import Path

import plotly.express as px
import plotly.graph_objects as go
import streamlit as st
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches

from campaign_insights.formatting import format_currency, format_number, format_percentage
from campaign_insights.services import DashboardService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Page config
st.set_page_config(
    page_title="Campaign Attribution Insights",
    page_icon="📊",
    layout="wide",
)

# Custom CSS
st.markdown(
    """
    <style>
    .insight-green { background-color: #d4edda; border-left: 4px solid #28a745; padding: 1rem; margin: 0.5rem 0; }
    .insight-amber { background-color: #fff3cd; border-left: 4px solid #ffc107; padding: 1rem; margin: 0.5rem 0; }
    .insight-red { background-color: #f8d7da; border-left: 4px solid #dc3545; padding: 1rem; margin: 0.5rem 0; }
    </style>
    """,
    unsafe_allow_html=True,
)

TIER_COLORS = {
    "excellent": "#28a745",
    "good": "#667eea",
    "moderate": "#ffc107",
    "poor": "#dc3545",
}


def render_insight(insight: dict) -> None:
    """Render an insight card with severity color."""
    severity = insight["severity"]
    icon = {"green": "✅", "amber": "⚠️", "red": "🚨"}[severity]
    css_class = f"insight-{severity}"

    st.markdown(
        f"""
        <div class="{css_class}">
            <strong>{icon} {insight['rule_id'].replace('_', ' ').title()}</strong><br/>
            {insight['description']}<br/>
            <em>→ {insight['recommendation']}</em>
        </div>
        """,
        unsafe_allow_html=True,
    )


def save_upload(upload) -> Path | None:
    """Persist an uploaded file so the ingestion pipeline can read it by path."""
    if upload is None:
        return None
    suffix = Path(upload.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(upload.getvalue())
        return Path(tmp.name)


def create_type_roi_chart(type_rows: list) -> go.Figure:
    """ROI by campaign type, coloured by performance tier."""
    fig = go.Figure(data=[go.Bar(
        x=[t["campaign_type"] for t in type_rows],
        y=[t["roi_pct"] for t in type_rows],
        marker_color=[t["tier_color"] for t in type_rows],
    )])

    fig.update_layout(
        title="ROI by Campaign Type",
        yaxis_title="ROI (%)",
        height=400,
        plot_bgcolor="white",
    )

    return fig


def create_scalability_chart(points: list) -> go.Figure:
    """ROI vs cost efficiency scatter, one marker per campaign type."""
    fig = px.scatter(
        x=[p.efficiency for p in points],
        y=[p.roi for p in points],
        text=[p.name for p in points],
        color=[p.scalability for p in points],
        labels={"x": "Pipeline per $", "y": "ROI (%)", "color": "Scalability"},
        title="Scalability: ROI vs Cost Efficiency",
    )
    fig.update_traces(textposition="top center")
    fig.update_layout(height=400, plot_bgcolor="white")
    return fig


def create_touch_chart(touch_rows: list) -> go.Figure:
    """Customers and conversion rate by touch count."""
    fig = go.Figure()

    fig.add_trace(go.Bar(
        x=[t["touches"] for t in touch_rows],
        y=[t["customers"] for t in touch_rows],
        name="Customers",
        marker_color="#667eea",
        yaxis="y",
    ))

    fig.add_trace(go.Scatter(
        x=[t["touches"] for t in touch_rows],
        y=[t["conversion_rate_pct"] for t in touch_rows],
        name="Conversion (%)",
        yaxis="y2",
        mode="lines+markers",
        line=dict(color="#dc3545", width=3),
        marker=dict(size=8),
    ))

    fig.update_layout(
        title="Touch Distribution",
        xaxis_title="Touches",
        yaxis=dict(title="Customers", side="left", showgrid=True),
        yaxis2=dict(title="Conversion (%)", side="right", overlaying="y", showgrid=False),
        legend=dict(x=0, y=1.15, orientation="h"),
        height=400,
        plot_bgcolor="white",
    )

    return fig


def create_funnel_chart(funnel) -> go.Figure:
    """Journey funnel from all customers to closed won."""
    fig = go.Figure(go.Funnel(
        y=[f.name for f in funnel],
        x=[f.customers for f in funnel],
        textinfo="value+percent initial",
        marker=dict(color=["#667eea", "#764ba2", "#f093fb", "#28a745"]),
    ))
    fig.update_layout(title="Customer Journey Funnel", height=400)
    return fig


def create_matrix_chart(matrix_rows: list) -> go.Figure:
    """Target vs non-target ROI per attendee range."""
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=[r["attendee_range"] for r in matrix_rows],
        y=[r["target_roi_pct"] for r in matrix_rows],
        name="Target Accounts",
        marker_color="#764ba2",
    ))
    fig.add_trace(go.Bar(
        x=[r["attendee_range"] for r in matrix_rows],
        y=[r["non_target_roi_pct"] for r in matrix_rows],
        name="Non-Target Accounts",
        marker_color="#4facfe",
    ))
    fig.update_layout(
        title="ROI by Attendee Range",
        xaxis_title="Attendees",
        yaxis_title="ROI (%)",
        barmode="group",
        height=400,
        plot_bgcolor="white",
    )
    return fig


def generate_docx(output, summary: dict) -> BytesIO:
    """Generate DOCX report with tables and insights."""
    doc = Document()
    pack = output.insight_pack.get_executive_summary()

    # Title
    title = doc.add_heading("Campaign Attribution Insights", 0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    doc.add_paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")

    # Executive Summary
    doc.add_heading("Executive Summary", level=1)
    doc.add_paragraph(
        f"Campaigns invested {format_currency(pack['total_investment'])} and generated "
        f"{format_currency(pack['total_pipeline_value'])} of pipeline with "
        f"{format_currency(pack['total_closed_won_value'])} closed won, "
        f"an overall ROI of {format_percentage(pack['average_roi'])}."
    )
    if pack["best_type"]:
        doc.add_paragraph(f"Best performing campaign type: {pack['best_type']}")

    # KPI Table
    doc.add_heading("Key Metrics", level=2)
    table = doc.add_table(rows=1, cols=2)
    table.style = "Table Grid"
    hdr = table.rows[0].cells
    hdr[0].text = "Metric"
    hdr[1].text = "Value"

    kpi_rows = [
        ("Total Investment", format_currency(pack["total_investment"])),
        ("Pipeline Value", format_currency(pack["total_pipeline_value"])),
        ("Closed Won Value", format_currency(pack["total_closed_won_value"])),
        ("Average ROI", format_percentage(pack["average_roi"])),
        ("Win Rate", format_percentage(pack["win_rate"])),
        ("Multi-Touch Customers", format_percentage(pack["multi_touch_percentage"])),
        ("Reallocation Opportunity", format_currency(pack["reallocation_amount"])),
    ]
    for metric, value in kpi_rows:
        row = table.add_row().cells
        row[0].text = metric
        row[1].text = value

    # Key Insights
    doc.add_heading("Key Insights", level=1)
    insights = summary.get("insights", [])

    # Group by severity
    for severity, label in [("red", "Critical"), ("amber", "Warning"), ("green", "Positive")]:
        severity_insights = [i for i in insights if i["severity"] == severity]
        if severity_insights:
            doc.add_heading(f"{label} Findings", level=2)
            for insight in severity_insights:
                icon = {"green": "✓", "amber": "⚠", "red": "✗"}[severity]
                p = doc.add_paragraph()
                p.add_run(f"[{icon}] ").bold = True
                p.add_run(insight["description"])
                rec = doc.add_paragraph(f"    → {insight['recommendation']}")
                rec.paragraph_format.left_indent = Inches(0.5)

    # Campaign Types
    type_rows = summary["campaign_types"]
    if type_rows:
        doc.add_heading("Campaign Type Performance", level=1)
        table = doc.add_table(rows=1, cols=6)
        table.style = "Table Grid"
        hdr = table.rows[0].cells
        for i, h in enumerate(["Type", "Campaigns", "Cost", "Pipeline", "ROI", "Win Rate"]):
            hdr[i].text = h

        for t in type_rows:
            row = table.add_row().cells
            row[0].text = t["campaign_type"]
            row[1].text = format_number(t["campaigns"])
            row[2].text = format_currency(t["cost"])
            row[3].text = format_currency(t["pipeline_value"])
            row[4].text = format_percentage(t["roi_pct"])
            row[5].text = format_percentage(t["win_rate_pct"])

    # Journeys
    journey = output.journey_insights
    if output.journey_metrics.total_customers:
        doc.add_heading("Customer Journeys", level=1)
        impact = journey.multi_touch_impact
        doc.add_paragraph(
            f"{format_percentage(impact.percentage)} of customers are multi-touch and hold "
            f"{format_percentage(impact.value_share)} of journey value."
        )
        doc.add_paragraph(journey.optimal_touch_count.reasoning)

        if journey.journey_bottlenecks:
            doc.add_heading("Stage Bottlenecks", level=2)
            for b in journey.journey_bottlenecks:
                doc.add_paragraph(
                    f"{b.stage}: {format_percentage(b.drop_off_rate)} drop-off "
                    f"across {b.customers} customers ({b.impact} impact)",
                    style="List Bullet",
                )

        if journey.top_journey_patterns:
            doc.add_heading("Top Journey Patterns", level=2)
            for p in journey.top_journey_patterns:
                doc.add_paragraph(
                    f"{p.pattern}: {p.frequency} customers, "
                    f"{format_percentage(p.conversion_rate)} conversion",
                    style="List Bullet",
                )

    # Target Accounts
    recommendations = output.target_insights.recommendations
    if recommendations:
        doc.add_heading("Target Account Strategy", level=1)
        for r in recommendations:
            p = doc.add_paragraph()
            p.add_run(f"{r.title} ({r.metric}): ").bold = True
            p.add_run(r.description)

    # Save to BytesIO
    buffer = BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer


def main():
    st.title("📊 Campaign Attribution & Customer Journey Insights")

    # Sidebar - File Upload
    with st.sidebar:
        st.header("📁 Upload API Exports")

        campaign_types_file = st.file_uploader(
            "Campaign Types (JSON or CSV)",
            type=["json", "csv"],
            help="Export of the campaign type endpoint, with its metadata block",
        )
        journeys_file = st.file_uploader(
            "Customer Journeys (JSON)",
            type=["json"],
        )
        campaigns_file = st.file_uploader(
            "Campaign Comparison (JSON) - Optional",
            type=["json"],
        )
        accounts_file = st.file_uploader(
            "Account Participation (JSON or CSV) - Optional",
            type=["json", "csv"],
        )
        target_file = st.file_uploader(
            "Target Account Comparison (JSON) - Optional",
            type=["json"],
        )
        matrix_file = st.file_uploader(
            "Strategic Engagement Matrix (JSON) - Optional",
            type=["json"],
        )

        st.divider()
        strict = st.checkbox(
            "Strict validation",
            help="Reject exports that contain incomplete records",
        )
        generate_btn = st.button("🚀 Build Dashboard", type="primary", use_container_width=True)

    uploads = [
        campaign_types_file,
        journeys_file,
        campaigns_file,
        accounts_file,
        target_file,
        matrix_file,
    ]
    if not any(uploads):
        st.info("👈 Upload at least one API export to get started")
        return

    service = DashboardService()

    if generate_btn:
        with st.spinner("Building dashboard..."):
            try:
                output = service.generate_dashboard(
                    campaigns_path=save_upload(campaigns_file),
                    journeys_path=save_upload(journeys_file),
                    campaign_types_path=save_upload(campaign_types_file),
                    accounts_path=save_upload(accounts_file),
                    target_accounts_path=save_upload(target_file),
                    strategic_matrix_path=save_upload(matrix_file),
                    strict=strict,
                )
                summary = service.generate_summary_dict(output)
                st.session_state["dashboard_output"] = output
                st.session_state["dashboard_summary"] = summary
            except Exception as e:
                st.error(f"Error building dashboard: {e}")
                return

    output = st.session_state.get("dashboard_output")
    summary = st.session_state.get("dashboard_summary")

    if not output or not summary:
        return

    # Tabs
    tab1, tab2, tab3, tab4 = st.tabs([
        "📈 Campaign Types",
        "🧭 Customer Journeys",
        "🎯 Target Accounts",
        "📄 Generated Report",
    ])

    # =========================================================================
    # TAB 1: Campaign Types
    # =========================================================================
    with tab1:
        st.header("Campaign Type Performance")

        metrics = output.campaign_type_summary.metrics
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Total Investment", format_currency(metrics.total_cost))
        with col2:
            st.metric("Pipeline Value", format_currency(metrics.total_pipeline_value))
        with col3:
            st.metric("Closed Won", format_currency(metrics.total_closed_won_value))
        with col4:
            st.metric("Average ROI", format_percentage(metrics.average_roi))

        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Customers", format_number(metrics.total_customers))
        with col2:
            st.metric("Win Rate", format_percentage(metrics.win_rate))
        with col3:
            st.metric("Close Rate", format_percentage(metrics.close_rate))

        if not metrics.uses_unique_totals:
            st.caption("Totals are summed per type and may count shared customers more than once.")

        st.divider()

        tiers = output.performance_tiers
        tier_by_name = {
            group.name: tier
            for tier in TIER_COLORS
            for group in getattr(tiers, tier)
        }
        type_rows = [
            {**t, "tier_color": TIER_COLORS[tier_by_name.get(t["campaign_type"], "poor")]}
            for t in summary["campaign_types"]
        ]

        if type_rows:
            col1, col2 = st.columns(2)
            with col1:
                st.plotly_chart(create_type_roi_chart(type_rows), use_container_width=True)
            with col2:
                points = output.trend_analysis.points
                if points:
                    st.plotly_chart(create_scalability_chart(points), use_container_width=True)
                correlation = output.trend_analysis.roi_efficiency_correlation
                if correlation is not None:
                    st.caption(f"ROI vs efficiency correlation: {correlation:.2f}")

            st.subheader("Campaign Type Breakdown")
            st.dataframe(summary["campaign_types"], use_container_width=True, hide_index=True)

        st.subheader("💰 Budget Reallocation")
        reallocation = output.reallocation
        if reallocation.inefficient:
            st.warning(
                f"{format_currency(reallocation.reallocation_amount)} "
                f"({format_percentage(reallocation.reallocation_percentage)} of budget) sits in "
                f"{len(reallocation.inefficient)} below-average type(s). Shifting it to "
                f"{reallocation.recommended_target} could return an estimated "
                f"{format_currency(reallocation.potential_gain)}."
            )
        else:
            st.success("✅ No significant budget reallocation needed")

        if output.trend_analysis.rising_stars:
            st.info(
                "🌟 Rising stars: "
                + ", ".join(p.name for p in output.trend_analysis.rising_stars)
            )

        if summary["campaigns"]:
            st.subheader("Campaigns")
            traits = output.campaign_traits
            if traits.sample_size:
                st.caption(
                    f"Top {traits.sample_size} campaigns are mostly {traits.dominant_type}; "
                    f"{format_percentage(traits.low_cost_percentage)} are low cost and "
                    f"{format_percentage(traits.target_account_percentage)} are target-account heavy."
                )
            st.dataframe(summary["campaigns"], use_container_width=True, hide_index=True)

    # =========================================================================
    # TAB 2: Customer Journeys
    # =========================================================================
    with tab2:
        st.header("Customer Journey Analysis")

        journey_metrics = output.journey_metrics
        journey = output.journey_insights
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Customers", format_number(journey_metrics.total_customers))
        with col2:
            st.metric("Average Touches", format_number(journey_metrics.average_touches, 1))
        with col3:
            st.metric("Multi-Touch", format_percentage(journey_metrics.multi_touch_percentage))
        with col4:
            st.metric("Conversion Rate", format_percentage(journey_metrics.conversion_rate))

        st.divider()

        col1, col2 = st.columns(2)
        with col1:
            if summary["touch_distribution"]:
                st.plotly_chart(
                    create_touch_chart(summary["touch_distribution"]),
                    use_container_width=True,
                )
        with col2:
            if journey_metrics.total_customers:
                st.plotly_chart(create_funnel_chart(output.journey_funnel), use_container_width=True)

        st.info(f"🎯 {journey.optimal_touch_count.reasoning}")

        col1, col2 = st.columns(2)
        with col1:
            st.subheader("Stage Bottlenecks")
            if journey.journey_bottlenecks:
                st.dataframe(
                    [
                        {
                            "stage": b.stage,
                            "customers": b.customers,
                            "converted": b.converted,
                            "drop_off_pct": round(b.drop_off_rate, 1),
                            "impact": b.impact,
                        }
                        for b in journey.journey_bottlenecks
                    ],
                    use_container_width=True,
                    hide_index=True,
                )
            else:
                st.success("✅ No stage data")
        with col2:
            st.subheader("Top Journey Patterns")
            if journey.top_journey_patterns:
                st.dataframe(
                    [
                        {
                            "pattern": p.pattern,
                            "customers": p.frequency,
                            "conversion_pct": round(p.conversion_rate, 1),
                            "average_value": format_currency(p.average_value),
                        }
                        for p in journey.top_journey_patterns
                    ],
                    use_container_width=True,
                    hide_index=True,
                )

        journey_insights = [
            i for i in summary.get("insights", [])
            if i["rule_id"] in ("multi_touch_value", "journey_bottleneck")
        ]
        for insight in journey_insights:
            render_insight(insight)

    # =========================================================================
    # TAB 3: Target Accounts
    # =========================================================================
    with tab3:
        st.header("Target Account Strategy")

        comparison = output.target_comparison
        target_insights = output.target_insights
        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric(
                "Deal Size Multiplier",
                f"{comparison.advantage.deal_size_multiplier:.1f}x",
                delta="Significant" if target_insights.is_significant else None,
            )
        with col2:
            st.metric(
                "Win Rate Advantage",
                f"{comparison.advantage.win_rate_advantage:+.1f} pts",
            )
        with col3:
            st.metric(
                "Attendee Efficiency",
                f"{comparison.advantage.attendee_efficiency:.1f}x",
            )

        st.divider()

        col1, col2 = st.columns([2, 1])
        with col1:
            if summary["engagement_matrix"]:
                st.plotly_chart(
                    create_matrix_chart(summary["engagement_matrix"]),
                    use_container_width=True,
                )
        with col2:
            st.subheader("Optimal Engagement")
            for rec in output.engagement_recommendations:
                st.markdown(
                    f"**{rec.account_type.title()}**: {rec.optimal_attendee_range} attendees "
                    f"({format_percentage(rec.expected_roi)} ROI)"
                )
                st.caption(rec.reasoning)
            st.markdown(f"**Attendee range**: {output.optimal_attendee_range.recommendation}")

        st.subheader("Recommendations")
        if target_insights.recommendations:
            for r in target_insights.recommendations:
                st.markdown(f"- **{r.title}** ({r.metric}, {r.impact} impact): {r.description}")
        else:
            st.info("No target account recommendations")

    # =========================================================================
    # TAB 4: Generated Report
    # =========================================================================
    with tab4:
        st.header("Generated Report Preview")

        st.subheader("Key Insights")
        insights = summary.get("insights", [])

        if insights:
            # Group by severity
            for severity, heading in [
                ("red", "### 🔴 Critical Issues"),
                ("amber", "### 🟠 Warnings"),
                ("green", "### 🟢 Positive Signals"),
            ]:
                severity_insights = [i for i in insights if i["severity"] == severity]
                if severity_insights:
                    st.markdown(heading)
                    for insight in severity_insights:
                        render_insight(insight)
        else:
            st.info("No insights generated")

        st.divider()

        # Export
        st.subheader("Export Report")

        col1, col2 = st.columns(2)
        with col1:
            st.download_button(
                label="📥 Download DOCX Report",
                data=generate_docx(output, summary),
                file_name=f"campaign_insights_{datetime.now().strftime('%Y%m%d')}.docx",
                mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                type="primary",
            )
        with col2:
            st.download_button(
                label="📥 Download Insight Pack (JSON)",
                data=output.insight_pack.to_json(),
                file_name=f"insight_pack_{datetime.now().strftime('%Y%m%d')}.json",
                mime="application/json",
            )


if __name__ == "__main__":
    main()
