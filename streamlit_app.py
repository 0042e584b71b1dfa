import streamlit as st
import streamlit.components.v1 as components
import plotly.graph_objects as go
import pandas as pd

from agent_roster import DISRUPTION_SCENARIOS, agent_names, scenario_request
from csv_ingest import REQUIRED_COLUMNS, check_csv_filename, import_sales, parse_sales_csv
from data_layer import DataLayer
from errors import (
    CsvValidationError, ImportFailedError, LLMNotConfiguredError,
    RateLimitError, SupplyChainError
)
from insight_generator import failure_message, generate_insights
from kpi_evaluator import KPIEvaluator
from llm_engine import LLMEngine
from logging_config import setup_logging
from messages import MessageTimeline
from orchestrator import CoordinationOrchestrator
from report import CoordinationReport
from supply_graph import EDGE_COLORS, STATUS_COLORS, build_figure
from voice_briefing import TTSClient, browser_speech_html, build_briefing

MESSAGE_ICONS = {
    'discovery': '🔍', 'query': '❓', 'response': '💬',
    'negotiate': '🤝', 'confirm': '✅', 'alert': '🚨',
}
STATUS_BADGES = {'critical': '🔴', 'at_risk': '🟡', 'healthy': '🟢'}
SEVERITY_BADGES = {'high': '🔴', 'medium': '🟡', 'low': '🟢'}


# ==============================================================================
# HELPERS
# ==============================================================================

def init_services():
    setup_logging()
    st.session_state.dl = DataLayer()
    st.session_state.orchestrator = CoordinationOrchestrator(st.session_state.dl)
    st.session_state.tts = TTSClient()
    st.session_state.parsed = None
    st.session_state.csv_errors = []
    st.session_state.coordination = None
    st.session_state.animate = False
    st.session_state.in_flight = None
    st.session_state.notices = {}
    st.session_state.briefing = None


def _begin_call(name):
    st.session_state.in_flight = name


def trigger_button(label, name, **kwargs):
    """Button for a slow backend call. Every trigger is disabled while one runs.

    Returns True on the rerun that should perform the call.
    """
    st.button(label, key=f"trigger_{name}", on_click=_begin_call, args=(name,),
              disabled=st.session_state.get('in_flight') is not None, **kwargs)
    return st.session_state.get('in_flight') == name


def finish_call(name, notice=None):
    st.session_state.in_flight = None
    if notice is not None:
        st.session_state.setdefault('notices', {})[name] = notice


def show_notice(name):
    """Render (and consume) the outcome stored by finish_call."""
    notice = st.session_state.get('notices', {}).pop(name, None)
    if notice is None:
        return
    kind, text = notice
    if kind == 'success':
        st.success(text)
    else:
        st.error(text)


def fmt_money(value):
    return f"${value:,.0f}"


# ==============================================================================
# DASHBOARD
# ==============================================================================

def synthesize_briefing(insights):
    """Briefing text plus ElevenLabs audio, or None audio for local speech."""
    text = build_briefing(insights)
    if not text:
        return None
    try:
        audio = st.session_state.tts.synthesize(text)
    except (SupplyChainError, ValueError):
        # No ElevenLabs key or provider failure: speak locally instead
        audio = None
    return text, audio


def play_briefing(briefing):
    text, audio = briefing
    if audio is not None:
        st.audio(audio, format='audio/mpeg', autoplay=True)
    else:
        components.html(browser_speech_html(text), height=0)
    st.caption(f"🔊 {text}")


def render_dashboard(dl, user_id):
    sales = dl.get_sales(user_id)
    insights = dl.get_insights(user_id)
    kpi = KPIEvaluator(sales, insights)

    head, action = st.columns([4, 1])
    with head:
        st.header("📊 Dashboard")
        st.caption("Supply chain overview at a glance")
    with action:
        speak = insights and trigger_button("🔊 Voice Briefing", 'briefing',
                                            use_container_width=True)

    if speak:
        try:
            with st.spinner("Preparing briefing..."):
                st.session_state.briefing = synthesize_briefing(insights)
        finally:
            finish_call('briefing')
        st.rerun()

    # played once, on the rerun after synthesis
    briefing = st.session_state.get('briefing')
    st.session_state.briefing = None
    if briefing:
        play_briefing(briefing)

    if kpi.is_empty:
        st.info("No data yet. Upload a CSV on the **Upload** tab to get started.")
        return

    kpis = kpi.calculate_kpis()
    c = st.columns(6)
    c[0].metric("📦 Total Products", kpis['Total Products'])
    c[1].metric("🔴 Critical", kpis['Critical'])
    c[2].metric("🟡 At Risk", kpis['At Risk'])
    c[3].metric("🟢 Healthy", kpis['Healthy'])
    c[4].metric("💰 Inventory Value", fmt_money(kpis['Inventory Value']))
    c[5].metric("🛒 Units Sold", f"{kpis['Total Units Sold']:,.0f}")

    left, right = st.columns(2)
    with left:
        st.subheader("Sales Trend")
        trend = kpi.sales_trend()
        fig = go.Figure(go.Scatter(x=trend['date'], y=trend['quantity'],
                                   mode='lines', line={'color': '#3b82f6', 'width': 2},
                                   fill='tozeroy'))
        fig.update_layout(height=300, template='plotly_dark',
                          margin=dict(l=20, r=20, t=10, b=30))
        st.plotly_chart(fig, use_container_width=True)

    with right:
        st.subheader("Inventory Health")
        health = kpi.stock_health()
        fig = go.Figure([
            go.Bar(name='Current Stock', x=health['product'], y=health['stock'],
                   marker_color='#3b82f6'),
            go.Bar(name='Reorder Point', x=health['product'], y=health['reorderPoint'],
                   marker_color='#f59e0b'),
        ])
        fig.update_layout(height=300, template='plotly_dark', barmode='group',
                          margin=dict(l=20, r=20, t=10, b=30))
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("⚡ Top Actions")
    actions = kpi.top_actions()
    if not actions:
        st.caption("No urgent actions. Run an analysis on the **AI Insights** tab.")
    for a in actions:
        badge = STATUS_BADGES.get(a['status'], '⚪')
        st.markdown(f"{badge} **{a['product_name']}** `{a['risk_level']}` — "
                    f"{a.get('recommendation') or ''}")


# ==============================================================================
# UPLOAD
# ==============================================================================

def render_upload(dl, user_id):
    st.header("📤 Upload Data")
    st.caption("Import your sales and inventory CSV data")
    st.markdown("**Expected columns:** " + " · ".join(f"`{c}`" for c in REQUIRED_COLUMNS))

    uploaded = st.file_uploader("Drop your CSV file here", type=None, key='csv_file')
    if uploaded is not None and st.session_state.get('csv_name') != uploaded.name:
        st.session_state.csv_name = uploaded.name
        st.session_state.parsed = None
        st.session_state.csv_errors = []
        try:
            check_csv_filename(uploaded.name)
            st.session_state.parsed = parse_sales_csv(uploaded, file_name=uploaded.name)
        except CsvValidationError as e:
            st.session_state.csv_errors = e.errors

    if st.session_state.csv_errors:
        st.error("**Validation Errors**\n\n" +
                 "\n".join(f"- {err}" for err in st.session_state.csv_errors))

    parsed = st.session_state.parsed
    if parsed is None:
        return

    st.subheader(f"✅ Data Preview — {parsed.row_count} rows")
    st.dataframe(parsed.preview(), use_container_width=True, hide_index=True)

    if st.button(f"Import {parsed.row_count} Rows", type="primary"):
        with st.spinner("Importing..."):
            try:
                result = import_sales(dl, user_id, parsed)
            except ImportFailedError as e:
                st.error(f"Upload failed: {e} ({e.inserted} rows were saved)")
                return
        st.success(f"Upload successful! {result.inserted} rows imported.")
        st.session_state.parsed = None


# ==============================================================================
# UPLOAD HISTORY
# ==============================================================================

def render_history(dl, user_id):
    st.header("🗂️ Upload History")
    st.caption("View and manage your past data uploads")

    uploads = dl.list_uploads(user_id)
    if not uploads:
        st.info("No uploads yet.")
        return

    for u in uploads:
        c1, c2, c3, c4 = st.columns([4, 2, 3, 1])
        c1.markdown(f"📄 **{u['file_name']}**")
        c2.write(f"{u['row_count']} rows")
        c3.write(u['created_at'][:19].replace('T', ' '))
        if c4.button("🗑️", key=f"del_{u['id']}"):
            dl.delete_upload(user_id, u['id'])
            st.toast("Deleted")
            st.rerun()


# ==============================================================================
# AI INSIGHTS
# ==============================================================================

def render_insights(dl, user_id):
    head, action = st.columns([4, 1])
    with head:
        st.header("🧠 AI Insights")
        st.caption("AI-powered supply chain recommendations")
    with action:
        run = trigger_button("⚡ One-Click Analysis", 'analysis',
                             type="primary", use_container_width=True)

    if run:
        notice = None
        with st.spinner("Analyzing..."):
            try:
                count = generate_insights(dl, user_id)
                notice = ('success', f"Analysis complete! {count} AI insights have been generated.")
            except LLMNotConfiguredError:
                notice = ('error', "GROQ_API_KEY is not set. Add it to your `.env` file.")
            except SupplyChainError as e:
                title, detail = failure_message(e)
                notice = ('error', f"**{title}** — {detail}")
            finally:
                finish_call('analysis', notice)
        st.rerun()

    show_notice('analysis')

    insights = dl.get_insights(user_id)
    if not insights:
        st.info('Upload data and click "One-Click Analysis" to generate AI insights')
        return

    st.subheader("Product Analysis")
    st.caption(f"{len(insights)} products analyzed")
    for row in insights:
        badge = STATUS_BADGES.get(row['status'], '⚪')
        qty = row['recommended_order_qty']
        qty_text = f"{qty:,.0f}" if qty is not None else "—"
        label = (f"{badge} **{row['product_name']}** · {row['status'].replace('_', ' ')} · "
                 f"risk {row['risk_level']} · order {qty_text} · {row['recommendation'] or '—'}")
        with st.expander(label):
            st.markdown("**AI Explanation**")
            st.write(row['explanation'] or "No detailed explanation available.")
            forecast = row.get('forecast_next_30') or []
            if forecast:
                fig = go.Figure(go.Scatter(y=forecast, mode='lines+markers',
                                           line={'color': '#22c55e'}))
                fig.update_layout(height=200, template='plotly_dark',
                                  xaxis_title="Day", yaxis_title="Forecast demand",
                                  margin=dict(l=20, r=20, t=10, b=30))
                st.plotly_chart(fig, use_container_width=True, key=f"fc_{row['id']}")


# ==============================================================================
# AGENT NETWORK
# ==============================================================================

def render_roster(agents):
    cols = st.columns(len(agents))
    for col, a in zip(cols, agents):
        with col:
            st.markdown(f"**{a['name']}**")
            st.caption(f"{a['role']} · 📍 {a['location']}")
            st.markdown(" ".join(f"`{c}`" for c in a['capabilities']))


def render_timeline_frame(placeholder, visible, active, names):
    with placeholder.container():
        if active:
            st.markdown(f"⏳ **{names.get(active, active)}** is communicating...")
        for m in visible:
            icon = MESSAGE_ICONS.get(m.msg_type, '•')
            st.markdown(
                f"{icon} **{names.get(m.sender, m.sender)}** → "
                f"**{names.get(m.recipient, m.recipient)}** `{m.msg_type}` "
                f"<span style='color:#64748b'>+{m.timestamp_offset_ms / 1000:.1f}s</span>",
                unsafe_allow_html=True)
            if m.summary:
                st.caption(m.summary)


def render_timeline(messages, animate):
    names = agent_names()
    timeline = MessageTimeline(messages)
    st.subheader(f"📡 Coordination Timeline ({len(timeline)} messages)")
    placeholder = st.empty()
    if animate:
        for visible, active in timeline.reveal():
            render_timeline_frame(placeholder, visible, active, names)
    else:
        render_timeline_frame(placeholder, timeline.messages, None, names)


def render_report(report: CoordinationReport):
    names = agent_names()
    st.subheader(f"📋 {report.title}")
    if report.summary:
        st.write(report.summary)

    b = report.badges()
    c = st.columns(4)
    c[0].metric("Agents", b['total_agents'])
    c[1].metric("Messages", b['total_messages'])
    c[2].metric("Coordination", f"{b['coordination_seconds']:.1f}s")
    if report.risk_level:
        c[3].markdown(
            f"<div style='padding-top:1.6rem'>Risk: <b style='color:{report.risk_color}'>"
            f"{report.risk_level.upper()}</b></div>", unsafe_allow_html=True)

    if report.risk_assessment.get('factors'):
        st.markdown("**Risk Factors**")
        for f in report.risk_assessment['factors']:
            st.markdown(f"- {f}")

    if report.decisions:
        st.markdown("**Decisions**")
        df = pd.DataFrame([{
            'Agent': names.get(d.get('agent'), d.get('agent')),
            'Action': d.get('action'),
            'Details': d.get('details'),
            'Cost': fmt_money(d['cost_estimate']) if d.get('cost_estimate') is not None else '—',
            'Days': d.get('timeline_days'),
        } for d in report.decisions])
        st.dataframe(df, use_container_width=True, hide_index=True)

    if report.bottlenecks:
        st.markdown("**Bottlenecks**")
        for bn in report.bottlenecks:
            badge = SEVERITY_BADGES.get(bn.get('severity'), '⚪')
            st.markdown(f"{badge} **{names.get(bn.get('node'), bn.get('node'))}**: "
                        f"{bn.get('issue', '')}")


def render_graph(report: CoordinationReport):
    fig = build_figure(report.graph_nodes, report.graph_edges)
    if fig is None:
        return
    st.subheader("🕸️ Supply Network Graph")
    st.plotly_chart(fig, use_container_width=True)
    legend = [f"<span style='color:{c}'>━</span> {t}" for t, c in EDGE_COLORS.items()]
    legend += [f"<span style='color:{c}'>●</span> {s}" for s, c in STATUS_COLORS.items()]
    st.markdown(" &nbsp; ".join(legend), unsafe_allow_html=True)


def render_agent_network(user_id):
    orchestrator = st.session_state.orchestrator
    st.header("🤖 Agent Network")
    st.caption("Autonomous supply chain coordination with AI agents")

    c1, c2 = st.columns([3, 1])
    with c1:
        scenario = st.selectbox(
            "Scenario", list(DISRUPTION_SCENARIOS),
            format_func=lambda k: DISRUPTION_SCENARIOS[k]['label'])
    with c2:
        st.write("")
        run = trigger_button("▶️ Run Coordination", 'coordination',
                             type="primary", use_container_width=True)

    render_roster([a.to_dict() for a in orchestrator.roster])

    if run:
        trigger_type, disruption = scenario_request(scenario)
        notice = None
        with st.spinner("Agents are coordinating..."):
            try:
                st.session_state.coordination = orchestrator.run(
                    user_id, trigger_type=trigger_type, disruption=disruption)
                st.session_state.animate = True
            except RateLimitError as e:
                notice = ('error', str(e))
            except SupplyChainError as e:
                notice = ('error', f"**Error** — {e}")
            finally:
                finish_call('coordination', notice)
        st.rerun()

    show_notice('coordination')

    past = st.session_state.dl.list_sessions(user_id)
    completed = [s for s in past if s['status'] == 'completed']
    if completed and not st.session_state.animate:
        options = {s['id']: f"{s['created_at'][:19].replace('T', ' ')} · {s['trigger_type']}"
                   for s in completed}
        chosen = st.selectbox("Past sessions", [None] + list(options),
                              format_func=lambda k: "—" if k is None else options[k])
        if chosen and (st.session_state.coordination or {}).get('session_id') != chosen:
            st.session_state.coordination = orchestrator.load_session(user_id, chosen)
            st.session_state.animate = False

    result = st.session_state.coordination
    if not result:
        return

    messages = result['messages']
    report = CoordinationReport(result['report'], messages, result['agents'])
    if st.session_state.animate:
        st.toast(f"Coordination Complete: {len(messages)} agent messages exchanged")

    render_timeline(messages, st.session_state.animate)
    st.session_state.animate = False
    render_report(report)
    render_graph(report)


# ==============================================================================
# ABOUT
# ==============================================================================

def render_about():
    st.header("⚡ One-Click AI")
    st.subheader("Supply Chain Decision Engine")
    st.markdown("""
    Turns raw CSV inventory data into actionable supply chain insights.
    Upload your data → AI assesses risk → get instant recommendations.

    **How to use**
    1. **Upload CSV**: sales and inventory rows (one row per product per day)
    2. **View Dashboard**: sales trends, inventory health and KPIs
    3. **One-Click Analysis**: AI risk assessments and reorder quantities
    4. **Agent Network**: watch five agents negotiate a response to a disruption
    5. **Voice Briefing**: hear the executive summary

    **Stack:** Streamlit · plotly · pandas · SQLAlchemy · LangGraph · Groq · ElevenLabs
    """)


# ==============================================================================
# MAIN APP
# ==============================================================================

def main():
    st.set_page_config(page_title="Supply Chain Copilot", page_icon="⚡", layout="wide")

    if 'init' not in st.session_state:
        st.session_state.init = True
        init_services()

    dl = st.session_state.dl

    with st.sidebar:
        st.title("⚡ Supply Chain Copilot")
        user_id = st.text_input("User ID", value="demo-user").strip()
        llm = LLMEngine.get_instance()
        stats = llm.get_stats()
        if llm.is_available:
            st.success(f"🧠 {stats['model']}")
            st.caption(f"{stats['total_calls']} calls · {stats['total_tokens']:,} tokens")
        else:
            st.warning("GROQ_API_KEY not set. AI features are disabled.")

    if not user_id:
        st.info("Enter a user ID in the sidebar.")
        return

    tab1, tab2, tab3, tab4, tab5, tab6 = st.tabs([
        "📊 Dashboard", "📤 Upload", "🗂️ Upload History",
        "🧠 AI Insights", "🤖 Agent Network", "ℹ️ About",
    ])
    with tab1:
        render_dashboard(dl, user_id)
    with tab2:
        render_upload(dl, user_id)
    with tab3:
        render_history(dl, user_id)
    with tab4:
        render_insights(dl, user_id)
    with tab5:
        render_agent_network(user_id)
    with tab6:
        render_about()


if __name__ == '__main__':
    main()
