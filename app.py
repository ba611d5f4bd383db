"""Streamlit UI for the job scout dashboard."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from scout.analyst import Analyst, ChatSession, build_analyst
from scout.config import Settings, load_criteria, load_settings
from scout.log import get_logger
from scout.models import Job, JobStatus, Recommendation, SearchCriteria
from scout.pipeline import ScoutSession, run_with_redraw
from scout.report import (
    build_session_report,
    jobs_frame,
    salary_benchmarks,
    score_band,
    search_url,
    summarize,
)
from scout.resume_parser import SUPPORTED_SUFFIXES, extract_text
from scout.store import JobStore

log = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────

_STATUS_LABELS: dict[JobStatus, str] = {
    JobStatus.SCRAPED: "Scraped",
    JobStatus.ENRICHING: "Enriching…",
    JobStatus.ANALYZING: "Analyzing…",
    JobStatus.COMPLETE: "Complete",
    JobStatus.FAILED: "Failed",
}

_REC_ICONS: dict[Recommendation, str] = {
    Recommendation.APPLY: "🟢",
    Recommendation.NETWORK_FIRST: "🔵",
    Recommendation.AVOID: "🔴",
}

_BAND_COLORS: dict[str, str] = {"high": "green", "medium": "orange", "low": "red"}

_CSS = """
<style>
[data-testid="stMetric"] {
    background: rgba(99,102,241,0.08);
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border: 1px solid rgba(99,102,241,0.25);
}
.system-status {
    font-family: monospace;
    font-size: 0.75rem;
    color: #64748b;
    text-align: right;
}
.verdict-card {
    padding: 0.75rem 1rem;
    background: rgba(99,102,241,0.08);
    border-left: 3px solid #6366f1;
    border-radius: 6px;
}
</style>
"""

# ── Session state ────────────────────────────────────────────────────────


def _state() -> dict:
    ss = st.session_state
    if "store" not in ss:
        ss["store"] = JobStore()
        ss["criteria"] = load_criteria()
        ss["scouting"] = False
        ss["tailored"] = {}
        ss["failures"] = {}
    return ss


def _loop() -> asyncio.AbstractEventLoop:
    """One event loop per browser session, so the HTTP client pool stays bound to it."""
    ss = st.session_state
    if "loop" not in ss or ss["loop"].is_closed():
        ss["loop"] = asyncio.new_event_loop()
    return ss["loop"]


def _settings() -> Settings:
    return load_settings()


def _analyst(settings: Settings) -> Analyst | None:
    ss = st.session_state
    if ss.get("analyst_key") != settings.api_key:
        ss["analyst"] = build_analyst(settings)
        ss["analyst_key"] = settings.api_key
        ss.pop("chat", None)
    return ss.get("analyst")


def _store() -> JobStore:
    return _state()["store"]


def _criteria() -> SearchCriteria:
    return _state()["criteria"]


# ── Rendering helpers ────────────────────────────────────────────────────


def _system_status(session: ScoutSession | None = None) -> str:
    if session is not None and session.active:
        text = "SYSTEM ACTIVE - INGESTING STREAM"
    elif session is not None and session.pending:
        text = f"FINISHING - {session.pending} PIPELINE(S) IN FLIGHT"
    else:
        text = "SYSTEM READY"
    return f'<div class="system-status">{text}</div>'


def _render_metrics(jobs: tuple[Job, ...]) -> None:
    s = summarize(jobs)
    c1, c2, c3 = st.columns(3)
    c1.metric("Opportunities", s.opportunities)
    c2.metric("High Fit", s.high_fit)
    c3.metric("In Progress", s.in_progress)


def _grid_config() -> dict:
    return {
        "id": None,
        "company": st.column_config.TextColumn("Company"),
        "title": st.column_config.TextColumn("Role"),
        "location": st.column_config.TextColumn("Location"),
        "growth": st.column_config.TextColumn("Rev. Growth"),
        "score": st.column_config.ProgressColumn("Fit", min_value=0, max_value=100, format="%d"),
        "recommendation": st.column_config.TextColumn("Verdict"),
        "status": st.column_config.TextColumn("Status"),
        "link": st.column_config.LinkColumn("Posting", display_text="Search"),
    }


def _grid_frame(jobs: tuple[Job, ...]):
    df = jobs_frame(jobs)
    df["status"] = [_STATUS_LABELS[j.status] for j in jobs]
    return df


def _render_grid(jobs: tuple[Job, ...], *, selectable: bool) -> Job | None:
    if not jobs:
        st.info("No opportunities scouted yet. Configure criteria and launch scout.")
        return None

    df = _grid_frame(jobs)
    if not selectable:
        st.dataframe(df, use_container_width=True, hide_index=True, column_config=_grid_config())
        return None

    event = st.dataframe(
        df,
        use_container_width=True,
        hide_index=True,
        column_config=_grid_config(),
        on_select="rerun",
        selection_mode="single-row",
        key="job_grid",
    )
    rows = event.selection.rows if event else []
    if not rows:
        return None
    if rows[0] >= len(jobs):
        return None
    job = jobs[rows[0]]
    if not job.is_complete:
        st.caption(f"**{job.title}** is still {_STATUS_LABELS[job.status].lower()}")
        return None
    return job


# ── Scouting ─────────────────────────────────────────────────────────────


def _run_scout(status_slot, metrics_slot, grid_slot) -> None:
    ss = _state()
    settings = _settings()
    store = _store()
    session = ScoutSession(store, _criteria(), settings=settings, analyst=_analyst(settings))

    def _redraw(jobs: tuple[Job, ...]) -> None:
        status_slot.markdown(_system_status(session), unsafe_allow_html=True)
        with metrics_slot.container():
            _render_metrics(jobs)
        with grid_slot.container():
            _render_grid(jobs, selectable=False)

    try:
        # A page rerun raised inside _redraw surfaces here only after the
        # in-flight pipelines have finished
        _loop().run_until_complete(run_with_redraw(session, _redraw))
    finally:
        ss["scouting"] = False
        ss["failures"].update(session.failures)
    log.info("Dashboard session finished — %d job(s) in collection", len(store))


# ── Deal room ────────────────────────────────────────────────────────────


def _render_deal_room(job: Job) -> None:
    ss = _state()
    analysis, fin = job.analysis, job.financials

    st.divider()
    head, actions = st.columns([3, 1])
    with head:
        st.subheader(job.title)
        st.caption(
            f"{job.company} · {job.location} · "
            f"${job.salary_min / 1000:.0f}k - ${job.salary_max / 1000:.0f}k · via {job.source}"
        )
    with actions:
        st.link_button("View Job Posting", search_url(job), use_container_width=True)
        if analysis:
            st.markdown(f"**{_REC_ICONS[analysis.recommendation]} {analysis.recommendation.value}**")

    tab_deal, tab_tailor = st.tabs(["Deal Analysis", "AI Resume Tailor"])

    with tab_deal:
        left, right = st.columns([2, 1])
        with left:
            if analysis:
                st.markdown("**AI Growth Verdict**")
                st.markdown(f'<div class="verdict-card">{analysis.growth_verdict}</div>', unsafe_allow_html=True)
                st.markdown("**Strengths & Weaknesses**")
                for point in analysis.pros_cons:
                    st.markdown(f"- {point}")
            else:
                st.info("No AI analysis — set `GEMINI_API_KEY` in `.env` to enable scoring.")
            with st.expander("Job Description"):
                st.text(job.description)

        with right:
            if analysis:
                band = score_band(analysis.fit_score)
                st.metric("Fit Score", f"{analysis.fit_score} / 100")
                st.markdown(f":{_BAND_COLORS[band]}[{band.upper()} FIT]")
            if fin:
                c1, c2 = st.columns(2)
                c1.metric("Ticker", fin.symbol)
                c2.metric("Type", "Private" if fin.is_private else "Public")
                c1.metric("Market Cap", fin.market_cap)
                c2.metric("Rev. Growth", f"{fin.revenue_growth * 100:.1f}%")

            st.markdown("**Compensation vs Market**")
            chart = salary_benchmarks(job)
            chart["series"] = ["This Role" if flag else "Market" for flag in chart["this_role"]]
            st.bar_chart(chart, x="level", y="salary", color="series")

    with tab_tailor:
        st.write("Rewrite your resume summary and highlights for this role.")
        analyst = _analyst(_settings())
        resume = _criteria().resume_text
        if st.button(
            "Generate Tailored Version",
            type="primary",
            disabled=analyst is None or not resume,
            key=f"tailor_{job.id}",
        ):
            with st.spinner("Rewriting…"):
                ss["tailored"][job.id] = _loop().run_until_complete(analyst.tailor_resume(job, resume))
        if analyst is None:
            st.caption("Requires `GEMINI_API_KEY`.")

        tailored = ss["tailored"].get(job.id)
        if tailored:
            st.markdown(tailored)
            st.download_button(
                "Download",
                tailored,
                file_name=f"resume_{job.company.replace(' ', '_').lower()}.md",
                mime="text/markdown",
            )


# ── Page: Scout ──────────────────────────────────────────────────────────


def page_scout() -> None:
    ss = _state()
    criteria = _criteria()
    scouting = ss["scouting"]

    with st.sidebar:
        st.subheader("Mission Parameters")
        with st.form("criteria"):
            title = st.text_input("Target Role", criteria.job_title, placeholder="e.g. Solutions Architect")
            location = st.text_input("Location", criteria.location, placeholder="e.g. New York, NY")
            remote = st.checkbox("Remote Only", value=criteria.is_remote)
            resume = st.text_area("Candidate Context (Resume Text)", criteria.resume_text, height=200)
            upload = st.file_uploader(
                "…or upload a resume",
                type=[s.lstrip(".") for s in SUPPORTED_SUFFIXES],
            )
            launch = st.form_submit_button(
                "Scouting…" if scouting else "Launch Scout",
                type="primary",
                disabled=scouting,
                use_container_width=True,
            )

    if launch:
        criteria.job_title = title
        criteria.location = location
        criteria.is_remote = remote
        criteria.resume_text = resume
        if upload is not None:
            try:
                criteria.resume_text = extract_text(upload.name, upload.getvalue())
            except Exception as exc:
                log.warning("Resume upload failed: %s", exc)
                st.sidebar.error(f"Could not read {upload.name}: {exc}")
        ss["scouting"] = True
        st.rerun()

    head, status = st.columns([3, 1])
    head.header("Job Scout")
    status_slot = status.empty()
    metrics_slot = st.empty()
    grid_slot = st.empty()

    if scouting:
        _run_scout(status_slot, metrics_slot, grid_slot)
        st.rerun()

    jobs = _store().get()
    status_slot.markdown(_system_status(), unsafe_allow_html=True)
    with metrics_slot.container():
        _render_metrics(jobs)
    with grid_slot.container():
        selected = _render_grid(jobs, selectable=True)

    failures = ss["failures"]
    stuck = [j for j in jobs if j.id in failures and j.status != JobStatus.FAILED]
    if stuck:
        st.warning(f"{len(stuck)} job(s) stopped mid-pipeline — see logs for details.")

    if selected is not None:
        _render_deal_room(selected)


# ── Page: Coach ──────────────────────────────────────────────────────────


def _chat(analyst: Analyst, resume: str) -> ChatSession:
    ss = st.session_state
    if "chat" not in ss or ss.get("chat_resume") != resume:
        ss["chat"] = analyst.start_chat(resume)
        ss["chat_resume"] = resume
    return ss["chat"]


async def _fold(chunks, slot) -> str:
    buffer = ""
    async for chunk in chunks:
        buffer += chunk
        slot.markdown(buffer + "▌")
    slot.markdown(buffer)
    return buffer


def page_coach() -> None:
    st.header("Career Coach")
    analyst = _analyst(_settings())
    if analyst is None:
        st.warning("Set `GEMINI_API_KEY` in `.env` to chat with the coach.")
        return

    chat = _chat(analyst, _criteria().resume_text)
    for msg in chat.history:
        with st.chat_message(msg.role):
            st.markdown(msg.text)

    prompt = st.chat_input("Ask about your search…")
    if not prompt:
        return
    with st.chat_message("user"):
        st.markdown(prompt)
    with st.chat_message("assistant"):
        slot = st.empty()
        stream = chat.stream(prompt)
        try:
            _loop().run_until_complete(_fold(stream, slot))
        finally:
            _loop().run_until_complete(stream.aclose())


# ── Page: Report ─────────────────────────────────────────────────────────


def page_report() -> None:
    st.header("Session Report")
    jobs = _store().get()
    content = build_session_report(jobs, _criteria())
    st.download_button(
        "Download Report",
        content,
        file_name="scout_report.md",
        mime="text/markdown",
        disabled=not jobs,
    )
    st.markdown(content)


# ── Main ─────────────────────────────────────────────────────────────────


def _check(label: str, ok: bool) -> str:
    icon = "✅" if ok else "⬜"
    return f"{icon}  {label}"


def _sidebar_status() -> None:
    ss = _state()
    settings = _settings()
    with st.sidebar:
        st.divider()
        st.markdown("**Status**")
        st.markdown(_check("Gemini API key", settings.ai_available))
        st.markdown(_check("Resume loaded", bool(_criteria().resume_text.strip())))
        st.markdown(_check("Opportunities scouted", len(_store()) > 0))
        st.caption(f"Model: `{settings.model}`")

        if st.button("🗑️ Clear Opportunities", use_container_width=True, disabled=ss["scouting"]):
            _store().clear()
            ss["tailored"] = {}
            ss["failures"] = {}
            st.rerun()


def _inject_css() -> None:
    st.markdown(_CSS, unsafe_allow_html=True)


def _wrap_scout():
    _inject_css()
    _sidebar_status()
    page_scout()


def _wrap_coach():
    _inject_css()
    _sidebar_status()
    page_coach()


def _wrap_report():
    _inject_css()
    _sidebar_status()
    page_report()


st.set_page_config(page_title="Job Scout", page_icon="🔎", layout="wide")

pages = [
    st.Page(_wrap_scout, title="Scout", icon="🔎", url_path="scout", default=True),
    st.Page(_wrap_coach, title="Coach", icon="💬", url_path="coach"),
    st.Page(_wrap_report, title="Report", icon="📋", url_path="report"),
]

nav = st.navigation(pages)
nav.run()
