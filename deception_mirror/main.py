import sys
import os
import asyncio
from datetime import datetime
from typing import List, Optional

import streamlit as st

# Add the project root to sys.path so `streamlit run deception_mirror/main.py` can import the package
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from deception_mirror.audio import data_uri_to_bytes
from deception_mirror.config import load_config, missing_settings
from deception_mirror.errors import LogStoreError, ValidationError
from deception_mirror.logger import get_logger
from deception_mirror.mirror_log import EXPORT_FILE_NAME, MirrorLog
from deception_mirror.models import DeceptionAnalysis, DebateAudio, DebateText, Vertical
from deception_mirror.state import Status, ViewController, ViewState, can_save

logger = get_logger(__name__)

config = load_config()

# ==========================================
# STREAMLIT FRONTEND
# ==========================================
st.set_page_config(page_title="Deception Mirror", layout="wide", page_icon="🪞")

st.markdown("""
<style>
    .block-container {
        padding-top: 1.5rem !important;
    }
    h1 {
        font-weight: 700;
        font-size: 2.2rem;
        margin-bottom: 0.5rem;
    }
</style>
""", unsafe_allow_html=True)

if "view_state" not in st.session_state:
    st.session_state.view_state = ViewState()


@st.cache_resource
def get_mirror_log(db_path: str) -> MirrorLog:
    return MirrorLog(db_path)


def _controller(on_change=None) -> ViewController:
    controller = ViewController(config, on_change=on_change)
    controller.state = st.session_state.view_state
    return controller


def _risk_label(score: float) -> str:
    if score > 0.75:
        return "🔴 High"
    if score > 0.5:
        return "🟠 Elevated"
    return "🟢 Low"


def _play(data_uri: str, missing_text: str) -> None:
    if data_uri:
        st.audio(data_uri_to_bytes(data_uri), format="audio/wav")
    else:
        st.caption(missing_text)


def _render_analysis(analysis: DeceptionAnalysis) -> None:
    score_pct = round(analysis.deception_risk_score * 100)
    st.metric("Deception risk", f"{score_pct}%", _risk_label(analysis.deception_risk_score), delta_color="off")
    st.markdown(f"**TL;DR:** {analysis.tldr}")
    for item in analysis.diagnosis:
        item_pct = round(item.risk_score * 100)
        st.progress(item_pct / 100, text=f"**{item.bias}** — {item_pct}%")
        st.caption(item.diagnosis)


def _render_debate(debate: DebateText, audio: Optional[DebateAudio]) -> None:
    """Both sides side by side; players appear once audio has settled."""
    c1, c2 = st.columns(2)
    with c1:
        st.success(f"**Advocate:**\n\n{debate.advocate_text}")
        if audio is not None:
            _play(audio.advocate_audio, "Advocate audio unavailable.")
    with c2:
        st.error(f"**Skeptic:**\n\n{debate.skeptic_text}")
        if audio is not None:
            _play(audio.skeptic_audio, "Skeptic audio unavailable.")
    if audio is None:
        st.caption("Generating debate audio...")


def _paint_partial(state: ViewState, analysis_slot, debate_slot) -> None:
    """Draw whichever branch has settled while the other is still running."""
    if state.analysis.status is Status.DONE:
        with analysis_slot.container():
            _render_analysis(state.analysis.value)
    elif state.analysis.status is Status.ERROR:
        analysis_slot.error(state.analysis.error)

    if state.debate_text.status is Status.DONE:
        with debate_slot.container():
            audio = state.debate_audio.value if state.debate_audio.status is Status.DONE else None
            _render_debate(state.debate_text.value, audio)
    elif state.debate_text.status is Status.ERROR:
        debate_slot.warning(state.debate_text.error)


# SIDEBAR CONFIGURATION
with st.sidebar:
    st.header("Configuration")
    st.write(f"**LLM provider:** {config['llm_provider']}")
    missing = missing_settings(config)
    if missing:
        st.warning(f"Missing settings: {', '.join(missing)}")
    else:
        st.success("Configuration Loaded")
    st.caption(
        f"Voices: narrator={config['voices']['narrator']}, "
        f"advocate={config['voices']['advocate']}, skeptic={config['voices']['skeptic']}"
    )

st.title("Deception Mirror")
st.caption("Uncover patterns of self-deception. Enter a statement to receive a risk analysis and a counter-narrative.")

tab_new, tab_history = st.tabs(["Analyze", "Mirror Log"])

# --- TAB 1: NEW ANALYSIS ---
with tab_new:
    claim_input = st.text_area(
        "Your claim:",
        height=120,
        key="claim_input",
        placeholder="e.g. 'Buying options is always safer than buying stocks.'",
    )
    selected_verticals: List[str] = st.multiselect(
        "Verticals",
        [v.value for v in Vertical],
        default=[Vertical.FINANCE.value],
    )

    if st.button("Analyze Claim", type="primary"):
        if not claim_input.strip() or not selected_verticals:
            st.warning("Please enter a claim and select at least one vertical.")
        else:
            with st.status("Analyzing claim...", expanded=True) as status:
                analysis_line = st.empty()
                debate_line = st.empty()
                audio_line = st.empty()
                analysis_slot = st.empty()
                debate_slot = st.empty()

                def _on_change(state: ViewState) -> None:
                    """Repaint branch progress and any settled result each time a branch settles."""
                    analysis_line.write(f"🧠 Risk analysis: **{state.analysis.status.value}**")
                    debate_line.write(f"🗪 Debate text: **{state.debate_text.status.value}**")
                    audio_line.write(f"🔊 Debate audio: **{state.debate_audio.status.value}**")
                    _paint_partial(state, analysis_slot, debate_slot)

                controller = _controller(on_change=_on_change)
                try:
                    final_state = asyncio.run(controller.submit(claim_input, selected_verticals))
                except ValidationError as err:
                    st.warning(str(err))
                    status.update(label="Invalid input", state="error")
                else:
                    st.session_state.view_state = final_state
                    analysis_slot.empty()
                    debate_slot.empty()
                    if final_state.analysis.status is Status.ERROR and final_state.debate_text.status is Status.ERROR:
                        status.update(label="Analysis failed", state="error", expanded=False)
                    else:
                        status.update(label="Analysis complete", state="complete", expanded=False)

    view: ViewState = st.session_state.view_state

    if view.submitted:
        t_analysis, t_debate = st.tabs(["Analysis", "Debate Mode"])

        with t_analysis:
            if view.analysis.status is Status.ERROR:
                st.error(view.analysis.error)
            elif view.analysis.status is Status.DONE:
                _render_analysis(view.analysis.value)

                if view.narration.status is Status.DONE:
                    _play(view.narration.value, "Narration unavailable.")
                elif view.narration.status is Status.ERROR:
                    st.caption(view.narration.error)
                elif st.button("🔊 Listen to summary"):
                    controller = _controller()
                    with st.spinner("Generating narration..."):
                        asyncio.run(controller.narrate())
                    st.session_state.view_state = controller.state
                    st.rerun()
            else:
                st.info("Awaiting analysis...")

        with t_debate:
            if view.debate_text.status is Status.DONE:
                _render_debate(view.debate_text.value, view.debate_audio.value or DebateAudio())
            elif view.debate_text.status is Status.ERROR:
                st.warning(view.debate_text.error)
            else:
                st.info("Generating debate...")

        if st.button("Save to Mirror Log", disabled=not can_save(view)):
            try:
                _controller().save_to_log(get_mirror_log(config["db_path"]))
                st.toast("Your analysis has been saved.")
            except (ValidationError, LogStoreError) as err:
                st.error(str(err))

# --- TAB 2: MIRROR LOG ---
with tab_history:
    st.header("Mirror Log")
    try:
        mirror_log = get_mirror_log(config["db_path"])
    except LogStoreError as err:
        st.error(str(err))
        mirror_log = None

    if mirror_log is not None:
        search_query = st.text_input("Search Claims:", placeholder="Enter keywords...")
        entries = mirror_log.search(search_query)

        col_export, col_clear = st.columns(2)
        with col_export:
            st.download_button(
                "Export",
                data=mirror_log.export_json(),
                file_name=EXPORT_FILE_NAME,
                mime="application/json",
                disabled=not len(mirror_log),
            )
        with col_clear:
            if st.button("Clear Log", type="secondary", disabled=not len(mirror_log)):
                try:
                    mirror_log.clear()
                    st.rerun()
                except LogStoreError as err:
                    st.error(str(err))

        if not len(mirror_log):
            st.info("No saved analyses yet.")
        elif not entries:
            st.warning("No claims found matching your search.")
        else:
            st.caption(f"Showing {len(entries)} saved analyses.")
            for entry in entries:
                when = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%d %b %Y, %H:%M")
                saved = entry.result.deception_analysis
                with st.expander(f"{when} — {entry.claim[:90]}"):
                    st.write(f"**Verticals:** {', '.join(v.value for v in entry.verticals)}")
                    st.write(f"**Deception risk:** {round(saved.deception_risk_score * 100)}%")
                    st.write(f"**TL;DR:** {saved.tldr}")
                    for item in saved.diagnosis:
                        st.write(f"- **{item.bias}** ({round(item.risk_score * 100)}%): {item.diagnosis}")
                    if entry.result.debate:
                        st.text(entry.result.debate)
                    if st.button("Delete", key=f"delete-{entry.id}"):
                        try:
                            mirror_log.delete(entry.id)
                            st.rerun()
                        except LogStoreError as err:
                            st.error(str(err))
