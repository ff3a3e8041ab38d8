"""The Modern American Trail (Streamlit)

Principles:
- UI only renders + triggers.
- Core domain and engine are pure Python modules; all state changes go
  through engine.session.GameSession.
- Content comes from an LLM (OpenRouter or Gemini). If every model fails the
  game falls back to hardcoded events and says so.

Entry point for Streamlit Cloud: app.py
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, replace
from typing import Optional

import streamlit as st

from core.modes import DEFAULT_MODES, get_mode_spec
from core.shop import SHOP_ITEMS
from core.state import GameState

from content.providers.base import FALLBACK_FREE_MODELS

from engine.config import GEMINI, OPENROUTER, EngineConfig, load_config
from engine.persistence import LocalSaveStore, SnapshotError
from engine.session import GameSession, make_provider


APP_TITLE = "The Modern American Trail"
APP_SUBTITLE = "Escape the Dystopia • Survive the Journey • Find Freedom"
APP_VERSION = "1.0.0"

LOG = logging.getLogger(__name__)

st.set_page_config(page_title=APP_TITLE, page_icon="🛻", layout="wide", initial_sidebar_state="expanded")

CSS = """
<style>
.block-container {padding-top: 3.2rem; padding-bottom: 2rem;}
section[data-testid="stSidebar"] .block-container {padding-top: 2.0rem;}
.card {
  border: 1px solid rgba(255,255,255,0.08);
  border-radius: 16px;
  padding: 14px 16px;
  background: rgba(255,255,255,0.03);
}
.pill {
  display: inline-block;
  padding: 2px 10px;
  border-radius: 999px;
  border: 1px solid rgba(255,255,255,0.12);
  font-size: 12px;
  opacity: .85;
}
.pill.ok {border-color: rgba(120,255,160,0.25);}
.pill.bad {border-color: rgba(255,120,120,0.25);}
hr.soft {border: none; border-top: 1px solid rgba(255,255,255,0.08); margin: 1rem 0;}
.small {font-size: 13px; opacity:.75;}
</style>
"""

st.markdown(CSS, unsafe_allow_html=True)


# =========================
# Helpers
# =========================


def _secret(name: str) -> str:
    # Streamlit Cloud: st.secrets
    try:
        if name in st.secrets:
            return str(st.secrets[name])
    except FileNotFoundError:
        pass
    # Local
    return os.getenv(name) or ""


def _config() -> EngineConfig:
    cfg = load_config()
    if cfg.provider == GEMINI:
        key = _secret("GEMINI_API_KEY") or _secret("GOOGLE_API_KEY")
    elif cfg.provider == OPENROUTER:
        key = _secret("OPENROUTER_API_KEY")
    else:
        key = ""
    return replace(cfg, api_key=key or cfg.api_key, site_url=_secret("SITE_URL") or cfg.site_url)


def _session() -> GameSession:
    ss = st.session_state
    if "session" not in ss:
        cfg = _config()
        logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        session = GameSession(make_provider(cfg), cfg, store=LocalSaveStore(cfg.save_path))
        session.refresh_models()
        ss.session = session
    return ss.session


def _weather(state: GameState) -> str:
    if state.health > 70:
        return "☀️ Fair Weather"
    if state.health > 40:
        return "⛅ Overcast"
    return "🌧️ Stormy"


def _status_line(state: GameState) -> str:
    if state.jailed:
        return f"🚔 In jail (day {state.days_in_jail + 1})"
    if state.stuck_days:
        return f"🚧 Stuck for {state.stuck_days} more day(s)"
    return f"{state.distance_to_next} miles to the next stop"


# =========================
# Pages
# =========================


def page_setup(session: GameSession) -> None:
    st.title(APP_TITLE)
    st.caption(APP_SUBTITLE)
    st.markdown(
        "Lead your party from Portland to the **Safe Haven of Vermont** across an America run by "
        "loyalty tests, corporate checkpoints and very enthusiastic paperwork."
    )

    mode_names = list(DEFAULT_MODES.keys())
    mode_key = st.selectbox("Difficulty", mode_names, index=mode_names.index("normal"))
    st.caption(get_mode_spec(mode_key).desc)

    model_ids = [m.id for m in session.models if m.healthy] or list(FALLBACK_FREE_MODELS)
    default = session.default_model()
    model_ix = model_ids.index(default) if default in model_ids else 0
    model_id = st.selectbox("Model", model_ids, index=model_ix)

    cols = st.columns(2)
    with cols[0]:
        if st.button("Start the journey", type="primary", use_container_width=True):
            session.new_game(model_id, mode_key)
            st.rerun()
    with cols[1]:
        if session.store is not None and session.store.has_save():
            if st.button("Continue saved game", use_container_width=True):
                if session.load() is None:
                    st.error("The saved game could not be loaded.")
                else:
                    st.rerun()


def _render_event(session: GameSession, state: GameState) -> None:
    ev = state.current_event
    st.markdown("<div class='card'>", unsafe_allow_html=True)
    st.markdown(f"#### ⚠️ {ev.title}")
    st.markdown(ev.description)
    st.markdown("</div>", unsafe_allow_html=True)
    st.write("")
    for i, choice in enumerate(ev.choices):
        if st.button(choice.text, key=f"choice_{state.day}_{i}", use_container_width=True):
            session.choose(i)
            session.save()
            st.rerun()


def page_run(session: GameSession) -> None:
    state = session.state

    st.title(APP_TITLE)
    st.caption(f"Day {state.day} • {_weather(state)} • {state.current_location.name}")

    a, b, c, d, e = st.columns(5)
    a.metric("Health", f"{state.health}%")
    b.metric("Morale", f"{state.morale}%")
    c.metric("Supplies", f"{state.supplies}%")
    d.metric("Money", f"${state.money}")
    e.metric("Miles", f"{state.total_distance}")
    st.progress(state.progress_pct / 100, text=f"Journey {state.progress_pct}% • {_status_line(state)}")

    if state.last_error:
        st.warning(state.last_error)

    st.markdown("<hr class='soft'/>", unsafe_allow_html=True)

    if state.is_terminal:
        if state.outcome == "victory":
            st.success(f"🏁 You reached {state.destination.name} in {state.day} days. Freedom (terms and conditions apply).")
        else:
            st.error("💀 Your journey ends here. The regime thanks you for your compliance.")
        return

    if state.current_event is not None:
        _render_event(session, state)
        return

    cols = st.columns(2)
    with cols[0]:
        label = "Serve another day" if state.jailed else "Continue the journey"
        if st.button(label, type="primary", use_container_width=True):
            with st.spinner("The road ahead is being written…"):
                session.advance()
            session.save()
            st.rerun()
    with cols[1]:
        if not state.immobility.is_free:
            st.caption("Nothing to do but wait it out.")
        elif st.button("Face the day", use_container_width=True):
            with st.spinner("Something is happening…"):
                session.face_the_day()
            session.save()
            st.rerun()

    st.markdown("<hr class='soft'/>", unsafe_allow_html=True)
    with st.expander("👥 Party"):
        for m in state.party:
            st.markdown(f"- **{m.name}** ({m.profession}): health {m.health}%, morale {m.morale}%")
        if not state.party:
            st.markdown("Nobody is left.")

    with st.expander("🛒 Black Market"):
        for item in SHOP_ITEMS:
            col1, col2 = st.columns([3, 1])
            col1.markdown(f"**{item.name}** (~${item.base_price})  \n<span class='small'>{item.description}</span>", unsafe_allow_html=True)
            if col2.button("Buy", key=f"buy_{item.id}", disabled=state.money < item.base_price - 10):
                session.buy(item.id)
                session.save()
                st.rerun()


def page_journal(session: GameSession) -> None:
    state = session.state
    st.title("Journal")
    if not state.game_log:
        st.info("Nothing has happened yet. Give it a day.")
        return
    for entry in reversed(state.game_log):
        st.markdown(f"**Day {entry.day} · {entry.event}**  \n{entry.result}")


def page_map(session: GameSession) -> None:
    state = session.state
    st.title("Map")
    for i, loc in enumerate(state.locations):
        marker = "📍" if i == state.current_location_index else ("✅" if i < state.current_location_index else "▫️")
        icon = "🏙️" if loc.kind == "city" else "⚠️"
        st.markdown(f"{marker} {icon} {loc.name}")


def page_debug(session: GameSession) -> None:
    state = session.state
    st.title("Debug")

    st.subheader("Provider")
    st.json(asdict(session.provider.status()) if session.provider else {"ok": False, "backend": "offline"})

    st.subheader("AI stats")
    stats = state.api_stats
    st.json(asdict(stats))
    st.caption(f"AI ratio: {stats.ai_ratio:.0%}")

    st.subheader("Models")
    st.json([asdict(m) for m in session.models])

    st.subheader("EngineConfig")
    cfg = asdict(session.config)
    cfg["api_key"] = "***" if cfg.get("api_key") else ""
    st.json(cfg)


def export_import_controls(session: GameSession) -> None:
    st.sidebar.markdown("---")
    st.sidebar.markdown("### Export / Import")

    if session.state is not None:
        filename, blob = session.export()
        st.sidebar.download_button(
            "Download run",
            data=blob.encode("utf-8"),
            file_name=filename,
            mime="application/json",
        )

    up = st.sidebar.file_uploader("Load a run file", type=["json"], accept_multiple_files=False)
    if up is not None and st.sidebar.button("Import"):
        try:
            session.import_snapshot(up.read().decode("utf-8"))
        except (SnapshotError, UnicodeDecodeError) as e:
            st.sidebar.error(f"Import failed: {e}")
        else:
            st.sidebar.success("Run loaded.")
            st.rerun()


# =========================
# Sidebar
# =========================


def sidebar(session: GameSession) -> Optional[str]:
    st.sidebar.markdown(f"**{APP_TITLE}**  ")
    st.sidebar.markdown(f"v{APP_VERSION}")
    st.sidebar.markdown("---")

    state = session.state
    stats = state.api_stats if state else None
    if session.provider is None:
        st.sidebar.error("🔴 No API key: fallback events only")
    elif stats is not None and stats.connected:
        st.sidebar.success(f"🟢 AI connected ({state.selected_model})")
    else:
        st.sidebar.warning(f"🔴 Fallback events ({state.selected_model if state else session.default_model()})")

    if st.sidebar.button("Test connection", use_container_width=True):
        probe = session.test_connection()
        if probe.ok:
            st.sidebar.success(f"Connected: {probe.model}")
        else:
            st.sidebar.error(f"Failed: {probe.error}")

    if st.sidebar.button("Refresh models", use_container_width=True):
        session.refresh_models(probe=True)
        st.rerun()

    if state is None:
        return None

    cols = st.sidebar.columns(2)
    with cols[0]:
        if st.button("↩ Undo", disabled=not session.can_undo, use_container_width=True):
            session.undo()
            st.rerun()
    with cols[1]:
        if st.button("↪ Redo", disabled=not session.can_redo, use_container_width=True):
            session.redo()
            st.rerun()

    if st.sidebar.button("New game", use_container_width=True):
        if session.store is not None:
            session.store.clear()
        session.history = None
        st.rerun()

    export_import_controls(session)

    st.sidebar.markdown("---")
    return st.sidebar.radio("Page", ["Play", "Journal", "Map", "Debug"], index=0)


# =========================
# Main
# =========================


def main() -> None:
    session = _session()
    page = sidebar(session)

    if session.state is None:
        page_setup(session)
        return

    if page == "Play":
        page_run(session)
    elif page == "Journal":
        page_journal(session)
    elif page == "Map":
        page_map(session)
    else:
        page_debug(session)


if __name__ == "__main__":
    main()
