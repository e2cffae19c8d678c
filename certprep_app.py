"""
Device Support Certification Prep - Streamlit Web App
======================================================
Run:      streamlit run certprep_app.py
Requires: streamlit, sqlalchemy, anthropic (authoring only)
Secrets:  DATABASE_URL = "postgresql+psycopg://..."   (defaults to local SQLite)
          ANTHROPIC_API_KEY = "sk-ant-..."           (only for the Author page)
"""

import streamlit as st

import domain_stats
import sampler
from attempt_recorder import AttemptRecorder
from logging_config import configure_logging
from question_store import QuestionStore, StoreError
from question_writer import GenerationError, QuestionWriter
from quiz_models import ALL_DOMAINS, DIFFICULTIES, LETTERS, MODES, resolve_domain
from quiz_session import Empty, LoadError, Loading, QuizSession
from settings import load_settings

# ─────────────────────────────────────────────────────────────────────────────
# PAGE CONFIG
# ─────────────────────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="Device Support Cert Prep",
    page_icon="🛠️",
    layout="centered",
    initial_sidebar_state="expanded",
)

SETTINGS = load_settings(st.secrets)
log = configure_logging(SETTINGS.log_level)

# ─────────────────────────────────────────────────────────────────────────────
# SHARED RESOURCES
# ─────────────────────────────────────────────────────────────────────────────
@st.cache_resource
def get_store():
    """Open the question bank once and reuse it across reruns."""
    return QuestionStore.from_url(SETTINGS.database_url)


@st.cache_resource
def get_recorder():
    return AttemptRecorder(get_store())


@st.cache_resource
def get_writer():
    if not SETTINGS.anthropic_api_key:
        st.error(
            "🔑 **API key missing.** "
            "Add ANTHROPIC_API_KEY to your Streamlit secrets "
            "(app ⋯ → Settings → Secrets) or environment to generate questions."
        )
        st.stop()
    return QuestionWriter.from_api_key(SETTINGS.anthropic_api_key, model=SETTINGS.question_model)

# ─────────────────────────────────────────────────────────────────────────────
# SESSION STATE
# ─────────────────────────────────────────────────────────────────────────────
def init_session():
    defaults = {
        "screen":       "home",
        "quiz":         None,
        "domains":      None,
        "stats_sort":   "accuracy",
        "stats_desc":   True,
    }
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v
    if st.session_state.quiz is None:
        st.session_state.quiz = QuizSession(recorder=get_recorder())


def _load_domains():
    try:
        st.session_state.domains = get_store().fetch_domains()
    except StoreError as exc:
        log.error("Error loading domains: %s", exc)
        st.session_state.domains = []


def _load_questions():
    quiz = st.session_state.quiz
    quiz.begin_loading()
    try:
        pool = get_store().fetch_questions(quiz.mode, quiz.domain, limit=SETTINGS.fetch_limit)
    except StoreError as exc:
        quiz.fail(exc)
        return
    quiz.load(pool)

# ─────────────────────────────────────────────────────────────────────────────
# CSS
# ─────────────────────────────────────────────────────────────────────────────
CSS = """
<style>
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;900&display=swap');
html, body, [class*="css"] { font-family: 'Inter', sans-serif; }
.stApp { background-color: #0d0f16; color: #e4e7f0; }
section[data-testid="stSidebar"] { background-color: #13161f; border-right: 1px solid #22263a; }
div[data-testid="stProgress"] > div > div { background-color: #3b6bfa !important; }
h1, h2, h3 { color: #e4e7f0; }
.badge {
    display: inline-block; border-radius: 6px;
    padding: 3px 10px; font-size: 12px; font-weight: 700; margin-right: 6px;
    background: #22263a; color: #aaa;
}
</style>
"""


def badge(text):
    return f'<span class="badge">{text}</span>'

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — HOME
# ─────────────────────────────────────────────────────────────────────────────
def screen_home():
    st.markdown("# 🛠️ Device Support Certification Prep")
    st.markdown("*Practice questions by domain. Track your progress. Get exam-ready.*")
    st.divider()

    c1, c2 = st.columns(2)
    c1.metric("Balanced", "30 / 50 / 20")
    c2.metric("Exam", "10 / 45 / 45")
    st.caption("Easy / medium / hard mix per mode. Exam mode holds feedback until the end.")

    c1, c2 = st.columns(2)
    if c1.button("🚀 Start Quiz", type="primary", use_container_width=True):
        st.session_state.screen = "quiz"
        st.rerun()
    if c2.button("📊 Stats", use_container_width=True):
        st.session_state.screen = "stats"
        st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — QUIZ
# ─────────────────────────────────────────────────────────────────────────────
def quiz_controls(quiz):
    if st.session_state.domains is None:
        with st.spinner("Loading domains…"):
            _load_domains()
    options = st.session_state.domains
    current = resolve_domain(quiz.domain, options)

    with st.sidebar:
        st.markdown("## ⚙️ Quiz")
        mode = st.radio("Mode", list(MODES), index=list(MODES).index(quiz.mode),
                        format_func=lambda m: MODES[m]["label"],
                        help=MODES["exam"]["hint"], horizontal=True)
        size = st.select_slider("Questions", options=list(sampler.QUIZ_SIZES),
                                value=quiz.size if quiz.size in sampler.QUIZ_SIZES else sampler.DEFAULT_SIZE)
        choices = [ALL_DOMAINS] + options
        domain = st.selectbox("Domain", choices, index=choices.index(current),
                              format_func=lambda d: "All Domains" if d == ALL_DOMAINS else d)

    if quiz.configure(mode=mode, size=size, domain=domain):
        quiz.begin_loading()


def screen_quiz():
    quiz = st.session_state.quiz
    quiz_controls(quiz)

    if isinstance(quiz.state, Loading):
        with st.spinner("Loading quiz…"):
            _load_questions()

    state = quiz.state
    if isinstance(state, LoadError):
        st.error(f"**Couldn’t load questions**\n\n{state.message}")
        if st.button("🔄 Retry"):
            quiz.begin_loading()
            st.rerun()
        return

    if isinstance(state, Empty):
        where = f" and domain = {quiz.domain}" if quiz.domain != ALL_DOMAINS else ""
        st.info(f"**No questions found**\n\nCheck your table rows for mode = {quiz.mode}{where}.")
        return

    if quiz.is_complete:
        screen_review(quiz)
        return

    view = quiz.question_view()
    recorder = get_recorder()

    # ── Top bar ───────────────────────────────────────────────────────────
    left, right = st.columns([4, 2])
    with left:
        st.progress(quiz.progress_pct / 100)
        st.caption(f"Question {view.position} of {view.total}  ·  {view.domain}  ·  {quiz.progress_pct}%")
    with right:
        saving = badge("Saving…") if recorder.pending else ""
        score = quiz.live_score
        tally = f"Score {score[0]}/{score[1]}" if score else f"Answered {quiz.attempted}"
        st.markdown(
            badge(f"Loaded {quiz.total}") + badge(tally) + saving,
            unsafe_allow_html=True,
        )

    dif_info = DIFFICULTIES[view.difficulty]
    st.markdown(badge(f"{dif_info['emoji']} {view.difficulty.upper()}"), unsafe_allow_html=True)
    st.markdown(f"### {view.text}")
    st.write("")

    # ── Options ───────────────────────────────────────────────────────────
    for i, opt in enumerate(view.choices):
        text = f"**{LETTERS[i]}.** {opt}"
        if not view.submitted:
            marker = "🔘 " if view.selected == i else ""
            if st.button(f"{marker}{text}", key=f"opt_{i}", use_container_width=True):
                quiz.select_answer(i)
                st.rerun()
        elif view.revealed and i == view.correct_index:
            st.success(f"{text}  ✓ Correct")
        elif view.revealed and i == view.selected:
            st.error(f"{text}  ✗ Incorrect")
        elif i == view.selected:
            st.info(f"{text}  ← your answer")
        else:
            st.markdown(text)

    # ── Feedback ──────────────────────────────────────────────────────────
    if view.submitted and view.revealed:
        with st.expander("✅ Correct" if view.is_correct else "❌ Incorrect", expanded=True):
            st.write(view.explanation)
    elif view.submitted:
        st.caption("Exam mode: feedback is shown at the end.")

    # ── Actions ───────────────────────────────────────────────────────────
    st.divider()
    a, b, c, d = st.columns(4)
    if a.button("Submit", type="primary", use_container_width=True,
                disabled=view.selected is None or view.submitted):
        quiz.submit()
        st.rerun()
    last = view.position == view.total
    if b.button("Finish" if last else "Next", use_container_width=True, disabled=not view.submitted):
        quiz.advance()
        st.rerun()
    if c.button("Reshuffle", use_container_width=True, help="Shuffle the current loaded set"):
        quiz.reshuffle()
        st.rerun()
    if d.button("Reload", use_container_width=True, help="Reload from the question bank"):
        quiz.begin_loading()
        st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — REVIEW
# ─────────────────────────────────────────────────────────────────────────────
def screen_review(quiz):
    summary = quiz.review()

    st.markdown("# 🎓 Exam Results" if summary.mode == "exam" else "# 🔍 Review")
    c1, c2 = st.columns(2)
    c1.metric("Final score", f"{summary.correct}/{summary.total}")
    c2.metric("Missed", summary.missed)
    where = f"  ·  Domain: {summary.domain}" if summary.domain != ALL_DOMAINS else ""
    st.caption(f"Mode: {summary.mode.upper()}{where}")
    st.divider()

    if not summary.items:
        st.success("Perfect run. No misses.")
    for i, item in enumerate(summary.items, start=1):
        with st.expander(f"❌ {i}. {item.text}"):
            st.caption(f"{item.domain} · {item.difficulty.upper()}")
            st.success(f"**Correct: {item.correct_letter}.** {item.correct_text}")
            st.markdown("**Explanation:**")
            st.write(item.explanation)
            if st.button("Go to question", key=f"jump_{item.question_id}"):
                quiz.jump_to(item.question_id)
                st.rerun()

    st.divider()
    a, b, c = st.columns(3)
    if a.button("🔄 Restart full quiz", type="primary", use_container_width=True):
        quiz.restart()
        st.rerun()
    if b.button("Retry incorrect only", use_container_width=True,
                disabled=not quiz.can_retry_incorrect):
        quiz.retry_incorrect()
        st.rerun()
    if c.button("Back to quiz", use_container_width=True):
        quiz.back_to_quiz()
        st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — STATS
# ─────────────────────────────────────────────────────────────────────────────
def screen_stats():
    st.markdown("# 📊 Stats")
    st.caption("Your performance by domain.")

    try:
        rows = get_store().fetch_domain_stats()
    except StoreError as exc:
        st.error(f"**Couldn’t load stats**\n\n{exc}")
        if st.button("🔄 Retry"):
            st.rerun()
        return

    attempts, correct, acc = domain_stats.overall(rows)
    left, right = st.columns([3, 1])
    left.markdown(badge(f"Overall {acc}% ({correct}/{attempts})"), unsafe_allow_html=True)
    if right.button("Refresh", use_container_width=True):
        st.rerun()

    c1, c2 = st.columns(2)
    key = c1.selectbox("Sort by", domain_stats.SORT_KEYS,
                       index=domain_stats.SORT_KEYS.index(st.session_state.stats_sort),
                       format_func=str.capitalize)
    desc = c2.radio("Order", [True, False], index=0 if st.session_state.stats_desc else 1,
                    format_func=lambda v: "High → Low" if v else "Low → High", horizontal=True)
    st.session_state.stats_sort, st.session_state.stats_desc = key, desc
    st.caption(f"Domains: {len(rows)}")
    st.divider()

    if not rows:
        st.info("**No stats yet**\n\nComplete a quiz and submit answers to generate domain stats.")
        return

    for r in domain_stats.sort_rows(rows, key, desc):
        pct = domain_stats.accuracy(r.total_correct, r.total_attempts)
        last = f" · Last mode: {r.last_mode}" if r.last_mode else ""
        st.markdown(f"**{r.domain}**")
        st.progress(pct / 100, text=f"{r.total_correct}/{r.total_attempts} correct ({pct}%){last}")

# ─────────────────────────────────────────────────────────────────────────────
# SCREEN — AUTHOR
# ─────────────────────────────────────────────────────────────────────────────
def screen_author():
    st.markdown("# ✍️ Add Questions")
    st.caption("Claude writes new questions straight into the question bank.")
    writer = get_writer()

    with st.form("author"):
        domain = st.text_input("Domain", placeholder="e.g. Hardware Troubleshooting")
        topic = st.text_input("Topic (optional)")
        c1, c2, c3 = st.columns(3)
        difficulty = c1.selectbox("Difficulty", list(DIFFICULTIES),
                                  format_func=lambda d: f"{DIFFICULTIES[d]['emoji']} {DIFFICULTIES[d]['label']}")
        mode = c2.selectbox("Mode", list(MODES), format_func=lambda m: MODES[m]["label"])
        count = c3.number_input("How many?", min_value=1, max_value=10, value=3)
        go = st.form_submit_button("Generate", type="primary")

    if not go:
        return
    if not domain.strip():
        st.error("Pick a domain name.")
        return

    with st.spinner(f"Claude is writing {count} question(s)…"):
        try:
            rows = writer.generate_batch(domain.strip(), difficulty, mode, int(count), topic.strip() or None)
            added = get_store().add_questions(rows)
        except GenerationError as exc:
            st.error(f"Failed to generate questions: {exc}")
            return
        except StoreError as exc:
            st.error(f"Couldn’t save questions: {exc}")
            return

    st.success(f"Added {added} question(s) to {domain.strip()}.")
    st.session_state.domains = None
    for row in rows:
        with st.expander(row["question"]):
            st.write(f"Correct: **{row['correct_choice']}**")
            st.write(row["explanation"])

# ─────────────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────────────
SCREENS = {
    "home":   ("🏠 Home", screen_home),
    "quiz":   ("📝 Quiz", screen_quiz),
    "stats":  ("📊 Stats", screen_stats),
    "author": ("✍️ Author", screen_author),
}


def main():
    init_session()
    st.markdown(CSS, unsafe_allow_html=True)

    with st.sidebar:
        names = list(SCREENS)
        screen = st.radio("Navigate", names, index=names.index(st.session_state.screen),
                          format_func=lambda s: SCREENS[s][0], label_visibility="collapsed")
        st.divider()
    st.session_state.screen = screen
    SCREENS[screen][1]()


if __name__ == "__main__":
    main()
