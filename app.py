"""
classroadmap - Learning roadmap screen

Streamlit application for managing a class's curriculum roadmap:
sections ("Bài N") in a timeline sidebar, their lessons on the right,
with edit, delete, create and open-file actions.

Usage:
    streamlit run app.py
"""

import asyncio

import streamlit as st

from classroadmap import (
    CurriculumEditor,
    InvalidArgumentError,
    InvalidStateError,
    PersistenceError,
    ResourceUnavailableError,
    RoadmapStore,
    SelectionController,
)
from classroadmap.config import Settings, build_backend, configure_logging
from classroadmap.schemas import EntityRef, LessonDraft, SectionDraft
from classroadmap.viewer import (
    EMPTY_ROADMAP_TEXT,
    EMPTY_SECTION_TEXT,
    ViewMode,
    build_lesson_cards,
    build_timeline,
    find_section,
    get_status_indicator,
    lesson_count_text,
)


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

st.set_page_config(
    page_title="Lộ trình học tập",
    page_icon="📚",
    layout="wide",
    initial_sidebar_state="expanded",
)


# -----------------------------------------------------------------------------
# Session State Initialization
# -----------------------------------------------------------------------------

def init_session_state():
    """Initialize session state variables."""
    if "editor" not in st.session_state:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        backend, viewer = build_backend(settings)

        store = RoadmapStore()
        selection = SelectionController(store)
        st.session_state.settings = settings
        st.session_state.editor = CurriculumEditor(store, selection, backend, viewer)
        st.session_state.load_error = None
        try:
            asyncio.run(st.session_state.editor.refresh())
        except (PersistenceError, InvalidStateError) as e:
            st.session_state.load_error = e.message

    if "notices" not in st.session_state:
        st.session_state.notices = []

    if "editing" not in st.session_state:
        st.session_state.editing = None  # EntityRef being edited

    if "opened_file" not in st.session_state:
        st.session_state.opened_file = None


def run_action(action, *args):
    """Run an editor coroutine, turning recoverable errors into notices."""
    try:
        return asyncio.run(action(*args))
    except (PersistenceError, ResourceUnavailableError, InvalidArgumentError) as e:
        st.session_state.notices.append(e.message)
        return None


# -----------------------------------------------------------------------------
# Notices
# -----------------------------------------------------------------------------

def render_notices():
    """Render dismissible error notices."""
    for index, message in enumerate(list(st.session_state.notices)):
        col1, col2 = st.columns([12, 1])
        with col1:
            st.error(message)
        with col2:
            if st.button("✕", key=f"notice_{index}"):
                st.session_state.notices.pop(index)
                st.rerun()


# -----------------------------------------------------------------------------
# Sidebar: Timeline
# -----------------------------------------------------------------------------

def render_sidebar():
    """Render the section timeline."""
    editor = st.session_state.editor
    st.sidebar.title("📚 Mục lục chương")

    if st.session_state.load_error:
        st.sidebar.error(st.session_state.load_error)

    sections = editor.store.sections
    if not sections:
        st.sidebar.info(EMPTY_ROADMAP_TEXT)

    for entry in build_timeline(sections, editor.selection.active_id):
        col1, col2 = st.sidebar.columns([1, 9])
        with col1:
            st.markdown(get_status_indicator(entry.is_active))
        with col2:
            if st.button(
                f"**{entry.label}** · {entry.title}",
                key=f"section_{entry.section_id}",
                type="primary" if entry.is_active else "secondary",
                use_container_width=True,
            ):
                editor.selection.select(entry.section_id)
                st.rerun()
            st.caption(entry.subtitle)

    st.sidebar.divider()
    with st.sidebar.expander("Thêm chương mới"):
        render_section_form(key="new_section")


def render_section_form(key: str):
    with st.form(key, clear_on_submit=True):
        title = st.text_input("Tiêu đề")
        description = st.text_area("Mô tả")
        background_image = st.text_input("Ảnh nền (URL)")
        if st.form_submit_button("Lưu") and title.strip():
            draft = SectionDraft(
                title=title,
                description=description,
                background_image=background_image or None,
            )
            run_action(st.session_state.editor.create_section, draft)
            st.rerun()


# -----------------------------------------------------------------------------
# Main Content: Section Detail
# -----------------------------------------------------------------------------

def render_section_view():
    """Render the active section with its lessons."""
    editor = st.session_state.editor
    section = find_section(editor.store.sections, editor.selection.active_id)
    if section is None:
        st.info("Chọn một chương bên trái để xem chi tiết")
        return

    ref = EntityRef.section(section.id)
    col1, col2 = st.columns([8, 2])
    with col1:
        st.caption(f"Chương {section.order + 1} · {lesson_count_text(len(section.children))}")
        st.title(section.title)
        st.write(section.description)
    with col2:
        if section.background_image:
            st.image(section.background_image)
        if st.button("Sửa", key=f"edit_{section.id}"):
            st.session_state.editing = ref
            st.rerun()
        if st.button("Xóa", key=f"delete_{section.id}"):
            run_action(editor.delete, ref)
            st.rerun()

    if st.session_state.editing == ref:
        render_edit_form(ref, section.title, section.description)

    st.divider()
    st.subheader("Danh sách bài học")

    cards = build_lesson_cards(section)
    if not cards:
        st.info(EMPTY_SECTION_TEXT)

    for card in cards:
        render_lesson_card(section.id, card)

    with st.expander("Thêm bài học"):
        render_lesson_form(section.id)


def render_lesson_card(section_id, card):
    editor = st.session_state.editor
    lesson = card.lesson
    ref = EntityRef.lesson(lesson.id, section_id)

    with st.container(border=True):
        st.markdown(f"**{card.label}. {lesson.title}**")
        if lesson.description:
            st.caption(lesson.description)

        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button("Xem tài liệu", key=f"view_{section_id}_{lesson.id}", disabled=not card.has_file):
                st.session_state.opened_file = run_action(editor.view_file, lesson)
        with col2:
            if st.button("Sửa", key=f"edit_{section_id}_{lesson.id}"):
                st.session_state.editing = ref
                st.rerun()
        with col3:
            if st.button("Xóa", key=f"delete_{section_id}_{lesson.id}"):
                run_action(editor.delete, ref)
                st.rerun()

        if st.session_state.editing == ref:
            render_edit_form(ref, lesson.title, lesson.description)


def render_edit_form(ref: EntityRef, title: str, description: str):
    with st.form(f"form_{ref.kind.value}_{ref.section_id}_{ref.id}"):
        new_title = st.text_input("Tiêu đề", value=title)
        new_description = st.text_area("Mô tả", value=description)
        save, cancel = st.columns(2)
        if save.form_submit_button("Lưu"):
            patch = {}
            if new_title.strip() and new_title != title:
                patch["title"] = new_title.strip()
            if new_description != description:
                patch["description"] = new_description
            st.session_state.editing = None
            if patch:
                run_action(st.session_state.editor.edit, ref, patch)
            st.rerun()
        if cancel.form_submit_button("Hủy"):
            st.session_state.editing = None
            st.rerun()


def render_lesson_form(section_id):
    with st.form(f"new_lesson_{section_id}", clear_on_submit=True):
        title = st.text_input("Tiêu đề")
        description = st.text_area("Mô tả")
        if st.form_submit_button("Lưu") and title.strip():
            draft = LessonDraft(title=title, description=description)
            run_action(st.session_state.editor.create_lesson, section_id, draft)
            st.rerun()


# -----------------------------------------------------------------------------
# File View
# -----------------------------------------------------------------------------

def render_opened_file():
    """Render the file opened from a lesson card."""
    opened = st.session_state.opened_file
    if opened is None:
        return

    st.divider()
    col1, col2 = st.columns([12, 1])
    with col1:
        st.subheader(opened.name)
        st.caption(opened.mime_type)
    with col2:
        if st.button("✕", key="close_file"):
            st.session_state.opened_file = None
            st.rerun()

    if opened.mode == ViewMode.IMAGE:
        st.image(opened.content)
    elif opened.mode == ViewMode.PDF and hasattr(st, "pdf"):
        st.pdf(opened.content)
    else:
        if opened.mode == ViewMode.DOCUMENT:
            st.info("File Word không thể xem trực tiếp trong trình duyệt")
        else:
            st.info("Loại file này không thể xem trực tiếp")
        st.download_button("Tải xuống file", opened.content, file_name=opened.name, mime=opened.mime_type)


# -----------------------------------------------------------------------------
# Main App
# -----------------------------------------------------------------------------

def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()
    render_notices()
    render_section_view()
    render_opened_file()


if __name__ == "__main__":
    main()
