"""Streamlit web app for the Lumina photo editor."""

import sys
from pathlib import Path

import streamlit as st

# Add the parent directory to the path so we can import the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from lumina.adjustments import EditorCategory, sliders_for_category
from lumina.batch import (
    ARCHIVE_FILENAME, BatchPolicy, BatchQueue, BatchRunner, BatchStatus, package_results
)
from lumina.errors import LuminaError
from lumina.presets import AUTO_PORTRA_PRESET, NEUTRAL_PRESET_ID, get_available_presets
from lumina.session import DEFAULT_EXPORT_FILENAME, EditSession

STATUS_LABELS = {
    BatchStatus.PENDING: "⏳ pending",
    BatchStatus.PROCESSING: "🔄 processing",
    BatchStatus.DONE: "✅ done",
    BatchStatus.ERROR: "❌ error",
}


def _session() -> EditSession:
    if 'edit_session' not in st.session_state:
        st.session_state.edit_session = EditSession()
    return st.session_state.edit_session


def _queue() -> BatchQueue:
    if 'batch_queue' not in st.session_state:
        st.session_state.batch_queue = BatchQueue()
    return st.session_state.batch_queue


def _sync_widgets(session: EditSession) -> None:
    """Copy session values into widget state so sliders follow preset changes."""
    for field, value in session.adjustments.to_dict().items():
        st.session_state[f"adj_{field}"] = float(value)
    st.session_state.intensity = float(session.intensity)


def _on_slider_change(field: str) -> None:
    _session().update_adjustment(field, st.session_state[f"adj_{field}"])


def _on_preset_select(preset_id: str) -> None:
    session = _session()
    if preset_id == AUTO_PORTRA_PRESET.id:
        session.apply_preset(AUTO_PORTRA_PRESET)
    else:
        session.apply_preset(preset_id)
    _sync_widgets(session)


def _on_intensity_change() -> None:
    session = _session()
    session.set_intensity(st.session_state.intensity)
    _sync_widgets(session)


def _on_auto_straighten() -> None:
    session = _session()
    session.auto_straighten()
    _sync_widgets(session)


def _on_reset() -> None:
    session = _session()
    session.reset()
    _sync_widgets(session)


def render_presets(session: EditSession) -> None:
    """Preset list plus the intensity slider for the active preset."""
    if session.active_preset_id != NEUTRAL_PRESET_ID:
        label = "AI intensity" if session.active_preset_id == AUTO_PORTRA_PRESET.id else "Filter intensity"
        st.slider(label, 0.0, 100.0, step=1.0, key="intensity", on_change=_on_intensity_change)

    for preset in get_available_presets():
        active = session.active_preset_id == preset.id
        st.button(
            f"{'✔ ' if active else ''}{preset.name} · {preset.description}",
            key=f"preset_{preset.id}",
            on_click=_on_preset_select,
            args=(preset.id,),
            use_container_width=True
        )


def render_sliders(category: EditorCategory) -> None:
    for slider in sliders_for_category(category):
        st.slider(
            slider.label,
            min_value=slider.minimum,
            max_value=slider.maximum,
            step=float(slider.step),
            key=f"adj_{slider.field}",
            on_change=_on_slider_change,
            args=(slider.field,)
        )


def editor_page() -> None:
    """Single-image editor."""
    session = _session()

    uploaded_file = st.sidebar.file_uploader("Upload a photo", type=["jpg", "jpeg", "png"])
    if uploaded_file is not None and st.session_state.get('loaded_file') != uploaded_file.name:
        try:
            session.load_image(uploaded_file.getvalue())
        except LuminaError as e:
            st.error(f"Could not open {uploaded_file.name}: {e}")
            return
        st.session_state.loaded_file = uploaded_file.name
        _sync_widgets(session)

    if not session.has_image:
        st.info("Upload a photo to start editing.")
        return

    if "adj_exposure" not in st.session_state:
        _sync_widgets(session)

    col1, col2 = st.columns([3, 2])

    with col1:
        try:
            st.image(session.render(), use_container_width=True)
        except LuminaError as e:
            st.error(f"Rendering failed: {e}")

    with col2:
        tabs = st.tabs([category.value for category in EditorCategory])
        for tab, category in zip(tabs, EditorCategory):
            with tab:
                if category is EditorCategory.PRESETS:
                    render_presets(session)
                else:
                    if category is EditorCategory.GEOMETRY:
                        st.button("Auto straighten", on_click=_on_auto_straighten)
                    render_sliders(category)

        if session.active_preset_id != AUTO_PORTRA_PRESET.id:
            st.button(
                "Portra Auto enhance",
                on_click=_on_preset_select,
                args=(AUTO_PORTRA_PRESET.id,),
                use_container_width=True
            )

        st.button("Reset", on_click=_on_reset)
        st.download_button(
            "Export PNG",
            data=session.export_png(),
            file_name=DEFAULT_EXPORT_FILENAME,
            mime="image/png"
        )


def batch_page() -> None:
    """Batch studio: one policy applied to a queue of photos."""
    queue = _queue()

    st.subheader("Batch studio")
    uploaded_files = st.file_uploader(
        "Select photos", type=["jpg", "jpeg", "png"], accept_multiple_files=True
    )
    if uploaded_files and st.button("Add to queue"):
        for uploaded_file in uploaded_files:
            queue.add(uploaded_file.getvalue(), name=uploaded_file.name)

    apply_portra = st.checkbox("Portra 400 enhancement", value=True)
    auto_straighten = st.checkbox("Auto straighten", value=True)

    col1, col2 = st.columns(2)
    items = queue.items()
    with col1:
        start = st.button(
            "Start batch",
            disabled=not items or all(item.status is BatchStatus.DONE for item in items)
        )
    with col2:
        if st.button("Clear queue", disabled=not items):
            queue.clear()
            st.rerun()

    if start:
        progress = st.progress(0.0)
        finished = []

        def on_update(item):
            if item.status.is_terminal:
                finished.append(item.item_id)
                progress.progress(len(finished) / len(items))

        runner = BatchRunner(queue, BatchPolicy.portra(apply_portra, auto_straighten), on_update=on_update)
        with st.spinner("Processing..."):
            summary = runner.run()
        st.success(f"Processed {summary.done} photos, {summary.error} failed")

    items = queue.items()
    if items:
        st.write(f"Queue ({len(items)})")
        st.table([
            {"#": index, "name": item.name, "status": STATUS_LABELS[item.status], "error": item.error or ""}
            for index, item in enumerate(items, start=1)
        ])

        remove_id = st.selectbox(
            "Remove a photo", [""] + [item.item_id for item in items],
            format_func=lambda item_id: queue.get(item_id).name if item_id else "(none)"
        )
        if remove_id and st.button("Remove"):
            queue.remove(remove_id)
            st.rerun()

    if any(item.status is BatchStatus.DONE for item in items):
        st.download_button(
            "Download all",
            data=package_results(queue),
            file_name=ARCHIVE_FILENAME,
            mime="application/zip"
        )


def main():
    """Main function for the Streamlit web app."""
    st.set_page_config(page_title="Lumina", page_icon="📷", layout="wide")

    st.title("Lumina")
    st.markdown("Film-style edits for a single photo, or for a whole batch at once.")

    mode = st.sidebar.radio("Mode", ["Editor", "Batch studio"])
    if mode == "Editor":
        editor_page()
    else:
        batch_page()


if __name__ == "__main__":
    main()
