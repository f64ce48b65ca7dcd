"""Data room page: file management and the categorised metadata browser."""

import logging
from typing import Any

from nicegui import events, ui

from dataroom.client import DataRoomAPIError, get_data_room_client
from dataroom.client.config import MAX_UPLOAD_SIZE
from dataroom.models.schemas import FileRecord
from dataroom.parsing import detect_file_type, format_file_size
from dataroom.storage import get_file_cache
from dataroom.ui.formatting import format_timestamp, format_value, value_type
from dataroom.ui.layout import navbar, page_setup, require_auth
from dataroom.ui.state import DataRoomState

logger = logging.getLogger(__name__)

FILE_ICONS = {
    "image": "image",
    "audio": "audiotrack",
    "video": "movie",
    "pdf": "picture_as_pdf",
    "document": "description",
    "file": "insert_drive_file",
}

VALUE_STYLES = {
    "null": ("tag", "text-gray-400"),
    "boolean": ("tag", "text-purple-600"),
    "currency": ("attach_money", "text-green-600"),
    "percentage": ("percent", "text-blue-600"),
    "number": ("tag", "text-blue-600"),
    "date": ("event", "text-orange-600"),
    "email": ("group", "text-indigo-600"),
    "string": ("notes", "text-gray-700"),
    "array": ("data_array", "text-red-600"),
    "object": ("folder", "text-blue-500"),
    "unknown": ("tag", "text-gray-500"),
}


def render_metadata(value: Any, label: str | None = None) -> None:
    """Render a nested metadata value as an expandable tree."""
    kind = value_type(value)
    icon, color = VALUE_STYLES[kind]

    if kind in ("object", "array") and value:
        items = value.items() if kind == "object" else enumerate(value)
        title = f"{label or 'metadata'} ({len(value)} {'keys' if kind == 'object' else 'items'})"
        with ui.expansion(title, icon=icon).classes("w-full text-sm").props("dense"):
            with ui.column().classes("w-full pl-4 gap-1"):
                for key, item in items:
                    render_metadata(item, f"[{key}]" if kind == "array" else str(key))
        return

    with ui.row().classes("items-center gap-2 text-sm no-wrap"):
        ui.icon(icon).classes(f"{color} text-sm")
        if label:
            ui.label(f"{label}:").classes("text-gray-600 font-medium")
        if kind == "object":
            text = "{}"
        elif kind == "array":
            text = "[]"
        else:
            text = format_value(value)
        ui.label(text).classes(f"{color} font-mono break-all")


@ui.page("/")
def data_room_page() -> None:
    """Data room with Files and Categories tabs."""
    auth = require_auth()
    if auth is None:
        return
    page_setup("Data Room")
    navbar(auth, "/")

    state = DataRoomState(get_data_room_client(), get_file_cache())

    async def reload() -> None:
        try:
            await state.refresh()
        except DataRoomAPIError as e:
            logger.error(f"Failed to load data room: {e}")
            ui.notify(e.detail, type="negative")
        status_badge.refresh()
        files_list.refresh()
        categories_view.refresh()

    async def handle_upload(e: events.UploadEventArguments) -> None:
        content = await e.file.read()
        try:
            record = await state.upload(e.file.name, content, e.file.content_type)
        except DataRoomAPIError as exc:
            ui.notify(exc.detail, type="negative")
            return
        ui.notify(f"Uploaded {record.original_name or record.file_name}", type="positive")
        upload.reset()
        files_list.refresh()
        categories_view.refresh()

    async def download(record: FileRecord) -> None:
        try:
            data = await state.download(record)
        except DataRoomAPIError as e:
            ui.notify(e.detail, type="negative")
            return
        ui.download.content(data, record.original_name or record.file_name)

    async def confirm_delete(record: FileRecord) -> None:
        with ui.dialog() as dialog, ui.card().classes("p-5 gap-3"):
            ui.label(f'Delete "{record.original_name or record.file_name}"?').classes(
                "text-base font-semibold"
            )
            ui.label("The file and its indexed records will be removed.").classes(
                "text-sm text-gray-500"
            )
            with ui.row().classes("w-full justify-end gap-2"):
                ui.button("Cancel", on_click=lambda: dialog.submit(False)).props("flat no-caps")
                ui.button("Delete", on_click=lambda: dialog.submit(True)).props(
                    "unelevated no-caps color=negative"
                )
        confirmed = await dialog
        dialog.delete()
        if not confirmed:
            return
        try:
            result = await state.delete(record)
        except DataRoomAPIError as e:
            ui.notify(e.detail, type="negative")
            return
        ui.notify(result.message or "File deleted", type="positive")
        files_list.refresh()
        categories_view.refresh()

    @ui.refreshable
    def status_badge() -> None:
        if state.backend_online:
            ui.badge("Backend connected", color="positive").props("outline")
        else:
            ui.badge("Offline - showing cached files", color="warning").props("outline")

    @ui.refreshable
    def files_list() -> None:
        if state.loading:
            ui.spinner(size="lg").classes("mx-auto my-8")
            return
        if not state.files:
            with ui.column().classes("w-full h-48 items-center justify-center gap-2"):
                ui.icon("folder_open").classes("text-5xl text-gray-300")
                ui.label("No files uploaded yet").classes("text-gray-400")
            return
        for record in state.files:
            kind = detect_file_type(record.file_name)
            row_classes = "w-full items-center gap-3 px-3 py-2 rounded-lg hover:bg-gray-50"
            with ui.row().classes(row_classes):
                ui.icon(FILE_ICONS[kind]).classes("text-2xl text-pink-600")
                with ui.column().classes("flex-grow gap-0"):
                    ui.label(record.original_name or record.file_name).classes("font-medium")
                    details = [format_file_size(record.file_size_bytes), kind.upper()]
                    if record.num_records:
                        details.append(f"{record.num_records} records")
                    if record.ingestion_timestamp:
                        details.append(format_timestamp(record.ingestion_timestamp))
                    ui.label(" · ".join(details)).classes("text-xs text-gray-500")
                if record.category:
                    ui.badge(record.category).props("outline color=purple")
                ui.button(icon="download", on_click=lambda r=record: download(r)).props(
                    "flat round dense"
                ).tooltip("Download")
                ui.button(icon="delete", on_click=lambda r=record: confirm_delete(r)).props(
                    "flat round dense color=negative"
                ).tooltip("Delete")

    @ui.refreshable
    def categories_view() -> None:
        grouped = state.grouped()
        if not grouped:
            message = (
                f'No results found for "{state.search}"' if state.search else "No categories yet"
            )
            ui.label(message).classes("text-gray-400 mx-auto my-8")
            return
        for category, records in grouped.items():
            with ui.expansion(
                f"{category} ({len(records)})", icon="folder", value=bool(state.search)
            ).classes("w-full border rounded-lg"):
                if not records:
                    ui.label("No files in this category").classes("text-sm text-gray-400")
                for record in records:
                    with ui.expansion(
                        record.original_name or record.file_name, icon="description"
                    ).classes("w-full").props("dense"):
                        for key, value in state.metadata_for(record).items():
                            render_metadata(value, key)

    def on_search(e: events.ValueChangeEventArguments) -> None:
        state.search = e.value or ""
        categories_view.refresh()

    # === UI Layout ===
    with ui.column().classes("w-full max-w-5xl mx-auto p-4 md:p-8 gap-4"):
        with ui.row().classes("w-full items-center justify-between"):
            with ui.column().classes("gap-0"):
                ui.label("Data Room").classes("text-2xl font-bold text-gray-900")
                ui.label("Upload, browse, and organise your documents").classes("text-gray-500")
            with ui.row().classes("items-center gap-2"):
                status_badge()
                ui.button(icon="refresh", on_click=reload).props("flat round").tooltip("Refresh")

        with ui.tabs().classes("w-full") as tabs:
            files_tab = ui.tab("Files", icon="insert_drive_file")
            categories_tab = ui.tab("Categories", icon="category")

        with ui.tab_panels(tabs, value=files_tab).classes("w-full app-container"):
            with ui.tab_panel(files_tab).classes("gap-4"):
                upload = (
                    ui.upload(
                        label=f"Drop a file here (max {format_file_size(MAX_UPLOAD_SIZE)})",
                        on_upload=handle_upload,
                        on_rejected=lambda: ui.notify(
                            "Invalid file type or file too large (max 10MB)", type="negative"
                        ),
                        max_file_size=MAX_UPLOAD_SIZE,
                        auto_upload=True,
                    )
                    .props("flat bordered color=pink")
                    .classes("w-full")
                )
                files_list()

            with ui.tab_panel(categories_tab).classes("gap-3"):
                ui.input(
                    placeholder="Search categories, files, and metadata...",
                    on_change=on_search,
                ).props("outlined dense clearable").classes("w-full")
                categories_view()

    ui.timer(0.1, reload, once=True)
