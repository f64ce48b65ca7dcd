"""Shared page chrome: styles, navbar, and the auth guard."""

from nicegui import app, ui

from dataroom.auth import AuthSession, UserStore

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f5f5f5; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }

    .brand-gradient { background: linear-gradient(135deg, #db2777 0%, #7c3aed 100%); }

    .message-user {
        background: linear-gradient(135deg, #db2777 0%, #7c3aed 100%);
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .message-error {
        background: #fef2f2;
        color: #991b1b;
        border: 1px solid #fecaca;
        border-radius: 18px 18px 18px 4px;
    }

    .avatar-user { background: linear-gradient(135deg, #db2777 0%, #7c3aed 100%); }
    .avatar-assistant { background: #6b7280; }

    .typing-dot {
        width: 8px; height: 8px;
        background: #db2777;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .input-box {
        background: #f9fafb;
        border: 1px solid #e5e7eb;
        border-radius: 12px;
        transition: border-color 0.2s;
    }
    .input-box:focus-within { border-color: #db2777; }

    .send-btn { background: linear-gradient(135deg, #db2777 0%, #7c3aed 100%) !important; }

    /* Markdown styling */
    .message-assistant strong { font-weight: 600; }
    .message-assistant em { font-style: italic; }
    .message-assistant code { font-family: 'Menlo', 'Monaco', monospace; }
    .message-assistant ul, .message-assistant ol { margin: 0.5rem 0; }
    .message-assistant a { color: #7c3aed; }
</style>
"""

NAV_LINKS = (
    ("Data Room", "/", "folder"),
    ("Assistant", "/assistant", "travel_explore"),
    ("Chatbot", "/chatbot", "smart_toy"),
)


def current_auth() -> AuthSession:
    """Auth session for the current browser, restored from its storage.

    Users live in the shared general storage; the signed-in user lives in the
    per-browser user storage.
    """
    auth = AuthSession(app.storage.user, UserStore(app.storage.general))
    auth.check_auth()
    return auth


def require_auth() -> AuthSession | None:
    """Return the signed-in session, or redirect to sign-in and return None."""
    auth = current_auth()
    if not auth.state.is_authenticated:
        ui.navigate.to("/signin")
        return None
    return auth


def redirect_if_signed_in() -> bool:
    """Send signed-in visitors of public pages to the data room."""
    if current_auth().state.is_authenticated:
        ui.navigate.to("/")
        return True
    return False


def navbar(auth: AuthSession, active: str) -> None:
    """Top navigation bar with page links and sign-out."""

    def sign_out() -> None:
        auth.logout()
        ui.navigate.to("/signin")

    with ui.header().classes("brand-gradient items-center justify-between px-5 py-3"):
        with ui.row().classes("items-center gap-3"):
            ui.icon("inventory_2").classes("text-white text-2xl")
            ui.label("DataRoom").classes("text-lg font-semibold text-white")
        with ui.row().classes("items-center gap-1"):
            for label, path, icon in NAV_LINKS:
                button = ui.button(label, icon=icon, on_click=lambda p=path: ui.navigate.to(p))
                button.props("flat color=white no-caps")
                if path == active:
                    button.classes("bg-white/20")
        with ui.row().classes("items-center gap-3"):
            if auth.state.user:
                ui.label(auth.state.user.display_name).classes("text-sm text-white/90")
            ui.button(icon="logout", on_click=sign_out).props("flat round color=white").tooltip(
                "Sign out"
            )


def page_setup(title: str) -> None:
    ui.add_head_html(CUSTOM_CSS)
    ui.page_title(title)


def render_avatar(is_user: bool) -> None:
    css = "avatar-user" if is_user else "avatar-assistant"
    icon = "person" if is_user else "smart_toy"
    with ui.element("div").classes(f"w-9 h-9 rounded-full flex items-center justify-center {css}"):
        ui.icon(icon).classes("text-white text-lg")


def render_typing(text: str = "Thinking...") -> None:
    """Animated typing dots with a status label."""
    with ui.row().classes("items-center gap-2"):
        with ui.row().classes("gap-1"):
            for _ in range(3):
                ui.element("div").classes("typing-dot")
        ui.label(text).classes("text-sm text-gray-500 italic")
