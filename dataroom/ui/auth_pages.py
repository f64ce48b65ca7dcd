"""Sign-in and sign-up pages."""

from nicegui import ui

from dataroom.auth import AuthError, SignupForm, validate_signup
from dataroom.ui.layout import current_auth, page_setup, redirect_if_signed_in


def _error_banner() -> ui.label:
    banner = ui.label().classes(
        "w-full text-sm text-red-700 bg-red-50 border border-red-200 rounded-lg px-3 py-2"
    )
    banner.set_visibility(False)
    return banner


def _show_error(banner: ui.label, message: str) -> None:
    banner.set_text(message)
    banner.set_visibility(True)


def _auth_card(title: str, subtitle: str) -> ui.card:
    with ui.column().classes("w-full min-h-screen items-center justify-center p-4"):
        with ui.row().classes("items-center gap-2 mb-4"):
            ui.icon("inventory_2").classes("text-pink-600 text-3xl")
            ui.label("DataRoom").classes("text-2xl font-semibold text-gray-800")
        card = ui.card().classes("w-full max-w-md p-6 gap-4 app-container")
        with card:
            ui.label(title).classes("text-xl font-semibold text-gray-900")
            ui.label(subtitle).classes("text-sm text-gray-500 -mt-3")
    return card


@ui.page("/signin")
def signin_page() -> None:
    """Email/password sign-in."""
    if redirect_if_signed_in():
        return
    page_setup("Sign in - DataRoom")
    auth = current_auth()

    with _auth_card("Welcome back", "Sign in to your data room"):
        banner = _error_banner()
        email = ui.input("Email").props("outlined dense type=email").classes("w-full")
        password = (
            ui.input("Password", password=True, password_toggle_button=True)
            .props("outlined dense")
            .classes("w-full")
        )

        def submit() -> None:
            banner.set_visibility(False)
            if not email.value or not password.value:
                _show_error(banner, "Email and password are required")
                return
            try:
                auth.login(email.value, password.value)
            except AuthError as e:
                _show_error(banner, auth.state.error or str(e))
                return
            ui.navigate.to("/")

        password.on("keydown.enter", submit)
        ui.button("Sign in", on_click=submit).props("unelevated no-caps").classes(
            "w-full send-btn text-white"
        )
        with ui.row().classes("w-full justify-center gap-1 text-sm"):
            ui.label("Don't have an account?").classes("text-gray-500")
            ui.link("Sign up", "/signup").classes("text-pink-600")


@ui.page("/signup")
def signup_page() -> None:
    """Account registration; signs the new user in on success."""
    if redirect_if_signed_in():
        return
    page_setup("Sign up - DataRoom")
    auth = current_auth()
    form = SignupForm()

    with _auth_card("Create an account", "Start organising your data room"):
        banner = _error_banner()
        with ui.row().classes("w-full gap-3 no-wrap"):
            ui.input("First name").bind_value(form, "first_name").props("outlined dense").classes(
                "flex-1"
            )
            ui.input("Last name").bind_value(form, "last_name").props("outlined dense").classes(
                "flex-1"
            )
        ui.input("Email").bind_value(form, "email").props("outlined dense type=email").classes(
            "w-full"
        )
        ui.input("Password", password=True, password_toggle_button=True).bind_value(
            form, "password"
        ).props("outlined dense").classes("w-full")
        ui.input("Confirm password", password=True).bind_value(form, "confirm_password").props(
            "outlined dense"
        ).classes("w-full")
        ui.checkbox("I agree to the terms and conditions").bind_value(form, "agree_to_terms")

        def submit() -> None:
            banner.set_visibility(False)
            if error := validate_signup(form):
                _show_error(banner, error)
                return
            try:
                auth.register(form.first_name, form.last_name, form.email, form.password)
            except AuthError as e:
                _show_error(banner, str(e))
                return
            ui.notify("Account created", type="positive")
            ui.navigate.to("/")

        ui.button("Create account", on_click=submit).props("unelevated no-caps").classes(
            "w-full send-btn text-white"
        )
        with ui.row().classes("w-full justify-center gap-1 text-sm"):
            ui.label("Already have an account?").classes("text-gray-500")
            ui.link("Sign in", "/signin").classes("text-pink-600")
