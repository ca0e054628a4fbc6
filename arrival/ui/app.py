"""
Streamlit application: routes between the landing page, admin dashboard and
student portal based on the ``view`` query parameter.
"""

from __future__ import annotations

import logging

import streamlit as st

from arrival.config import settings
from arrival.controllers import AdminController, StudentPortal
from arrival.exceptions import ConfigurationError
from arrival.logging_config import configure_logging
from arrival.ui.pages import render_admin_page, render_home_page, render_student_page
from arrival.ui.session import get_client, init_session_state, session_log_context

logger = logging.getLogger(__name__)


def main() -> None:
    st.set_page_config(page_title="Arrival Console", page_icon="🎓", layout="wide")
    configure_logging()
    init_session_state()

    try:
        client = get_client(settings.api_base_url)
    except ConfigurationError as exc:
        logger.error("Cannot start UI: %s", exc)
        st.error("API base URL is not set. Export ARRIVAL_API_BASE_URL and reload.")
        return

    view = st.query_params.get("view", "home")
    with session_log_context(view):
        if view == "admin":
            render_admin_page(AdminController(client))
        elif view == "student":
            render_student_page(StudentPortal(client), st.query_params.get("student", ""))
        else:
            render_home_page(client)


if __name__ == "__main__":
    main()
