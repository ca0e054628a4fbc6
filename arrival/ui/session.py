"""
Session state helpers for the Streamlit UI.

Each page keeps one immutable state object in ``st.session_state``; a user
action swaps it for whatever the controller returns.
"""

from __future__ import annotations

import uuid

import streamlit as st

from arrival.client import BackendClient
from arrival.config import settings
from arrival.controllers import AdminController, MessagingPanel, StudentPortal
from arrival.domain import SenderType
from arrival.logging_config import LogContextManager
from arrival.state import AdminState, MessagingState, StudentPortalState

ADMIN_STATE_KEY = "_admin_state"


@st.cache_resource(show_spinner=False)
def get_client(base_url: str) -> BackendClient:
    return BackendClient(base_url)


def init_session_state() -> None:
    if "_session_id" not in st.session_state:
        st.session_state["_session_id"] = str(uuid.uuid4())


def get_session_id() -> str:
    return st.session_state.get("_session_id", "default")


def session_log_context(view: str) -> LogContextManager:
    """Tag every log line of this script run with the browser session and page."""
    return LogContextManager(request_id=get_session_id(), endpoint=f"view:{view}")


# -- admin dashboard -----------------------------------------------------------


def get_admin_state(controller: AdminController) -> AdminState:
    """Current dashboard state; the first call loads institutions and cascades."""
    if ADMIN_STATE_KEY not in st.session_state:
        st.session_state[ADMIN_STATE_KEY] = controller.load_institutions(AdminState())
    return st.session_state[ADMIN_STATE_KEY]


def set_admin_state(state: AdminState) -> None:
    st.session_state[ADMIN_STATE_KEY] = state


# -- student portal ------------------------------------------------------------


def _portal_key(student_id: str) -> str:
    return f"_portal_state_{student_id}"


def get_portal_state(portal: StudentPortal, student_id: str) -> StudentPortalState:
    key = _portal_key(student_id)
    if key not in st.session_state:
        st.session_state[key] = portal.load(StudentPortalState(student_id=student_id))
    return st.session_state[key]


def set_portal_state(state: StudentPortalState) -> None:
    st.session_state[_portal_key(state.student_id)] = state


# -- messaging -----------------------------------------------------------------


def _messaging_key(viewer: SenderType, student_id: str) -> str:
    return f"_messaging_{viewer.value.lower()}_{student_id}"


def _visible_key(viewer: SenderType, student_id: str) -> str:
    return f"_messages_open_{viewer.value.lower()}_{student_id}"


def get_messaging_state(panel: MessagingPanel, student_id: str) -> MessagingState:
    key = _messaging_key(panel.viewer, student_id)
    if key not in st.session_state:
        st.session_state[key] = panel.open(MessagingState(student_id=student_id))
    return st.session_state[key]


def set_messaging_state(panel: MessagingPanel, state: MessagingState) -> None:
    st.session_state[_messaging_key(panel.viewer, state.student_id)] = state


def messaging_panel_for(client: BackendClient, viewer: SenderType, student_id: str) -> MessagingPanel:
    sender_id = student_id if viewer is SenderType.STUDENT else settings.reviewer_name
    return MessagingPanel(client, viewer=viewer, sender_id=sender_id)


def messages_visible(viewer: SenderType, student_id: str) -> bool:
    """True once the user has opened this conversation in the current session."""
    return bool(st.session_state.get(_visible_key(viewer, student_id)))


def show_messages(viewer: SenderType, student_id: str) -> None:
    st.session_state[_visible_key(viewer, student_id)] = True


def hide_messages(viewer: SenderType, student_id: str) -> None:
    # Dropping the state makes the next open refetch and mark read again.
    st.session_state[_visible_key(viewer, student_id)] = False
    st.session_state.pop(_messaging_key(viewer, student_id), None)
