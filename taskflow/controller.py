"""UI-facing state for one browser session.

The Streamlit script keeps a single ViewController in ``st.session_state``.
It listens to the SessionManager, reloads profile/tasks/partners whenever the
session changes, and turns accessor errors into messages for the page.
Every successful mutation is followed by a full re-fetch; nothing is patched
into the local lists by hand.
"""

from __future__ import annotations

import logging

from taskflow import store
from taskflow.backend import initialize_firebase
from taskflow.errors import PartnerRemovalError, ProfileFetchError, StoreError, TaskFlowError
from taskflow.models import TaskInput
from taskflow.partners import PartnerDirectory
from taskflow.profiles import ProfileResolver
from taskflow.session import SessionManager
from taskflow.stats import compute_stats
from taskflow.tasks import TaskStore

logger = logging.getLogger(__name__)

SCREEN_DASHBOARD = "dashboard"
SCREEN_TASKS = "tasks"
SCREEN_PARTNERS = "partners"
SCREENS = (SCREEN_DASHBOARD, SCREEN_TASKS, SCREEN_PARTNERS)

AUTH_LOGIN = "login"
AUTH_SIGNUP = "signup"


def _empty_partner_form():
    return {"name": "", "email": "", "password": ""}


class ViewController:
    def __init__(self, sessions, profile_resolver, task_store, partner_directory):
        self._sessions = sessions
        self._profiles = profile_resolver
        self._task_store = task_store
        self._partners = partner_directory

        self.screen = SCREEN_DASHBOARD
        self.auth_mode = AUTH_LOGIN
        self.adding_task = False
        self.adding_partner = False
        self.task_form = TaskInput()
        self.partner_form = _empty_partner_form()

        self.session = None
        self.profile = None
        self.tasks = []
        self.partners = []
        self.message = None  # (level, text) for the page to show once
        self._reload_error = None

        # Bumped on every session change; loads started under an older value are dropped.
        self._generation = 0
        self._alive = True
        self._subscription = sessions.on_session_change(self._on_session_change)

        try:
            session = sessions.get_active_session()
        except TaskFlowError as exc:
            logger.warning("Could not restore session: %s", exc)
            self.message = ("error", str(exc))
            session = None
        # an expired token refresh has already loaded everything through the listener
        if session is not None and self.profile is None:
            self.session = session
            self._load_for_session()

    @classmethod
    def from_settings(cls, settings):
        """Wire the accessors to the shared Firestore client."""
        db = initialize_firebase(settings)
        profiles = store.Collection(db, store.PROFILES)
        tasks = store.Collection(db, store.TASKS)
        sessions = SessionManager(settings)
        return cls(
            sessions=sessions,
            profile_resolver=ProfileResolver(profiles),
            task_store=TaskStore(tasks),
            partner_directory=PartnerDirectory(profiles, tasks, sessions),
        )

    def close(self):
        """Stop listening; any load still running will not touch state."""
        self._alive = False
        self._subscription.unsubscribe()

    # ---- derived values ----

    @property
    def is_admin(self):
        return self.profile is not None and self.profile.is_admin

    @property
    def stats(self):
        return compute_stats(self.tasks, self.partners, include_partner_load=self.is_admin)

    def partner_name(self, partner_id):
        partner = next((p for p in self.partners if p.id == partner_id), None)
        return partner.name if partner else "Unassigned"

    def set_screen(self, screen):
        if screen not in SCREENS or (screen == SCREEN_PARTNERS and not self.is_admin):
            screen = SCREEN_DASHBOARD
        self.screen = screen

    def toggle_auth_mode(self):
        self.auth_mode = AUTH_SIGNUP if self.auth_mode == AUTH_LOGIN else AUTH_LOGIN
        self.message = None

    def pop_message(self):
        message, self.message = self.message, None
        return message

    def check_session(self):
        """Called on every rerun so an expired token gets refreshed (and data reloaded)."""
        try:
            self._sessions.get_active_session()
        except TaskFlowError as exc:
            logger.warning("Session check failed: %s", exc)
            self.message = ("error", str(exc))

    # ---- session-driven loading ----

    def _is_current(self, generation):
        return self._alive and generation == self._generation

    def _on_session_change(self, event, session):
        if not self._alive:
            return
        self._generation += 1
        self.session = session
        logger.debug("Session event %s", event)
        if session is None:
            self.profile = None
            self.tasks = []
            self.partners = []
            self.adding_task = False
            self.adding_partner = False
            self.screen = SCREEN_DASHBOARD
            return
        self._load_for_session()

    def _load_for_session(self):
        generation = self._generation
        try:
            profile = self._profiles.resolve_profile(self.session.identity)
        except ProfileFetchError as exc:
            if self._is_current(generation):
                self.profile = None
                self.message = ("error", str(exc))
            return
        if not self._is_current(generation):
            return
        self.profile = profile
        self.refresh_tasks()
        if not self._is_current(generation):
            return
        if profile.is_admin:
            self.refresh_partners()
        else:
            self.partners = []
        self.set_screen(self.screen)

    def reload_profile(self):
        """Retry after a failed profile fetch."""
        if self.session is not None:
            self._load_for_session()

    def refresh_tasks(self):
        if self.session is None or self.profile is None:
            return False
        generation = self._generation
        try:
            tasks = self._task_store.list_tasks(self.profile, self.session.identity)
        except StoreError as exc:
            logger.warning("Task refresh failed: %s", exc)
            if self._is_current(generation):
                self._reload_error = str(exc)
                self.message = ("error", f"Failed to load tasks: {exc}")
            return False
        if not self._is_current(generation):
            return False
        self.tasks = tasks
        return True

    def refresh_partners(self):
        """Partner list feeds dropdowns and the team page; on failure it degrades to empty."""
        if not self.is_admin:
            self.partners = []
            return False
        generation = self._generation
        try:
            partners = self._partners.list_partners(self.profile)
        except TaskFlowError as exc:
            logger.warning("Partner refresh failed, showing none: %s", exc)
            if self._is_current(generation):
                self._reload_error = str(exc)
                self.partners = []
            return False
        if not self._is_current(generation):
            return False
        self.partners = partners
        return True

    def _reload_after(self, text, *reloads):
        """Re-fetch after a mutation; report success only if the page now shows fresh lists."""
        self._reload_error = None
        reloaded = [reload() for reload in reloads]
        if all(reloaded) or self._reload_error is None:
            self.message = ("success", text)
        else:
            self.message = ("error", f"{text} But the list could not be reloaded: {self._reload_error}")

    # ---- auth actions ----

    def sign_in(self, email, password):
        try:
            self._sessions.sign_in(email, password)
        except TaskFlowError as exc:
            logger.info("Sign-in rejected: %s", exc)
            self.message = ("error", str(exc))
            return False
        return True

    def sign_up(self, name, email, password):
        try:
            self._sessions.sign_up(email, password, name)
        except TaskFlowError as exc:
            self.message = ("error", str(exc))
            return False
        self.auth_mode = AUTH_LOGIN
        self.message = ("success", "Account created! Please check your email to verify your account.")
        return True

    def sign_out(self):
        self._sessions.sign_out()

    # ---- task actions ----

    def create_task(self, task_input):
        try:
            self._task_store.create_task(self.profile, task_input)
        except TaskFlowError as exc:
            self.message = ("error", f"Failed to create task: {exc}")
            return False
        self.adding_task = False
        self.task_form = TaskInput()
        self._reload_after("Task created successfully!", self.refresh_tasks)
        return True

    def advance_task(self, task_id):
        try:
            task = self._task_store.update_task_status(self.profile, task_id)
        except TaskFlowError as exc:
            self.message = ("error", f"Failed to update task status: {exc}")
            return False
        self._reload_after(f"'{task.title}' is now {task.status}.", self.refresh_tasks)
        return True

    def delete_task(self, task_id):
        try:
            self._task_store.delete_task(self.profile, task_id)
        except TaskFlowError as exc:
            self.message = ("error", f"Failed to delete task: {exc}")
            return False
        self._reload_after("Task deleted successfully!", self.refresh_tasks)
        return True

    # ---- partner actions ----

    def add_partner(self, name, email, password):
        try:
            profile = self._partners.add_partner(self.profile, name, email, password)
        except TaskFlowError as exc:
            self.message = ("error", f"Failed to add partner: {exc}")
            return False
        self.adding_partner = False
        self.partner_form = _empty_partner_form()
        self._reload_after(
            f"Partner {profile.name} added! They will receive a verification email.",
            self.refresh_partners,
        )
        return True

    def remove_partner(self, partner_id):
        try:
            report = self._partners.remove_partner(self.profile, partner_id)
        except PartnerRemovalError as exc:
            # Part of it may have gone through; show what is really there now.
            self.refresh_partners()
            self.refresh_tasks()
            self.message = ("error", str(exc))
            return False
        except TaskFlowError as exc:
            self.message = ("error", f"Failed to remove partner: {exc}")
            return False
        self._reload_after(
            f"Partner removed along with {report.tasks_removed} task(s).",
            self.refresh_partners,
            self.refresh_tasks,
        )
        return True
