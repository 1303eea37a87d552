import html

import streamlit as st
import pandas as pd
import plotly.express as px
from streamlit.errors import StreamlitAPIException

from taskflow.config import load_settings
from taskflow.controller import (
    AUTH_SIGNUP,
    SCREEN_DASHBOARD,
    SCREEN_PARTNERS,
    SCREEN_TASKS,
    ViewController,
)
from taskflow.errors import ConfigurationError
from taskflow.logging_setup import setup_logging
from taskflow.models import COMPLETED, DEFAULT_PROJECT, IN_PROGRESS, PENDING, TaskInput

# --- CONFIGURATION & DISPLAY CONSTANTS ---

STATUS_COLORS = {PENDING: '#6366f1', IN_PROGRESS: '#f59e0b', COMPLETED: '#10b981'}
STATUS_ICONS = {PENDING: '☐', IN_PROGRESS: '⏳', COMPLETED: '✅'}


# --- STARTUP ---

def read_secrets():
    """Returns st.secrets as a plain dict, or an empty dict when no secrets file exists."""
    try:
        return {key: st.secrets[key] for key in st.secrets}
    except (FileNotFoundError, StreamlitAPIException):
        return {}


def configuration_error_screen(message):
    """Blocking screen for missing/invalid backend credentials. Nothing else renders."""
    st.title("⚠️ Configuration Error")
    st.error(message)
    st.caption("Please check your secrets or environment variables and reload the app.")
    st.stop()


def get_controller():
    """Builds the ViewController once per browser session and keeps it in session state."""
    if 'controller' not in st.session_state:
        settings = load_settings(read_secrets())
        setup_logging(settings.log_level)
        st.session_state.controller = ViewController.from_settings(settings)
    return st.session_state.controller


def logout():
    """Signs out, drops the controller (and its session listener) and starts fresh."""
    controller = st.session_state.get('controller')
    if controller is not None:
        controller.sign_out()
        controller.close()
        del st.session_state.controller
    st.session_state.pop('confirm_delete_task', None)
    st.session_state.pop('confirm_remove_partner', None)


def show_flash(controller):
    """Shows the message left by the last action, once."""
    message = controller.pop_message()
    if not message:
        return
    level, text = message
    if level == 'success':
        st.toast(text, icon="✅")
    else:
        st.error(text)


# --- AUTH SCREEN ---

def auth_screen(controller):
    """Sign in / sign up form, shown while there is no active session."""
    _, center, _ = st.columns([1, 2, 1])
    with center:
        st.title("🛡️ TaskFlow")
        st.caption("PROJECT MANAGEMENT SYSTEM")

        is_signup = controller.auth_mode == AUTH_SIGNUP
        with st.form("auth_form", clear_on_submit=False):
            name = st.text_input("Full Name", placeholder="Enter your name") if is_signup else ""
            email = st.text_input("Email Address", placeholder="you@company.com")
            password = st.text_input("Password", type="password", placeholder="••••••••")

            submitted = st.form_submit_button("Create Account" if is_signup else "Sign In", type="primary")

            if submitted:
                if not email or not password or (is_signup and not name):
                    st.error("Please fill in all fields.")
                else:
                    with st.spinner("Processing..."):
                        if is_signup:
                            controller.sign_up(name, email, password)
                        else:
                            controller.sign_in(email, password)
                    st.rerun()

        toggle_label = "Already have an account? Sign In" if is_signup else "Don't have an account? Sign Up"
        st.button(toggle_label, on_click=controller.toggle_auth_mode, type="tertiary")


def profile_missing_screen(controller):
    """The session is valid but the profile could not be loaded; allow a retry."""
    st.title("TaskFlow")
    st.warning("We couldn't load your profile. This is usually temporary.")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Retry", type="primary"):
            controller.reload_profile()
            st.rerun()
    with col2:
        st.button("Logout", on_click=logout)


# --- DASHBOARD ---

def dashboard_view(controller):
    """Stat cards and charts over the tasks this user can see."""
    is_admin = controller.is_admin
    stats = controller.stats

    st.title("Overview")
    st.caption("Consolidated project metrics" if is_admin else "Your personal performance metrics")

    cols = st.columns(4 if is_admin else 3)
    cols[0].metric("Total Tasks" if is_admin else "My Tasks", stats['total'])
    cols[1].metric("Active", stats['total'] - stats['completed'])
    cols[2].metric("Completed", stats['completed'])
    if is_admin:
        cols[3].metric("Team", len(controller.partners))

    st.markdown("---")

    chart_left, chart_right = st.columns(2)

    with chart_left:
        st.markdown("##### 📊 " + ("Task Status" if is_admin else "My Status"))
        # Pie slices for empty statuses only add noise
        status_rows = [row for row in stats['status_data'] if row['count'] > 0]
        if status_rows:
            fig_status = px.pie(
                pd.DataFrame(status_rows),
                names='label',
                values='count',
                hole=0.55,
                color='label',
                color_discrete_map=STATUS_COLORS,
            )
            st.plotly_chart(fig_status, use_container_width=True)
        else:
            st.info("No tasks yet.")

    with chart_right:
        st.markdown("##### 💼 " + ("Projects" if is_admin else "My Projects"))
        if stats['project_progress']:
            fig_projects = px.bar(
                pd.DataFrame(stats['project_progress']),
                x='percent_done',
                y='project',
                orientation='h',
                text='label',
                range_x=[0, 100],
                labels={'percent_done': '% Done', 'project': ''},
            )
            st.plotly_chart(fig_projects, use_container_width=True)
        else:
            st.info("No project data.")

    if is_admin and stats['partner_load']:
        st.markdown("##### 👥 Team Workload")
        fig_load = px.bar(
            pd.DataFrame(stats['partner_load']),
            x='name',
            y='tasks',
            color='tasks',
            color_continuous_scale='Purples',
            labels={'name': '', 'tasks': 'Assigned Tasks'},
        )
        st.plotly_chart(fig_load, use_container_width=True)


# --- TASKS ---

def add_task_form(controller):
    """Admin-only form for creating a task; status always starts at Pending."""
    partners = controller.partners
    partner_ids = [''] + [p.id for p in partners]
    partner_labels = {p.id: f"{p.name} ({p.email})" for p in partners}

    buffer = controller.task_form

    with st.form("new_task_form", clear_on_submit=False):
        st.subheader("New Task")
        title = st.text_input("Task Title", value=buffer.title, placeholder="Enter task title...")
        project = st.text_input("Project", value=buffer.project or DEFAULT_PROJECT, placeholder="Project name...")

        cols = st.columns(2)
        with cols[0]:
            due_date = st.date_input("Due Date", value=buffer.due_date)
        with cols[1]:
            assigned_to = st.selectbox(
                "Assign To",
                partner_ids,
                index=partner_ids.index(buffer.assigned_to) if buffer.assigned_to in partner_ids else 0,
                format_func=lambda pid: partner_labels.get(pid, "Select partner..."),
            )

        col_save, col_cancel = st.columns(2)
        with col_save:
            save_submitted = st.form_submit_button("Create Task", type="primary")
        with col_cancel:
            cancel_submitted = st.form_submit_button("Cancel")

        if save_submitted:
            task_input = TaskInput(title=title, project=project, assigned_to=assigned_to or None, due_date=due_date)
            controller.task_form = task_input
            if controller.create_task(task_input):
                st.rerun()
            # Leave the form open with the typed values on failure
            show_flash(controller)

        if cancel_submitted:
            controller.adding_task = False
            controller.task_form = TaskInput()
            st.rerun()


def task_title_html(task):
    """Title line for a task row; completed tasks are struck through."""
    title_style = "text-decoration: line-through; color: #6b7280;" if task.status == COMPLETED else "color: #1f2937;"
    return f'<div style="{title_style} font-weight: bold; font-size: 16px;">{html.escape(task.title)}</div>'


def task_row(controller, task, index):
    """One task line: title/project, assignee (admin), due date, status button, delete (admin)."""
    is_admin = controller.is_admin
    key_suffix = f"{task.id}_{index}"

    if is_admin:
        col_title, col_assignee, col_due, col_status, col_delete = st.columns([0.35, 0.2, 0.15, 0.18, 0.12])
    else:
        col_title, col_due, col_status = st.columns([0.55, 0.2, 0.25])

    with col_title:
        st.markdown(task_title_html(task), unsafe_allow_html=True)
        st.caption(f"🏷️ {task.project}")

    if is_admin:
        with col_assignee:
            st.markdown(controller.partner_name(task.assigned_to))

    with col_due:
        st.markdown(f"📅 {task.due_date.isoformat() if task.due_date else 'N/A'}")

    with col_status:
        if st.button(f"{STATUS_ICONS.get(task.status, '')} {task.status}", key=f"status_{key_suffix}", help="Advance to the next status"):
            controller.advance_task(task.id)
            st.rerun()

    if is_admin:
        with col_delete:
            if st.session_state.get('confirm_delete_task') == task.id:
                if st.button("Confirm", key=f"confirm_delete_{key_suffix}", type="primary"):
                    st.session_state.confirm_delete_task = None
                    controller.delete_task(task.id)
                    st.rerun()
                if st.button("Cancel", key=f"cancel_delete_{key_suffix}"):
                    st.session_state.confirm_delete_task = None
                    st.rerun()
            elif st.button("🗑️", key=f"delete_{key_suffix}", help="Delete this task"):
                st.session_state.confirm_delete_task = task.id
                st.rerun()

    st.markdown("---")


def tasks_view(controller):
    """All tasks for admins, assigned tasks for partners."""
    is_admin = controller.is_admin

    col_header, col_action = st.columns([0.8, 0.2])
    with col_header:
        st.title("All Tasks" if is_admin else "My Tasks")
        st.caption("Full visibility of all deliverables" if is_admin else "Tasks assigned to your profile")
    with col_action:
        if is_admin and not controller.adding_task:
            if st.button("➕ New Task", type="primary"):
                controller.adding_task = True
                st.rerun()

    if is_admin and controller.adding_task:
        add_task_form(controller)
        st.markdown("---")

    if st.session_state.get('confirm_delete_task'):
        st.warning("Are you sure you want to delete this task?")

    if not controller.tasks:
        st.info("No tasks found" if is_admin else "No tasks assigned")
        return

    for index, task in enumerate(controller.tasks):
        task_row(controller, task, index)


# --- TEAM MANAGEMENT (ADMIN ONLY) ---

def add_partner_form(controller):
    """Creates the partner's account; they verify by email before first sign-in."""
    buffer = controller.partner_form

    with st.form("add_partner_form", clear_on_submit=False):
        st.subheader("Add Partner")
        name = st.text_input("Full Name", value=buffer["name"], placeholder="Partner's full name")
        email = st.text_input("Email Address", value=buffer["email"], placeholder="partner@example.com")
        password = st.text_input("Password", type="password", placeholder="••••••••")

        col_add, col_cancel = st.columns(2)
        with col_add:
            add_submitted = st.form_submit_button("Add Partner", type="primary")
        with col_cancel:
            cancel_submitted = st.form_submit_button("Cancel")

        if add_submitted:
            controller.partner_form = {"name": name, "email": email, "password": ""}
            if controller.add_partner(name, email, password):
                st.rerun()
            show_flash(controller)

        if cancel_submitted:
            controller.adding_partner = False
            st.rerun()


def partners_view(controller):
    """Admin interface for the team roster."""
    col_header, col_action = st.columns([0.8, 0.2])
    with col_header:
        st.title("Partners")
        st.caption("Administer user access")
    with col_action:
        if not controller.adding_partner:
            if st.button("👤 Add Partner", type="primary"):
                controller.adding_partner = True
                st.rerun()

    if controller.adding_partner:
        add_partner_form(controller)
        st.markdown("---")

    if not controller.partners:
        st.info("No team members found.")
        return

    own_id = controller.profile.id
    cols = st.columns(3)
    for index, partner in enumerate(controller.partners):
        assigned = sum(1 for t in controller.tasks if t.assigned_to == partner.id)
        with cols[index % 3]:
            with st.container(border=True):
                st.markdown(f"### {partner.name}")
                st.caption(f"✉️ {partner.email}")
                st.markdown(f"**Role:** {partner.role.capitalize()}  \n**Assigned tasks:** {assigned}")

                if partner.id == own_id:
                    st.caption("This is you.")
                elif st.session_state.get('confirm_remove_partner') == partner.id:
                    st.warning("Remove this partner? All their tasks will be deleted.")
                    if st.button("Confirm removal", key=f"confirm_remove_{partner.id}", type="primary"):
                        st.session_state.confirm_remove_partner = None
                        controller.remove_partner(partner.id)
                        st.rerun()
                    if st.button("Cancel", key=f"cancel_remove_{partner.id}"):
                        st.session_state.confirm_remove_partner = None
                        st.rerun()
                elif st.button("Remove", key=f"remove_{partner.id}"):
                    st.session_state.confirm_remove_partner = partner.id
                    st.rerun()


# --- MAIN APPLICATION CONTENT ---

def main_app_content(controller):
    """The core of the task manager, displayed only after sign-in with a loaded profile."""
    profile = controller.profile
    is_admin = controller.is_admin

    # --- SIDEBAR ---
    with st.sidebar:
        st.header("Navigation")

        view_options = {
            SCREEN_DASHBOARD: "Dashboard",
            SCREEN_TASKS: "All Tasks" if is_admin else "My Tasks",
        }
        if is_admin:
            view_options[SCREEN_PARTNERS] = "Team Management"

        screens = list(view_options)
        default_index = screens.index(controller.screen) if controller.screen in screens else 0
        selected = st.radio("Select View", screens, index=default_index, format_func=view_options.get)
        controller.set_screen(selected)

        st.markdown("---")
        st.info(f"**{profile.name}**  \n{profile.email}  \nRole: **{'ADMIN' if is_admin else 'PARTNER'}**")
        st.button("Logout", on_click=logout, type="secondary")

    # --- MAIN CONTENT ---
    VIEWS = {
        SCREEN_DASHBOARD: dashboard_view,
        SCREEN_TASKS: tasks_view,
        SCREEN_PARTNERS: partners_view,
    }
    VIEWS[controller.screen](controller)


# --- MAIN ENTRY POINT ---

def main():
    """Resolves configuration and session, then renders the matching screen."""
    st.set_page_config(layout="wide", page_title="TaskFlow")

    try:
        controller = get_controller()
    except ConfigurationError as e:
        configuration_error_screen(str(e))
        return

    controller.check_session()
    show_flash(controller)

    if controller.session is None:
        auth_screen(controller)
    elif controller.profile is None:
        profile_missing_screen(controller)
    else:
        main_app_content(controller)


if __name__ == "__main__":
    main()
