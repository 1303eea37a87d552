# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator

import pytest

from taskflow.config import Settings
from taskflow.controller import ViewController
from taskflow.models import Identity, Profile
from taskflow.partners import PartnerDirectory
from taskflow.profiles import ProfileResolver
from taskflow.session import SessionManager
from taskflow.tasks import TaskStore

from .fakes import FakeAuthBackend, FakeCollection, at

ADMIN_ID = "admin-1"
PARTNER_ID = "partner-1"
OTHER_PARTNER_ID = "partner-2"


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_key="test-key", service_account={"type": "service_account"})


@pytest.fixture()
def profiles() -> FakeCollection:
    coll = FakeCollection("profiles")
    coll.add(ADMIN_ID, name="Ada Admin", email="ada@example.com", role="admin", created_at=at(0))
    coll.add(PARTNER_ID, name="Pat Partner", email="pat@example.com", role="partner", created_at=at(1))
    coll.add(OTHER_PARTNER_ID, name="Sam Partner", email="sam@example.com", role="partner", created_at=at(2))
    return coll


@pytest.fixture()
def tasks() -> FakeCollection:
    coll = FakeCollection("tasks")
    coll.add("t1", title="Draft brief", project="Launch", assigned_to=PARTNER_ID,
             status="Pending", created_by=ADMIN_ID, created_at=at(10))
    coll.add("t2", title="Review copy", project="Launch", assigned_to=OTHER_PARTNER_ID,
             status="Completed", created_by=ADMIN_ID, created_at=at(11))
    coll.add("t3", title="Book venue", project="Offsite", assigned_to=PARTNER_ID,
             status="In Progress", created_by=ADMIN_ID, created_at=at(12))
    coll.add("t4", title="Unassigned chore", project="General", assigned_to=None,
             status="Pending", created_by=ADMIN_ID, created_at=at(13))
    return coll


@pytest.fixture()
def admin() -> Profile:
    return Profile(id=ADMIN_ID, name="Ada Admin", email="ada@example.com", role="admin")


@pytest.fixture()
def partner() -> Profile:
    return Profile(id=PARTNER_ID, name="Pat Partner", email="pat@example.com", role="partner")


@pytest.fixture()
def partner_identity() -> Identity:
    return Identity(id=PARTNER_ID, email="pat@example.com", email_verified=True)


@pytest.fixture()
def auth_backend() -> FakeAuthBackend:
    backend = FakeAuthBackend()
    backend.add_user("ada@example.com", "secret-ada", name="Ada Admin", uid=ADMIN_ID)
    backend.add_user("pat@example.com", "secret-pat", name="Pat Partner", uid=PARTNER_ID)
    return backend


@pytest.fixture()
def sessions(settings: Settings, auth_backend: FakeAuthBackend) -> SessionManager:
    return SessionManager(settings, http=auth_backend)


@pytest.fixture()
def task_store(tasks: FakeCollection) -> TaskStore:
    return TaskStore(tasks)


@pytest.fixture()
def directory(profiles: FakeCollection, tasks: FakeCollection, sessions: SessionManager) -> PartnerDirectory:
    return PartnerDirectory(profiles, tasks, sessions)


@pytest.fixture()
def controller(sessions, profiles, task_store, directory) -> Iterator[ViewController]:
    ctl = ViewController(
        sessions=sessions,
        profile_resolver=ProfileResolver(profiles),
        task_store=task_store,
        partner_directory=directory,
    )
    yield ctl
    ctl.close()
