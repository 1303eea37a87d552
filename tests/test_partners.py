# tests/test_partners.py

from __future__ import annotations

import pytest

from taskflow.errors import EmailInUse, Forbidden, PartnerRemovalError, ValidationError, WeakPassword
from taskflow.models import Identity

from .conftest import ADMIN_ID, OTHER_PARTNER_ID, PARTNER_ID


def test_list_partners_is_admin_only(directory, partner) -> None:
    with pytest.raises(Forbidden):
        directory.list_partners(partner)


def test_list_partners_newest_first(directory, admin) -> None:
    listed = directory.list_partners(admin)

    assert [p.id for p in listed] == [OTHER_PARTNER_ID, PARTNER_ID, ADMIN_ID]


def test_removing_partner_deletes_their_tasks_and_profile(directory, task_store, admin) -> None:
    report = directory.remove_partner(admin, PARTNER_ID)

    assert report.ok
    assert report.tasks_removed == 2
    assert PARTNER_ID not in {p.id for p in directory.list_partners(admin)}

    remaining = task_store.list_tasks(admin, Identity(id=ADMIN_ID, email="ada@example.com"))
    assert {t.id for t in remaining} == {"t2", "t4"}


def test_partner_cannot_remove_partners(directory, profiles, partner) -> None:
    with pytest.raises(Forbidden):
        directory.remove_partner(partner, OTHER_PARTNER_ID)

    assert OTHER_PARTNER_ID in profiles.rows


def test_admin_cannot_remove_themselves(directory, profiles, admin) -> None:
    with pytest.raises(ValidationError):
        directory.remove_partner(admin, ADMIN_ID)

    assert ADMIN_ID in profiles.rows


def test_task_cleanup_failure_still_deletes_profile(directory, profiles, tasks, admin) -> None:
    tasks.fail_on.add("delete_where")

    with pytest.raises(PartnerRemovalError) as excinfo:
        directory.remove_partner(admin, PARTNER_ID)

    report = excinfo.value.report
    assert report.task_cleanup_error is not None
    assert report.profile_error is None
    assert "orphaned tasks may remain" in str(excinfo.value)
    assert PARTNER_ID not in profiles.rows
    assert "t1" in tasks.rows


def test_profile_failure_reported_after_tasks_are_cleaned(directory, profiles, tasks, admin) -> None:
    profiles.fail_on.add("delete")

    with pytest.raises(PartnerRemovalError) as excinfo:
        directory.remove_partner(admin, PARTNER_ID)

    report = excinfo.value.report
    assert report.task_cleanup_error is None
    assert report.profile_error is not None
    assert report.tasks_removed == 2
    assert PARTNER_ID in profiles.rows
    assert "t1" not in tasks.rows


def test_add_partner_creates_account_and_profile(directory, profiles, auth_backend, admin) -> None:
    profile = directory.add_partner(admin, "Nia New", "nia@example.com", "longenough")

    assert profile.role == "partner"
    assert profiles.rows[profile.id]["name"] == "Nia New"
    assert auth_backend.users["nia@example.com"]["displayName"] == "Nia New"
    assert auth_backend.verification_emails == ["nia@example.com"]


def test_add_partner_keeps_profile_when_verification_email_fails(directory, profiles, auth_backend, admin) -> None:
    auth_backend.failing.add("accounts:sendOobCode")

    profile = directory.add_partner(admin, "Nia New", "nia@example.com", "longenough")

    assert profiles.rows[profile.id]["email"] == "nia@example.com"
    assert auth_backend.verification_emails == []


def test_add_partner_does_not_touch_admin_session(directory, sessions, admin) -> None:
    sessions.sign_in("ada@example.com", "secret-ada")

    directory.add_partner(admin, "Nia New", "nia@example.com", "longenough")

    assert sessions.get_active_session().identity.id == ADMIN_ID


def test_add_partner_with_taken_email(directory, profiles, admin) -> None:
    before = dict(profiles.rows)

    with pytest.raises(EmailInUse):
        directory.add_partner(admin, "Pat Again", "pat@example.com", "longenough")

    assert profiles.rows == before


def test_add_partner_with_weak_password(directory, admin) -> None:
    with pytest.raises(WeakPassword):
        directory.add_partner(admin, "Nia New", "nia@example.com", "123")


@pytest.mark.parametrize(
    "name,email,password",
    [("", "nia@example.com", "longenough"), ("Nia", "  ", "longenough"), ("Nia", "nia@example.com", "")],
)
def test_add_partner_requires_every_field(directory, auth_backend, admin, name, email, password) -> None:
    with pytest.raises(ValidationError):
        directory.add_partner(admin, name, email, password)

    assert "accounts:signUp" not in auth_backend.calls


def test_partner_cannot_add_partners(directory, auth_backend, partner) -> None:
    with pytest.raises(Forbidden):
        directory.add_partner(partner, "Nia", "nia@example.com", "longenough")

    assert auth_backend.calls == []
