from __future__ import annotations

import logging

from taskflow.errors import PartnerRemovalError, StoreError, ValidationError
from taskflow.models import ROLE_PARTNER, Profile, RemovalReport, require_admin, utcnow

logger = logging.getLogger(__name__)


class PartnerDirectory:
    """Admin-only roster of profiles."""

    def __init__(self, profiles, tasks, sessions):
        self._profiles = profiles
        self._tasks = tasks
        self._sessions = sessions

    def list_partners(self, actor):
        require_admin(actor, "view the team")
        return [Profile.from_row(row) for row in self._profiles.select(order_by="created_at")]

    def add_partner(self, actor, name, email, password):
        """Create the partner's account (verification email goes out) and their profile."""
        require_admin(actor, "add partners")
        name, email = (name or "").strip(), (email or "").strip()
        if not name or not email or not password:
            raise ValidationError("Name, email and password are all required.")

        identity = self._sessions.sign_up(email, password, name)
        profile = Profile(
            id=identity.id,
            name=name,
            email=identity.email,
            role=ROLE_PARTNER,
            created_at=utcnow(),
        )
        self._profiles.insert(profile.to_row(), doc_id=identity.id)
        logger.info("Partner %s added by %s", identity.email, actor.id)
        return profile

    def remove_partner(self, actor, partner_id):
        """
        Delete the partner's tasks, then their profile.

        Both steps always run. If either fails, PartnerRemovalError carries a
        RemovalReport saying which one, so the admin knows whether orphaned
        tasks may remain.
        """
        require_admin(actor, "remove partners")
        if partner_id == actor.id:
            raise ValidationError("You cannot remove your own account.")

        report = RemovalReport(partner_id=partner_id)
        try:
            report.tasks_removed = self._tasks.delete_where("assigned_to", partner_id)
        except StoreError as exc:
            logger.warning("Task cleanup for partner %s failed: %s", partner_id, exc)
            report.task_cleanup_error = str(exc)

        try:
            self._profiles.delete(partner_id)
        except StoreError as exc:
            logger.warning("Profile deletion for partner %s failed: %s", partner_id, exc)
            report.profile_error = str(exc)

        if not report.ok:
            parts = []
            if report.task_cleanup_error:
                parts.append(f"their tasks could not be deleted ({report.task_cleanup_error}); orphaned tasks may remain")
            if report.profile_error:
                parts.append(f"their profile could not be deleted ({report.profile_error})")
            raise PartnerRemovalError("Partner removal incomplete: " + "; ".join(parts) + ".", report)

        logger.info("Partner %s removed with %d task(s)", partner_id, report.tasks_removed)
        return report
