from __future__ import annotations

import logging

from taskflow.errors import ProfileFetchError, StoreError
from taskflow.models import DEFAULT_NAME, ROLE_PARTNER, Profile, utcnow

logger = logging.getLogger(__name__)


class ProfileResolver:
    """Maps a signed-in identity to its profile, creating a partner profile on first login."""

    def __init__(self, profiles):
        self._profiles = profiles

    def resolve_profile(self, identity):
        try:
            row = self._profiles.get(identity.id)
            if row is None:
                row = self._create_default(identity)
        except StoreError as exc:
            logger.warning("Profile lookup for %s failed: %s", identity.id, exc)
            raise ProfileFetchError(f"Could not load your profile: {exc}") from exc
        return Profile.from_row(row)

    def _create_default(self, identity):
        profile = Profile(
            id=identity.id,
            name=identity.display_name or DEFAULT_NAME,
            email=identity.email,
            role=ROLE_PARTNER,
            created_at=utcnow(),
        )
        try:
            row = self._profiles.insert(profile.to_row(), doc_id=identity.id)
        except StoreError:
            # Another tab may have created it between our read and write
            row = self._profiles.get(identity.id)
            if row is None:
                raise
        else:
            logger.info("Created default profile for %s", identity.email)
        return row
