"""Email/password sessions against the Firebase Identity Toolkit REST API.

One SessionManager lives in each browser session (``st.session_state``).
Listeners registered with ``on_session_change`` are told about sign-in,
sign-out and token refresh; each registration hands back a Subscription that
the owner must ``unsubscribe()`` when it goes away.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import requests

from taskflow.errors import AuthError, EmailInUse, InvalidCredentials, NetworkError, WeakPassword
from taskflow.models import Identity, Session, utcnow

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

_INVALID_CREDENTIAL_CODES = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "USER_DISABLED",
}


def _error_code(message):
    # Identity Toolkit messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
    return message.split(":", 1)[0].strip()


def _auth_error(message, status_code):
    code = _error_code(message)
    if code == "EMAIL_EXISTS":
        return EmailInUse("An account with this email already exists.")
    if code == "WEAK_PASSWORD":
        return WeakPassword("Password should be at least 6 characters.")
    if code in _INVALID_CREDENTIAL_CODES:
        return InvalidCredentials("Invalid email or password.")
    if status_code >= 500:
        return NetworkError(f"Auth service unavailable ({status_code}).")
    return AuthError(message or f"Auth request failed ({status_code}).")


class Subscription:
    """Handle returned by ``on_session_change``."""

    def __init__(self, manager, handler):
        self._manager = manager
        self.handler = handler
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._manager._subscriptions.remove(self)


class SessionManager:
    def __init__(self, settings, http=None):
        self._settings = settings
        self._http = http or requests.Session()
        self._session = None
        self._subscriptions = []

    # ---- provider calls ----

    def _request(self, url, *, json=None, data=None):
        try:
            resp = self._http.post(
                url,
                params={"key": self._settings.api_key},
                json=json,
                data=data,
                timeout=self._settings.http_timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Auth request to %s failed: %s", url, exc)
            raise NetworkError(f"Could not reach the auth service: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if not resp.ok:
            error = body.get("error") if isinstance(body, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else resp.text
            raise _auth_error(message or "", resp.status_code)
        return body

    def _accounts(self, action, payload):
        return self._request(f"{self._settings.auth_endpoint}/accounts:{action}", json=payload)

    def _lookup(self, id_token):
        body = self._accounts("lookup", {"idToken": id_token})
        users = body.get("users") or []
        if not users:
            raise InvalidCredentials("Account no longer exists.")
        user = users[0]
        return Identity(
            id=user["localId"],
            email=user.get("email", ""),
            display_name=user.get("displayName") or None,
            email_verified=bool(user.get("emailVerified")),
        )

    def _send_verification(self, id_token, email):
        """Best effort. Returns False when the email could not be sent."""
        try:
            self._accounts("sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": id_token})
        except (AuthError, NetworkError) as exc:
            logger.warning("Verification email to %s not sent: %s", email, exc)
            return False
        return True

    # ---- listeners ----

    def on_session_change(self, handler):
        """Register ``handler(event, session)``. Returns a Subscription."""
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        return subscription

    def _emit(self, event, session):
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.handler(event, session)
            except Exception:
                logger.exception("Session listener failed on %s", event)

    def _set_session(self, session, event):
        self._session = session
        self._emit(event, session)

    # ---- public contract ----

    def get_active_session(self):
        """Current session, refreshed first if its token has expired."""
        if self._session is None:
            return None
        if self._session.expired:
            try:
                self.refresh()
            except AuthError:
                logger.info("Stored session could not be refreshed; signing out")
                self._set_session(None, SIGNED_OUT)
        return self._session

    def sign_in(self, email, password):
        body = self._accounts(
            "signInWithPassword",
            {"email": email.strip(), "password": password, "returnSecureToken": True},
        )
        identity = self._lookup(body["idToken"])
        if self._settings.require_email_verification and not identity.email_verified:
            # Resend, in case the link from sign-up never went out or expired
            if self._send_verification(body["idToken"], identity.email):
                raise InvalidCredentials("Email not confirmed. We sent you a new verification link.")
            raise InvalidCredentials("Email not confirmed. Please verify your account from the link we sent you.")
        session = Session(
            identity=identity,
            id_token=body["idToken"],
            refresh_token=body["refreshToken"],
            expires_at=utcnow() + timedelta(seconds=int(body.get("expiresIn", 3600))),
        )
        logger.info("Signed in %s", identity.email)
        self._set_session(session, SIGNED_IN)
        return session

    def sign_up(self, email, password, display_name):
        """Create an identity and send its verification email. Does not sign anyone in."""
        body = self._accounts(
            "signUp",
            {"email": email.strip(), "password": password, "returnSecureToken": True},
        )
        id_token = body["idToken"]
        # The account exists from here on; failures below must not hide that.
        if display_name:
            try:
                self._accounts("update", {"idToken": id_token, "displayName": display_name, "returnSecureToken": False})
            except (AuthError, NetworkError) as exc:
                logger.warning("Could not store display name for %s: %s", email, exc)
        self._send_verification(id_token, email)
        logger.info("Created account %s (verification pending)", body.get("email", email))
        return Identity(
            id=body["localId"],
            email=body.get("email", email.strip()),
            display_name=display_name or None,
            email_verified=False,
        )

    def refresh(self):
        if self._session is None:
            raise AuthError("No session to refresh.")
        body = self._request(
            f"{self._settings.token_endpoint}/token",
            data={"grant_type": "refresh_token", "refresh_token": self._session.refresh_token},
        )
        session = Session(
            identity=self._session.identity,
            id_token=body["id_token"],
            refresh_token=body.get("refresh_token", self._session.refresh_token),
            expires_at=utcnow() + timedelta(seconds=int(body.get("expires_in", 3600))),
        )
        self._set_session(session, TOKEN_REFRESHED)
        return session

    def sign_out(self):
        if self._session is not None:
            logger.info("Signed out %s", self._session.identity.email)
        self._set_session(None, SIGNED_OUT)
