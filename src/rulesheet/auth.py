"""
Identity provider client and per-request session context.

Accounts live in a Firebase project and are reached through the Identity
Toolkit REST API. Email/password accounts must verify their address before a
sign-in is accepted.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import requests

from .errors import AuthError, EmailNotVerifiedError
from .models import Identity

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

AUTH_ERROR_MESSAGES: Dict[str, str] = {
    "auth/invalid-credential": "Invalid email or password.",
    "auth/user-not-found": "No account found with this email.",
    "auth/wrong-password": "Incorrect password.",
    "auth/too-many-requests": "Too many attempts. Try again later.",
    "auth/invalid-email": "Invalid email address.",
    "auth/email-already-in-use": "An account with this email already exists.",
    "auth/weak-password": "Password must be at least 6 characters.",
    "auth/popup-closed-by-user": "Sign in cancelled.",
    "auth/cancelled-popup-request": "Sign in cancelled.",
    "auth/email-not-verified": "Please verify your email first. A new verification link has been sent.",
}

# REST error messages translated to the client sdk codes used above
REST_ERROR_CODES: Dict[str, str] = {
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "INVALID_IDP_RESPONSE": "auth/invalid-credential",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "INVALID_EMAIL": "auth/invalid-email",
    "MISSING_EMAIL": "auth/invalid-email",
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "WEAK_PASSWORD": "auth/weak-password",
}

SIGNUP_SENT_MESSAGE = (
    "Verification email sent. Please check your inbox and verify your email before signing in."
)


def auth_error_message(code: str, mode: str = "login") -> str:
    """Human-readable text for a provider error code"""
    if code in AUTH_ERROR_MESSAGES:
        return AUTH_ERROR_MESSAGES[code]
    if mode == "signup":
        return "Sign up failed. Please try again."
    return "Sign in failed. Please try again."


def check_password(password: str, password_hash: Optional[str]) -> bool:
    """Compare a password against a sha256 hex digest"""
    if not password_hash:
        return True
    digest = hashlib.sha256(password.encode("utf-8")).hexdigest()
    return hmac.compare_digest(digest, password_hash.strip().lower())


class IdentityProvider(Protocol):
    def sign_in(self, email: str, password: str) -> Identity: ...

    def sign_up(self, email: str, password: str) -> None: ...

    def sign_in_with_idp(self, id_token: str, provider_id: str = "google.com") -> Identity: ...


class FirebaseIdentityProvider:
    """Email/password and third-party sign-in against the Identity Toolkit API"""

    def __init__(self, api_key: Optional[str], session: Optional[requests.Session] = None,
                 base_url: str = IDENTITY_TOOLKIT_URL, timeout: float = 10.0):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthError("auth/not-configured", "Identity provider is not configured")
        try:
            response = self.session.post(
                f"{self.base_url}/accounts:{method}",
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Identity provider request failed: {str(e)}")
            raise AuthError("auth/network-request-failed", str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code != 200:
            message = data.get("error", {}).get("message", "") if isinstance(data, dict) else ""
            # messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
            rest_code = message.split(":")[0].strip()
            code = REST_ERROR_CODES.get(rest_code, f"auth/{rest_code.lower() or 'internal-error'}")
            logger.warning(f"Identity provider rejected {method}: {message}")
            raise AuthError(code, message)
        return data

    def _lookup(self, id_token: str) -> Dict[str, Any]:
        users = self._call("lookup", {"idToken": id_token}).get("users") or []
        return users[0] if users else {}

    def send_verification(self, id_token: str):
        self._call("sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": id_token})

    def sign_in(self, email: str, password: str) -> Identity:
        """Sign in; unverified accounts get a fresh link and are refused"""
        data = self._call("signInWithPassword", {
            "email": email, "password": password, "returnSecureToken": True,
        })
        profile = self._lookup(data["idToken"])
        if not profile.get("emailVerified"):
            self.send_verification(data["idToken"])
            raise EmailNotVerifiedError()
        return Identity(
            uid=data["localId"],
            email=data.get("email", email),
            display_name=data.get("displayName") or profile.get("displayName"),
            email_verified=True,
            id_token=data["idToken"],
        )

    def sign_up(self, email: str, password: str) -> None:
        """Create an account and send the verification email. Does not sign in."""
        data = self._call("signUp", {"email": email, "password": password, "returnSecureToken": True})
        self.send_verification(data["idToken"])
        logger.info(f"Created account for {email}, verification sent")

    def sign_in_with_idp(self, id_token: str, provider_id: str = "google.com") -> Identity:
        """Exchange a third-party id token (from the popup/redirect flow) for an identity"""
        data = self._call("signInWithIdp", {
            "postBody": f"id_token={id_token}&providerId={provider_id}",
            "requestUri": "http://localhost",
            "returnSecureToken": True,
            "returnIdpCredential": True,
        })
        return Identity(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName"),
            email_verified=bool(data.get("emailVerified", True)),
            id_token=data.get("idToken"),
        )


@dataclass
class SessionContext:
    """Per-request user and display state, passed explicitly to handlers and templates"""

    user: Optional[Identity] = None
    dark_mode: bool = False
    upload_unlocked: bool = False

    @property
    def signed_in(self) -> bool:
        return self.user is not None

    @classmethod
    def from_session(cls, session: Dict[str, Any]) -> "SessionContext":
        user_data = session.get("user")
        return cls(
            user=Identity.model_validate(user_data) if user_data else None,
            dark_mode=bool(session.get("dark_mode", False)),
            upload_unlocked=bool(session.get("upload_unlocked", False)),
        )

    def save(self, session: Dict[str, Any]):
        if self.user is None:
            session.pop("user", None)
        else:
            session["user"] = self.user.model_dump(exclude={"id_token"})
        session["dark_mode"] = self.dark_mode
        session["upload_unlocked"] = self.upload_unlocked
