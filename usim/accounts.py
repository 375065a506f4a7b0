"""
Account notification hooks.

USIM does not deliver mail. An application passes its own notifier
implementations to ``UserAccount``; the screens only see the account.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlencode


class PasswordResetNotifier(Protocol):
    def send_password_reset(self, account: UserAccount, token: str) -> None: ...


class EmailVerifier(Protocol):
    def send_email_verification(self, account: UserAccount, url: str) -> None: ...


def verification_url(app_url: str, user_id: str, email: str) -> str:
    """Link for the email-verified screen; the hash binds the link to the address."""
    digest = hashlib.sha1(email.strip().lower().encode("utf-8")).hexdigest()
    return f"{app_url.rstrip('/')}/auth/email-verified?{urlencode({'id': user_id, 'hash': digest})}"


@dataclass
class UserAccount:
    user_id: str
    email: str
    password_resets: PasswordResetNotifier
    verifier: EmailVerifier
    app_url: str = "http://localhost:8000"

    def send_password_reset(self, token: str) -> None:
        if not token:
            raise ValueError("password reset token is required")
        self.password_resets.send_password_reset(self, token)

    def send_email_verification(self) -> None:
        self.verifier.send_email_verification(self, verification_url(self.app_url, self.user_id, self.email))
