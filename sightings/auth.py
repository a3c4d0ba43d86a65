"""
Auth gate for admin operations.

Credentials are loaded once from settings into an immutable
``AdminCredentials``; the admin password is bcrypt-hashed at construction
and tokens are HS256 JWTs.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict

from .config import Settings
from .exceptions import Unauthorized

logger = logging.getLogger(__name__)


class AdminCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password_hash: bytes
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 12

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdminCredentials":
        return cls(
            username=settings.admin_user,
            password_hash=bcrypt.hashpw(settings.admin_pass.encode("utf-8"), bcrypt.gensalt()),
            jwt_secret=settings.jwt_secret,
            jwt_algorithm=settings.jwt_algorithm,
            token_expire_hours=settings.token_expire_hours,
        )


class CredentialCheck(BaseModel):
    valid: bool
    identity: Optional[str] = None


class AuthGate:
    def __init__(self, credentials: AdminCredentials):
        self.credentials = credentials

    def login(self, username: str, password: str) -> str:
        creds = self.credentials
        if username != creds.username or not bcrypt.checkpw(password.encode("utf-8"), creds.password_hash):
            logger.warning("Rejected admin login for %r", username)
            raise Unauthorized("invalid")

        now = datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "iat": now,
            "exp": now + timedelta(hours=creds.token_expire_hours),
        }
        return jwt.encode(payload, creds.jwt_secret, algorithm=creds.jwt_algorithm)

    def verify_credential(self, token: Optional[str]) -> CredentialCheck:
        if not token:
            return CredentialCheck(valid=False)
        try:
            data = jwt.decode(token, self.credentials.jwt_secret, algorithms=[self.credentials.jwt_algorithm])
        except JWTError:
            return CredentialCheck(valid=False)
        return CredentialCheck(valid=True, identity=data.get("sub"))

    def require(self, token: Optional[str]) -> str:
        check = self.verify_credential(token)
        if not check.valid:
            raise Unauthorized("missing token" if not token else "invalid token")
        return check.identity
