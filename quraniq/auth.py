"""
Authentication for QuranIQ.
Bearer JWTs over hashed-password accounts, plus the session object handed to callers that need identity.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Set, Tuple

import jwt
from passlib.hash import pbkdf2_sha256

from .errors import Conflict, Unauthorized, ValidationError
from .store import USERS, Record, RecordStore


logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
DEFAULT_EXPIRY = timedelta(days=7)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    name: str


class Session:
    """
    Explicit session context: a verified token and the identity behind it.

    Created on login/verify; once invalidated it no longer yields an identity.
    """

    def __init__(self, token: str, identity: Identity):
        self.token = token
        self._identity: Optional[Identity] = identity

    @property
    def active(self) -> bool:
        return self._identity is not None

    @property
    def identity(self) -> Identity:
        if self._identity is None:
            raise Unauthorized("Session has ended")
        return self._identity

    def invalidate(self) -> None:
        self._identity = None


def public_user(record: Record) -> dict:
    """User fields safe to send to a client."""
    fields = {k: v for k, v in record.fields.items() if k != "passwordHash"}
    return {"id": record.id, **fields}


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an Authorization header value."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("No token provided")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthorized("No token provided")
    return token


class AuthService:
    """Registration, login and token verification against the user store."""

    def __init__(self, store: RecordStore, secret: str, expiry: timedelta = DEFAULT_EXPIRY):
        if not secret:
            logger.warning("JWT secret not set! Authentication will fail.")
        self.store = store
        self.secret = secret
        self.expiry = expiry
        self._revoked: Set[str] = set()

    def _find_by_email(self, email: str) -> Optional[Record]:
        matches = self.store.list(USERS, email=email)
        return matches[0] if matches else None

    def generate_token(self, record: Record) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": record.id,
            "email": record.fields.get("email"),
            "name": record.fields.get("name"),
            "iat": now,
            "exp": now + self.expiry,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> Identity:
        """
        Decode and check a token.

        Raises:
            Unauthorized: token missing, expired or invalid
        """
        if not token or not self.secret:
            raise Unauthorized("Invalid token")
        if token in self._revoked:
            raise Unauthorized("Session has ended")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")

        user_id = payload.get("userId")
        if not user_id:
            raise Unauthorized("Invalid token")
        return Identity(user_id=user_id, email=payload.get("email", ""), name=payload.get("name", ""))

    def register(self, name: str, email: str, password: str) -> Tuple[Session, Record]:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name or not email or not password:
            raise ValidationError("Missing fields")
        if "@" not in email:
            raise ValidationError("Invalid email address")
        if self._find_by_email(email):
            raise Conflict("Email already registered")

        record = self.store.create(USERS, {
            "name": name,
            "email": email,
            "passwordHash": pbkdf2_sha256.hash(password),
            "joinedAt": datetime.now(timezone.utc).isoformat(),
            "journeyProgress": {},
        })
        logger.info("User %s registered", record.id)
        return self._open_session(record), record

    def login(self, email: str, password: str) -> Tuple[Session, Record]:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Missing fields")

        record = self._find_by_email(email)
        stored = record.fields.get("passwordHash") if record else None
        if not stored or not pbkdf2_sha256.verify(password, stored):
            raise Unauthorized("Invalid email or password")
        return self._open_session(record), record

    def resume(self, token: str) -> Session:
        """Rebuild a session from a stored token."""
        return Session(token, self.verify(token))

    def logout(self, session: Session) -> None:
        """End the session and refuse its token from now on."""
        if session.active:
            logger.info("User %s logged out", session.identity.user_id)
        self._revoked.add(session.token)
        session.invalidate()

    def _open_session(self, record: Record) -> Session:
        token = self.generate_token(record)
        return Session(token, Identity(user_id=record.id, email=record.fields["email"], name=record.fields["name"]))
