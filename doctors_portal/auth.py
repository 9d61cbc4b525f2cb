"""Identity and role service: access tokens and admin checks."""
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Optional, Union

from jose import ExpiredSignatureError, JWTError, jwt

from doctors_portal.errors import Forbidden
from doctors_portal.logging_config import get_logger
from doctors_portal.store import DocumentStore

logger = get_logger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class TokenIssued:
    token: str


@dataclass(frozen=True)
class UnknownUser:
    email: str


TokenResult = Union[TokenIssued, UnknownUser]


@dataclass(frozen=True)
class Identity:
    """Verified caller identity decoded from an access token."""
    email: str


class TokenService:
    """
    HMAC-signed access tokens carrying the caller's email.

    Tokens expire ``ttl_seconds`` after issuance (one hour by default).
    """

    def __init__(self, secret: str, ttl_seconds: int = 3600):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.ttl_seconds = ttl_seconds

    def encode(self, email: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(UTC)
        claims = {
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> Identity:
        """
        Verify signature and expiry.

        Raises:
            Forbidden: If the token is malformed, tampered with or expired
        """
        if not token:
            raise Forbidden(detail="empty token")
        try:
            claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise Forbidden(detail="token expired")
        except JWTError as e:
            raise Forbidden(detail=f"invalid token: {e}")

        email = claims.get("email")
        if not isinstance(email, str) or not email:
            raise Forbidden(detail="token has no email claim")
        return Identity(email=email)


class IdentityService:
    """Resolves callers and their roles against the users collection."""

    def __init__(self, store: DocumentStore, tokens: TokenService):
        self.store = store
        self.tokens = tokens

    def issue_token(self, email: str) -> TokenResult:
        """
        Issue a token for a registered user.

        Returns:
            TokenIssued for known emails, UnknownUser otherwise
        """
        user = self.store.users.find_one({"email": email}) if email else None
        if user is None:
            logger.info("token_refused", email=email, reason="unknown user")
            return UnknownUser(email=email)
        return TokenIssued(token=self.tokens.encode(email))

    def verify_token(self, token: str) -> Identity:
        return self.tokens.decode(token)

    def verify_admin(self, email: str) -> None:
        """
        Authorize an already verified identity for admin-only actions.

        Must run after verify_token: the email is trusted as authentic.

        Raises:
            Forbidden: Unless the user's role is exactly 'admin'
        """
        if not self.is_admin(email):
            logger.warning("admin_check_denied", email=email)
            raise Forbidden(detail="admin role required")

    def is_admin(self, email: str) -> bool:
        """Read-only role lookup; gates nothing by itself."""
        user = self.store.users.find_one({"email": email}) if email else None
        return user is not None and user.get("role") == ADMIN_ROLE
