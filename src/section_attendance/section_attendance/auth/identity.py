from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt

from ..core.enums import Role
from ..core.exceptions import AuthenticationError


@dataclass(frozen=True)
class Identity:
    """Authenticated caller; everything scoping a request keys off this."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER


class TokenDecoder:
    """Verifies bearer tokens issued by the auth service."""

    def __init__(self, secret: str, *, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def decode(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError:
            raise AuthenticationError("Invalid or expired token")

        # Two payload shapes are in circulation: {"user": {...}} and a flat {"userId", "role"}.
        user = payload.get("user") or {}
        user_id = user.get("id") or payload.get("userId") or payload.get("sub")
        role = user.get("role") or payload.get("role")
        if not user_id or not role:
            raise AuthenticationError("Invalid token payload")

        try:
            return Identity(user_id=str(user_id), role=Role(str(role)))
        except ValueError:
            raise AuthenticationError("Unknown role in token")

    def from_header(self, header: Optional[str]) -> Identity:
        if not header or not header.startswith("Bearer "):
            raise AuthenticationError("No token provided")
        token = header[len("Bearer ") :].strip()
        if not token:
            raise AuthenticationError("No token provided")
        return self.decode(token)

    def encode(self, identity: Identity, **claims) -> str:
        """Sign a token for an identity; used by tooling and tests, not by the API."""

        payload = {"user": {"id": identity.user_id, "role": identity.role.value}, **claims}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)
