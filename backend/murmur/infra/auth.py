"""Authentication helpers for FastAPI endpoints.

Bearer JWTs carry the actor id in ``sub``. In development the ``X-Actor-Id``
header is accepted as well so local tools can act as any actor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from murmur.infra import jwt as jwt_helper
from murmur.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	actor_id: int


_bearer_scheme = HTTPBearer(auto_error=False)


def _parse_actor_id(raw: object) -> int:
	try:
		actor_id = int(str(raw).strip())
	except (TypeError, ValueError):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	if actor_id <= 0:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return actor_id


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	return AuthenticatedUser(actor_id=_parse_actor_id(payload.get("sub")))


async def get_optional_user(
	x_actor_id: Optional[str] = Header(default=None, alias="X-Actor-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Resolve the caller if credentials were presented, else None."""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	if settings.is_dev() and x_actor_id:
		return AuthenticatedUser(actor_id=_parse_actor_id(x_actor_id))
	return None


async def get_current_user(
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return user
