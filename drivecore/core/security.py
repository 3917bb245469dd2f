from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from fastapi import Header, HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt
from drivecore.core.config import settings
from drivecore.models.access_control import AccessLevel


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as asserted by the identity provider's token."""

    id: str
    access_level: AccessLevel = AccessLevel.OWNER
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.id


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt


def verify_token(token: str) -> Tuple[Optional[dict], Optional[str]]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload, None
    except ExpiredSignatureError:
        return None, "expired"
    except JWTError:
        return None, "invalid"


def actor_from_payload(payload: dict) -> Optional[Actor]:
    subject = payload.get("sub")
    if subject is None:
        return None

    raw_level = payload.get("access_level", AccessLevel.OWNER.name.lower())
    try:
        level = AccessLevel[str(raw_level).upper()]
    except KeyError:
        level = AccessLevel.VIEWER

    return Actor(id=str(subject), access_level=level, name=payload.get("name", ""))


def get_current_actor(authorization: Optional[str] = Header(None)) -> Actor:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication scheme",
                headers={"WWW-Authenticate": "Bearer"},
            )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload, error = verify_token(token)
    if error == "expired":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    elif error == "invalid":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    actor = actor_from_payload(payload)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token payload invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor
