# family_chores/auth.py
"""Bearer token identity.

Sign-in happens in the external auth provider, which mints HS256 tokens
with the shared ``SECRET_KEY`` and a subject of ``member:<id>``.  This
module only verifies those tokens and resolves the acting member.
"""

from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from family_chores.crud import get_member
from family_chores.database import get_session
from family_chores.models import FamilyMember

import os

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")


def create_access_token(member_id: int, expires_delta: timedelta | None = None):
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": f"member:{member_id}", "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def member_id_from_token(token: str) -> int | None:
    """Return the member id in a valid token, ``None`` otherwise."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        sub: str = payload.get("sub")
        if not sub or not sub.startswith("member:"):
            return None
        return int(sub.split(":", 1)[1])
    except (JWTError, ValueError):
        return None


async def get_current_member(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> FamilyMember:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    member_id = member_id_from_token(token)
    if member_id is None:
        raise credentials_exception
    member = await get_member(db, member_id)
    if member is None:
        raise credentials_exception
    return member
