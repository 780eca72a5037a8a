# taskboard/auth.py
"""Owner identity for incoming requests.

Sessions and credentials are handled upstream; the API only needs to know
which user a request acts for. That arrives in the ``X-User-Id`` header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from taskboard.database import get_session
from taskboard.models import User


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the calling user or reject the request with 401."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = session.get(User, x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user
