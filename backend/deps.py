from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth import decode_access_token
from database import db
from models import User
from notifications import MongoNotifier, Notifier
from store import MongoStore, Store


bearer_scheme = HTTPBearer(auto_error=False)


def get_store() -> Store:
    return MongoStore(db)


def get_notifier() -> Notifier:
    return MongoNotifier(db)


async def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: Store = Depends(get_store),
) -> User:
    """Small auth layer in front of the identity store.

    - Reads Bearer token
    - Decodes JWT
    - Loads the user through the store
    """

    if creds is None or not creds.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    user_id = decode_access_token(creds.credentials)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = await store.find_user_profile(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user
