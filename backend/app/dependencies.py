# fastapi dependency injection
# provides the current user, the optional user for the session gate, and record stores

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from app.services.auth_service import decode_token
from app.services.db import Database, get_db
from app.services.errors import StoreUnavailable
from app.services.fallback_store import LocalStore, get_local_store
from app.services.record_store import RecordStore, get_patient_store, get_plan_store

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _load_user(token: str, db: Database) -> Optional[dict]:
    """resolve an access token to a user dict, none if the token or user is invalid"""
    payload = decode_token(token, expected_type="access")
    if payload is None or not payload.get("sub"):
        return None

    try:
        user = await db.users.find_one({"_id": ObjectId(payload["sub"])})
    except InvalidId:
        return None
    except (PyMongoError, StoreUnavailable) as e:
        logger.error(f"User lookup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        )

    if not user:
        return None

    # convert _id to string
    user = dict(user)
    user["id"] = str(user.pop("_id"))
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    """extract and validate the current user from the jwt bearer token"""
    user = await _load_user(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Database = Depends(get_db),
) -> Optional[dict]:
    """current user if a valid bearer token was sent, otherwise none"""
    if credentials is None:
        return None
    return await _load_user(credentials.credentials, db)


async def get_patients(
    db: Database = Depends(get_db),
    local: LocalStore = Depends(get_local_store),
) -> RecordStore:
    return get_patient_store(db, local)


async def get_plans(
    db: Database = Depends(get_db),
    local: LocalStore = Depends(get_local_store),
) -> RecordStore:
    return get_plan_store(db, local)
