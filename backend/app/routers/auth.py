# auth router: signup, login, token refresh, current user
# therapist accounts only; every record in the app is scoped by the user id issued here

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from app.models.user import RefreshRequest, TokenResponse, UserCreate, UserLogin, UserResponse
from app.services.auth_service import decode_token, hash_password, issue_tokens, verify_password
from app.services.db import Database, get_db
from app.services.errors import StoreUnavailable
from app.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def user_to_response(user: dict) -> UserResponse:
    """convert a user dict (id already stringified) to response model"""
    return UserResponse(
        id=user["id"],
        email=user.get("email", ""),
        name=user.get("name", ""),
        practiceName=user.get("practice_name"),
        createdAt=user.get("created_at", ""),
    )


def _unavailable(e: Exception) -> HTTPException:
    logger.error(f"Account store unavailable: {e}")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Authentication service unavailable",
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: UserCreate, db: Database = Depends(get_db)):
    """register a therapist account and sign it in"""
    email = body.email.strip().lower()
    try:
        if await db.users.find_one({"email": email}):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists",
            )

        doc = {
            "email": email,
            "hashed_password": hash_password(body.password),
            "name": body.name,
            "practice_name": body.practice_name,
            "active_tab": "dashboard",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        result = await db.users.insert_one(doc)
    except (PyMongoError, StoreUnavailable) as e:
        raise _unavailable(e)

    user_id = str(result.inserted_id)
    logger.info(f"User registered: {user_id}")
    tokens = issue_tokens(user_id)
    return TokenResponse(accessToken=tokens["access_token"], refreshToken=tokens["refresh_token"])


@router.post("/login", response_model=TokenResponse)
async def login(body: UserLogin, db: Database = Depends(get_db)):
    """exchange email + password for a token pair"""
    try:
        user = await db.users.find_one({"email": body.email.strip().lower()})
    except (PyMongoError, StoreUnavailable) as e:
        raise _unavailable(e)

    if not user or not verify_password(body.password, user.get("hashed_password", "")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    tokens = issue_tokens(str(user["_id"]))
    logger.info(f"User logged in: {user['_id']}")
    return TokenResponse(accessToken=tokens["access_token"], refreshToken=tokens["refresh_token"])


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: Database = Depends(get_db)):
    """issue a new token pair from a valid refresh token"""
    payload = decode_token(body.refresh_token, expected_type="refresh")
    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    try:
        user = await db.users.find_one({"_id": ObjectId(payload["sub"])})
    except InvalidId:
        user = None
    except (PyMongoError, StoreUnavailable) as e:
        raise _unavailable(e)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    tokens = issue_tokens(payload["sub"])
    return TokenResponse(accessToken=tokens["access_token"], refreshToken=tokens["refresh_token"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user)):
    """the signed-in user"""
    return user_to_response(current_user)
