# session router: session gate and view selection
# the gate state is derived by replaying auth observations through the session reducer

import logging
from typing import Optional, get_args

from fastapi import APIRouter, Depends
from bson import ObjectId
from pymongo.errors import PyMongoError

from app.models.session import AppState, AuthLoading, SelectTab, SignedIn, SignedOut, Tab, TabSelection
from app.services.db import Database, get_db
from app.services.errors import StoreUnavailable
from app.services.session_state import reduce, replay
from app.dependencies import get_current_user, get_optional_user
from app.routers.auth import user_to_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/session", tags=["session"])

TABS = get_args(Tab)


def _signed_in(user: dict) -> SignedIn:
    stored_tab = user.get("active_tab")
    return SignedIn(
        user=user_to_response(user),
        restored_tab=stored_tab if stored_tab in TABS else None,
    )


@router.get("", response_model=AppState)
async def get_session(current_user: Optional[dict] = Depends(get_optional_user)):
    """session gate: signed_out without a valid token, otherwise signed_in with the last view"""
    observed = _signed_in(current_user) if current_user else SignedOut()
    return replay([AuthLoading(), observed])


@router.put("/tab", response_model=AppState)
async def select_tab(
    body: TabSelection,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """switch the active view and remember it on the user"""
    state = replay([AuthLoading(), _signed_in(current_user)])
    state = reduce(state, SelectTab(tab=body.tab))

    try:
        await db.users.update_one(
            {"_id": ObjectId(current_user["id"])},
            {"$set": {"active_tab": state.active_tab}},
        )
    except (PyMongoError, StoreUnavailable) as e:
        # view selection still applies for this response
        logger.warning(f"Could not persist active tab for {current_user['id']}: {e}")

    return state
