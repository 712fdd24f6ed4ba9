# session models: application state (gate status + active tab) and its actions
# state changes only through app.services.session_state.reduce

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from app.models.user import UserResponse

SessionStatus = Literal["loading", "signed_out", "signed_in"]
Tab = Literal["dashboard", "generator", "patients", "library"]

DEFAULT_TAB: Tab = "dashboard"


class AppState(BaseModel):
    status: SessionStatus = "loading"
    user: Optional[UserResponse] = None
    active_tab: Tab = Field(DEFAULT_TAB, alias="activeTab")

    model_config = {"populate_by_name": True, "frozen": True}


# actions

class AuthLoading(BaseModel):
    type: Literal["auth_loading"] = "auth_loading"


class SignedIn(BaseModel):
    type: Literal["signed_in"] = "signed_in"
    user: UserResponse
    restored_tab: Optional[Tab] = None


class SignedOut(BaseModel):
    type: Literal["signed_out"] = "signed_out"


class SelectTab(BaseModel):
    type: Literal["select_tab"] = "select_tab"
    tab: Tab


SessionAction = Annotated[
    Union[AuthLoading, SignedIn, SignedOut, SelectTab],
    Field(discriminator="type"),
]


class TabSelection(BaseModel):
    tab: Tab
