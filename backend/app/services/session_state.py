# session state reducer: pure transitions over the enumerated session actions
# the session router observes auth state, feeds actions in, and returns the result

from app.models.session import (
    AppState,
    AuthLoading,
    DEFAULT_TAB,
    SelectTab,
    SessionAction,
    SignedIn,
    SignedOut,
)
from app.services.errors import InvalidTransition


def reduce(state: AppState, action: SessionAction) -> AppState:
    """return the next state; never mutates the given one"""
    if isinstance(action, AuthLoading):
        return AppState(status="loading", user=None, active_tab=state.active_tab)

    if isinstance(action, SignedIn):
        tab = action.restored_tab or state.active_tab
        return AppState(status="signed_in", user=action.user, active_tab=tab)

    if isinstance(action, SignedOut):
        # signing out also forgets the view selection
        return AppState(status="signed_out", user=None, active_tab=DEFAULT_TAB)

    if isinstance(action, SelectTab):
        if state.status != "signed_in":
            raise InvalidTransition("Cannot select a view while signed out")
        return state.model_copy(update={"active_tab": action.tab})

    raise InvalidTransition(f"Unknown session action: {action!r}")


def replay(actions: list[SessionAction], state: AppState | None = None) -> AppState:
    """fold a sequence of actions over the initial (loading) state"""
    state = state or AppState()
    for action in actions:
        state = reduce(state, action)
    return state
