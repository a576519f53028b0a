from __future__ import annotations

from fastapi import APIRouter, Depends

from darkroom.application.dtos.editor_dto import HistoryStateResponse
from darkroom.application.use_cases.image_state import ImageState
from darkroom.infrastructure.api.dependencies import get_image_state

router = APIRouter(prefix="/history", tags=["Edit History"])


@router.get(
    "",
    response_model=HistoryStateResponse,
    summary="Get Edit History",
    description="""
    Current undo/redo state of the session.

    **Fields:**
    - `can_undo` / `can_redo` - whether the corresponding action is available
    - `history_count` - number of operations in effect (at most 50)
    - `redo_count` - number of undone operations that can be redone
    - `applied` - the operations in effect, oldest first
    """,
    response_description="Undo/redo availability and applied operations",
)
async def get_history(state: ImageState = Depends(get_image_state)):
    """Return the session's history state."""
    return HistoryStateResponse.from_entity(state.history_state())
