from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ideavault.api.deps import get_current_user, get_db
from ideavault.common.common_message import CommonMessage
from ideavault.common.response_common import ResponseCommon
from ideavault.schemas.common import ResponseCommon as ResponseCommonSchema
from ideavault.schemas.search import SearchRequest, SearchResponse
from ideavault.services.search_service import search_service

router = APIRouter()


@router.post("/semantic", response_model=ResponseCommonSchema[SearchResponse])
def semantic_search(
    search_request: SearchRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """
    Search notes by meaning.

    Queries mentioning "today", "yesterday", "last week" or "this week" are
    restricted to that period. When nothing matches, or the best match is
    weak, `ai_answer` holds a generated answer based on the notes found.
    """
    response = search_service.search(db=db, user_id=current_user, query=search_request.query)
    if not response.success:
        return response.to_response()
    return ResponseCommon.success_response(
        data=SearchResponse.model_validate(response.data),
        message=CommonMessage.SEARCH_SUCCESS,
    ).to_response()
