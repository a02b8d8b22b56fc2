from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ideavault.api.deps import get_current_user, get_db
from ideavault.schemas.common import ResponseCommon as ResponseCommonSchema
from ideavault.schemas.search import ChatRequest, ChatResponse
from ideavault.services.chat_service import chat_service

router = APIRouter()


@router.post("/", response_model=ResponseCommonSchema[ChatResponse])
def chat(
    chat_request: ChatRequest,
    db: Session = Depends(get_db),
    current_user: str = Depends(get_current_user),
):
    """Answer a question using the user's most relevant notes as context."""
    response = chat_service.answer_question(db=db, user_id=current_user, question=chat_request.question)
    return response.to_response()
