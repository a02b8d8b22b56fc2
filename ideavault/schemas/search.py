from pydantic import BaseModel, Field
from typing import Optional, List

from ideavault.schemas.note import Note


class SearchRequest(BaseModel):
    query: str = Field(..., description="Natural-language search query")


class RelatedNote(BaseModel):
    note: Note
    similarity: float


class SearchResult(BaseModel):
    note: Note
    similarity: float
    related_notes: List[RelatedNote] = Field(default_factory=list)


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    ai_answer: Optional[str] = None
    is_fallback: bool = False


class ChatRequest(BaseModel):
    question: str = Field(..., description="Question about the user's notes")


class ChatResponse(BaseModel):
    answer: str
    relevant_notes_count: int = 0
