from fastapi import APIRouter

from ideavault.api.v1.endpoints import (
    note_endpoints,
    cluster_endpoints,
    search_endpoints,
    chat_endpoints,
    task_endpoints,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(note_endpoints.router, prefix="/notes", tags=["notes"])
api_router.include_router(cluster_endpoints.router, prefix="/clusters", tags=["clusters"])
api_router.include_router(search_endpoints.router, prefix="/search", tags=["search"])
api_router.include_router(chat_endpoints.router, prefix="/chat", tags=["chat"])
api_router.include_router(task_endpoints.router, prefix="/tasks", tags=["tasks"])
