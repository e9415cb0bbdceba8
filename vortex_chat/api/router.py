from fastapi import APIRouter

from vortex_chat.api.routers.chat import router as chat_router
from vortex_chat.api.routers.registry import router as registry_router

api_router = APIRouter()
api_router.include_router(chat_router)
api_router.include_router(registry_router)
