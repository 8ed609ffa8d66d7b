from fastapi import APIRouter

from assistant_relay.chat.routes import chat_router
from assistant_relay.platform.server.routes.base import base_router

root = APIRouter()
root.include_router(base_router)
root.include_router(chat_router)
