from sitechat.routers.chat import router as chat_router
from sitechat.routers.upload import router as upload_router

__all__ = ["chat_router", "upload_router"]
