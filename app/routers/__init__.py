from fastapi import APIRouter

from . import auth
from . import users
from . import discovery
from . import messages

api_router = APIRouter()

# Include routers with their prefixes
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/profile", tags=["profile"])
api_router.include_router(discovery.router, prefix="/discovery", tags=["discovery"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
