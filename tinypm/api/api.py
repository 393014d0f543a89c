from fastapi import APIRouter

from tinypm.api.endpoints import content, domains, subscription, user, username

api_router = APIRouter()
api_router.include_router(domains.router, prefix="/domains", tags=["domains"])
api_router.include_router(content.router, tags=["content"])
api_router.include_router(user.router, tags=["user"])
api_router.include_router(username.router, tags=["username"])
api_router.include_router(subscription.router, tags=["subscription"])
