from fastapi import APIRouter

from .routes import health, leads, posts, scrape, webhooks

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(posts.router)
api_router.include_router(leads.router)
api_router.include_router(scrape.router)
api_router.include_router(webhooks.router)
