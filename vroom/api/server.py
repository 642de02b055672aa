import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from vroom import config
from vroom import database as db
from vroom.api import (
    ai_recommendation,
    auth_endpoints,
    comments,
    follow,
    likes,
    posts,
    profile,
    trips,
    wishlist,
)
from vroom.api.errors import register_exception_handlers
from vroom.schema import init_db

settings = config.get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Make sure the tables exist before serving requests."""
    log.info("Ensuring database schema...")
    init_db(db.engine)
    yield
    log.info("Shutting down")


description = """
Vroom records road trips as GPS paths, lets travellers share them as posts,
follow each other, keep a wishlist of places and ask an AI assistant for
travel recommendations.
"""

tags_metadata = [
    {"name": "auth", "description": "Registration and login"},
    {"name": "trips", "description": "Record trips and their GPS paths"},
    {"name": "posts", "description": "Share trips as posts"},
    {"name": "comments", "description": "Comments on posts"},
    {"name": "likes", "description": "Like and unlike posts"},
    {"name": "follow", "description": "Follow other travellers"},
    {"name": "wishlist", "description": "Places the user wants to visit"},
    {"name": "profile", "description": "User profile"},
    {"name": "ai", "description": "AI travel recommendations"},
]

app = FastAPI(
    title="Vroom API",
    description=description,
    version="1.0.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS_LIST,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_endpoints.router)
app.include_router(trips.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(likes.router)
app.include_router(follow.router)
app.include_router(wishlist.router)
app.include_router(profile.router)
app.include_router(ai_recommendation.router)


@app.get("/")
def root():
    return {"message": "Vroom API is running", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"ok": True}
