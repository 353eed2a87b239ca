import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campus_events.core.config import LOG_LEVEL, get_cors_origins
from campus_events.database.db import close_db, init_db
from campus_events.routes import assistant, audi, auth, events, hod

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables (in production, use migrations such as Alembic)
    init_db()
    logger.info("Database initialised")
    yield
    close_db()


app = FastAPI(title="College Event Management API", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
def root():
    return {"message": "College Event Management API is running"}


# Include the routers
app.include_router(auth.router)
app.include_router(events.router)
app.include_router(audi.router)
app.include_router(hod.router)
app.include_router(assistant.router)
