import os
import sys
import logging
from contextlib import asynccontextmanager

# Ensure this directory is in the path for Vercel and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, PORT, STORE_BACKEND
from routes.leaderboard_routes import router as leaderboard_router
from routes.intent_routes import router as intent_router
from routes.checkin_routes import router as checkin_router
from routes.goal_routes import router as goal_router
from routes.profile_routes import router as profile_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The hosted store manages its own schema; only the SQL store needs tables.
    if STORE_BACKEND == "sql":
        from database import init_db
        try:
            init_db()
        except Exception as e:
            logger.error(f"Database init skipped or failed: {e}")
    yield


app = FastAPI(title="Pact 2026 API", lifespan=lifespan)


@app.get("/health")
async def health():
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(leaderboard_router)
app.include_router(intent_router)
app.include_router(checkin_router)
app.include_router(goal_router)
app.include_router(profile_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=PORT, reload=True)
