import logging
from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()

from app.routes.events import router as events_router
from app.routes.health import router as health_router

logger = logging.getLogger("roomsched")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Room Scheduler")

# Routes
app.include_router(events_router, tags=["events"])
app.include_router(health_router, tags=["health"])


@app.get("/")
def health():
    return {"status": "ok"}
