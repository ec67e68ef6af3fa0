from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.analytics_router import router as analytics_router
from api.goal_map_router import router as goal_map_router
from api.kit_router import router as kit_router
from api.learner_map_router import router as learner_map_router
from kitbuild.config import settings
from kitbuild.database import close_database

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_database()

app = FastAPI(
    title="KitBuild Analyzer API",
    description="Goal-map validation, kit generation and learner-map analytics for KitBuild concept mapping.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include all the Routers ---
app.include_router(goal_map_router)
app.include_router(kit_router)
app.include_router(learner_map_router)
app.include_router(analytics_router)

@app.get("/")
def read_root():
    return {"message": "KitBuild Analyzer API is running."}
