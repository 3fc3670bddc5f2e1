from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from database import Base, SessionLocal, engine, get_settings
from api import admin, participants, state
from core.allocation_manager import AllocationManager
from core.sql_store import SqlAlchemyStore
from services.seed_service import seed_demo_data


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立資料表，資料庫為空時載入示範資料
    Base.metadata.create_all(bind=engine)
    if get_settings().seed_demo_data:
        db = SessionLocal()
        try:
            seed_demo_data(AllocationManager(SqlAlchemyStore(db)))
        finally:
            db.close()
    yield


app = FastAPI(
    title="ExchangeSelect API",
    description="Ranked, turn-based exchange school selection",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(state.router)
app.include_router(participants.router)
app.include_router(admin.router)


@app.get("/")
def root():
    return {"message": "ExchangeSelect API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
