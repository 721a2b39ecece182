import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rideshare.auth import bootstrap_admin, router as auth_router
from rideshare.catalog.catalog_api import admin_router as catalog_admin_router, router as catalog_router
from rideshare.config import Config
from rideshare.content.content_api import router as content_router
from rideshare.database import create_tables
from rideshare.logging_config import setup_logging
from rideshare.moderation.moderation_api import router as moderation_router
from rideshare.trip.admin_api import router as trip_admin_router
from rideshare.trip.trip_api import router as trip_router

setup_logging(Config.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    for warning in Config.validate():
        logging.warning(warning)
    create_tables()
    bootstrap_admin()
    yield


app = FastAPI(
    title="Rideshare Trips",
    description="Shared airport transfers and tours with manual transfer-proof payments",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix='/api')
app.include_router(catalog_router, prefix='/api')
app.include_router(catalog_admin_router, prefix='/api')
app.include_router(trip_router, prefix='/api')
app.include_router(trip_admin_router, prefix='/api')
app.include_router(moderation_router, prefix='/api')
app.include_router(content_router, prefix='/api')

@app.get("/")
def root():
    return {
        "message": "Welcome to the Rideshare Trips API",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
