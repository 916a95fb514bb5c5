import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coffeeshop.middleware import RequestIdMiddleware
from coffeeshop.db import Base, engine
from coffeeshop.config import settings
from coffeeshop.errors import install_handlers
from coffeeshop.logs import setup_logging
from coffeeshop import models  # noqa: F401  registers tables on Base.metadata

from coffeeshop.routers import auth, menu, inventory, recipes, orders, reports
from coffeeshop.routers import settings as settings_router

setup_logging()
logger = logging.getLogger("coffeeshop")

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("coffeeshop started (env=%s)", settings.APP_ENV)
    yield

app = FastAPI(title="Coffeeshop API", version="0.1.0", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_handlers(app)

app.include_router(auth.router)
app.include_router(settings_router.router)
app.include_router(menu.router)
app.include_router(inventory.router)
app.include_router(recipes.router)
app.include_router(orders.router)
app.include_router(reports.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
