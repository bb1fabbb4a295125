# file: main.py

from contextlib import asynccontextmanager
import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from food4need.controllers.notification import router as notification_router
from food4need.database.connection import init_db

load_dotenv()
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="food4need notifications", lifespan=lifespan)

app.include_router(notification_router, prefix="/api/notifications", tags=["notifications"])


@app.get("/")
async def root():
    return {"message": "food4need notification service is running"}
