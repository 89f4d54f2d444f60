from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from db import create_db_and_tables
from web.payment_webhook import payment_webhook_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    logging.info("Booking service started")
    yield
    logging.info("Booking service stopped")


app = FastAPI(lifespan=lifespan)
app.include_router(payment_webhook_router)
