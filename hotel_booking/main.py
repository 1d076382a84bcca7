# hotel_booking/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hotel_booking.config import ALLOWED_ORIGINS, PAYMENT_MODE
from hotel_booking.logging_config import setup_logging
from hotel_booking.middleware import RequestIDMiddleware
from hotel_booking.routes.bookings import router as bookings_router
from hotel_booking.routes.health import router as health_router
from hotel_booking.routes.metrics import router as metrics_router
from hotel_booking.routes.rooms import router as rooms_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Hotel Booking API",
    description="Reservation admission control: availability, bookings and their lifecycle",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(rooms_router, tags=["Rooms"])
app.include_router(bookings_router, tags=["Bookings"])

logger.info("application_configured", payment_mode=PAYMENT_MODE)
