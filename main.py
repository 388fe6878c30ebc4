import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from database import engine, Base, settings
from errors import register_error_handlers
from policy import session_gate
from routers import auth, blood_donation, contact, dashboard, events, users

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info(f"Starting up ({settings.ENVIRONMENT})")
    yield
    logger.info("Shutting down")

app = FastAPI(
    title="Outreach Admin API",
    description="Login-gated administration of contacts, blood donations, events and dashboard users",
    version="1.0.0",
    lifespan=lifespan
)

register_error_handlers(app)

# Session gate runs before every route handler
app.middleware("http")(session_gate)

# CORS is added last so it wraps the gate and answers preflights itself
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    max_age=86400,
)

# Include routers
app.include_router(auth.router, prefix="/api", tags=["authentication"])
app.include_router(contact.router, prefix="/api/contact", tags=["contacts"])
app.include_router(blood_donation.router, prefix="/api/blood-donation", tags=["blood donation"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])

@app.get("/")
async def root():
    return {"message": "Outreach Admin API", "version": "1.0.0"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
