from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from .api import auth, billing, health, metrics, records, reports, subscription
from .config import configure_logging
from .constants import APP_NAME
from .database import engine
from .models.models import Base

configure_logging()

# Create database tables
Base.metadata.create_all(bind=engine)


app = FastAPI(
    title=f"{APP_NAME} API",
    description="Remote store and billing API for the FocusShield local-first focus tracker",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)

# Include routers
app.include_router(health.router, prefix="/api")
app.include_router(metrics.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(records.router, prefix="/api")
app.include_router(subscription.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(billing.router, prefix="/api")

@app.get("/")
async def root():
    return {"message": f"Welcome to {APP_NAME} API"}
