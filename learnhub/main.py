from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

from learnhub.core.config import settings
from learnhub.core.database import SessionLocal, create_db_and_tables
from learnhub.core.exceptions import LearnHubError
from learnhub.core.firebase_config import initialize_firebase_app
from learnhub.crud import email_domain_crud
from learnhub.routes import api_router_v1


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for LearnHub: courses, lesson progress, quizzes, assignments and certificates.",
    version="0.1.0",
)

# --- Event Handlers ---
@app.on_event("startup")
async def startup_event():
    logger.info("Application startup...")
    try:
        initialize_firebase_app()
        logger.info("Firebase Admin SDK initialized successfully during startup.")
    except Exception as e:
        # Token verification fails per request until credentials are fixed
        logger.error(f"Critical error during Firebase initialization on startup: {e}", exc_info=True)

    create_db_and_tables()
    logger.info("Database tables checked/created.")

    db = SessionLocal()
    try:
        added = email_domain_crud.seed_default_domains(db, settings.DEFAULT_ALLOWED_EMAIL_DOMAINS)
        logger.info(f"Allowed email domains seeded ({added} added).")
    finally:
        db.close()

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown...")

# --- Middleware ---
logger.info(f"Allowed CORS origins: {settings.CORS_ALLOWED_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error Handlers ---
@app.exception_handler(LearnHubError)
async def learnhub_error_handler(request: Request, exc: LearnHubError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"{exc.kind} ({exc.code}) for {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind, "code": exc.code, "retryable": exc.retryable},
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception for request {request.method} {request.url}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected internal server error occurred."},
    )

# --- API Routers ---
app.include_router(api_router_v1)

@app.get("/", tags=["Root"])
async def read_root():
    """
    Root endpoint to check if the API is running.
    """
    return {"message": f"Welcome to the {settings.PROJECT_NAME}! Navigate to /docs for API documentation."}

# --- Main execution (for development) ---
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")
    log_level = os.getenv("UVICORN_LOG_LEVEL", "info")

    logger.info(f"Starting Uvicorn server on {host}:{port} with log level {log_level}")
    uvicorn.run(app, host=host, port=port, log_level=log_level)
