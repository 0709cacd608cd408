"""
FastAPI app

- Opens the embedded database and the local fallback mirror on startup
- A database that cannot start is fatal (the app refuses to start)
- Background polling keeps the patient list fresh while the database is in use
- CORS configured for the browser UI
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables from .env file before config is read
# Project root is the parent of patient_registration/
load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')

from patient_registration.api import router
from patient_registration.api.middleware import TimingMiddleware
from patient_registration.core import config
from patient_registration.database.store import PatientStore
from patient_registration.database.storage import LocalFallbackStore
from patient_registration.services.polling import RefreshPoller
from patient_registration.services.query_interpreter import QueryInterpreter
from patient_registration.services.repository import PatientRepository

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # StoreUnavailable propagates and aborts startup
    store = await PatientStore.open(config.DATABASE_PATH) if config.USE_DATABASE else None
    mirror = LocalFallbackStore(config.FALLBACK_DIR, config.FALLBACK_KEY)

    repository = PatientRepository(store, mirror)
    await repository.load()

    poller = RefreshPoller(repository, interval=config.POLL_INTERVAL_SECONDS)
    poller.start()

    app.state.repository = repository
    app.state.interpreter = QueryInterpreter(store)
    app.state.poller = poller
    try:
        yield
    finally:
        try:
            await poller.stop()
        finally:
            if store is not None:
                store.close()
        app.state.repository = None
        app.state.interpreter = None
        app.state.poller = None
        logger.info("Patient storage closed")


app = FastAPI(title="Patient Registration", lifespan=lifespan)

# Add timing middleware for performance monitoring
app.add_middleware(TimingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """
    Basic health check
    """
    return {"status": "ok"}
