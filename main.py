import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import environment
from controllers.images import router as ImagesRouter
from controllers.products import router as ProductsRouter
from database import engine
from models.base import Base

logging.basicConfig(
    level=getattr(logging, environment.log_level, logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info(
        "FieldLife API ready (image storage: %s, production: %s)",
        environment.image_storage,
        environment.is_production()
    )
    yield
    engine.dispose()


app = FastAPI(
    title="FieldLife API",
    description="Agro-chemical product catalog with product images",
    version="1.0.0",
    lifespan=lifespan
)

# CORS Configuration
origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:5174",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:5174"
]

# Add production frontend URLs if set
origins.extend(environment.frontend_origins())

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"]
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


app.include_router(ProductsRouter, prefix="/api", tags=["Products"])
app.include_router(ImagesRouter, prefix="/api", tags=["Images"])

# Local image backend serves its files back from the upload directory
if environment.image_storage == "local":
    app.mount(
        environment.static_prefix,
        StaticFiles(directory=environment.upload_dir, check_dir=False),
        name="uploads"
    )


@app.get('/')
def home():
    return {
        'message': 'FieldLife API Server',
        'version': app.version,
        'status': 'running',
        'endpoints': {
            'products': '/api/products',
            'stats': '/api/products/stats',
            'health': '/health',
            'docs': '/docs'
        }
    }


@app.get('/health')
def health():
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database = 'connected'
    except SQLAlchemyError as e:
        logger.warning("Health check could not reach the database: %s", e)
        database = 'disconnected'

    return {
        'status': 'OK',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'uptime': round(time.monotonic() - started_at, 3),
        'database': database
    }
