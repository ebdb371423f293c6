# labsupply/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from labsupply.config import settings
from labsupply.database import SessionLocal, init_db
from labsupply.utils.bootstrap import ensure_super_admin

# Router imports
from labsupply.routes.auth import router as auth_router
from labsupply.routes.team import router as team_router
from labsupply.routes.audit import router as audit_router
from labsupply.routes.inventory import router as inventory_router
from labsupply.routes.merchants import router as merchants_router
from labsupply.routes.merchant import router as merchant_router
from labsupply.routes.orders import router as orders_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Initialization
init_db()

def _bootstrap_admin():
    db = SessionLocal()
    try:
        ensure_super_admin(db, settings.BOOTSTRAP_ADMIN_EMAIL, settings.BOOTSTRAP_ADMIN_PASSWORD)
    finally:
        db.close()

_bootstrap_admin()

app = FastAPI(title="LabSupply Portal API", version="1.0.0")

# CORS Configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Every error leaves the API as {"error": "..."}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

# Router registration
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(team_router, prefix=API_PREFIX)
app.include_router(audit_router, prefix=API_PREFIX)
app.include_router(inventory_router, prefix=API_PREFIX)
app.include_router(merchants_router, prefix=API_PREFIX)
app.include_router(merchant_router, prefix=API_PREFIX)
app.include_router(orders_router, prefix=API_PREFIX)

@app.get("/")
def read_root():
    return {"message": "LabSupply Portal API is running"}
