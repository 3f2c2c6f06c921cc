import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from riskguard.config.settings import settings
from riskguard.dependencies import build_workflow
from riskguard.errors import UnderwritingError
from riskguard.utils.logging import configure_logging
from riskguard.v1.routes.assessments import router as assessments_router
from riskguard.v1.routes.customers import router as customers_router
from riskguard.v1.routes.payments import router as payments_router
from riskguard.v1.routes.policies import router as policies_router
from riskguard.v1.routes.reports import router as reports_router
from riskguard.v1.routes.underwriting import router as underwriting_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORAGE_BACKEND == "mongo":
        from riskguard.db.session import init_db, close_db

        await init_db()
        app.state.workflow = build_workflow(settings)
        yield
        await close_db()
    else:
        logger.info("Using in-memory stores; data is lost on restart")
        app.state.workflow = build_workflow(settings)
        yield


app = FastAPI(
    title="RiskGuard Underwriting API",
    version="1.0.0",
    description="Rule-based risk scoring, premium pricing and underwriting decision workflow",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(UnderwritingError)
async def underwriting_exception_handler(request: Request, exc: UnderwritingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error_code": "INTERNAL_ERROR", "message": str(exc) or "Internal server error", "details": {}},
        headers={"Access-Control-Allow-Origin": "*"},
    )


app.include_router(customers_router, prefix="/api/v1")
app.include_router(assessments_router, prefix="/api/v1")
app.include_router(underwriting_router, prefix="/api/v1")
app.include_router(policies_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    body = {"status": "ok", "service": "riskguard-underwriting", "storage": settings.STORAGE_BACKEND}
    if settings.STORAGE_BACKEND == "mongo":
        from riskguard.db.session import check_connection

        body["database"] = "connected" if await check_connection() else "unreachable"
    return body
