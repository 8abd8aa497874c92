import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from boutique.api.routes.auth import router as auth_router
from boutique.api.routes.catalog import router as catalog_router
from boutique.api.routes.functions import router as functions_router
from boutique.api.routes.reports import router as reports_router
from boutique.api.routes.sales import router as sales_router
from boutique.api.routes.stock import router as stock_router
from boutique.api.routes.work_plans import router as work_plans_router
from boutique.core.config import settings
from boutique.core.errors import AuthenticationError, BoutiqueError
from boutique.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    logger.info("%s starting (timezone %s)", settings.app_name, settings.business_timezone)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BoutiqueError)
async def boutique_error_handler(_: Request, exc: BoutiqueError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    fields = sorted({str(error["loc"][-1]) for error in exc.errors() if error.get("loc")})
    message = f"Missing or invalid fields: {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"})


app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(stock_router)
app.include_router(work_plans_router)
app.include_router(sales_router)
app.include_router(reports_router)
app.include_router(functions_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
