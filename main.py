from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
import logging
import structlog
import time
from contextlib import asynccontextmanager
from typing import Optional

from config import Settings, get_settings
from errors import LedgerError
from ledger import Ledger
from models import (
    BalanceResponse,
    ErrorResponse,
    HealthResponse,
    TransferRequest,
    TransferResponse,
)
from services import LedgerService, get_ledger_service

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging at the configured level."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Dependency injection
def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def get_service(ledger: Ledger = Depends(get_ledger)) -> LedgerService:
    return get_ledger_service(ledger)


def register_routes(app: FastAPI) -> None:
    """Attach the ledger endpoints directly to ``app``."""

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check API health and get ledger statistics"
    )
    async def health_check(ledger: Ledger = Depends(get_ledger)):
        try:
            return HealthResponse(
                status="healthy",
                accounts_count=ledger.accounts_count(),
                total_balance=ledger.total_balance()
            )
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            raise HTTPException(
                status_code=500,
                detail="Health check failed"
            )

    # Account ids are opaque and may contain "/"
    @app.get(
        "/balance/{account:path}",
        response_model=BalanceResponse,
        summary="Get Balance",
        description="Read the current balance of an account",
        responses={
            200: {"description": "Balance returned"},
            404: {"model": ErrorResponse, "description": "Account not found"},
            429: {"description": "Rate limit exceeded"}
        }
    )
    async def get_balance(
        account: str,
        service: LedgerService = Depends(get_service)
    ):
        return await service.get_balance(account)

    @app.post(
        "/transfer",
        response_model=TransferResponse,
        summary="Transfer Funds",
        description="Atomically move funds from one account to another",
        responses={
            200: {"description": "Transfer applied"},
            400: {"model": ErrorResponse, "description": "Malformed request or non-positive amount"},
            422: {"model": ErrorResponse, "description": "Insufficient funds"},
            429: {"description": "Rate limit exceeded"},
            500: {"model": ErrorResponse, "description": "Internal server error"}
        }
    )
    async def transfer(
        transfer_request: TransferRequest,
        service: LedgerService = Depends(get_service)
    ):
        try:
            return await service.transfer(transfer_request)

        except LedgerError:
            raise

        except Exception as e:
            logger.error(
                "Transfer failed with unexpected error",
                error=str(e),
                from_account=transfer_request.from_account,
                to_account=transfer_request.to_account,
                exc_info=True
            )
            raise HTTPException(
                status_code=500,
                detail="Internal server error"
            )

    @app.get("/", include_in_schema=False)
    async def root():
        return {"message": "Ledger API", "docs": "/docs"}


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting Ledger API",
        accounts_count=app.state.ledger.accounts_count()
    )
    yield
    logger.info("Shutting down Ledger API")


def create_app(settings: Optional[Settings] = None, ledger: Optional[Ledger] = None) -> FastAPI:
    """Build the application around a ledger seeded from settings."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="In-memory account ledger with atomic transfers",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.ledger = ledger if ledger is not None else Ledger(settings.seed_accounts)

    # Rate limiting
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[f"{settings.rate_limit_per_minute}/minute"],
        enabled=settings.rate_limit_enabled
    )
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time=round(process_time, 4)
        )

        return response

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                detail=exc.detail,
                error_code=exc.error_code
            ).model_dump(mode="json")
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Invalid request body",
            url=str(request.url),
            errors=[error.get("msg") for error in exc.errors()]
        )
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                detail="invalid JSON",
                error_code="INVALID_REQUEST"
            ).model_dump(mode="json")
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                detail=str(exc.detail),
                error_code=f"HTTP_{exc.status_code}"
            ).model_dump(mode="json"),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            url=str(request.url),
            method=request.method,
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                detail="Internal server error",
                error_code="INTERNAL_ERROR"
            ).model_dump(mode="json")
        )

    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
