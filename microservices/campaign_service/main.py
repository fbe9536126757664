"""
Campaign Service Main Application

FastAPI application for crowdfunding campaigns and donations.
Port: 8240
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.auth_dependencies import require_auth
from core.config_manager import ConfigManager
from core.jwt_manager import TokenClaims
from core.logger import setup_service_logger
from core.mongo_client import StoreUnavailableError

from .admin_service import AdminService
from .campaign_service import CampaignService, require_admin
from .donation_service import DonationService
from .factory import CampaignServiceFactory
from .models import (
    ApproveRequest,
    CampaignCollectionResponse,
    CampaignCreateRequest,
    CampaignListResponse,
    CampaignResponse,
    CampaignUpdateRequest,
    DonationCreateRequest,
    DonationListResponse,
    DonationResponse,
    Envelope,
    HealthResponse,
    LivenessResponse,
    OutcomeSweepResponse,
    Principal,
    ReadinessResponse,
    ReconciliationResponse,
    RejectRequest,
    UserListResponse,
    UserRole,
    ViewCountResponse,
)
from .outcome_evaluator import CampaignOutcomeEvaluator
from .protocols import (
    CampaignNotFoundError,
    CampaignValidationError,
    ForbiddenError,
    FundraisingServiceError,
    InvalidCampaignStateError,
    UnauthorizedError,
)
from .routes_registry import SERVICE_METADATA, get_route_summary

# Service configuration
SERVICE_NAME = "campaign_service"
config_manager = ConfigManager(SERVICE_NAME)
service_config = config_manager.get_service_config()
settings = config_manager.settings

SERVICE_PORT = service_config.service_port
SERVICE_VERSION = SERVICE_METADATA["version"]

logger = setup_service_logger(SERVICE_NAME, level=service_config.log_level)

# Track startup time for uptime calculation
startup_time = time.time()

# Global factory instance
factory: Optional[CampaignServiceFactory] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")
    if service_config.debug:
        config_manager.print_config_summary()

    # A pre-built factory (tests) is used as is and not closed here
    owns_factory = factory is None
    if owns_factory:
        factory = CampaignServiceFactory(config_manager)
        await factory.initialize()

    sweep_task: Optional[asyncio.Task] = None
    if settings.outcome_sweep_enabled:
        sweep_task = asyncio.create_task(
            factory.outcome_evaluator.run_periodic(settings.outcome_sweep_interval_seconds)
        )

    yield

    # Cleanup
    logger.info(f"Shutting down {SERVICE_NAME}")
    if sweep_task:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    if owns_factory and factory:
        await factory.close()
        factory = None


# Create FastAPI application
app = FastAPI(
    title="Campaign Service",
    description="Crowdfunding campaigns, moderation and donation ledger",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_timeout(request: Request, call_next):
    """Bound every request by the configured timeout"""
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"Request timed out: {request.method} {request.url.path}")
        return _error_response(
            status.HTTP_504_GATEWAY_TIMEOUT, "Request timed out", "REQUEST_TIMEOUT"
        )


# ====================
# Exception Handlers
# ====================


def _error_response(
    status_code: int,
    message: str,
    error_code: str,
    field: Optional[str] = None,
    errors: Optional[list] = None,
) -> JSONResponse:
    content = {"success": False, "message": message, "error_code": error_code}
    if field:
        content["field"] = field
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(CampaignValidationError)
async def validation_error_handler(request: Request, exc: CampaignValidationError):
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), "VALIDATION_ERROR", field=exc.field
    )


@app.exception_handler(CampaignNotFoundError)
async def campaign_not_found_handler(request: Request, exc: CampaignNotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc), "CAMPAIGN_NOT_FOUND")


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    return _error_response(status.HTTP_403_FORBIDDEN, str(exc), "FORBIDDEN")


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    return _error_response(status.HTTP_401_UNAUTHORIZED, str(exc), "UNAUTHORIZED")


@app.exception_handler(InvalidCampaignStateError)
async def invalid_state_handler(request: Request, exc: InvalidCampaignStateError):
    return _error_response(status.HTTP_409_CONFLICT, str(exc), "INVALID_STATE")


@app.exception_handler(FundraisingServiceError)
async def service_error_handler(request: Request, exc: FundraisingServiceError):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "SERVICE_ERROR")


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error(f"Store unavailable: {exc}")
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, "Database unavailable", "STORE_UNAVAILABLE"
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    field = None
    if errors and errors[0].get("loc"):
        field = str(errors[0]["loc"][-1])
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, message, "VALIDATION_ERROR", field=field, errors=errors
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    codes = {
        status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
        status.HTTP_403_FORBIDDEN: "FORBIDDEN",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
    }
    return _error_response(exc.status_code, str(exc.detail), codes.get(exc.status_code, "HTTP_ERROR"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR"
    )


# ====================
# Dependencies
# ====================


def _require_factory() -> CampaignServiceFactory:
    if not factory:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return factory


def get_service() -> CampaignService:
    """Get campaign service from factory"""
    return _require_factory().service


def get_donation_service() -> DonationService:
    return _require_factory().donation_service


def get_admin_service() -> AdminService:
    return _require_factory().admin_service


def get_outcome_evaluator() -> CampaignOutcomeEvaluator:
    return _require_factory().outcome_evaluator


async def get_principal(claims: TokenClaims = Depends(require_auth)) -> Principal:
    """Authenticated principal from the bearer token"""
    try:
        role = UserRole(claims.role)
    except ValueError:
        raise UnauthorizedError("Not authorized, invalid token") from None
    return Principal(user_id=claims.user_id, role=role)


# ====================
# Health Endpoints
# ====================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    dependencies = {}

    if factory:
        db_healthy = await factory.store.health_check()
        dependencies["mongodb"] = "healthy" if db_healthy else "unhealthy"

    return HealthResponse(
        status="healthy" if all(v == "healthy" for v in dependencies.values()) else "degraded",
        service=SERVICE_NAME,
        port=SERVICE_PORT,
        version=SERVICE_VERSION,
        dependencies=dependencies,
    )


@app.get("/health/ready", response_model=ReadinessResponse, tags=["Health"])
async def readiness_check():
    """Readiness check endpoint"""
    checks = {}
    details = {}

    if factory:
        db_healthy = await factory.store.health_check()
        checks["database"] = db_healthy
        details["database"] = "Connected" if db_healthy else "Connection failed"
    else:
        checks["factory"] = False
        details["factory"] = "Factory not initialized"

    ready = all(checks.get(k, False) for k in ["database"])

    return ReadinessResponse(
        ready=ready,
        checks=checks,
        details=details,
    )


@app.get("/health/live", response_model=LivenessResponse, tags=["Health"])
async def liveness_check():
    """Liveness check endpoint"""
    return LivenessResponse(
        alive=True,
        uptime_seconds=time.time() - startup_time,
    )


@app.get("/api/info", tags=["Health"])
async def service_info():
    """Service metadata and route table"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "capabilities": SERVICE_METADATA["capabilities"],
        **get_route_summary(),
    }


# ====================
# Campaign Endpoints
# ====================


@app.post(
    "/api/campaigns",
    response_model=CampaignResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Campaigns"],
)
async def create_campaign(
    request: CampaignCreateRequest,
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    """Create a campaign; it starts pending admin review"""
    campaign = await service.create_campaign(request, principal)
    return CampaignResponse(
        campaign=campaign,
        message="Campaign created successfully. Pending admin approval.",
    )


@app.get("/api/campaigns", response_model=CampaignListResponse, tags=["Campaigns"])
async def list_campaigns(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="newest | trending | ending-soon"),
    page: int = Query(1),
    limit: int = Query(12),
    service: CampaignService = Depends(get_service),
):
    """Public listing of active campaigns"""
    result = await service.list_public_campaigns(
        category=category, search=search, sort=sort, page=page, limit=limit
    )
    return CampaignListResponse(
        count=len(result.items),
        total=result.total,
        total_pages=result.total_pages,
        current_page=result.current_page,
        campaigns=result.items,
    )


@app.get(
    "/api/campaigns/my-campaigns",
    response_model=CampaignCollectionResponse,
    tags=["Campaigns"],
)
async def list_my_campaigns(
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    campaigns = await service.list_my_campaigns(principal)
    return CampaignCollectionResponse(count=len(campaigns), campaigns=campaigns)


@app.get(
    "/api/campaigns/admin/pending",
    response_model=CampaignListResponse,
    tags=["Admin"],
)
async def list_pending_campaigns(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    """Moderation queue"""
    result = await service.list_pending_campaigns(principal, page=page, limit=limit)
    return CampaignListResponse(
        count=len(result.items),
        total=result.total,
        total_pages=result.total_pages,
        current_page=result.current_page,
        campaigns=result.items,
    )


@app.post(
    "/api/campaigns/admin/evaluate-outcomes",
    response_model=OutcomeSweepResponse,
    tags=["Admin"],
)
async def evaluate_outcomes(
    principal: Principal = Depends(get_principal),
    evaluator: CampaignOutcomeEvaluator = Depends(get_outcome_evaluator),
):
    """Run one outcome sweep over active campaigns"""
    require_admin(principal, "evaluate campaign outcomes")
    transitions = await evaluator.sweep()
    return OutcomeSweepResponse(count=len(transitions), transitions=transitions)


@app.get("/api/campaigns/{slug}", response_model=CampaignResponse, tags=["Campaigns"])
async def get_campaign_by_slug(
    slug: str,
    service: CampaignService = Depends(get_service),
):
    campaign = await service.get_campaign_by_slug(slug)
    return CampaignResponse(campaign=campaign)


@app.put("/api/campaigns/{campaign_id}", response_model=CampaignResponse, tags=["Campaigns"])
async def update_campaign(
    campaign_id: str,
    request: CampaignUpdateRequest,
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    """Owner edit; a rejected campaign goes back to pending"""
    campaign = await service.update_campaign(campaign_id, request, principal)
    return CampaignResponse(campaign=campaign, message="Campaign updated successfully")


@app.delete("/api/campaigns/{campaign_id}", response_model=Envelope, tags=["Campaigns"])
async def delete_campaign(
    campaign_id: str,
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    await service.delete_campaign(campaign_id, principal)
    return Envelope(message="Campaign deleted successfully")


@app.post(
    "/api/campaigns/{campaign_id}/view",
    response_model=ViewCountResponse,
    tags=["Campaigns"],
)
async def record_view(
    campaign_id: str,
    service: CampaignService = Depends(get_service),
):
    view_count = await service.record_view(campaign_id)
    return ViewCountResponse(view_count=view_count)


@app.put(
    "/api/campaigns/{campaign_id}/approve",
    response_model=CampaignResponse,
    tags=["Admin"],
)
async def approve_campaign(
    campaign_id: str,
    request: Optional[ApproveRequest] = None,
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    campaign = await service.approve_campaign(
        campaign_id, principal, admin_notes=request.admin_notes if request else None
    )
    return CampaignResponse(campaign=campaign, message="Campaign approved successfully")


@app.put(
    "/api/campaigns/{campaign_id}/reject",
    response_model=CampaignResponse,
    tags=["Admin"],
)
async def reject_campaign(
    campaign_id: str,
    request: Optional[RejectRequest] = None,
    principal: Principal = Depends(get_principal),
    service: CampaignService = Depends(get_service),
):
    campaign = await service.reject_campaign(
        campaign_id, principal, reason=request.reason if request else None
    )
    return CampaignResponse(campaign=campaign, message="Campaign rejected")


# ====================
# Donation Endpoints
# ====================


@app.post(
    "/api/donations",
    response_model=DonationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Donations"],
)
async def create_donation(
    request: DonationCreateRequest,
    principal: Principal = Depends(get_principal),
    service: DonationService = Depends(get_donation_service),
):
    donation = await service.create_donation(request, principal)
    return DonationResponse(donation=donation, message="Donation successful. Thank you!")


@app.get(
    "/api/donations/my-donations",
    response_model=DonationListResponse,
    tags=["Donations"],
)
async def list_my_donations(
    principal: Principal = Depends(get_principal),
    service: DonationService = Depends(get_donation_service),
):
    donations = await service.list_my_donations(principal)
    return DonationListResponse(count=len(donations), donations=donations)


@app.get(
    "/api/donations/campaign/{campaign_id}",
    response_model=DonationListResponse,
    tags=["Donations"],
)
async def list_campaign_donations(
    campaign_id: str,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    service: DonationService = Depends(get_donation_service),
):
    """Public donation feed of a campaign, newest first"""
    result = await service.list_campaign_donations(campaign_id, page=page, limit=limit)
    return DonationListResponse(count=len(result.items), total=result.total, donations=result.items)


@app.get(
    "/api/donations/campaign/{campaign_id}/reconcile",
    response_model=ReconciliationResponse,
    tags=["Admin"],
)
async def reconcile_campaign(
    campaign_id: str,
    principal: Principal = Depends(get_principal),
    service: DonationService = Depends(get_donation_service),
):
    """Compare campaign totals with the donation ledger"""
    report = await service.reconcile_campaign(campaign_id, principal)
    return ReconciliationResponse(report=report)


@app.post(
    "/api/donations/campaign/{campaign_id}/reconcile",
    response_model=ReconciliationResponse,
    tags=["Admin"],
)
async def repair_campaign_totals(
    campaign_id: str,
    principal: Principal = Depends(get_principal),
    service: DonationService = Depends(get_donation_service),
):
    """Reset drifted campaign totals to the donation ledger"""
    report = await service.reconcile_campaign(campaign_id, principal, repair=True)
    return ReconciliationResponse(report=report)


# ====================
# Admin Endpoints
# ====================


@app.get("/api/admin/users", response_model=UserListResponse, tags=["Admin"])
async def list_users(
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    principal: Principal = Depends(get_principal),
    service: AdminService = Depends(get_admin_service),
):
    result = await service.list_users(principal, role=role, search=search, page=page, limit=limit)
    return UserListResponse(
        count=len(result.items),
        total=result.total,
        total_pages=result.total_pages,
        current_page=result.current_page,
        users=result.items,
    )


# ====================
# Main Entry Point
# ====================


def main():
    """Run the service"""
    import uvicorn

    uvicorn.run(
        "microservices.campaign_service.main:app",
        host="0.0.0.0",
        port=SERVICE_PORT,
        reload=service_config.debug,
        log_level=service_config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
