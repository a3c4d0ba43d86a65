import logging
import re
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware

from .auth import AdminCredentials, AuthGate
from .config import get_settings
from .exceptions import (
    InvalidImage,
    NotFound,
    StorageFailure,
    Unauthorized,
    UnknownReward,
)
from .models import (
    LoginRequest,
    RedeemRequest,
    RedeemResponse,
    ReportListResponse,
    RewardCatalogResponse,
    SubmitReportRequest,
    SubmitResult,
    TokenResponse,
    UserBalance,
    VerifyResult,
)
from .service import SightingService

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)

app = FastAPI(
    title="Sightings Rewards API",
    description="Sighting reports, verification bonuses and reward redemptions",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def get_service() -> SightingService:
    return SightingService.from_settings(get_settings())


@lru_cache()
def get_auth_gate() -> AuthGate:
    return AuthGate(AdminCredentials.from_settings(get_settings()))


def require_admin(
    authorization: Optional[str] = Header(None),
    gate: AuthGate = Depends(get_auth_gate),
) -> str:
    match = BEARER_RE.match(authorization or "")
    try:
        return gate.require(match.group(1) if match else None)
    except Unauthorized as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


def server_error(e: StorageFailure) -> HTTPException:
    logger.error("Request failed on storage: %s", e)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="server error")


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "sightings-rewards"}


@app.post("/api/admin/login", response_model=TokenResponse, tags=["Admin"])
def admin_login(request: LoginRequest, gate: AuthGate = Depends(get_auth_gate)) -> TokenResponse:
    try:
        return TokenResponse(token=gate.login(request.username, request.password))
    except Unauthorized as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


@app.post("/api/reports", response_model=SubmitResult, tags=["Reports"])
def submit_report(request: SubmitReportRequest, service: SightingService = Depends(get_service)) -> SubmitResult:
    try:
        return service.submit_report(request)
    except InvalidImage as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageFailure as e:
        raise server_error(e)


@app.get("/api/admin/reports", response_model=ReportListResponse, tags=["Admin"])
def list_reports(
    _admin: str = Depends(require_admin),
    service: SightingService = Depends(get_service),
) -> ReportListResponse:
    return ReportListResponse(reports=service.list_reports())


@app.post("/api/admin/reports/{report_id}/verify", response_model=VerifyResult, tags=["Admin"])
def verify_report(
    report_id: str,
    _admin: str = Depends(require_admin),
    service: SightingService = Depends(get_service),
) -> VerifyResult:
    try:
        return service.verify_report(report_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    except StorageFailure as e:
        raise server_error(e)


@app.get("/api/uploads/{image_ref}", tags=["Reports"])
def fetch_image(image_ref: str, service: SightingService = Depends(get_service)) -> Response:
    try:
        data = service.fetch_image(image_ref)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    ext = image_ref.rsplit(".", 1)[-1].lower()
    return Response(content=data, media_type=f"image/{'jpeg' if ext == 'jpg' else ext}")


@app.get("/api/rewards", response_model=RewardCatalogResponse, tags=["Rewards"])
def reward_catalog(service: SightingService = Depends(get_service)) -> RewardCatalogResponse:
    return RewardCatalogResponse(rewards=service.reward_catalog())


@app.post("/api/redeem", response_model=RedeemResponse, tags=["Rewards"])
def redeem(request: RedeemRequest, service: SightingService = Depends(get_service)) -> RedeemResponse:
    try:
        return RedeemResponse(redemption=service.redeem(request))
    except UnknownReward as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageFailure as e:
        raise server_error(e)


@app.get("/api/users/{user_id}/balance", response_model=UserBalance, tags=["Users"])
def get_user_balance(user_id: str, service: SightingService = Depends(get_service)) -> UserBalance:
    return service.get_balance(user_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
