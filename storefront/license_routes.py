from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from .dependencies import Services, get_services, require_admin
from .models import (
    CaptureOrderRequest,
    CaptureOrderResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    DownloadResponse,
    IssueLicenseRequest,
    IssueLicenseResponse,
    ValidateLicenseRequest,
    ValidateLicenseResponse,
)
from .utils import client_ip

router = APIRouter(prefix="/api")


# ✅ PayPal: create a pending order for a license purchase
@router.post("/paypal/create-order", response_model=CreateOrderResponse)
def create_order(
    req: CreateOrderRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    return services.purchases.create_order(req.license_type, req.email, client_ip(request))


# ✅ PayPal: capture an approved order, then issue and email the license
@router.post("/paypal/capture-order", response_model=CaptureOrderResponse)
def capture_order(
    req: CaptureOrderRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    return services.purchases.capture_order(req.order_id, client_ip(request))


# ✅ Admin: issue a license without a PayPal payment
@router.post(
    "/license/issue",
    response_model=IssueLicenseResponse,
    dependencies=[Depends(require_admin)],
)
def issue_license(
    req: IssueLicenseRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    """
    Runs the same issuance as a captured order: store, invoice, license
    email, audit. Used for manual sales and to re-deliver failed orders.
    """
    issuance = services.purchases.issue_license(
        req.license_type, req.email, order_id=req.order_id, client_ip=client_ip(request)
    )
    return IssueLicenseResponse(license_key=issuance.license.key, email=issuance.license.email)


# ✅ Validate a license key + email and hand out a 5-minute download token
@router.post("/license/validate", response_model=ValidateLicenseResponse)
def validate_license(
    req: ValidateLicenseRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    return services.downloads.validate_and_issue_token(req.license_key, req.email, client_ip(request))


# ✅ Token-gated download
@router.get("/download", response_model=DownloadResponse)
def download(
    request: Request,
    token: Optional[str] = Query(default=None),
    services: Services = Depends(get_services),
):
    return services.downloads.authorize_download(
        token,
        client_ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
