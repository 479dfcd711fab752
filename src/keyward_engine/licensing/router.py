"""Licensing API router."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Response

from keyward_engine.common.security import SellerIdentity, require_seller
from keyward_engine.licensing.models import LicenseKeyModel
from keyward_engine.licensing.schemas import (
    LicenseCreate,
    LicenseResponse,
    LicenseUpdate,
    RedemptionLicense,
    RedemptionRequest,
    RedemptionResponse,
    StatusUpdate,
)
from keyward_engine.licensing.service import RedemptionContext, RedemptionResult
from keyward_engine.licensing.status import compute_effective_status

router = APIRouter()


def _get_service():
    from keyward_engine.deps import get_licensing_service
    return get_licensing_service()


def _get_db():
    from keyward_engine.deps import get_db
    return get_db()


def _license_response(lic: LicenseKeyModel, now: datetime | None = None) -> LicenseResponse:
    now = now or datetime.now(timezone.utc)
    return LicenseResponse(
        id=lic.id,
        key=lic.key,
        product_name=lic.product_name,
        seller_id=lic.seller_id,
        status=lic.status,
        effective_status=compute_effective_status(lic, now).value,
        user_email=lic.user_email,
        usage_count=lic.usage_count,
        max_usage=lic.max_usage,
        expires_at=lic.expires_at,
        notes=lic.notes,
        created_at=lic.created_at,
        updated_at=lic.updated_at,
    )


def _redemption_response(result: RedemptionResult, now: datetime) -> RedemptionResponse:
    lic = result.license
    return RedemptionResponse(
        accepted=result.accepted,
        code=result.code.value,
        message=result.message,
        remaining=result.remaining,
        license=RedemptionLicense(
            id=lic.id,
            key=lic.key,
            product_name=lic.product_name,
            effective_status=compute_effective_status(lic, now).value,
            usage_count=lic.usage_count,
            max_usage=lic.max_usage,
            expires_at=lic.expires_at,
        ) if lic is not None else None,
    )


# ── Seller-facing licenses ──

@router.post("/licenses", response_model=LicenseResponse, status_code=201)
async def create_license(body: LicenseCreate, seller: SellerIdentity = Depends(require_seller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        lic = await svc.create_license(
            session,
            seller_id=seller.seller_id,
            product_name=body.product_name,
            max_usage=body.max_usage,
            expires_at=body.expires_at,
            notes=body.notes,
            user_email=body.user_email,
        )
        return _license_response(lic)


@router.get("/licenses", response_model=list[LicenseResponse])
async def list_licenses(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    seller: SellerIdentity = Depends(require_seller),
):
    svc = _get_service()
    db = _get_db()
    page_size = min(
        page_size or svc.settings.default_page_size, svc.settings.max_page_size
    )
    offset = (page - 1) * page_size
    now = datetime.now(timezone.utc)
    async with db.get_session() as session:
        items = await svc.list_licenses(
            session, seller.seller_id, status=status,
            offset=offset, limit=page_size, now=now,
        )
        return [_license_response(lic, now) for lic in items]


@router.get("/licenses/{license_id}", response_model=LicenseResponse)
async def get_license(license_id: str, seller: SellerIdentity = Depends(require_seller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        lic = await svc.get_license(session, license_id, seller.seller_id)
        return _license_response(lic)


@router.patch("/licenses/{license_id}", response_model=LicenseResponse)
async def update_license(
    license_id: str, body: LicenseUpdate, seller: SellerIdentity = Depends(require_seller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        lic = await svc.update_license(
            session, license_id, seller.seller_id,
            **body.model_dump(exclude_unset=True),
        )
        return _license_response(lic)


@router.post("/licenses/{license_id}/status", response_model=LicenseResponse)
async def set_license_status(
    license_id: str, body: StatusUpdate, seller: SellerIdentity = Depends(require_seller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        lic = await svc.set_status(session, license_id, seller.seller_id, body.status)
        return _license_response(lic)


@router.delete("/licenses/{license_id}", status_code=204)
async def delete_license(license_id: str, seller: SellerIdentity = Depends(require_seller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.delete_license(session, license_id, seller.seller_id)
    return Response(status_code=204)


# ── End-user redemption ──

@router.post("/redeem", response_model=RedemptionResponse)
async def redeem_license(body: RedemptionRequest):
    svc = _get_service()
    db = _get_db()
    now = datetime.now(timezone.utc)
    async with db.get_session() as session:
        result = await svc.redeem(
            session, body.key,
            RedemptionContext(user_email=body.user_email, metadata=body.metadata),
            now=now,
        )
        return _redemption_response(result, now)


@router.get("/validate/{key}", response_model=RedemptionResponse)
async def check_license(key: str):
    svc = _get_service()
    db = _get_db()
    now = datetime.now(timezone.utc)
    async with db.get_session() as session:
        result = await svc.check_license(session, key, now=now)
        return _redemption_response(result, now)
