"""Reporting API router."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from keyward_engine.common.security import SellerIdentity, require_seller
from keyward_engine.reporting.schemas import LicenseSummaryReport

router = APIRouter()


def _get_service():
    from keyward_engine.deps import get_reporting_service
    return get_reporting_service()


def _get_db():
    from keyward_engine.deps import get_db
    return get_db()


@router.get("/reports/summary", response_model=LicenseSummaryReport)
async def license_summary(seller: SellerIdentity = Depends(require_seller)):
    svc = _get_service()
    db = _get_db()
    now = datetime.now(timezone.utc)
    async with db.get_session() as session:
        aggregates = await svc.report(session, seller.seller_id, now=now)
    return LicenseSummaryReport(
        seller_id=seller.seller_id,
        generated_at=now,
        **aggregates.to_dict(),
    )
