"""Seller identity dependencies.

Authentication happens upstream; the gateway forwards the verified seller
identity in request headers and the engine trusts it as given.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException


@dataclass(frozen=True)
class SellerIdentity:
    """Authenticated seller on whose behalf a request runs."""
    seller_id: str
    email: Optional[str] = None


async def require_seller(
    x_seller_id: str = Header(None, alias="X-Seller-Id"),
    x_seller_email: str = Header(None, alias="X-Seller-Email"),
) -> SellerIdentity:
    """FastAPI dependency that resolves the seller identity from headers."""
    if not x_seller_id or not x_seller_id.strip():
        raise HTTPException(status_code=401, detail="Missing seller identity")
    return SellerIdentity(seller_id=x_seller_id.strip(), email=x_seller_email or None)
