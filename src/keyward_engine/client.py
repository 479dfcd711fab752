"""
LicenseClient SDK — sync client for Keyward-Engine.

Used by seller tooling to issue and manage keys, and by shipped software to
redeem or check a key.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx


@dataclass
class ClientLicense:
    """License info returned by the SDK."""

    id: str
    key: str
    product_name: str
    status: str = ""
    effective_status: str = ""
    seller_id: str = ""
    user_email: Optional[str] = None
    usage_count: int = 0
    max_usage: Optional[int] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ClientRedemptionResult:
    """Result of redeem() / check() calls."""

    accepted: bool
    code: str = ""
    message: str = ""
    remaining: Optional[int] = None
    license: Optional[ClientLicense] = None


@dataclass
class ClientReport:
    """Dashboard counters for the configured seller."""

    total: int = 0
    active_count: int = 0
    expired_count: int = 0
    banned_count: int = 0
    pending_count: int = 0
    this_period_count: int = 0
    total_redemptions: int = 0
    extra: dict[str, Any] = field(default_factory=dict)


class LicenseClient:
    """
    Synchronous HTTP client for Keyward-Engine.

    Seller operations need seller_id (forwarded as X-Seller-Id, the way the
    identity gateway would); redemption only needs the key.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8080",
        license_key: Optional[str] = None,
        seller_id: Optional[str] = None,
        seller_email: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
    ):
        self.server_url = server_url.rstrip("/")
        self.license_key = license_key
        self.seller_id = seller_id
        self.seller_email = seller_email
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
        )

    def _seller_headers(self) -> dict[str, str]:
        headers = {}
        if self.seller_id:
            headers["X-Seller-Id"] = self.seller_id
        if self.seller_email:
            headers["X-Seller-Email"] = self.seller_email
        return headers

    def _request(
        self,
        method: str,
        path: str,
        idempotent: bool = True,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Central HTTP method with retry and structured error handling.

        Retries on:
        - httpx.ConnectError (request never left)
        - httpx.TimeoutException, only for idempotent requests
        - 503 store outages and 429, plus other 5xx for idempotent requests

        No retry on 4xx errors; the server's error code is passed through.

        Returns parsed JSON on success, or structured error dict on failure.
        """
        last_error = None
        for attempt in range(self.max_retries):
            retry_later = attempt < self.max_retries - 1
            try:
                resp = getattr(self._http, method)(path, **kwargs)
                if resp.status_code == 204:
                    return {}
                retryable = resp.status_code in (429, 503) or (
                    idempotent and resp.status_code >= 500
                )
                if retryable:
                    last_error = f"HTTP {resp.status_code}"
                    if retry_later:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                if resp.status_code >= 400:
                    return self._error_from(resp)
                return resp.json()
            except httpx.ConnectError as e:
                last_error = str(e)
            except httpx.TimeoutException:
                last_error = "timeout"
                if not idempotent:
                    return {"error": "Request timed out", "code": "TIMEOUT"}
            except httpx.HTTPError as e:
                last_error = str(e)
                if not idempotent:
                    return {"error": last_error, "code": "CONNECTION_ERROR"}
            except json.JSONDecodeError:
                return {"error": "Invalid JSON response", "code": "JSON_ERROR"}

            if retry_later:
                time.sleep(self.retry_backoff_base * (2 ** attempt))

        return {"error": f"All {self.max_retries} retries exhausted: {last_error}", "code": "CONNECTION_ERROR"}

    @staticmethod
    def _error_from(resp) -> dict[str, Any]:
        try:
            body = resp.json()
        except (json.JSONDecodeError, ValueError):
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code") or ("SERVER_ERROR" if resp.status_code >= 500 else "CLIENT_ERROR")
        detail = body.get("detail") or f"HTTP {resp.status_code}"
        if not isinstance(detail, str):
            detail = json.dumps(detail)
        return {"error": detail, "code": code, "status_code": resp.status_code}

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        if not value:
            return None
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None

    @classmethod
    def _parse_license(cls, data: dict) -> ClientLicense:
        return ClientLicense(
            id=data.get("id", ""),
            key=data.get("key", ""),
            product_name=data.get("product_name", ""),
            status=data.get("status", ""),
            effective_status=data.get("effective_status", ""),
            seller_id=data.get("seller_id", ""),
            user_email=data.get("user_email"),
            usage_count=data.get("usage_count", 0),
            max_usage=data.get("max_usage"),
            expires_at=cls._parse_datetime(data.get("expires_at")),
            notes=data.get("notes"),
            created_at=cls._parse_datetime(data.get("created_at")),
        )

    def _parse_redemption(self, data: dict) -> ClientRedemptionResult:
        if "error" in data:
            return ClientRedemptionResult(
                accepted=False, code=data.get("code", "ERROR"),
                message=data.get("error", ""),
            )
        license_obj = None
        if data.get("license"):
            license_obj = self._parse_license(data["license"])
        return ClientRedemptionResult(
            accepted=data.get("accepted", False),
            code=data.get("code", ""),
            message=data.get("message", ""),
            remaining=data.get("remaining"),
            license=license_obj,
        )

    # ── Redemption ──

    def redeem(
        self,
        user_email: Optional[str] = None,
        metadata: dict[str, Any] | None = None,
    ) -> ClientRedemptionResult:
        """Consume one usage of the configured license key."""
        body = {
            "key": self.license_key or "",
            "user_email": user_email,
            "metadata": metadata or {},
        }
        data = self._request("post", "/redeem", idempotent=False, json=body)
        return self._parse_redemption(data)

    def check(self) -> ClientRedemptionResult:
        """Check the configured key without consuming usage."""
        data = self._request("get", f"/validate/{self.license_key or ''}")
        return self._parse_redemption(data)

    # ── Seller operations ──

    def create_license(
        self,
        product_name: str,
        max_usage: Optional[int] = None,
        expires_at: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[ClientLicense]:
        """Issue a new key. Returns None if the server refused."""
        body = {
            "product_name": product_name,
            "max_usage": max_usage,
            "expires_at": expires_at,
            "notes": notes,
        }
        data = self._request(
            "post", "/licenses", idempotent=False,
            json=body, headers=self._seller_headers(),
        )
        if "error" in data:
            return None
        return self._parse_license(data)

    def list_licenses(
        self, status: Optional[str] = None, page: int = 1, page_size: int = 20,
    ) -> list[ClientLicense]:
        params: dict[str, Any] = {"page": page, "page_size": page_size}
        if status:
            params["status"] = status
        data = self._request(
            "get", "/licenses", params=params, headers=self._seller_headers(),
        )
        if isinstance(data, dict) and "error" in data:
            return []
        return [self._parse_license(item) for item in data]

    def set_status(self, license_id: str, status: str) -> Optional[ClientLicense]:
        data = self._request(
            "post", f"/licenses/{license_id}/status",
            json={"status": status}, headers=self._seller_headers(),
        )
        if "error" in data:
            return None
        return self._parse_license(data)

    def delete_license(self, license_id: str) -> bool:
        data = self._request(
            "delete", f"/licenses/{license_id}", headers=self._seller_headers(),
        )
        return "error" not in data

    def report(self) -> Optional[ClientReport]:
        """Fetch dashboard counters for the configured seller."""
        data = self._request("get", "/reports/summary", headers=self._seller_headers())
        if "error" in data:
            return None
        known = set(ClientReport.__dataclass_fields__) - {"extra"}
        return ClientReport(
            **{k: data.get(k, 0) for k in known},
            extra={k: v for k, v in data.items() if k not in known},
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
