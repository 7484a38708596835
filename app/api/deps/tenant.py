import re
from typing import Optional

import structlog
from fastapi import Header, HTTPException, Path, status

logger = structlog.get_logger(__name__)

_TENANT_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")


class TenantContext:
    """Tenant scope for every query made during a request."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id


async def get_tenant_from_header(
    x_tenant_id: Optional[str] = Header(
        None, description="Tenant ID for multi-tenant operations"
    ),
) -> TenantContext:
    """
    Get tenant context from the ``X-Tenant-ID`` header.

    Tenant bootstrap and authentication happen upstream; this only checks the
    header is present and well formed.
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )

    tenant_id = x_tenant_id.strip()
    if not _TENANT_ID.match(tenant_id):
        logger.warning("Malformed tenant header", tenant_id=tenant_id[:80])
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID must be 1-64 letters, digits or -_.:",
        )

    structlog.contextvars.bind_contextvars(tenant_id=tenant_id)
    return TenantContext(tenant_id)


async def get_tenant_from_path(
    tenant_id: str = Path(..., description="Tenant ID of the public booking page"),
) -> TenantContext:
    """Tenant context for the customer-facing routes, which carry it in the URL."""
    if not _TENANT_ID.match(tenant_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking page not found"
        )
    structlog.contextvars.bind_contextvars(tenant_id=tenant_id)
    return TenantContext(tenant_id)
