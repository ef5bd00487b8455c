import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from .domain.scheduling.exceptions import NotFoundError
from .domain.scheduling.repository import SchedulingRepository
from .models import Tenant

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


async def get_current_tenant(
    x_tenant_id: Optional[str] = Header(None, alias=TENANT_HEADER),
    db: Session = Depends(get_db),
) -> Tenant:
    """
    Resolve the calling tenant.

    The upstream identity layer authenticates the caller and forwards the
    tenant it belongs to in the X-Tenant-ID header.
    """
    if not x_tenant_id or not x_tenant_id.strip():
        logger.warning(f"⚠️ Request without {TENANT_HEADER} header")
        raise HTTPException(
            status_code=401,
            detail=f"Not authenticated. Please provide the {TENANT_HEADER} header.",
        )

    tenant = SchedulingRepository.get_tenant(db, x_tenant_id.strip())
    if not tenant:
        logger.warning(f"⚠️ Unknown tenant: {x_tenant_id}")
        raise NotFoundError("Tenant not found")

    logger.debug(f"✅ Resolved tenant {tenant.id}")
    return tenant
