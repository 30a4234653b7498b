"""
CRM Routes - Object Count Fan-out
=================================

Endpoints:
----------
- GET /connecting?objects=Account,Contact : count records per CRM object
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from .client import CrmClient

logger = logging.getLogger("relay.crm.routes")

crm_router = APIRouter(tags=["crm"])


def get_crm_client(request: Request) -> CrmClient:
    """
    Dependency to get the CRM client from app state.

    Raises:
        HTTPException: 503 if no CRM instance is configured
    """
    client = getattr(request.app.state, "crm_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRM client not configured",
        )
    return client


def parse_object_names(objects: str) -> List[str]:
    return [name.strip() for name in objects.split(",") if name.strip()]


@crm_router.get("/connecting")
async def count_objects(
    objects: str = Query(..., description="Comma-separated CRM object names"),
    crm: CrmClient = Depends(get_crm_client),
) -> List[Dict[str, Any]]:
    """
    Count records for each named object.

    Returns one ``{...countResult, "name": <object>}`` entry per object, in
    the order the objects were listed. CrmQueryError from any single query
    propagates to the global handler.
    """
    names = parse_object_names(objects)

    logger.info("Counting CRM objects", extra={"objects": names})

    return await crm.count_objects(names)


__all__ = ["crm_router", "get_crm_client"]
