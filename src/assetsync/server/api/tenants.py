"""Tenant management API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from assetsync.server.api.deps import get_db
from assetsync.server.database import Database
from assetsync.server.schemas import (
    TenantCreateRequest,
    TenantResponse,
    tenant_to_response,
)

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(
    request: TenantCreateRequest,
    db: Database = Depends(get_db),
) -> TenantResponse:
    """Create a tenant with its DAM/store settings and sync tags."""
    settings = request.model_dump(exclude={"name"}, exclude_none=True)
    try:
        tenant = db.create_tenant(request.name, **settings)
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Tenant '{request.name}' already exists",
        ) from e
    return tenant_to_response(tenant)


@router.get("", response_model=list[TenantResponse])
def list_tenants(db: Database = Depends(get_db)) -> list[TenantResponse]:
    """List all tenants."""
    return [tenant_to_response(t) for t in db.list_tenants()]


@router.get("/{tenant_id}", response_model=TenantResponse)
def get_tenant(tenant_id: str, db: Database = Depends(get_db)) -> TenantResponse:
    """Get one tenant."""
    tenant = db.get_tenant(tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {tenant_id} not found",
        )
    return tenant_to_response(tenant)
