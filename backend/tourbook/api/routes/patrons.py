"""
Patron endpoints: CRUD, soft delete and search.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.api.deps import get_db
from tourbook.core.config import get_settings
from tourbook.schemas.booking import MessageResponse
from tourbook.schemas.patron import (
    PatronCreate,
    PatronListResponse,
    PatronResponse,
    PatronSearchResponse,
    PatronSummary,
    PatronUpdate,
)
from tourbook.services import patron_service

settings = get_settings()
router = APIRouter(prefix="/patrons", tags=["Patrons"])


@router.get("/", response_model=PatronListResponse)
async def list_patrons_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["name", "phone", "created_at"] = Query("name"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    db: AsyncSession = Depends(get_db),
):
    """List active patrons, searchable by name, phone or address."""
    patrons, total, total_pages = await patron_service.list_patrons(
        db, page, limit, search, sort_by, sort_order
    )
    return PatronListResponse(
        patrons=[PatronResponse.model_validate(p) for p in patrons],
        total_pages=total_pages,
        current_page=page,
        total_patrons=total,
    )


@router.get("/search/quick", response_model=PatronSearchResponse)
async def quick_search_endpoint(
    q: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    """Quick name/phone lookup; fewer than 2 characters returns nothing."""
    patrons = await patron_service.quick_search_patrons(db, q)
    return PatronSearchResponse(patrons=[PatronSummary.model_validate(p) for p in patrons])


@router.get("/{patron_id}", response_model=PatronResponse)
async def get_patron_endpoint(patron_id: int, db: AsyncSession = Depends(get_db)):
    return await patron_service.get_patron(db, patron_id)


@router.post("/", response_model=PatronResponse, status_code=status.HTTP_201_CREATED)
async def create_patron_endpoint(patron_data: PatronCreate, db: AsyncSession = Depends(get_db)):
    """Register a patron. Phone numbers are unique among active patrons."""
    return await patron_service.create_patron(db, patron_data)


@router.put("/{patron_id}", response_model=PatronResponse)
async def update_patron_endpoint(
    patron_id: int,
    patron_data: PatronUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await patron_service.update_patron(db, patron_id, patron_data)


@router.delete("/{patron_id}", response_model=MessageResponse)
async def delete_patron_endpoint(
    patron_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the patron is marked inactive, never removed."""
    await patron_service.deactivate_patron(db, patron_id)
    return MessageResponse(message="Patron deleted successfully")
