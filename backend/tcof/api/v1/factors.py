"""Success factor catalog API endpoints (read-only)."""

from fastapi import APIRouter, HTTPException, status

from tcof.api.deps import Catalog
from tcof.schemas import CamelModel

router = APIRouter()


class FactorResponse(CamelModel):
    """Success factor response model."""

    id: str
    title: str
    description: str
    tasks: dict[str, list[str]]


@router.get("/", response_model=list[FactorResponse])
async def list_factors(catalog: Catalog) -> list[FactorResponse]:
    """List the success factor catalog."""
    return [
        FactorResponse(id=e.id, title=e.title, description=e.description, tasks=e.tasks)
        for e in await catalog.list_factors()
    ]


@router.get("/{factor_id}", response_model=FactorResponse)
async def get_factor(factor_id: str, catalog: Catalog) -> FactorResponse:
    """Get a single success factor."""
    entry = await catalog.get_factor(factor_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Success factor not found",
        )
    return FactorResponse(
        id=entry.id,
        title=entry.title,
        description=entry.description,
        tasks=entry.tasks,
    )
