from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user, require_subscription
from app.database import get_db
from app.models import User
from app.repositories.entries import EntryRecord, SQLAlchemyEntryRepository
from app.schemas import (
    ClarityUpdate,
    EntryCreate,
    EntryListResponse,
    EntryUpdate,
    EntryWithAnalysis,
    InsightsResponse,
)
from app.services.analysis import EntryAnalyzer, get_analyzer
from app.services.entry_service import EntryAccessDenied, EntryNotFound, EntryService
from app.services.insights import InsightAggregator, get_insight_aggregator, theme_counts

router = APIRouter(prefix="/api/entries", tags=["entries"])
insights_router = APIRouter(prefix="/api/insights", tags=["insights"])


def get_entry_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    analyzer: Annotated[EntryAnalyzer, Depends(get_analyzer)],
    insight_aggregator: Annotated[InsightAggregator, Depends(get_insight_aggregator)],
) -> EntryService:
    return EntryService(SQLAlchemyEntryRepository(db), analyzer, insight_aggregator)


async def get_owned_entry(
    entry_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[EntryService, Depends(get_entry_service)],
) -> EntryRecord:
    """Resolve ``entry_id`` for the current user: 404 if missing, 403 if not theirs."""
    try:
        return await service.get_owned_entry(entry_id, current_user.id)
    except EntryNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Entry not found",
        )
    except EntryAccessDenied:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this entry",
        )


@router.get("", response_model=EntryListResponse)
async def list_entries(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """List all entries of the current user, newest first, with fresh insights."""
    listing = await service.get_entries_with_analysis_by_user(current_user.id)
    return EntryListResponse(results=listing.results, insights=listing.insights)


@router.get("/starred", response_model=list[EntryWithAnalysis])
async def list_starred_entries(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """List the current user's starred entries."""
    return await service.get_starred_entries_with_analysis(current_user.id)


@router.get("/{entry_id}", response_model=EntryWithAnalysis)
async def get_entry(
    entry: Annotated[EntryRecord, Depends(get_owned_entry)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Get one entry with its emotions and themes."""
    result = await service.get_entry_with_analysis(entry.id)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return result


@router.post("", response_model=EntryWithAnalysis, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_data: EntryCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Create an entry and analyze its content."""
    return await service.create_entry(current_user.id, entry_data.title, entry_data.content)


@router.put("/{entry_id}", response_model=EntryWithAnalysis)
async def update_entry(
    entry_data: EntryUpdate,
    entry: Annotated[EntryRecord, Depends(get_owned_entry)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Update an entry; new content is re-analyzed."""
    changes = entry_data.model_dump(exclude_none=True)
    return await service.update_entry(entry, changes)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry: Annotated[EntryRecord, Depends(get_owned_entry)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Delete an entry together with its emotions and themes."""
    await service.delete_entry(entry)
    return None


@router.patch("/{entry_id}/star", response_model=EntryWithAnalysis)
async def toggle_star(
    entry: Annotated[EntryRecord, Depends(get_owned_entry)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Flip the starred flag."""
    return await service.toggle_star(entry)


@router.patch("/{entry_id}/clarity", response_model=EntryWithAnalysis)
async def update_clarity(
    rating_data: ClarityUpdate,
    entry: Annotated[EntryRecord, Depends(get_owned_entry)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Set the clarity rating (0-5)."""
    return await service.set_clarity(entry, rating_data.rating)


@insights_router.get("", response_model=InsightsResponse)
async def get_insights(
    current_user: Annotated[User, Depends(require_subscription)],
    service: Annotated[EntryService, Depends(get_entry_service)],
):
    """Premium: theme frequencies across all entries plus insight narratives."""
    listing = await service.get_entries_with_analysis_by_user(current_user.id)
    counts = theme_counts(listing.results)
    return InsightsResponse(theme_counts=counts, insights=listing.insights)
