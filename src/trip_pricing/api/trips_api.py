"""
Trips API - FastAPI router for applying edits to trip drafts.

The server keeps no draft state: clients send the current draft with each
request and get the next draft back.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..engine import PricingEngine, TripDraft
from ..engine.exceptions import TripPricingError, UnknownDayError
from ..engine.reducer import intent_from_dict, reduce
from ..engine.validation import validate_trip
from .state import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])


# Pydantic models for API
class CreateTripRequest(BaseModel):
    """Request model for starting a new draft."""
    travelers: int
    days: int
    tier: str = "standard"
    name: str = ""
    travel_date: Optional[str] = None


class ApplyRequest(BaseModel):
    """Request model for applying intents to a draft."""
    draft: Dict[str, Any]
    intents: List[Dict[str, Any]]


class DraftRequest(BaseModel):
    draft: Dict[str, Any]


def parse_draft(data: Dict[str, Any]) -> TripDraft:
    """Build a TripDraft from a request body, mapping bad input to 422."""
    try:
        return TripDraft.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid draft: {e}")


def raise_for_engine_error(e: TripPricingError):
    """Map engine errors onto HTTP errors."""
    if isinstance(e, UnknownDayError):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


# Endpoints

@router.post("")
async def create_trip(req: CreateTripRequest):
    """Create an empty draft with one day entry per trip day."""
    if req.travelers < 1 or req.days < 1:
        raise HTTPException(status_code=400, detail="travelers and days must be at least 1")
    draft = parse_draft({
        "name": req.name,
        "travelers": req.travelers,
        "days": req.days,
        "tier": req.tier,
        "travelDate": req.travel_date,
    })
    return TripDraft.create(
        travelers=draft.travelers,
        days=draft.days,
        tier=draft.tier,
        name=draft.name,
        travel_date=draft.travel_date,
    ).to_dict()


@router.post("/apply")
async def apply_intents(req: ApplyRequest, engine: PricingEngine = Depends(get_engine)):
    """Apply intents in order; the whole batch fails if any intent fails."""
    draft = parse_draft(req.draft)
    try:
        for data in req.intents:
            draft = reduce(draft, intent_from_dict(data), engine.catalog)
    except TripPricingError as e:
        raise_for_engine_error(e)
    logger.debug("Applied %d intents", len(req.intents))
    return draft.to_dict()


@router.post("/validate")
async def validate(req: DraftRequest, engine: PricingEngine = Depends(get_engine)):
    """Non-blocking findings for a draft."""
    draft = parse_draft(req.draft)
    return [w.to_dict() for w in validate_trip(draft, engine.catalog)]
