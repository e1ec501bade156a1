from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Any, Dict, Optional

from ..engine import Category, PricingEngine, Tier
from ..engine.final_pricing import FinalPricingInput, calculate_final_pricing
from ..engine.scoring import get_recommended, score, tier_info
from .state import get_engine
from .trips_api import parse_draft, router as trips_router

app = FastAPI(
    title="Trip Pricing API",
    description="Debug API for the trip day-state engine and pricing aggregator",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include trip editing API
app.include_router(trips_router)


class CalcRequest(BaseModel):
    draft: Dict[str, Any]
    tax_rate: Optional[float] = None
    contingency_pct: Optional[float] = None
    agent_commission_pct: Optional[float] = None
    profit_pct: Optional[float] = None


class RecommendRequest(BaseModel):
    category: str
    tier: str
    park_id: Optional[str] = None
    limit: int = 5


def _pick(value: Optional[float], default: float) -> float:
    return default if value is None else value


@app.get("/")
async def root():
    return {"status": "online", "message": "Trip Pricing API Active"}


@app.post("/calculate")
async def calculate_trip(req: CalcRequest, engine: PricingEngine = Depends(get_engine)):
    draft = parse_draft(req.draft)
    settings = engine.settings

    if req.tax_rate is not None:
        engine = PricingEngine(catalog=engine.catalog, settings=engine.settings, tax_rate=req.tax_rate)
    result = engine.calculate(draft)

    final = calculate_final_pricing(FinalPricingInput(
        base_total=result.grand_total,
        travelers=result.travelers,
        contingency_pct=_pick(req.contingency_pct, settings.contingency_pct),
        agent_commission_pct=_pick(req.agent_commission_pct, settings.agent_commission_pct),
        profit_pct=_pick(req.profit_pct, settings.profit_pct),
    ))

    payload = result.to_dict()
    for data, line in zip(payload["lines"], result.lines):
        data["trace"] = line.get_trace_text()
    payload["trace"] = result.get_trace_text()
    payload["finalPricing"] = final.to_dict()
    return payload


@app.get("/catalog")
async def get_catalog(
    search: Optional[str] = None,
    category: Optional[str] = None,
    park_id: Optional[str] = None,
    include_inactive: bool = False,
    engine: PricingEngine = Depends(get_engine),
):
    if category is not None:
        cat = Category.parse(category)
        if cat is None:
            raise HTTPException(status_code=400, detail=f"Unknown category '{category}'")
        items = (
            engine.catalog.applicable_to_park(cat, park_id)
            if not include_inactive
            else [i for i in engine.catalog if i.category == cat]
        )
    else:
        items = [i for i in engine.catalog if include_inactive or i.active]

    if search:
        needle = search.lower()
        items = [i for i in items if needle in i.name.lower() or needle in (i.sku or "").lower()]

    # Limit results
    items = items[:200] if search else items[:100]
    return [item.to_dict() for item in items]


@app.get("/catalog/{item_id}")
async def get_catalog_item(item_id: str, engine: PricingEngine = Depends(get_engine)):
    item = engine.catalog.find_by_id(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Catalog item '{item_id}' not found")
    return item.to_dict()


@app.post("/recommend")
async def recommend(req: RecommendRequest, engine: PricingEngine = Depends(get_engine)):
    cat = Category.parse(req.category)
    if cat is None:
        raise HTTPException(status_code=400, detail=f"Unknown category '{req.category}'")
    try:
        tier = Tier.parse(req.tier)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ranked = get_recommended(engine.catalog.applicable_to_park(cat, req.park_id), tier)
    return {
        "tier": tier.value,
        "tierInfo": tier_info(tier),
        "items": [
            {**item.to_dict(), "score": score(item, tier)}
            for item in ranked[:max(req.limit, 0)]
        ],
    }


@app.get("/system/status")
async def get_status(engine: PricingEngine = Depends(get_engine)):
    settings = engine.settings
    has_report = settings.build_report.exists()
    return {
        "engine_active": True,
        "catalog_items": len(engine.catalog),
        "catalog_warnings": list(engine.catalog.warnings),
        "tax_rate": engine.tax_rate,
        "catalog_last_build": settings.build_report.stat().st_mtime if has_report else None
    }
