# talenthunt/routes/locations.py
from fastapi import APIRouter, Depends, Query, Request

from talenthunt.auth.dependencies import get_current_admin
from talenthunt.models.user import User
from talenthunt.services.location_service import LocationCache

router = APIRouter(prefix="/locations", tags=["Locations"])


def _cache(request: Request) -> LocationCache:
    return request.app.state.location_cache


@router.get("/states")
async def list_states(request: Request):
    states = await _cache(request).list_states()
    return {"status": "success", "count": len(states), "data": states}


@router.get("/states/{state_name}/lgas")
async def list_lgas(state_name: str, request: Request):
    lgas = await _cache(request).lgas_by_state(state_name)
    return {"status": "success", "state": state_name, "count": len(lgas), "data": lgas}


@router.get("/states/{state_name}/lgas/{lga_name}")
async def lga_details(state_name: str, lga_name: str, request: Request):
    return {"status": "success", "data": await _cache(request).lga_details(state_name, lga_name)}


@router.get("/search")
async def search_lgas(request: Request, q: str = Query(..., min_length=2), limit: int = Query(20, ge=1, le=100)):
    results = await _cache(request).search_lgas(q, limit)
    return {"status": "success", "query": q, "count": len(results), "data": results}


@router.get("/cache")
def cache_info(request: Request):
    return {"status": "success", "data": _cache(request).info()}


@router.post("/cache/refresh")
async def refresh_cache(request: Request, admin: User = Depends(get_current_admin)):
    cache = _cache(request)
    await cache.refresh()
    return {"status": "success", "message": "Location data refreshed", "data": cache.info()}
