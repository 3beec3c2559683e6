from fastapi import APIRouter, Depends, HTTPException, Query, Response
from typing import Optional
from bestsellers.api.deps import memory_cache_dep, redis_dep, shopify_dep
from bestsellers.api.v1.schemas.bestsellers import BestsellersOut
from bestsellers.core.errors import ValidationError
from bestsellers.domain.services.bestsellers_svc import build_query, get_bestsellers_svc

import logging
import time
logger = logging.getLogger(__name__)

router = APIRouter(tags=["bestsellers"])

@router.get("/bestsellers", response_model=BestsellersOut, response_model_exclude_none=True)
async def get_bestsellers(
    response: Response,
    segments: Optional[str] = Query(None, description="Comma-separated: man,woman,teens,kids"),
    segment: Optional[str] = Query(None, description="Single segment; 'all' = no filter"),
    limit: Optional[int] = Query(None),
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    snapshot: bool = Query(True),
    nocache: bool = Query(False),
    debug: bool = Query(False),
    channel: Optional[str] = Query(None, description="online | pos"),
    shopify = Depends(shopify_dep),
    redis = Depends(redis_dep),
    memory = Depends(memory_cache_dep),
):
    """
    Ranked bestseller handles.
    Never fails on upstream/cache problems: degrades to stale, then to an empty list.
    """
    try:
        query = build_query(
            segments=segments, segment=segment, limit=limit, from_=from_, to=to,
            snapshot=snapshot, nocache=nocache, debug=debug, channel=channel,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    t0 = time.perf_counter()
    result = await get_bestsellers_svc(shopify, redis, memory, query)
    dt = time.perf_counter() - t0

    source = result.meta.get("source", "unknown")
    response.headers["X-Bestsellers-Source"] = str(source)
    logger.info(
        "Response: get_bestsellers returned %s handles source=%s in %.4fs segments=%s",
        len(result.handles), source, dt, query.segments.label,
    )
    return result.public(debug)
