from fastapi import APIRouter, Depends, HTTPException, Query, Response
from typing import Optional
from bestsellers.api.deps import redis_dep, shopify_dep
from bestsellers.api.v1.schemas.bestsellers import SnapshotOut
from bestsellers.core.errors import UnauthorizedError, ValidationError
from bestsellers.domain.services.snapshot_svc import build_snapshots_svc

import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["bestsellers-snapshot"])

@router.api_route("/bestsellers/snapshot", methods=["GET", "POST"], response_model=SnapshotOut)
async def build_snapshot(
    response: Response,
    secret: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    shopify = Depends(shopify_dep),
    redis = Depends(redis_dep),
):
    """
    Scheduled job: precompute last-30-days bestsellers for every segment combination.
    Protected by SNAPSHOT_SECRET.
    """
    response.headers["Cache-Control"] = "no-store"
    try:
        summary = await build_snapshots_svc(shopify, redis, secret, limit)
    except UnauthorizedError:
        logger.warning("snapshot unauthorized")
        raise HTTPException(status_code=401, detail="unauthorized", headers={"Cache-Control": "no-store"})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not summary.ok:
        response.status_code = 500
    logger.info("Response: snapshot ok=%s written=%s orders=%s", summary.ok, summary.written, summary.orders)
    return summary.model_dump()
