"""
Price range query endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pricefeed.exceptions import PriceFeedError

logger = logging.getLogger(__name__)

router = APIRouter()


def error_response(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


@router.get("/prices/{pair}")
async def get_prices(request: Request,
                     pair: str,
                     interval: Optional[int] = None,
                     amount: Optional[int] = None,
                     before: Optional[int] = None):
    """
    Datapoints for a pair, oldest first.

    Query parameters:
        interval: Granularity in seconds, a multiple of the collection interval
        amount: Number of datapoints, capped server-side
        before: Unix timestamp the window ends at
    """
    engine = request.app.state.query_engine
    try:
        points = await engine.query(pair, interval=interval, amount=amount, before=before)
    except PriceFeedError as e:
        logger.info(f"Rejected price query for {pair}: {e}")
        return error_response(str(e))

    return [point.to_dict() for point in points]


@router.get("/pairs")
async def get_pairs(request: Request):
    """Supported pairs and their fallback source codes."""
    registry = request.app.state.registry
    return {
        "pairs": [pair.to_dict() for pair in registry],
        "interval": request.app.state.settings.collection_interval_seconds,
        "max_datapoints": request.app.state.settings.max_datapoints
    }
