"""
Manual sweep triggers and source listing.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from yieldsync.errors import EntityNotFound
from yieldsync.orchestrator import SweepOrchestrator
from yieldsync.web.dependencies import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scrape"])


def _error(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


@router.post("/scrape/all")
async def scrape_all(orchestrator: SweepOrchestrator = Depends(get_orchestrator)):
    """Run a full sweep over every active pool."""
    logger.info("Manual scrape of all pools triggered")
    try:
        summary = await orchestrator.sweep_all()
    except Exception as e:
        logger.exception("Manual scrape of all pools failed")
        return _error(500, "Failed to scrape pools", str(e))

    timestamp = datetime.now().isoformat()
    if summary is None:
        return {
            "message": "Pool scraping already in progress",
            "skipped": True,
            "timestamp": timestamp,
        }

    return {
        "message": "Pool scraping completed successfully",
        "skipped": False,
        "summary": summary.to_dict(),
        "timestamp": timestamp,
    }


@router.post("/scrape/pool/{pool_id}")
async def scrape_pool(pool_id: str, orchestrator: SweepOrchestrator = Depends(get_orchestrator)):
    """Sweep a single pool by id."""
    logger.info("Manual scrape of pool %s triggered", pool_id)
    try:
        record = await orchestrator.sweep_one(pool_id)
    except EntityNotFound as e:
        return _error(404, "Pool not found", str(e), poolId=pool_id)
    except Exception as e:
        logger.exception("Manual scrape of pool %s failed", pool_id)
        return _error(500, "Failed to scrape pool", str(e), poolId=pool_id)

    if record is None:
        return _error(
            404,
            "Pool not found or no scraper available",
            f"No data scraped for pool {pool_id}",
            poolId=pool_id,
        )

    return {
        "message": "Pool scraped successfully",
        "poolId": pool_id,
        "apy": record.apy,
        "tvl": record.tvl,
        "timestamp": record.fetched_at.isoformat(),
    }


@router.get("/scrapers/platforms")
async def supported_platforms(orchestrator: SweepOrchestrator = Depends(get_orchestrator)):
    """List the source identifiers that have a registered adapter."""
    try:
        platforms = orchestrator.list_sources()
    except Exception as e:
        logger.exception("Failed to list platforms")
        return _error(500, "Failed to get supported platforms", str(e))

    return {
        "platforms": platforms,
        "count": len(platforms),
        "message": "Supported scraping platforms retrieved",
    }
