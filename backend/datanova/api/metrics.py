"""
Metrics endpoint for performance monitoring.
"""
from fastapi import APIRouter
from datanova.core.performance import PerformanceMonitor

router = APIRouter()


@router.get("/metrics")
async def get_metrics():
    """
    Get performance metrics.

    Returns timing statistics for analysis service calls and local requests.
    """
    return {'performance': PerformanceMonitor.get_all_metrics()}
