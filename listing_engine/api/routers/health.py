"""
Liveness and readiness checks.
"""
from fastapi import APIRouter

from listing_engine.api.dependencies import (
    get_cache_circuit_breaker,
    get_history_circuit_breaker,
)
from listing_engine.core.circuit_breaker import CircuitState

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check() -> dict:
    """
    Readiness with breaker states.
    An open breaker only degrades responses (uncached pages, no behavioral
    signal), so the service reports `degraded` but stays ready.
    """
    states = {
        breaker.name: breaker.state
        for breaker in (get_cache_circuit_breaker(), get_history_circuit_breaker())
    }

    return {
        "status": "ready",
        "degraded": any(state != CircuitState.CLOSED for state in states.values()),
        "circuit_breakers": {name: state.value for name, state in states.items()},
    }
