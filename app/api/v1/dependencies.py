from fastapi import HTTPException, Request, status

from app.placement.engine import PlacementEngine


def get_engine(request: Request) -> PlacementEngine:
    """The placement engine loaded at start-up."""
    engine = getattr(request.app.state, "placement", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Placement engine is not loaded",
        )
    return engine
