from fastapi import APIRouter, Request

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health check")
async def ping(request: Request) -> dict[str, str]:
    ready = getattr(request.app.state, "ticket_service", None) is not None
    return {"status": "ok", "tickets": "ready" if ready else "unavailable"}
