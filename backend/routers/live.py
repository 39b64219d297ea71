from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from models.schemas import ErrorResponse
from services.live import LiveService

router = APIRouter(tags=["live"])


def get_live_service(request: Request) -> LiveService:
    return request.app.state.live_service


@router.get(
    "/youtube-live",
    responses={
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def youtube_live(service: LiveService = Depends(get_live_service)):
    """
    Live broadcasts for the configured channel, as returned by the YouTube
    search API.

    Freshness is owned by the server-side cache, so responses are marked
    no-store for browsers and intermediate proxies.
    """
    payload = await service.get_live()
    return JSONResponse(payload, headers={"Cache-Control": "no-store"})
