from fastapi import APIRouter, Depends, Request
from .schemas import RelayResponse, ErrorResponse
from ..services.forwarder import Forwarder
from ..services.pipeline import relay

router = APIRouter()

RELAY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_forwarder(request: Request) -> Forwarder:
    return request.app.state.forwarder


@router.api_route(
    "/",
    methods=RELAY_METHODS,
    response_model=RelayResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 413, 422, 499, 500, 502)},
)
async def receive_event(request: Request, forwarder: Forwarder = Depends(get_forwarder)):
    """Relay a binary-mode CloudEvent to the Direktiv namespace broadcast API."""
    settings = request.app.state.settings
    result = await relay(
        request,
        forwarder,
        max_size=settings.MAX_EVENT_SIZE,
        require_fields=settings.REQUIRE_FIELDS,
        metrics=request.app.state.metrics,
    )
    return RelayResponse(
        id=result.event_id,
        status="forwarded",
        downstream_status=result.downstream_status,
        correlation_id=getattr(request.state, "correlation_id", None),
    )
