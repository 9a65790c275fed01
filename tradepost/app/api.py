"""FastAPI application exposing the tradepost market services.

Run with ``uvicorn tradepost.app.api:app``.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator

from fastapi import (
    Depends,
    FastAPI,
    File,
    Query,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tradepost import __version__
from tradepost.app.dependencies import (
    ActorDep,
    ClockDep,
    MarketSettingsDep,
    MarketStoreDep,
    OptionalActorDep,
    ResourceStoreDep,
)
from tradepost.app.ws_messages import (
    ConnectionReadyMessage,
    HeartbeatMessage,
    wire_event,
)
from tradepost.infrastructure.observability import (
    configure_logging,
    format_prometheus,
    get_logger,
    log_exception,
    record_api_request,
)
from tradepost.services import MarketError, MarketServices
from tradepost.services.dto import (
    AggregateCompleteDTO,
    AggregateUpdateDTO,
    BidCreateDTO,
    BidDTO,
    BuyOrderCreateDTO,
    BuyOrderDTO,
    BuyOrderFulfillDTO,
    CatalogItemDTO,
    ListingCompleteDTO,
    ListingCreateDTO,
    ListingUpdateDTO,
    MultipleCompleteDTO,
    MultipleCreateDTO,
    MultipleUpdateDTO,
    OfferResultDTO,
    PhotoUploadDTO,
    PurchaseRequestDTO,
    PurchaseResultDTO,
    QuantityUpdateDTO,
    UniqueListingCompleteDTO,
)

_logger = get_logger(__name__)


class MarketEventBus:
    """In-process fan-out of market events to websocket subscribers.

    Subscribers that fail a send are dropped; publishing never raises for them.
    """

    def __init__(self) -> None:
        self._subscribers: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket) -> None:
        """Subscribe a WebSocket and send connection ready message."""
        await websocket.accept()
        async with self._lock:
            self._subscribers.add(websocket)

        ready_msg = ConnectionReadyMessage(server_version=__version__)
        try:
            await websocket.send_json(ready_msg.to_wire())
        except Exception as exc:
            _logger.warning("Could not greet websocket subscriber: %s", exc)

    async def unsubscribe(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._subscribers.discard(websocket)

    async def publish(self, event: dict[str, Any]) -> None:
        """Wrap a service event in the wire envelope and send it to every subscriber."""
        payload = event if "version" in event else wire_event(event)

        stale: list[WebSocket] = []
        async with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                await subscriber.send_json(payload)
            except WebSocketDisconnect:
                stale.append(subscriber)
            except Exception as exc:
                _logger.debug("Dropping websocket subscriber: %s", exc)
                stale.append(subscriber)
        for subscriber in stale:
            await self.unsubscribe(subscriber)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


event_bus = MarketEventBus()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    _logger.info("tradepost API %s starting", __version__)
    yield


app = FastAPI(title="tradepost API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    record_api_request(
        endpoint, request.method, response.status_code, time.perf_counter() - started
    )
    return response


# =============================================================================
# Error handling
# =============================================================================


@app.exception_handler(MarketError)
async def market_error_handler(_: Request, exc: MarketError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"{location}: {message}" if location else message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_exception(_logger, "Unhandled error", exc, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# =============================================================================
# Service wiring
# =============================================================================


def get_services(
    store: MarketStoreDep,
    resources: ResourceStoreDep,
    settings: MarketSettingsDep,
    clock: ClockDep,
) -> MarketServices:
    return MarketServices.build(
        store,
        resources,
        policy=settings.listing_policy(),
        event_publisher=event_bus.publish,
        clock=clock,
    )


ServicesDep = Annotated[MarketServices, Depends(get_services)]


@app.get("/")
async def root():
    """API root endpoint with version and links."""
    return {
        "name": "tradepost API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "listings": "/listings",
            "multiples": "/multiples",
            "aggregates": "/aggregates",
            "buy_orders": "/buy-orders",
            "metrics": "/metrics",
            "websocket": "/ws/market",
        },
    }


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> str:
    """Prometheus text exposition of the in-process metrics."""
    return format_prometheus()


# =============================================================================
# Listing Endpoints
# =============================================================================


@app.post(
    "/listings",
    status_code=status.HTTP_201_CREATED,
    response_model=UniqueListingCompleteDTO,
)
async def create_listing(
    payload: ListingCreateDTO, actor: ActorDep, services: ServicesDep
) -> UniqueListingCompleteDTO:
    return services.listings.create_listing(actor, payload)


@app.get("/listings/mine", response_model=list[ListingCompleteDTO])
async def list_my_listings(
    actor: ActorDep,
    services: ServicesDep,
    spectrum_id: str | None = Query(None, description="List a contractor's listings"),
    include_archived: bool = Query(False),
) -> list[ListingCompleteDTO]:
    return services.listings.list_seller_listings(
        actor, spectrum_id=spectrum_id, include_archived=include_archived
    )


@app.get("/listings/user/{user_id}", response_model=list[ListingCompleteDTO])
async def list_user_storefront(
    user_id: str, viewer: OptionalActorDep, services: ServicesDep
) -> list[ListingCompleteDTO]:
    return services.listings.list_active_listings(viewer, user_id=user_id)


@app.get("/listings/contractor/{spectrum_id}", response_model=list[ListingCompleteDTO])
async def list_contractor_storefront(
    spectrum_id: str, viewer: OptionalActorDep, services: ServicesDep
) -> list[ListingCompleteDTO]:
    return services.listings.list_active_listings(viewer, spectrum_id=spectrum_id)


@app.post("/listings/purchase", response_model=PurchaseResultDTO)
async def purchase_listings(
    payload: PurchaseRequestDTO, actor: ActorDep, services: ServicesDep
) -> PurchaseResultDTO:
    return services.listings.purchase_listings(actor, payload)


@app.get("/listings/{listing_id}", response_model=ListingCompleteDTO)
async def get_listing(listing_id: str, services: ServicesDep) -> ListingCompleteDTO:
    return services.listings.get_listing(listing_id)


@app.patch("/listings/{listing_id}", response_model=ListingCompleteDTO)
async def update_listing(
    listing_id: str, payload: ListingUpdateDTO, actor: ActorDep, services: ServicesDep
) -> ListingCompleteDTO:
    return services.listings.update_listing(actor, listing_id, payload)


@app.patch("/listings/{listing_id}/quantity", response_model=ListingCompleteDTO)
async def update_listing_quantity(
    listing_id: str, payload: QuantityUpdateDTO, actor: ActorDep, services: ServicesDep
) -> ListingCompleteDTO:
    return services.listings.update_listing_quantity(
        actor, listing_id, payload.quantity_available
    )


@app.post("/listings/{listing_id}/refresh", response_model=ListingCompleteDTO)
async def refresh_listing(
    listing_id: str, actor: ActorDep, services: ServicesDep
) -> ListingCompleteDTO:
    return services.listings.refresh_listing(actor, listing_id)


@app.post("/listings/{listing_id}/archive", response_model=ListingCompleteDTO)
async def archive_listing(
    listing_id: str, actor: ActorDep, services: ServicesDep
) -> ListingCompleteDTO:
    return services.listings.archive_listing(actor, listing_id)


@app.post("/listings/{listing_id}/photos", response_model=ListingCompleteDTO)
async def add_listing_photos(
    listing_id: str,
    actor: ActorDep,
    services: ServicesDep,
    photos: list[UploadFile] = File(...),
) -> ListingCompleteDTO:
    uploads = [
        PhotoUploadDTO(
            content=await photo.read(), content_type=photo.content_type or "image/png"
        )
        for photo in photos
    ]
    return services.listings.add_photos(actor, listing_id, uploads)


@app.post(
    "/listings/{listing_id}/bids",
    status_code=status.HTTP_201_CREATED,
    response_model=BidDTO,
)
async def place_bid(
    listing_id: str, payload: BidCreateDTO, actor: ActorDep, services: ServicesDep
) -> BidDTO:
    return await services.bidding.place_bid(
        listing_id=listing_id, bidder_id=actor.user_id, amount=payload.bid
    )


@app.get("/listings/{listing_id}/bids", response_model=list[BidDTO])
async def list_bids(listing_id: str, services: ServicesDep) -> list[BidDTO]:
    return services.bidding.list_bids(listing_id)


# =============================================================================
# Multiple Endpoints
# =============================================================================


@app.post(
    "/multiples",
    status_code=status.HTTP_201_CREATED,
    response_model=MultipleCompleteDTO,
)
async def create_multiple(
    payload: MultipleCreateDTO, actor: ActorDep, services: ServicesDep
) -> MultipleCompleteDTO:
    return services.grouping.create_multiple(actor, payload)


@app.get("/multiples/{multiple_id}", response_model=MultipleCompleteDTO)
async def get_multiple(multiple_id: str, services: ServicesDep) -> MultipleCompleteDTO:
    return services.grouping.get_multiple(multiple_id)


@app.patch("/multiples/{multiple_id}", response_model=MultipleCompleteDTO)
async def update_multiple(
    multiple_id: str, payload: MultipleUpdateDTO, actor: ActorDep, services: ServicesDep
) -> MultipleCompleteDTO:
    return services.grouping.update_multiple(actor, multiple_id, payload)


# =============================================================================
# Catalog / Aggregate Endpoints
# =============================================================================


@app.get("/catalog", response_model=list[CatalogItemDTO])
async def list_catalog(services: ServicesDep) -> list[CatalogItemDTO]:
    return services.catalog.list_items()


@app.get("/aggregates/{game_item_id}", response_model=AggregateCompleteDTO)
async def get_aggregate(game_item_id: str, services: ServicesDep) -> AggregateCompleteDTO:
    return services.listings.get_aggregate(game_item_id)


@app.patch("/aggregates/{game_item_id}", response_model=AggregateCompleteDTO)
async def update_aggregate(
    game_item_id: str, payload: AggregateUpdateDTO, actor: ActorDep, services: ServicesDep
) -> AggregateCompleteDTO:
    return services.listings.update_aggregate(actor, game_item_id, payload)


# =============================================================================
# Buy Order Endpoints
# =============================================================================


@app.post(
    "/buy-orders",
    status_code=status.HTTP_201_CREATED,
    response_model=BuyOrderDTO,
)
async def create_buy_order(
    payload: BuyOrderCreateDTO, actor: ActorDep, services: ServicesDep
) -> BuyOrderDTO:
    return services.buy_orders.create_buy_order(actor, payload)


@app.get("/buy-orders/mine", response_model=list[BuyOrderDTO])
async def list_my_buy_orders(actor: ActorDep, services: ServicesDep) -> list[BuyOrderDTO]:
    return services.buy_orders.list_for_buyer(actor.user_id)


@app.get("/buy-orders/{game_item_id}", response_model=list[BuyOrderDTO])
async def list_buy_orders(
    game_item_id: str,
    services: ServicesDep,
    include_history: bool = Query(False, description="Include fulfilled and expired orders"),
) -> list[BuyOrderDTO]:
    return services.buy_orders.list_buy_orders(game_item_id, include_history=include_history)


@app.post("/buy-orders/{buy_order_id}/fulfill", response_model=OfferResultDTO)
async def fulfill_buy_order(
    buy_order_id: str,
    actor: ActorDep,
    services: ServicesDep,
    payload: BuyOrderFulfillDTO | None = None,
) -> OfferResultDTO:
    spectrum_id = payload.contractor_spectrum_id if payload else None
    return services.buy_orders.fulfill_buy_order(
        actor, buy_order_id, contractor_spectrum_id=spectrum_id
    )


@app.post("/buy-orders/{buy_order_id}/cancel", response_model=BuyOrderDTO)
async def cancel_buy_order(
    buy_order_id: str, actor: ActorDep, services: ServicesDep
) -> BuyOrderDTO:
    return services.buy_orders.cancel_buy_order(actor, buy_order_id)


# =============================================================================
# WebSocket
# =============================================================================


@app.websocket("/ws/market")
async def market_updates(websocket: WebSocket) -> None:
    await event_bus.subscribe(websocket)
    try:
        while True:
            try:
                text = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            if text.strip().lower() == "ping":
                await websocket.send_json(HeartbeatMessage().to_wire())
    finally:
        await event_bus.unsubscribe(websocket)


__all__ = ["MarketEventBus", "app", "event_bus", "get_services"]
