"""
FastAPI service exposing the shopping list, store roster, route planner,
catalog lookups and the third-party grocery API proxy functions.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union
import logging
import re

from fastapi import BackgroundTasks, FastAPI, Depends, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import DB_PATH, STORAGE_DIR, DEFAULT_STORE_RADIUS_MILES, APP_HOST, APP_PORT
from ..core.db import init_database
from ..core.geo import geocode_address
from ..core.retry_utils import APIError, TransientError, NotFoundError, QueryError
from ..core.storage import LocalStorage
from ..models import (
    Product,
    ProductDetails,
    StorePriceQuote,
    Store,
    RosterEntry,
    UserLocation,
    NewShoppingListItem,
    ShoppingListItem,
    RouteSummary,
    ProductSearchRequest,
    ProductSearchResponse,
    LocationSyncRequest,
    LocationSyncResponse,
    AccessTokenResponse,
    RosterAddRequest,
    RosterReorderRequest,
    GeocodeRequest,
)
from ..services import (
    ProductDirectory,
    StoreRoster,
    ShoppingListStore,
    RouteOptimizer,
    UserLocationBook,
)
from ..utils.history_utils import load_search_history
from ..utils.kroger_api_utils import KrogerClient, upsert_stores

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "local-user"
USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def _coords(lat: Optional[float], lng: Optional[float]):
    if lat is None or lng is None:
        return None
    return lat, lng


def create_app(db_path: Union[str, Path, None] = None,
               storage_dir: Union[str, Path, None] = None,
               kroger_client: Optional[KrogerClient] = None,
               seed: bool = True,
               data_dir: Union[str, Path, None] = None) -> FastAPI:
    """Build the service. Paths default to the configured data directory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_database(app.state.db_path, seed=seed, data_dir=data_dir)
        logger.info(f"Grocery planner ready (db: {app.state.db_path})")
        yield

    app = FastAPI(title="Grocery Route Planner API", lifespan=lifespan)
    app.state.db_path = Path(db_path) if db_path else DB_PATH
    app.state.storage_dir = Path(storage_dir) if storage_dir else STORAGE_DIR
    app.state.kroger_client = kroger_client or KrogerClient()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        if isinstance(exc, NotFoundError):
            status = 404
        elif isinstance(exc, TransientError):
            status = 503
        else:
            status = 500
        logger.error(f"{request.url.path} failed ({exc.source}): {exc.message}")
        return JSONResponse(
            status_code=status,
            content={"error": exc.message, "source": exc.source, "retry_possible": exc.retry_possible},
        )

    # -------------------- Per-request services --------------------
    def get_user_id(x_user_id: str = Header(default=DEFAULT_USER_ID)) -> str:
        if not USER_ID_PATTERN.match(x_user_id) or set(x_user_id) == {"."}:
            raise HTTPException(status_code=400, detail="Invalid user id")
        return x_user_id

    def get_directory(request: Request, background_tasks: BackgroundTasks,
                      uid: str = Depends(get_user_id)) -> ProductDirectory:
        return ProductDirectory(request.app.state.db_path, uid, defer=background_tasks.add_task)

    def get_roster(request: Request, uid: str = Depends(get_user_id)) -> StoreRoster:
        return StoreRoster(uid, request.app.state.db_path)

    def get_shopping_list_store(request: Request, uid: str = Depends(get_user_id)) -> ShoppingListStore:
        return ShoppingListStore(LocalStorage(request.app.state.storage_dir / uid))

    def get_location_book(request: Request, uid: str = Depends(get_user_id)) -> UserLocationBook:
        return UserLocationBook(uid, request.app.state.db_path)

    def get_kroger_client(request: Request) -> KrogerClient:
        return request.app.state.kroger_client

    # -------------------- Health --------------------
    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    # -------------------- Catalog --------------------
    @app.get("/api/products/search")
    def search_products(q: str = Query(..., min_length=1),
                        directory: ProductDirectory = Depends(get_directory)):
        """Products matching the text; an unreachable catalog yields an empty list."""
        try:
            return {"products": directory.search_products(q), "error": None}
        except QueryError as e:
            logger.error(f"Product search failed: {e.message}")
            return {"products": [], "error": "Search failed. Please try again."}

    @app.get("/api/products/upc/{upc}", response_model=Product)
    def product_by_upc(upc: str, directory: ProductDirectory = Depends(get_directory)):
        product = directory.get_product_by_identifier(upc)
        if product is None:
            return JSONResponse(status_code=404, content={"detail": f"No product with UPC {upc}"})
        return product

    @app.get("/api/products/upc/{upc}/details", response_model=ProductDetails)
    def product_details(upc: str, lat: Optional[float] = None, lng: Optional[float] = None,
                        directory: ProductDirectory = Depends(get_directory)):
        details = directory.load_product_details(upc, user_coords=_coords(lat, lng))
        if details is None:
            return JSONResponse(status_code=404, content={"detail": f"No product with UPC {upc}"})
        return details

    @app.get("/api/products/{product_id}/prices", response_model=List[StorePriceQuote])
    def product_prices(product_id: str, lat: Optional[float] = None, lng: Optional[float] = None,
                       directory: ProductDirectory = Depends(get_directory)):
        return directory.get_prices_for_product(product_id, _coords(lat, lng))

    @app.get("/api/stores/near", response_model=List[Store])
    def stores_near(lat: float, lng: float, radius: float = DEFAULT_STORE_RADIUS_MILES,
                    directory: ProductDirectory = Depends(get_directory)):
        return directory.find_stores_near(lat, lng, radius)

    @app.get("/api/history")
    def search_history(request: Request, uid: str = Depends(get_user_id)):
        return {"history": load_search_history(uid, db_path=request.app.state.db_path)}

    # -------------------- Store roster --------------------
    @app.get("/api/roster", response_model=List[RosterEntry])
    def list_roster(roster: StoreRoster = Depends(get_roster)):
        return roster.list()

    @app.post("/api/roster", response_model=List[RosterEntry], status_code=201)
    def add_to_roster(body: RosterAddRequest, roster: StoreRoster = Depends(get_roster)):
        if not roster.add(body.store_id):
            raise HTTPException(status_code=400, detail="Failed to add store to roster")
        return roster.list()

    @app.delete("/api/roster/{entry_id}", response_model=List[RosterEntry])
    def remove_from_roster(entry_id: str, roster: StoreRoster = Depends(get_roster)):
        if not roster.remove(entry_id):
            raise HTTPException(status_code=404, detail="Failed to remove store from roster")
        return roster.list()

    @app.put("/api/roster/{entry_id}/order", response_model=List[RosterEntry])
    def reorder_roster(entry_id: str, body: RosterReorderRequest, roster: StoreRoster = Depends(get_roster)):
        if not roster.reorder(entry_id, body.new_index):
            raise HTTPException(status_code=404, detail="Failed to reorder roster")
        return roster.list()

    @app.get("/api/roster/contains/{store_id}")
    def roster_contains(store_id: str, roster: StoreRoster = Depends(get_roster)):
        return {"store_id": store_id, "in_roster": roster.contains(store_id)}

    # -------------------- Shopping list --------------------
    @app.get("/api/shopping-list")
    def get_shopping_list(shopping_list: ShoppingListStore = Depends(get_shopping_list_store)):
        return {"items": shopping_list.items, "total_cost": shopping_list.get_total_cost()}

    @app.post("/api/shopping-list", response_model=ShoppingListItem)
    def add_shopping_item(body: NewShoppingListItem,
                          shopping_list: ShoppingListStore = Depends(get_shopping_list_store)):
        return shopping_list.add(body)

    @app.get("/api/shopping-list/by-store")
    def shopping_list_by_store(shopping_list: ShoppingListStore = Depends(get_shopping_list_store)):
        return shopping_list.get_items_by_store()

    @app.post("/api/shopping-list/{item_id}/toggle")
    def toggle_shopping_item(item_id: str, shopping_list: ShoppingListStore = Depends(get_shopping_list_store)):
        item = shopping_list.toggle(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Item not found")
        return item

    @app.delete("/api/shopping-list/{item_id}")
    def remove_shopping_item(item_id: str, shopping_list: ShoppingListStore = Depends(get_shopping_list_store)):
        shopping_list.remove(item_id)
        return {"items": shopping_list.items, "total_cost": shopping_list.get_total_cost()}

    @app.delete("/api/shopping-list")
    def clear_shopping_list(shopping_list: ShoppingListStore = Depends(get_shopping_list_store)):
        shopping_list.clear()
        return {"items": [], "total_cost": 0}

    # -------------------- Route --------------------
    @app.get("/api/route", response_model=RouteSummary)
    def optimized_route(lat: Optional[float] = None, lng: Optional[float] = None,
                        shopping_list: ShoppingListStore = Depends(get_shopping_list_store),
                        roster: StoreRoster = Depends(get_roster),
                        directory: ProductDirectory = Depends(get_directory)):
        optimizer = RouteOptimizer(shopping_list, roster, directory, _coords(lat, lng))
        return optimizer.get_route_summary()

    # -------------------- Locations --------------------
    @app.get("/api/locations", response_model=List[UserLocation])
    def list_locations(book: UserLocationBook = Depends(get_location_book)):
        return book.list()

    @app.post("/api/locations", response_model=UserLocation, status_code=201)
    def save_location(body: UserLocation, book: UserLocationBook = Depends(get_location_book)):
        saved = book.save(body)
        if saved is None:
            raise HTTPException(status_code=500, detail="Failed to save location")
        return saved

    @app.post("/api/geocode")
    def geocode(body: GeocodeRequest):
        lat, lng = geocode_address(body.address)
        return {"lat": lat, "lng": lng}

    # -------------------- Third-party proxy functions --------------------
    @app.post("/functions/kroger-auth", response_model=AccessTokenResponse)
    def kroger_auth(client: KrogerClient = Depends(get_kroger_client)):
        try:
            token = client.get_access_token()
        except APIError as e:
            logger.error(f"Error in kroger-auth: {e.message}")
            return JSONResponse(status_code=500, content={"error": e.message})
        return AccessTokenResponse(access_token=token, expires_in=client.token_expires_in)

    @app.post("/functions/kroger-products", response_model=ProductSearchResponse)
    def kroger_products(body: ProductSearchRequest, client: KrogerClient = Depends(get_kroger_client)):
        if not body.query:
            return JSONResponse(status_code=500, content={"error": "Search query is required"})
        try:
            products = client.search_products(body.query, body.location_id)
        except APIError as e:
            logger.error(f"Error in kroger-products: {e.message}")
            return JSONResponse(status_code=500, content={"error": e.message})
        return ProductSearchResponse(products=products, count=len(products), source="kroger")

    @app.post("/functions/kroger-locations", response_model=LocationSyncResponse)
    def kroger_locations(body: LocationSyncRequest, request: Request,
                         client: KrogerClient = Depends(get_kroger_client)):
        try:
            stores = client.search_locations(body.lat, body.lng, body.radius)
            upsert_stores(stores, request.app.state.db_path)
        except APIError as e:
            logger.error(f"Error in kroger-locations: {e.message}")
            return JSONResponse(status_code=500, content={"error": e.message, "success": False})
        return LocationSyncResponse(success=True, count=len(stores), stores=stores)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=APP_HOST, port=APP_PORT)
