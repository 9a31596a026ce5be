"""FastAPI REST API for the BrickCo back office."""

import logging
import time
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .cart import CartService, enrich_cart
from .customers import CustomerDirectory
from .errors import (
    BrickcoError,
    BrickNotFoundError,
    CartNotFoundError,
    CustomerHasOrdersError,
    CustomerNotFoundError,
    DataExistsError,
    DuplicateEmailError,
    EmptyCartError,
    InsufficientStockError,
    InvalidSchemaVersionError,
    InvalidTransitionError,
    OrderAlreadyCancelledError,
    OrderNotFoundError,
    ReportNotFoundError,
    SpendNotFoundError,
    StockRestoreError,
    StockValidationError,
    ValidationError,
)
from .inventory import BrickInventory
from .ledger import StockLedger
from .orders import OrderBook, enrich_order
from .reports import Reports
from .spends import SpendLog
from .store import DataStore

logger = logging.getLogger(__name__)


# --- Pydantic Schemas ---


class StockItemSchema(BaseModel):
    brick_id: str = Field(..., alias="brickId")
    quantity: int

    model_config = ConfigDict(populate_by_name=True)


class ValidateStockRequest(BaseModel):
    items: list[StockItemSchema] = Field(default_factory=list)


class StockUpdateSchema(BaseModel):
    brick_id: str = Field(..., alias="brickId")
    quantity: int = Field(..., description="Signed delta; negative removes stock")
    source: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class UpdateStockRequest(BaseModel):
    updates: list[StockUpdateSchema] = Field(default_factory=list)


class OrderCreateRequest(BaseModel):
    """Request body for a single-brick order. Presence is checked by the service."""

    customer_id: Optional[str] = Field(None, alias="customerId")
    brick_id: Optional[str] = Field(None, alias="brickId")
    quantity: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True)


class OrderStatusRequest(BaseModel):
    status: Optional[str] = None


class RestoreStockRequest(BaseModel):
    restore_stock: bool = Field(
        default=False,
        alias="restoreStock",
        description="Put deducted stock back on the shelf",
    )

    model_config = ConfigDict(populate_by_name=True)


class CartAddRequest(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")
    brick_id: Optional[str] = Field(None, alias="brickId")
    quantity: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True)


class CartRemoveRequest(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")
    brick_id: Optional[str] = Field(None, alias="brickId")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutRequest(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")
    customer_info: Optional[dict[str, Any]] = Field(None, alias="customerInfo")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutResponse(BaseModel):
    orderId: str
    total: float


class DiscrepancySchema(BaseModel):
    brickId: str
    brickName: Optional[str] = None
    stock: int
    ledgerBalance: int
    difference: int


class ReconcileResponse(BaseModel):
    consistent: bool
    discrepancies: list[DiscrepancySchema]


# --- Helper Functions ---


def get_store() -> DataStore:
    """Get the global DataStore."""
    return DataStore()


def _bricks(store: DataStore) -> list[dict[str, Any]]:
    return [b.to_dict() for b in BrickInventory(store).list_bricks()]


def _orders(store: DataStore) -> list[dict[str, Any]]:
    return OrderBook(store).list_orders()


def _customers(store: DataStore) -> list[dict[str, Any]]:
    return [c.to_dict() for c in CustomerDirectory(store).list_customers()]


def _customer_with_orders(store: DataStore, customer_id: str) -> dict[str, Any]:
    db = store.read()
    customer = CustomerDirectory(store).get_customer(customer_id)
    data = customer.to_dict()
    data["orders"] = [o.to_dict() for o in db.orders if o.customer_id == customer_id]
    return data


# --- FastAPI App ---


app = FastAPI(
    title="BrickCo API",
    description="Back-office API for bricks, orders, carts and stock history",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
    )
    return response


# --- Global Exception Handlers ---


# Map exception types to HTTP status codes; subclasses inherit their parent's code
ERROR_STATUS_CODES: dict[type, int] = {
    DataExistsError: 409,
    InvalidSchemaVersionError: 500,
    ValidationError: 400,
    BrickNotFoundError: 404,
    OrderNotFoundError: 404,
    CustomerNotFoundError: 404,
    CartNotFoundError: 404,
    SpendNotFoundError: 404,
    ReportNotFoundError: 404,
    InsufficientStockError: 400,
    StockValidationError: 400,
    InvalidTransitionError: 400,
    OrderAlreadyCancelledError: 400,
    StockRestoreError: 400,
    EmptyCartError: 400,
    DuplicateEmailError: 400,
    CustomerHasOrdersError: 400,
}


def status_for(exc: BrickcoError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@app.exception_handler(BrickcoError)
async def brickco_error_handler(request: Request, exc: BrickcoError) -> JSONResponse:
    """Map BrickcoError subclasses to appropriate HTTP responses."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    content: dict[str, Any] = {"error": str(exc), "error_type": type(exc).__name__}
    content.update(exc.details())
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "error_type": "ValidationError", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Something broke!"})


# --- Health ---


@app.get("/health")
@app.get("/api/health")
def health_check(store: DataStore = Depends(get_store)):
    """Health check endpoint."""
    return {"status": "ok", "data_initialized": store.exists()}


# --- Brick Endpoints ---


@app.get("/api/bricks")
def list_bricks(store: DataStore = Depends(get_store)):
    """List all bricks."""
    return _bricks(store)


@app.get("/api/bricks/low-stock")
def list_low_stock_bricks(store: DataStore = Depends(get_store)):
    """Bricks below their minimum stock threshold."""
    return [b.to_dict() for b in BrickInventory(store).low_stock_bricks()]


@app.post("/api/bricks/validate-stock")
def validate_stock(request: ValidateStockRequest, store: DataStore = Depends(get_store)):
    """Check that every item can be covered by current stock."""
    items = [{"brickId": i.brick_id, "quantity": i.quantity} for i in request.items]
    BrickInventory(store).validate_stock(items)
    return {"message": "Stock available"}


@app.post("/api/bricks/update-stock")
def update_stock(request: UpdateStockRequest, store: DataStore = Depends(get_store)):
    """Apply signed stock deltas to several bricks."""
    updates = [
        {"brickId": u.brick_id, "quantity": u.quantity, "source": u.source}
        for u in request.updates
    ]
    BrickInventory(store).update_stock(updates)
    return _bricks(store)


@app.get("/api/bricks/{brick_id}")
def get_brick(brick_id: str, store: DataStore = Depends(get_store)):
    return BrickInventory(store).get_brick(brick_id).to_dict()


@app.post("/api/bricks", status_code=201)
def create_brick(payload: dict[str, Any] = Body(...), store: DataStore = Depends(get_store)):
    """Add a brick; its initial stock is ledgered."""
    BrickInventory(store).create_brick(payload)
    return _bricks(store)


@app.patch("/api/bricks/{brick_id}")
def update_brick(brick_id: str, payload: dict[str, Any] = Body(...), store: DataStore = Depends(get_store)):
    """Update brick attributes; a stock change is ledgered as a manual update."""
    BrickInventory(store).update_brick(brick_id, payload)
    return _bricks(store)


@app.delete("/api/bricks/{brick_id}")
def delete_brick(brick_id: str, store: DataStore = Depends(get_store)):
    BrickInventory(store).delete_brick(brick_id)
    return _bricks(store)


# --- Order Endpoints ---


@app.get("/api/orders")
def list_orders(store: DataStore = Depends(get_store)):
    """List enriched orders, newest first."""
    return _orders(store)


@app.get("/api/orders/customers")
def list_order_customers(store: DataStore = Depends(get_store)):
    """Customers to pick from when placing an order."""
    return _customers(store)


@app.get("/api/orders/bricks")
def list_order_bricks(store: DataStore = Depends(get_store)):
    """Bricks to pick from when placing an order."""
    return _bricks(store)


@app.get("/api/orders/customer/{customer_id}")
def list_customer_orders(customer_id: str, store: DataStore = Depends(get_store)):
    return OrderBook(store).list_orders(customer_id=customer_id)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, store: DataStore = Depends(get_store)):
    order = OrderBook(store).get_order(order_id)
    return enrich_order(order, store.read())


@app.post("/api/orders", status_code=201)
def create_order(request: OrderCreateRequest, store: DataStore = Depends(get_store)):
    """Place a pending single-brick order; stock moves when it is marked done."""
    OrderBook(store).create_order(request.customer_id, request.brick_id, request.quantity)
    return _orders(store)


@app.patch("/api/orders/{order_id}")
def update_order_status(order_id: str, request: OrderStatusRequest, store: DataStore = Depends(get_store)):
    """Move an order to a new status."""
    OrderBook(store).set_status(order_id, request.status)
    return _orders(store)


@app.patch("/api/orders/{order_id}/cancel")
def cancel_order(
    order_id: str,
    request: Optional[RestoreStockRequest] = None,
    store: DataStore = Depends(get_store),
):
    """Cancel an order, optionally restoring its deducted stock."""
    restore = request.restore_stock if request else False
    OrderBook(store).cancel_order(order_id, restore_stock=restore)
    return _orders(store)


@app.delete("/api/orders/{order_id}")
def delete_order(
    order_id: str,
    request: Optional[RestoreStockRequest] = None,
    store: DataStore = Depends(get_store),
):
    """Delete an order, optionally restoring its deducted stock first."""
    restore = request.restore_stock if request else False
    OrderBook(store).delete_order(order_id, restore_stock=restore)
    return _orders(store)


# --- Customer Endpoints ---


@app.get("/api/customers")
def list_customers(store: DataStore = Depends(get_store)):
    return _customers(store)


@app.get("/api/customers/{customer_id}")
def get_customer(customer_id: str, store: DataStore = Depends(get_store)):
    """Get a customer together with their orders."""
    return _customer_with_orders(store, customer_id)


@app.post("/api/customers", status_code=201)
def create_customer(payload: dict[str, Any] = Body(...), store: DataStore = Depends(get_store)):
    CustomerDirectory(store).create_customer(payload)
    return _customers(store)


@app.patch("/api/customers/{customer_id}")
def update_customer(customer_id: str, payload: dict[str, Any] = Body(...), store: DataStore = Depends(get_store)):
    CustomerDirectory(store).update_customer(customer_id, payload)
    return _customer_with_orders(store, customer_id)


@app.delete("/api/customers/{customer_id}")
def delete_customer(customer_id: str, store: DataStore = Depends(get_store)):
    """Delete a customer that has no orders."""
    CustomerDirectory(store).delete_customer(customer_id)
    return _customers(store)


# --- Cart Endpoints ---


@app.get("/api/cart/{user_id}")
def get_cart(user_id: str, store: DataStore = Depends(get_store)):
    return CartService(store).view_cart(user_id)


@app.post("/api/cart/add")
def add_to_cart(request: CartAddRequest, store: DataStore = Depends(get_store)):
    cart = CartService(store).add_item(request.user_id, request.brick_id, request.quantity)
    return enrich_cart(cart, store.read())


@app.delete("/api/cart/remove")
def remove_from_cart(request: CartRemoveRequest, store: DataStore = Depends(get_store)):
    cart = CartService(store).remove_item(request.user_id, request.brick_id)
    return enrich_cart(cart, store.read())


@app.post("/api/cart/checkout", response_model=CheckoutResponse)
def checkout(request: CheckoutRequest, store: DataStore = Depends(get_store)):
    """Turn the user's cart into one pending order."""
    order = CartService(store).checkout(request.user_id, request.customer_info)
    return CheckoutResponse(orderId=order.id, total=float(order.amount))


# --- Spend Endpoints ---


@app.get("/api/spends")
def list_spends(store: DataStore = Depends(get_store)):
    return [s.to_dict() for s in SpendLog(store).list_spends()]


@app.post("/api/spends", status_code=201)
def save_spend(payload: dict[str, Any] = Body(...), store: DataStore = Depends(get_store)):
    """Record the spend of a month, replacing any earlier record for it."""
    return SpendLog(store).save_spend(payload).to_dict()


@app.get("/api/spends/{year}/{month}")
def get_spend(year: int, month: int, store: DataStore = Depends(get_store)):
    return SpendLog(store).get_spend(year, month).to_dict()


# --- Stock History Endpoints ---


@app.get("/api/stock-history")
def list_stock_history(
    type: Optional[str] = Query(default=None, description="credit/debit or add/added/remove/deducted"),
    source: Optional[str] = Query(default=None),
    store: DataStore = Depends(get_store),
):
    """Read the stock ledger, optionally filtered by type and source."""
    return [e.to_dict() for e in StockLedger(store).entries(movement=type, source=source)]


@app.post("/api/stock-history", status_code=201)
def create_stock_history_entry(payload: dict[str, Any] = Body(...), store: DataStore = Depends(get_store)):
    """Append a ledger entry supplied by the client."""
    return StockLedger(store).record_raw(payload).to_dict()


@app.get("/api/stock-history/reconcile", response_model=ReconcileResponse)
def reconcile_stock_history(store: DataStore = Depends(get_store)):
    """Compare per-brick ledger balances with current stock."""
    discrepancies = StockLedger(store).reconcile()
    return ReconcileResponse(
        consistent=not discrepancies,
        discrepancies=[DiscrepancySchema(**d.to_dict()) for d in discrepancies],
    )


# --- Dashboard & Analytics Endpoints ---


@app.get("/api/dashboard/metrics")
def dashboard_metrics(store: DataStore = Depends(get_store)):
    return Reports(store).dashboard()


@app.get("/api/analytics/trends")
def analytics_trends(store: DataStore = Depends(get_store)):
    return Reports(store).trends()


@app.get("/api/analytics/{report}")
def analytics_report(
    report: str,
    format: Optional[str] = Query(default=None, description="'csv' for a file download"),
    store: DataStore = Depends(get_store),
):
    """Report rows as JSON, or as a CSV attachment with format=csv."""
    reports = Reports(store)
    if format == "csv":
        return Response(
            content=reports.csv(report),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={report}-report.csv"},
        )
    return reports.rows(report)
