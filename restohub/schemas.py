"""
Pydantic Schemas for Record Validation

One schema per business collection. Records are persisted with camelCase keys
(the on-disk format of the JSON files and Firestore documents), so every model
uses a camelCase alias generator and accepts either spelling on input.

Numeric fields are coerced here: "12.5" becomes 12.5, while "abc", "" and NaN
are rejected instead of silently turning into zero.

Version: 1.0.0
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    DINE_IN = "dine-in"
    DELIVERY = "delivery"
    TAKEAWAY = "takeaway"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class OfferItemType(str, Enum):
    MENU = "menu"
    SPECIAL = "special"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# BASE
# =============================================================================

class RecordModel(BaseModel):
    """Base for persisted records: camelCase on the wire, extra keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        allow_inf_nan=False,
        use_enum_values=True,
    )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually supplied, camelCased."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


StrId = Union[str, int]


# =============================================================================
# ORDERS
# =============================================================================

class OrderItem(RecordModel):
    """Single line of an order."""
    id: StrId = ""
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1, le=999)
    description: Optional[str] = None

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


class Address(RecordModel):
    """Delivery address as captured at checkout or on a customer profile."""
    label: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone_number: Optional[str] = None


class OrderCreate(RecordModel):
    """Request schema for creating a new order."""
    id: Optional[str] = None
    items: List[OrderItem] = Field(..., min_length=1)
    total: Optional[float] = Field(None, ge=0)
    status: OrderStatus = OrderStatus.PENDING
    order_type: OrderType = OrderType.DINE_IN
    table_number: Optional[StrId] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    delivery_address: Optional[Address] = None
    timestamp: Optional[datetime] = None
    staff_member: Optional[str] = None

    @model_validator(mode="after")
    def check_total(self) -> "OrderCreate":
        computed = round(sum(item.line_total for item in self.items), 2)
        if self.total is None:
            self.total = computed
        elif abs(self.total - computed) > 0.01:
            raise ValueError(
                f"Order total {self.total} does not match item sum {computed}"
            )
        return self


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderCancel(RecordModel):
    cancellation_reason: str = Field(..., min_length=1)
    cancelled_by: str = Field(..., min_length=1)


# =============================================================================
# MENU & AVAILABILITY
# =============================================================================

class MenuItemCreate(RecordModel):
    item_no: StrId
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    description: str = ""
    is_veg: Optional[bool] = None
    image: Optional[str] = None

    @field_validator("item_no")
    @classmethod
    def item_no_as_str(cls, v: StrId) -> str:
        return str(v)


class MenuItemUpdate(RecordModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    is_veg: Optional[bool] = None
    image: Optional[str] = None


class AvailabilityUpdate(RecordModel):
    item_no: StrId
    available: Optional[bool] = None
    price: Optional[float] = Field(None, ge=0)

    @field_validator("item_no")
    @classmethod
    def item_no_as_str(cls, v: StrId) -> str:
        return str(v)


# =============================================================================
# INVENTORY
# =============================================================================

class InventoryItemCreate(RecordModel):
    """Required fields mirror what the inventory panel always sends."""
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    current_stock: float
    unit: str = Field(..., min_length=1)
    minimum_stock: float = Field(..., ge=0)
    maximum_stock: float = Field(..., ge=0)
    unit_price: float = Field(..., ge=0)
    supplier: str = Field(..., min_length=1)
    last_restocked: Optional[str] = None
    expiry_date: Optional[str] = None
    description: str = ""
    is_paid: bool = False
    discount_percentage: float = Field(0, ge=0, le=100)
    final_price: Optional[float] = Field(None, ge=0)
    payment_methods: List[str] = Field(default_factory=list)
    supplier_phone: str = ""
    updated_by: Optional[str] = None


class InventoryItemUpdate(RecordModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    current_stock: Optional[float] = None
    unit: Optional[str] = Field(None, min_length=1)
    minimum_stock: Optional[float] = Field(None, ge=0)
    maximum_stock: Optional[float] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, min_length=1)
    last_restocked: Optional[str] = None
    expiry_date: Optional[str] = None
    description: Optional[str] = None
    is_paid: Optional[bool] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    final_price: Optional[float] = Field(None, ge=0)
    payment_methods: Optional[List[str]] = None
    supplier_phone: Optional[str] = None
    updated_by: Optional[str] = None


class StockAdjustment(RecordModel):
    """Set ``current_stock`` outright, or move it by ``delta``."""
    id: str
    current_stock: Optional[float] = None
    delta: Optional[float] = None

    @model_validator(mode="after")
    def one_of(self) -> "StockAdjustment":
        if (self.current_stock is None) == (self.delta is None):
            raise ValueError("Provide exactly one of currentStock or delta")
        return self


# =============================================================================
# COMBOS, OFFERS, SPECIALS
# =============================================================================

class ComboItem(RecordModel):
    item_id: StrId
    item_name: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    original_price: float = Field(..., ge=0)


class ComboCreate(RecordModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    items: List[ComboItem] = Field(..., min_length=1)
    original_total: Optional[float] = Field(None, ge=0)
    combo_price: float = Field(..., gt=0)
    is_active: bool = True
    category: str = "Combo Special"

    @model_validator(mode="after")
    def check_pricing(self) -> "ComboCreate":
        if self.original_total is None:
            self.original_total = round(
                sum(i.original_price * i.quantity for i in self.items), 2
            )
        if self.combo_price >= self.original_total:
            raise ValueError("Combo price must be less than original total")
        return self

    def to_record(self) -> dict[str, Any]:
        record = super().to_record()
        discount = round(self.original_total - self.combo_price, 2)
        record["discountAmount"] = discount
        record["discountPercentage"] = round(discount / self.original_total * 100)
        return record


class ComboUpdate(RecordModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    items: Optional[List[ComboItem]] = None
    original_total: Optional[float] = Field(None, ge=0)
    combo_price: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None
    category: Optional[str] = None


class OfferCreate(RecordModel):
    item_id: StrId
    item_name: str = Field(..., min_length=1)
    item_type: OfferItemType = OfferItemType.MENU
    original_price: float = Field(..., gt=0)
    offer_price: float = Field(..., gt=0)
    is_active: bool = True
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator("item_id")
    @classmethod
    def item_id_as_str(cls, v: StrId) -> str:
        return str(v)

    @model_validator(mode="after")
    def check_price(self) -> "OfferCreate":
        if self.offer_price >= self.original_price:
            raise ValueError("Offer price must be less than original price")
        return self

    def to_record(self) -> dict[str, Any]:
        record = super().to_record()
        record["discountPercentage"] = round(
            (self.original_price - self.offer_price) / self.original_price * 100
        )
        return record


class OfferUpdate(RecordModel):
    item_name: Optional[str] = None
    original_price: Optional[float] = Field(None, gt=0)
    offer_price: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class TodaysSpecialCreate(RecordModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    is_active: bool = True


class TodaysSpecialUpdate(RecordModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None


# =============================================================================
# TASKS & STAFF
# =============================================================================

class TaskCreate(RecordModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    assigned_to: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[str] = None


class TaskUpdate(RecordModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[str] = None


class StaffCredential(RecordModel):
    id: Optional[str] = None
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    name: Optional[str] = None


class StaffCredentialsPayload(BaseModel):
    users: List[StaffCredential]


# =============================================================================
# CUSTOMER PROFILES & MIGRATION
# =============================================================================

class CustomerProfile(RecordModel):
    id: str
    display_name: str = ""
    phone_number: Optional[str] = None
    email: Optional[str] = None
    addresses: List[Address] = Field(default_factory=list)


class MigrationMatch(RecordModel):
    order_id: str
    customer_name: str
    best_match_profile_id: str
    best_match_name: str = ""
    best_match_confidence: float = Field(..., ge=0, le=1)
    matches: int = Field(..., ge=1)
    match_reason: str = ""


class NotMigratable(RecordModel):
    order_id: str
    customer_name: str
    reason: str


class MigrationReport(RecordModel):
    generated_at: datetime
    total_orders: int
    migratable: List[MigrationMatch] = Field(default_factory=list)
    not_migratable: List[NotMigratable] = Field(default_factory=list)


class MigrationStats(RecordModel):
    processed: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    local_store: str
    remote_store: str
    profile_store: str
    broker: str
    cache_entries: int
    timestamp: datetime
