"""
Data models and validation using Pydantic
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, field_validator


SUBTOTAL = "subtotal"
TOTAL = "total"

ConditionType = Literal["tax", "voucher", "sale", "discount", "coupon", "shipping"]


def _to_str(v):
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class CartItem(BaseModel):
    """A line in the cart. Extra fields travel with the item untouched."""
    item_id: str = Field(..., description="Line identifier, unique within a cart")
    id: str = Field(..., description="Product identifier")
    name: str = Field(default="", description="Product name")
    price: float = Field(..., description="Unit price, rounded to 2 decimals")
    quantity: int = Field(default=1, description="Number of units")
    options: List[Dict[str, Any]] = Field(default_factory=list, description="Variant selectors")

    @field_validator("item_id", "id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _to_str(v)

    def same_product(self, product_id: str, price: float, options: List[Dict[str, Any]]) -> bool:
        """Whether a candidate with these attributes is the same line"""
        return self.id == product_id and self.price == price and self.options == options

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "item_id": "1",
                "id": "BOOK-001",
                "name": "Example Book",
                "price": 19.99,
                "quantity": 2,
                "options": [{"type": "Cover", "value": "hardback"}]
            }
        }


class CartCondition(BaseModel):
    """A priced adjustment applied to an item, the subtotal or the total"""
    name: str = Field(..., description="Unique condition key within a cart")
    type: ConditionType = Field(..., description="Kind of adjustment (informational)")
    target: str = Field(..., description="'subtotal', 'total' or an item_id")
    value: Union[StrictInt, StrictFloat, str] = Field(..., description="Amount, e.g. 10, '-10', '10%'")
    order: Optional[float] = Field(default=None, description="Application order within a target")
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("target", mode="before")
    @classmethod
    def coerce_target(cls, v):
        return _to_str(v)

    def targets_item(self) -> bool:
        return self.target not in (SUBTOTAL, TOTAL)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "VAT 12.5%",
                "type": "tax",
                "target": "subtotal",
                "value": "12.5%",
                "order": 1
            }
        }


class ResolvedCondition(BaseModel):
    """Parsed view of a condition handed to the condition hook"""
    name: str
    value: float
    is_percentage: bool = False
    item: Optional[CartItem] = None


class CartContent(BaseModel):
    """Snapshot of a session's cart"""
    items: List[CartItem] = Field(default_factory=list)
    conditions: List[CartCondition] = Field(default_factory=list)
    subtotal: float = 0.0
    total: float = 0.0
    data: Dict[str, Any] = Field(default_factory=dict)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        """Get an item by item_id"""
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def get_condition(self, name: str) -> Optional[CartCondition]:
        """Get a condition by name"""
        for condition in self.conditions:
            if condition.name == name:
                return condition
        return None

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary for storage"""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CartContent":
        """Create content from a stored dictionary; nothing stored gives an empty cart"""
        if not data:
            return cls()
        return cls.model_validate(data)


class RelativeQuantity(BaseModel):
    """Quantity change that is either added to or replaces the current one"""
    relative: bool = False
    value: Union[int, float, str]


class CartUpdateOption(BaseModel):
    """Fields accepted by an item update"""
    name: Optional[str] = None
    price: Optional[Union[float, str]] = None
    quantity: Optional[Union[int, RelativeQuantity]] = None
    options: Optional[List[Dict[str, Any]]] = None


class CartInputItem(BaseModel):
    """Candidate item handed to add"""
    item_id: Optional[str] = None
    id: str
    name: str = ""
    price: Any = None
    quantity: Any = None
    options: List[Dict[str, Any]] = Field(default_factory=list)
    conditions: List[CartCondition] = Field(default_factory=list)

    @field_validator("item_id", "id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _to_str(v)

    @field_validator("options", "conditions", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    def extra_fields(self) -> Dict[str, Any]:
        """Pass-through fields the engine does not interpret"""
        return dict(self.model_extra or {})

    class Config:
        extra = "allow"
