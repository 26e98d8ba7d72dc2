from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any, List

from .models import Product

MAX_PREFERENCE_ITEMS = 50


class Credentials(BaseModel):
    username: str = ""
    password: str = ""


class ProductIn(BaseModel):
    name: str
    price: float = Field(..., ge=0.01, allow_inf_nan=False)
    size: str
    description: str

    @field_validator("name", "size", "description")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ProductReplaceIn(ProductIn):
    username: str = ""
    password: str = ""


class Buyer(BaseModel):
    name: str
    email: str
    phone: str = ""
    address: str = ""
    city: str = ""
    zip: str = ""

    @field_validator("email")
    @classmethod
    def _single_line(cls, v: str) -> str:
        v = v.strip()
        if not v or "\r" in v or "\n" in v:
            raise ValueError("must be a single email address")
        return v


class CartLine(BaseModel):
    name: str
    size: str = ""
    price: float = Field(..., ge=0, allow_inf_nan=False)
    quantity: int = Field(1, ge=1)


class OrderIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    buyer: Buyer = Field(..., alias="buyerData")
    cart_items: List[CartLine] = Field(..., alias="cartItems", min_length=1)
    total: float = Field(..., ge=0, allow_inf_nan=False)


class PreferenceItem(BaseModel):
    id: str
    title: str = ""
    unit_price: float = Field(..., allow_inf_nan=False)
    quantity: int = Field(1, ge=1)
    currency_id: str = "ARS"

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class PreferenceRequest(BaseModel):
    items: List[PreferenceItem] = []
    payer: Optional[Dict[str, Any]] = None


def _make_product_dict(p: ProductIn, image: str) -> Dict[str, Any]:
    return {
        "name": p.name,
        "price": p.price,
        "size": p.size,
        "description": p.description,
        "image": image,
    }


def _with_id(product_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
    return Product(id=product_id, **record).model_dump()
