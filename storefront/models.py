# storefront/models.py
from pydantic import BaseModel


class Product(BaseModel):
    id: str
    name: str
    price: float
    size: str
    description: str
    image: str = ""
