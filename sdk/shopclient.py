# sdk/shopclient.py
import mimetypes
import os
import requests
import httpx
from typing import Optional, Dict, Any, List
from rich import print


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:8085", username: Optional[str] = None,
                 password: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        self.username = username
        self.password = password

    def _creds(self) -> Dict[str, str]:
        return {"username": self.username or "", "password": self.password or ""}

    def health(self):
        r = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Catalog
    def list_products(self) -> Dict[str, Any]:
        r = self.session.get(f"{self.base_url}/api/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    async def list_products_async(self) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base_url}/api/products")
            r.raise_for_status()
            return r.json()

    # Admin
    def login(self) -> bool:
        r = self.session.post(f"{self.base_url}/admin/login", json=self._creds(), timeout=self.timeout)
        if r.status_code == 401:
            return False
        r.raise_for_status()
        return bool(r.json().get("success"))

    def admin_products(self) -> Dict[str, Any]:
        r = self.session.get(f"{self.base_url}/admin/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def create_product(self, name: str, price: float, size: str, description: str, image_path: str):
        content_type = mimetypes.guess_type(image_path)[0] or "application/octet-stream"
        data = {"name": name, "price": str(price), "size": size, "description": description, **self._creds()}
        with open(image_path, "rb") as fh:
            files = {"image": (os.path.basename(image_path), fh, content_type)}
            r = self.session.post(f"{self.base_url}/admin/products", data=data, files=files, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def replace_product(self, product_id: str, name: str, price: float, size: str, description: str):
        payload = {"name": name, "price": price, "size": size, "description": description, **self._creds()}
        r = self.session.put(f"{self.base_url}/admin/products/{product_id}", json=payload, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_product(self, product_id: str):
        r = self.session.delete(f"{self.base_url}/admin/products/{product_id}", json=self._creds(), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Checkout
    def create_preference(self, items: List[Dict[str, Any]], payer: Optional[Dict[str, Any]] = None) -> str:
        r = self.session.post(f"{self.base_url}/create_preference", json={"items": items, "payer": payer}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["id"]

    def whatsapp_link(self, buyer: Dict[str, Any], cart_items: List[Dict[str, Any]], total: float) -> str:
        payload = {"buyerData": buyer, "cartItems": cart_items, "total": total}
        r = self.session.post(f"{self.base_url}/send-whatsapp-notification", json=payload, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["whatsappUrl"]

    def send_confirmation_email(self, buyer: Dict[str, Any], cart_items: List[Dict[str, Any]], total: float):
        payload = {"buyerData": buyer, "cartItems": cart_items, "total": total}
        r = self.session.post(f"{self.base_url}/send-confirmation-email", json=payload, timeout=self.timeout)
        # a 500 here only means the mail transport is down
        return r.json()


if __name__ == "__main__":
    import argparse
    import json

    parser = argparse.ArgumentParser(description="Storefront CLI")
    parser.add_argument("--base-url", default=os.getenv("STORE_URL", "http://127.0.0.1:8085"))
    parser.add_argument("--username", default=os.getenv("ADMIN_USERNAME"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("health", help="Show server health")
    subparsers.add_parser("list-products", help="List all products")
    subparsers.add_parser("login", help="Check admin credentials")

    cp = subparsers.add_parser("create-product", help="Create a product with an image")
    cp.add_argument("--name", required=True)
    cp.add_argument("--price", type=float, required=True)
    cp.add_argument("--size", required=True)
    cp.add_argument("--description", required=True, help="Category tag")
    cp.add_argument("--image", required=True, help="Path to a JPG/PNG/WebP file")

    rp = subparsers.add_parser("replace-product", help="Replace every field of a product")
    rp.add_argument("--product-id", required=True)
    rp.add_argument("--name", required=True)
    rp.add_argument("--price", type=float, required=True)
    rp.add_argument("--size", required=True)
    rp.add_argument("--description", required=True)

    dp = subparsers.add_parser("delete-product", help="Delete a product and its image")
    dp.add_argument("--product-id", required=True)

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url, username=args.username, password=args.password)

    if args.command == "health":
        print(c.health())
    elif args.command == "list-products":
        print(json.dumps(c.list_products(), indent=2, ensure_ascii=False))
    elif args.command == "login":
        print("[green]ok[/green]" if c.login() else "[red]invalid credentials[/red]")
    elif args.command == "create-product":
        print(c.create_product(args.name, args.price, args.size, args.description, args.image))
    elif args.command == "replace-product":
        print(c.replace_product(args.product_id, args.name, args.price, args.size, args.description))
    elif args.command == "delete-product":
        print(c.delete_product(args.product_id))
