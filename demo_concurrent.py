import asyncio
import os
import sys

import httpx
from sdk.shopclient import StoreClient

BASE_URL = os.getenv("STORE_URL", "http://127.0.0.1:8085")
CREDS = {"username": os.getenv("ADMIN_USERNAME", ""), "password": os.getenv("ADMIN_PASSWORD", "")}


async def create_one(client: httpx.AsyncClient, n: int, image: bytes, filename: str, content_type: str):
    data = {"name": f"Batch item {n}", "price": "9.99", "size": "1u", "description": "demo", **CREDS}
    files = {"image": (filename, image, content_type)}
    try:
        r = await client.post("/admin/products", data=data, files=files)
        r.raise_for_status()
        body = r.json()
        print(f"✅ item {n} -> id {body['id']}")
        return body["id"]
    except httpx.HTTPStatusError as e:
        print(f"❌ item {n} failed: {e.response.status_code} {e.response.text}")
    except httpx.HTTPError as e:
        print(f"❌ item {n} failed: {e}")
    return None


async def main():
    if len(sys.argv) < 2:
        print("usage: demo_concurrent.py <image.png>")
        sys.exit(2)
    path = sys.argv[1]
    with open(path, "rb") as fh:
        image = fh.read()
    content_type = "image/png" if path.lower().endswith(".png") else "image/jpeg"

    async with httpx.AsyncClient(base_url=BASE_URL, timeout=30) as client:
        print("\n⚡ Creating products concurrently...")
        ids = await asyncio.gather(*(create_one(client, n, image, os.path.basename(path), content_type) for n in range(5)))

    ids = [i for i in ids if i]
    print("\n🆔 Assigned ids:", ids)
    print("Unique:", len(ids) == len(set(ids)))

    c = StoreClient(base_url=BASE_URL, **CREDS)
    for pid in ids:
        c.delete_product(pid)
    print("🧹 Cleaned up", len(ids), "products")


if __name__ == "__main__":
    asyncio.run(main())
