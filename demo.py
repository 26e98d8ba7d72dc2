#!/usr/bin/env python
import os
import sys
from sdk.shopclient import StoreClient


def main():
    if len(sys.argv) < 2:
        print("usage: demo.py <image.jpg|png|webp>")
        sys.exit(2)
    image = sys.argv[1]

    c = StoreClient(
        base_url=os.getenv("STORE_URL", "http://127.0.0.1:8085"),
        username=os.getenv("ADMIN_USERNAME"),
        password=os.getenv("ADMIN_PASSWORD"),
    )

    # -----------------------------
    # Health
    # -----------------------------
    print("Checking health...")
    print(c.health())

    # -----------------------------
    # Admin login
    # -----------------------------
    print("\nLogging in...")
    if not c.login():
        print("Admin credentials rejected; set ADMIN_USERNAME / ADMIN_PASSWORD")
        sys.exit(1)

    # -----------------------------
    # Create a product
    # -----------------------------
    print("\nCreating product...")
    created = c.create_product("Reishi Extract", 24.9, "60 caps", "supplements", image)
    pid = created["id"]
    print(created)

    # -----------------------------
    # List products
    # -----------------------------
    print("\nListing products...")
    print(c.list_products())

    # -----------------------------
    # WhatsApp link for an order
    # -----------------------------
    buyer = {"name": "Alice", "email": "alice@example.com", "phone": "555-0101",
             "address": "1 Main St", "city": "Springfield", "zip": "12345"}
    items = [{"name": "Reishi Extract", "size": "60 caps", "price": 24.9, "quantity": 2}]
    print("\nWhatsApp link...")
    try:
        print(c.whatsapp_link(buyer, items, 49.8))
    except Exception as e:
        print(f"WhatsApp not available: {e}")

    # -----------------------------
    # Payment preference
    # -----------------------------
    print("\nCreating payment preference...")
    try:
        print(c.create_preference([{"id": pid, "title": "Reishi Extract", "unit_price": 24.9, "quantity": 2}],
                                  {"name": "Alice", "email": "alice@example.com"}))
    except Exception as e:
        print(f"Payments not available: {e}")

    # -----------------------------
    # Delete the product again
    # -----------------------------
    print("\nDeleting product...")
    print(c.delete_product(pid))


if __name__ == "__main__":
    main()
