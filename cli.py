# cli.py - interactive admin console for the storefront
import os
import sys
from datetime import datetime
from typing import Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter, PathCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.shopclient import StoreClient
import requests

console = Console()
c = StoreClient(
    base_url=os.getenv("STORE_URL", "http://127.0.0.1:8085"),
    username=os.getenv("ADMIN_USERNAME"),
    password=os.getenv("ADMIN_PASSWORD"),
)

status_message = "Ready"
product_cache: Dict[str, Dict[str, Any]] = {}

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: Dict[str, Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]Catalog is empty[/italic yellow]")
        return

    table = Table(
        title="📦 Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Size", width=10)
    table.add_column("Category", width=16)
    table.add_column("Image", style="dim", width=28)

    for pid in sorted(products, key=lambda k: int(k) if str(k).isdigit() else 0):
        p = products[pid]
        table.add_row(
            pid,
            p.get("name", "N/A"),
            f"${float(p.get('price', 0)):.2f}",
            p.get("size", ""),
            p.get("description", ""),
            p.get("image", ""),
        )
    console.print(table)


def show_health(h: Dict[str, Any]):
    env = h.get("env", {})
    lines = [f"[bold]Status:[/bold] {h.get('status')}  [dim]{h.get('environment')} / {h.get('target')}[/dim]"]
    for key, label in (("hasAdmin", "Admin"), ("hasPayments", "Payments"), ("hasEmail", "Email"), ("hasWhatsapp", "WhatsApp")):
        mark = "[green]✔[/green]" if env.get(key) else "[red]✘[/red]"
        lines.append(f"{mark} {label}")
    console.print(Panel.fit("\n".join(lines), title="🩺 Health", border_style="green"))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


def _error_text(e: Exception) -> str:
    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        try:
            return f"HTTP {e.response.status_code}: {e.response.json().get('error', e.response.text)}"
        except ValueError:
            return f"HTTP {e.response.status_code}: {e.response.text}"
    return str(e)


def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Errors are shown and recorded in status_message; returns None on failure.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except (requests.exceptions.RequestException, OSError) as e:
        status_message = f"Error: {_error_text(e)}"
        console.print(show_status(status_message, False))
        return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def refresh_cache():
    global product_cache
    product_cache = try_api(c.list_products) or {}


def get_product_completer():
    if not product_cache:
        refresh_cache()
    words = list(product_cache.keys()) + [p.get("name", "") for p in product_cache.values()]
    return WordCompleter([w for w in words if w], ignore_case=True)


def get_category_completer():
    return WordCompleter(sorted({p.get("description", "") for p in product_cache.values()} - {""}), ignore_case=True)


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Storefront admin",
        f"[bold blue]{c.base_url}[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 10.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            value = float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")
            continue
        if value < 0.01:
            console.print("[red]Price must be at least 0.01.[/red]")
            continue
        return value


def ensure_credentials():
    if not c.username:
        c.username = Prompt.ask("Admin username")
    if not c.password:
        c.password = Prompt.ask("Admin password", password=True)


def resolve_product_id(raw: str) -> str:
    # accept either an id or an exact product name
    if raw in product_cache:
        return raw
    for pid, p in product_cache.items():
        if p.get("name", "").lower() == raw.lower():
            return pid
    return raw


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message

    console.clear()
    console.print(create_header())
    refresh_cache()

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "5", "🗑️ Delete product"),
            ("2", "➕ Create product", "6", "🔑 Check login"),
            ("3", "✏️ Replace product", "7", "🩺 Health"),
            ("4", "📱 Preview WhatsApp link", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 8)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(c.list_products, success_msg="Catalog loaded")
            if products is not None:
                product_cache.clear()
                product_cache.update(products)
                show_products(products)

        elif choice == "2":
            ensure_credentials()
            name = prompt_with_autocomplete("Product name")
            price = ask_float("💰 Price", default=10.0)
            size = prompt_with_autocomplete("📏 Size", default="100g")
            category = prompt_with_autocomplete("🏷️ Category", completer=get_category_completer())
            image = prompt_with_autocomplete("🖼️ Image file", completer=PathCompleter(expanduser=True))
            resp = try_api(
                c.create_product, name, price, size, category, os.path.expanduser(image),
                success_msg=f"Product '{name}' created"
            )
            if resp:
                console.print(Panel(f"Created product id [green]{resp['id']}[/green]"))
                refresh_cache()

        elif choice == "3":
            ensure_credentials()
            pid = resolve_product_id(prompt_with_autocomplete("Product ID", completer=get_product_completer()))
            current = product_cache.get(pid, {})
            name = prompt_with_autocomplete("Product name", default=current.get("name", ""))
            price = ask_float("💰 Price", default=float(current.get("price", 10.0)))
            size = prompt_with_autocomplete("📏 Size", default=current.get("size", ""))
            category = prompt_with_autocomplete("🏷️ Category", completer=get_category_completer(),
                                                default=current.get("description", ""))
            resp = try_api(c.replace_product, pid, name, price, size, category, success_msg=f"Product {pid} replaced")
            if resp:
                refresh_cache()

        elif choice == "4":
            name = prompt_with_autocomplete("Buyer name", default="Test Buyer")
            pid = resolve_product_id(prompt_with_autocomplete("Product ID", completer=get_product_completer()))
            product = product_cache.get(pid)
            if not product:
                console.print("[red]Unknown product[/red]")
            else:
                item = {"name": product["name"], "size": product.get("size", ""), "price": product["price"], "quantity": 1}
                buyer = {"name": name, "email": "buyer@example.com", "phone": "", "address": "", "city": "", "zip": ""}
                url = try_api(c.whatsapp_link, buyer, [item], product["price"], success_msg="Link ready")
                if url:
                    console.print(Panel(url, title="📱 wa.me", border_style="green"))

        elif choice == "5":
            ensure_credentials()
            pid = resolve_product_id(prompt_with_autocomplete("Product ID", completer=get_product_completer()))
            if Confirm.ask(f"[red]Delete product {pid} and its image?[/red]"):
                resp = try_api(c.delete_product, pid, success_msg=f"Product {pid} deleted")
                if resp:
                    refresh_cache()

        elif choice == "6":
            ensure_credentials()
            ok = try_api(c.login)
            if ok:
                status_message = "Credentials accepted"
            elif ok is False:
                status_message = "Error: credentials rejected"
                c.username = c.password = None

        elif choice == "7":
            h = try_api(c.health)
            if h:
                show_health(h)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
