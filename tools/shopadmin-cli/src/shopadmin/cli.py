"""
shopadmin - CLI for Shopify store administration over the Admin GraphQL API.

Usage:
    shopadmin shops [list|add|remove|use|set-api-version] [options]
    shopadmin shop info
    shopadmin products [list|get] [options]
    shopadmin catalogs list [options]
    shopadmin customers download [options]
    shopadmin metafields delete-unstructured [--resource-type product|variant] [--force]

Environment:
    SHOPADMIN_CONFIG     - Optional: Path to shops file (default: ~/.shopadmin/shops.json)
    SHOPIFY_API_VERSION  - Optional: API version when the shops file has none
    AGENTS_ENV_PATH      - Optional: Path to env file (default: ~/AGENTS.env)
"""

import argparse
import json
import logging
import os
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from tabulate import tabulate

from . import queries
from .constants import PAGE_SIZES
from .errors import report_error
from .metafield_cleanup import UnstructuredMetafieldCleaner
from .metafields import PRODUCT, RESOURCE_TYPES, MetafieldAdmin
from .shop_store import ShopStore, load_env
from .shopify_client import ShopifyClient


def make_client(args) -> ShopifyClient:
    store = ShopStore()
    shop = store.resolve_shop(args.shop)
    print(f"Using shop: {shop.name}")
    return ShopifyClient(shop, store.get_api_version())


def edges_to_nodes(conn: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [e.get("node") or {} for e in (conn or {}).get("edges") or []]


def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("must be a positive number")
    if n < 1:
        raise argparse.ArgumentTypeError("must be a positive number")
    return n


def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %d, %Y")
    except ValueError:
        return value


# ─────────────────────────────────────────────────────────────────────────────
# Shops
# ─────────────────────────────────────────────────────────────────────────────

def cmd_shops_list(args) -> int:
    shops = ShopStore().list_shops()
    if not shops:
        print('No shops configured yet. Use "shopadmin shops add" to add a shop.')
        return 0
    rows = [[i, s.name, s.url, s.masked_token, s.added_at] for i, s in enumerate(shops, 1)]
    print(tabulate(rows, headers=["#", "Name", "URL", "Token", "Added"], tablefmt="grid"))
    return 0


def cmd_shops_add(args) -> int:
    store = ShopStore()
    shop = store.add_shop(args.name, args.subdomain, args.token)
    print(f"Saved shop {shop.name} ({shop.url}) to {store.path}")
    return 0


def cmd_shops_remove(args) -> int:
    if not ShopStore().remove_shop(args.name):
        print(f'Shop "{args.name}" not found.', file=sys.stderr)
        return 1
    print(f"Removed shop: {args.name}")
    return 0


def cmd_shops_use(args) -> int:
    store = ShopStore()
    store.set_default_shop(args.name)
    print(f"Default shop for {os.getcwd()} set to {args.name} ({store.local_path})")
    return 0


def cmd_shops_set_api_version(args) -> int:
    store = ShopStore()
    store.set_api_version(args.version)
    print(f"API version set to {args.version} in {store.path}")
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Shop / products / catalogs
# ─────────────────────────────────────────────────────────────────────────────

def cmd_shop_info(args) -> int:
    client = make_client(args)
    print("\nFetching shop information...\n")
    data = client.request(queries.SHOP_INFO).get("shop") or {}
    plan = data.get("plan") or {}
    billing = data.get("billingAddress") or {}
    location = ", ".join(v for v in (billing.get("city"), billing.get("province"), billing.get("country")) if v)
    rows = [
        ["Store Name", data.get("name")],
        ["Shop ID", (data.get("id") or "").split("/")[-1]],
        ["Email", data.get("email")],
        ["Primary Domain", (data.get("primaryDomain") or {}).get("host")],
        ["MyShopify Domain", data.get("myshopifyDomain")],
        ["Created", format_date(data.get("createdAt"))],
        ["Plan", plan.get("displayName")],
        ["Shopify Plus", "Yes" if plan.get("shopifyPlus") else "No"],
        ["Partner Development", "Yes" if plan.get("partnerDevelopment") else "No"],
        ["Currency", data.get("currencyCode")],
        ["Timezone", data.get("timezoneAbbreviation")],
        ["Unit System", data.get("unitSystem")],
        ["Weight Unit", data.get("weightUnit")],
        ["Address", location],
        ["Storefront", "Enabled" if (data.get("features") or {}).get("storefront") else "Disabled"],
        ["Config Name", client.shop.name],
        ["API URL", client.shop.url],
        ["API Version", client.api_version],
        ["Token", client.shop.masked_token],
    ]
    print(tabulate(rows, tablefmt="grid"))
    return 0


def cmd_products_list(args) -> int:
    client = make_client(args)
    data = client.request(queries.LIST_PRODUCTS, {"first": args.limit, "sortKey": "UPDATED_AT", "reverse": True})
    products = edges_to_nodes(data.get("products"))
    if not products:
        print("No products found")
        return 0
    rows = [[p.get("title"), p.get("handle"), p.get("status"), format_date(p.get("updatedAt"))] for p in products]
    print(tabulate(rows, headers=["Title", "Handle", "Status", "Updated"], tablefmt="grid", maxcolwidths=[40, 30, 12, 15]))
    return 0


def flatten_product(product: Dict[str, Any]) -> Dict[str, Any]:
    out = {k: v for k, v in product.items() if k not in ("media", "variants", "metafields")}
    out["media"] = edges_to_nodes(product.get("media"))
    out["variants"] = []
    for v in edges_to_nodes(product.get("variants")):
        v = dict(v)
        v["metafields"] = edges_to_nodes(v.get("metafields"))
        out["variants"].append(v)
    out["metafields"] = edges_to_nodes(product.get("metafields"))
    return out


def cmd_products_get(args) -> int:
    client = make_client(args)
    if args.handle_or_id.startswith("gid://"):
        product = client.request(queries.GET_PRODUCT_BY_ID, {"id": args.handle_or_id}).get("product")
    else:
        product = client.request(queries.GET_PRODUCT_BY_HANDLE, {"handle": args.handle_or_id}).get("productByHandle")
    if not product:
        print(f"Product not found: {args.handle_or_id}", file=sys.stderr)
        return 1
    print(json.dumps(flatten_product(product), indent=2))
    return 0


def cmd_catalogs_list(args) -> int:
    client = make_client(args)
    catalogs = edges_to_nodes(client.request(queries.LIST_CATALOGS, {"first": args.limit}).get("catalogs"))
    if not catalogs:
        print("No catalogs found")
        return 0
    rows = [[c.get("id"), c.get("title") or "(no title)", c.get("status")] for c in catalogs]
    print(tabulate(rows, headers=["ID", "Title", "Status"], tablefmt="grid"))
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Customers
# ─────────────────────────────────────────────────────────────────────────────

def fetch_customers_with_orders(client: ShopifyClient) -> List[Dict[str, Any]]:
    customers: List[Dict[str, Any]] = []
    cursor = None
    while True:
        data = client.request(queries.CUSTOMERS_WITH_ORDERS, {
            "first": PAGE_SIZES["customers"],
            "cursor": cursor,
            "query": "orders_count:>0",
        })
        conn = data.get("customers") or {}
        customers.extend(edges_to_nodes(conn))
        logging.debug("Fetched %d customers so far", len(customers))
        page_info = conn.get("pageInfo") or {}
        cursor = page_info.get("endCursor")
        if not page_info.get("hasNextPage") or not cursor:
            break
    return customers


def fetch_customer_orders(client: ShopifyClient, customer_id: str) -> List[Dict[str, Any]]:
    orders: List[Dict[str, Any]] = []
    cursor = None
    while True:
        data = client.request(queries.CUSTOMER_ORDERS, {
            "customerId": customer_id,
            "first": PAGE_SIZES["orders"],
            "cursor": cursor,
        })
        conn = (data.get("customer") or {}).get("orders") or {}
        for node in edges_to_nodes(conn):
            money = (node.get("totalPriceSet") or {}).get("shopMoney") or {}
            items = []
            for item in edges_to_nodes(node.get("lineItems")):
                price = (item.get("originalUnitPriceSet") or {}).get("shopMoney") or {}
                variant = item.get("variant") or {}
                items.append({
                    "title": item.get("title"),
                    "sku": item.get("sku"),
                    "quantity": item.get("quantity"),
                    "price": price.get("amount"),
                    "currency": price.get("currencyCode"),
                    "variantTitle": variant.get("title"),
                    "options": variant.get("selectedOptions") or [],
                })
            orders.append({
                "name": node.get("name"),
                "createdAt": node.get("createdAt"),
                "totalPrice": money.get("amount"),
                "currency": money.get("currencyCode"),
                "items": items,
            })
        page_info = conn.get("pageInfo") or {}
        cursor = page_info.get("endCursor")
        if not page_info.get("hasNextPage") or not cursor:
            break
    return orders


def cmd_customers_download(args) -> int:
    client = make_client(args)
    print(f"\nFetching customers with orders from {client.shop.name}...\n")
    customers = fetch_customers_with_orders(client)
    if not customers:
        print("No customers with orders found.")
        return 0
    print(f"✓ Found {len(customers)} customers with orders")

    export = []
    for i, c in enumerate(customers, 1):
        export.append({
            "id": (c.get("id") or "").split("/")[-1],
            "totalOrders": c.get("numberOfOrders"),
            "orders": fetch_customer_orders(client, c["id"]),
        })
        if i % 10 == 0:
            print(f"Progress: {i}/{len(customers)} customers processed")

    outp = os.path.abspath(os.path.expanduser(args.output or f"customers-{int(time.time() * 1000)}.json"))
    os.makedirs(os.path.dirname(outp) or ".", exist_ok=True)
    with open(outp, "w", encoding="utf-8") as f:
        json.dump(export, f, indent=2, ensure_ascii=False)
    total_orders = sum(int(c.get("numberOfOrders") or 0) for c in customers)
    print(json.dumps({"ok": True, "out": outp, "customers": len(customers), "orders": total_orders}, indent=2))
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Metafields
# ─────────────────────────────────────────────────────────────────────────────

def cmd_metafields_delete_unstructured(args) -> int:
    client = make_client(args)
    cleaner = UnstructuredMetafieldCleaner(
        MetafieldAdmin(client),
        resource_type=args.resource_type,
        force=args.force,
    )
    cleaner.run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Shopify store administration (Admin GraphQL API)")
    p.add_argument("--env", help="Path to env file (default ~/AGENTS.env)")
    p.add_argument("--shop", "-s", help="Configured shop name (default: .shopadmin.json, or the only shop)")
    p.add_argument("--verbose", "-v", action="store_true", help="Log GraphQL requests/responses and full errors")
    sp = p.add_subparsers(dest="cmd", required=True)

    # Shops
    pshops = sp.add_parser("shops", help="Manage configured shops")
    ss = pshops.add_subparsers(dest="shops_cmd", required=True)
    sl = ss.add_parser("list", help="List configured shops")
    sl.set_defaults(func=cmd_shops_list)
    sa = ss.add_parser("add", help="Add or update a shop")
    sa.add_argument("--subdomain", required=True, help="Store subdomain (your-store or your-store.myshopify.com)")
    sa.add_argument("--token", required=True, help="Admin API access token")
    sa.add_argument("--name", help="Shop name (default: subdomain)")
    sa.set_defaults(func=cmd_shops_add)
    sr = ss.add_parser("remove", help="Remove a shop")
    sr.add_argument("--name", required=True)
    sr.set_defaults(func=cmd_shops_remove)
    su = ss.add_parser("use", help="Set the default shop for the current directory")
    su.add_argument("--name", required=True)
    su.set_defaults(func=cmd_shops_use)
    sv = ss.add_parser("set-api-version", help="Set the Admin API version, e.g. 2025-10")
    sv.add_argument("--version", required=True)
    sv.set_defaults(func=cmd_shops_set_api_version)

    # Shop
    pshop = sp.add_parser("shop", help="Shop operations")
    sh = pshop.add_subparsers(dest="shop_cmd", required=True)
    shi = sh.add_parser("info", help="Show shop information")
    shi.set_defaults(func=cmd_shop_info)

    # Products
    pprod = sp.add_parser("products", help="Product operations")
    spr = pprod.add_subparsers(dest="prod_cmd", required=True)
    ppl = spr.add_parser("list", help="List recently updated products")
    ppl.add_argument("--limit", type=positive_int, default=5)
    ppl.set_defaults(func=cmd_products_list)
    ppg = spr.add_parser("get", help="Get a product by handle or GID as JSON")
    ppg.add_argument("handle_or_id")
    ppg.set_defaults(func=cmd_products_get)

    # Catalogs
    pcat = sp.add_parser("catalogs", help="Catalog operations")
    sc = pcat.add_subparsers(dest="cat_cmd", required=True)
    pcl = sc.add_parser("list", help="List catalogs")
    pcl.add_argument("--limit", type=positive_int, default=50)
    pcl.set_defaults(func=cmd_catalogs_list)

    # Customers
    pcus = sp.add_parser("customers", help="Customer operations")
    scu = pcus.add_subparsers(dest="cus_cmd", required=True)
    pcd = scu.add_parser("download", help="Export customers with orders to JSON")
    pcd.add_argument("--output", "-o", help="Output path (default customers-<timestamp>.json)")
    pcd.set_defaults(func=cmd_customers_download)

    # Metafields
    pmf = sp.add_parser("metafields", help="Metafield operations")
    smf = pmf.add_subparsers(dest="mf_cmd", required=True)
    pdu = smf.add_parser("delete-unstructured", help="Delete metafields that have no definition, store-wide")
    pdu.add_argument("--resource-type", choices=RESOURCE_TYPES, default=PRODUCT)
    pdu.add_argument("--force", "-f", action="store_true", help="Delete without prompting")
    pdu.set_defaults(func=cmd_metafields_delete_unstructured)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(message)s",
    )
    load_env(args.env)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130
    except Exception as e:
        report_error(e, args.verbose)
        return 1


if __name__ == "__main__":
    sys.exit(main())
