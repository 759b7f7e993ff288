"""
Metafield model and the GraphQL-backed operations the cleanup engine uses:
paged resource fetch, definition lookup/create, and cascade delete.
"""

import logging
from typing import Any, Dict, List, Optional

from . import queries
from .constants import map_type
from .errors import TransportError, UserErrorsError
from .shopify_client import ShopifyClient


PRODUCT = "product"
VARIANT = "variant"
RESOURCE_TYPES = (PRODUCT, VARIANT)

OWNER_TYPES = {
    PRODUCT: "PRODUCT",
    VARIANT: "PRODUCTVARIANT",
}


class Metafield:
    def __init__(self, namespace: str, key: str, metafield_type: str, value: str,
                 metafield_id: Optional[str] = None, definition_id: Optional[str] = None):
        self.namespace = namespace
        self.key = key
        self.type = metafield_type
        self.value = value
        self.id = metafield_id
        self.definition_id = definition_id

    @property
    def structured(self) -> bool:
        return self.definition_id is not None

    @property
    def ledger_key(self) -> str:
        return f"{self.namespace}:{self.key}"

    def __repr__(self) -> str:
        return f"Metafield({self.ledger_key!r}, type={self.type!r}, structured={self.structured})"


class Resource:
    """A product or product variant as seen by one page fetch."""

    def __init__(self, resource_id: str, title: Optional[str], handle: Optional[str],
                 metafields: Optional[List[Metafield]] = None, sku: Optional[str] = None,
                 product_title: Optional[str] = None, product_handle: Optional[str] = None):
        self.id = resource_id
        self.title = title
        self.handle = handle
        self.metafields = metafields or []
        self.sku = sku
        self.product_title = product_title
        self.product_handle = product_handle

    @property
    def is_variant(self) -> bool:
        return self.product_title is not None

    @property
    def display_title(self) -> str:
        if self.is_variant:
            return f"{self.product_title} - {self.title or self.sku}"
        return self.title or ""

    @property
    def display_handle(self) -> str:
        return (self.product_handle if self.is_variant else self.handle) or ""

    def unstructured_metafields(self) -> List[Metafield]:
        return [mf for mf in self.metafields if not mf.structured]

    def __repr__(self) -> str:
        return f"Resource({self.id!r}, {self.display_title!r})"


class ResourcePage:
    def __init__(self, resources: List[Resource], has_next_page: bool, end_cursor: Optional[str]):
        self.resources = resources
        self.has_next_page = has_next_page
        self.end_cursor = end_cursor


def _require(obj: Any, key: str, context: str) -> Any:
    if not isinstance(obj, dict) or obj.get(key) is None:
        raise TransportError(f"Malformed {context} response: missing '{key}'")
    return obj[key]


def parse_metafield(node: Dict[str, Any]) -> Metafield:
    definition = node.get("definition") or {}
    return Metafield(
        namespace=_require(node, "namespace", "metafield"),
        key=_require(node, "key", "metafield"),
        metafield_type=node.get("type") or "",
        value=node.get("value") or "",
        metafield_id=node.get("id"),
        definition_id=definition.get("id"),
    )


def parse_resource(node: Dict[str, Any], resource_type: str) -> Resource:
    edges = (node.get("metafields") or {}).get("edges") or []
    metafields = [parse_metafield(e.get("node") or {}) for e in edges]
    if resource_type == VARIANT:
        product = node.get("product") or {}
        return Resource(
            resource_id=_require(node, "id", "variant"),
            title=node.get("title"),
            handle=None,
            metafields=metafields,
            sku=node.get("sku"),
            product_title=product.get("title") or "",
            product_handle=product.get("handle") or "",
        )
    return Resource(
        resource_id=_require(node, "id", "product"),
        title=node.get("title"),
        handle=node.get("handle"),
        metafields=metafields,
    )


def parse_page(data: Dict[str, Any], resource_type: str) -> ResourcePage:
    conn_key = "productVariants" if resource_type == VARIANT else "products"
    conn = _require(data, conn_key, conn_key)
    page_info = conn.get("pageInfo") or {}
    resources = [parse_resource(e.get("node") or {}, resource_type) for e in conn.get("edges") or []]
    return ResourcePage(resources, bool(page_info.get("hasNextPage")), page_info.get("endCursor"))


class MetafieldAdmin:
    """Metafield and definition operations for one shop."""

    def __init__(self, client: ShopifyClient):
        self.client = client

    def fetch_page(self, resource_type: str, cursor: Optional[str]) -> ResourcePage:
        query = queries.VARIANTS_WITH_METAFIELDS if resource_type == VARIANT else queries.PRODUCTS_WITH_METAFIELDS
        data = self.client.request(query, {"cursor": cursor})
        return parse_page(data, resource_type)

    def find_definition(self, namespace: str, key: str, owner_type: str) -> Optional[str]:
        data = self.client.request(queries.METAFIELD_DEFINITION_LOOKUP, {
            "namespace": namespace,
            "key": key,
            "ownerType": owner_type,
        })
        edges = _require(data, "metafieldDefinitions", "metafieldDefinitions").get("edges") or []
        if not edges:
            return None
        return (edges[0].get("node") or {}).get("id")

    def create_definition(self, namespace: str, key: str, metafield_type: str, owner_type: str) -> str:
        definition = {
            "namespace": namespace,
            "key": key,
            "name": f"{namespace} {key}",
            "type": map_type(metafield_type),
            "ownerType": owner_type,
        }
        data = self.client.request(queries.METAFIELD_DEFINITION_CREATE, {"definition": definition})
        payload = _require(data, "metafieldDefinitionCreate", "metafieldDefinitionCreate")
        errs = payload.get("userErrors") or []
        if errs:
            raise UserErrorsError("metafieldDefinitionCreate", errs)
        created = _require(payload, "createdDefinition", "metafieldDefinitionCreate")
        logging.debug("Created definition %s for %s:%s", created.get("id"), namespace, key)
        return _require(created, "id", "createdDefinition")

    def delete_definition(self, definition_id: str, cascade: bool = True) -> str:
        data = self.client.request(queries.METAFIELD_DEFINITION_DELETE, {
            "id": definition_id,
            "deleteAllAssociatedMetafields": cascade,
        })
        payload = _require(data, "metafieldDefinitionDelete", "metafieldDefinitionDelete")
        errs = payload.get("userErrors") or []
        if errs:
            raise UserErrorsError("metafieldDefinitionDelete", errs)
        return payload.get("deletedDefinitionId") or definition_id
