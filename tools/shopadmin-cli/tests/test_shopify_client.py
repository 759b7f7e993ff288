#!/usr/bin/env python3
"""
Tests for the GraphQL transport and the metafield API adapter.

Run with: python -m pytest tests/test_shopify_client.py -v
"""

import logging
import os
import sys
from unittest.mock import MagicMock, patch

import pytest
import requests

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from shopadmin.errors import ErrorType, GraphQLRequestError, TransportError, UserErrorsError
from shopadmin.metafields import PRODUCT, VARIANT, MetafieldAdmin, parse_page
from shopadmin.shop_store import ShopConfig
from shopadmin.shopify_client import ShopifyClient


def make_response(status=200, body=None, text="", headers=None):
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 300
    r.headers = headers or {}
    r.text = text
    if body is None:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = body
    return r


SHOP = ShopConfig("demo", "https://demo.myshopify.com", "shpat_123")


class TestShopifyClient:
    @patch("shopadmin.shopify_client.requests.Session")
    def test_posts_to_versioned_endpoint(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(body={"data": {"shop": {"name": "Demo"}}})

        client = ShopifyClient(SHOP, "2025-10")
        data = client.request("query { shop { name } }")

        assert data == {"shop": {"name": "Demo"}}
        url = session.post.call_args.args[0]
        assert url == "https://demo.myshopify.com/admin/api/2025-10/graphql.json"
        assert session.post.call_args.kwargs["json"]["variables"] == {}
        session.headers.update.assert_called_once()
        assert session.headers.update.call_args.args[0]["X-Shopify-Access-Token"] == "shpat_123"

    @patch("shopadmin.shopify_client.requests.Session")
    def test_follows_redirect(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.side_effect = [
            make_response(status=301, headers={"Location": "https://canonical.myshopify.com/admin/api/2025-10/graphql.json"}),
            make_response(body={"data": {"ok": True}}),
        ]

        data = ShopifyClient(SHOP, "2025-10").request("query { ok }")

        assert data == {"ok": True}
        assert session.post.call_args_list[1].args[0].startswith("https://canonical.myshopify.com")

    @patch("shopadmin.shopify_client.requests.Session")
    def test_graphql_errors_are_classified(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(body={"errors": [{"message": "Access denied for products field."}]})

        with pytest.raises(GraphQLRequestError) as exc_info:
            ShopifyClient(SHOP, "2025-10").request("query { products { edges { node { id } } } }")

        assert exc_info.value.type == ErrorType.AUTHENTICATION
        assert '"demo"' in exc_info.value.info.suggestion

    @patch("shopadmin.shopify_client.requests.Session")
    def test_http_401_string_errors(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(
            status=401, body={"errors": "[API] Invalid API key or access token (unrecognized login or wrong password)"})

        result = ShopifyClient(SHOP, "2025-10").execute("query { shop { name } }")

        assert not result.ok
        assert "Invalid API key" in result.errors

    @patch("shopadmin.shopify_client.requests.Session")
    def test_http_429_is_rate_limit(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(status=429, text="Too Many Requests")

        with pytest.raises(GraphQLRequestError) as exc_info:
            ShopifyClient(SHOP, "2025-10").request("query { shop { name } }")

        assert exc_info.value.type == ErrorType.RATE_LIMIT
        assert session.post.call_count == 1

    @patch("shopadmin.shopify_client.requests.Session")
    def test_network_error_is_transport_error(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.side_effect = requests.exceptions.ConnectionError("connection refused")

        with pytest.raises(TransportError):
            ShopifyClient(SHOP, "2025-10").execute("query { shop { name } }")

    @patch("shopadmin.shopify_client.requests.Session")
    def test_non_json_body_is_transport_error(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(text="<html>oops</html>")

        with pytest.raises(TransportError):
            ShopifyClient(SHOP, "2025-10").execute("query { shop { name } }")

    @patch("shopadmin.shopify_client.requests.Session")
    def test_missing_data_envelope(self, mock_session_class):
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(body={"extensions": {}})

        with pytest.raises(TransportError):
            ShopifyClient(SHOP, "2025-10").request("query { shop { name } }")

    @patch("shopadmin.shopify_client.requests.Session")
    def test_debug_log_includes_query_and_variables(self, mock_session_class, caplog):
        caplog.set_level(logging.DEBUG)
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(body={"data": {"product": None}})

        ShopifyClient(SHOP, "2025-10").request("query Get($id: ID!) { product(id: $id) { id } }", {"id": "gid://1"})

        assert "query Get($id: ID!) { product(id: $id) { id } }" in caplog.text
        assert '"id": "gid://1"' in caplog.text

    @patch("shopadmin.shopify_client.requests.Session")
    def test_debug_log_includes_query_cost(self, mock_session_class, caplog):
        caplog.set_level(logging.DEBUG)
        session = MagicMock()
        mock_session_class.return_value = session
        session.post.return_value = make_response(body={
            "data": {"shop": {"name": "Demo"}},
            "extensions": {"cost": {"requestedQueryCost": 2, "actualQueryCost": 2}},
        })

        ShopifyClient(SHOP, "2025-10").request("query { shop { name } }")

        assert "Query cost:" in caplog.text
        assert '"actualQueryCost": 2' in caplog.text


PRODUCT_PAGE = {
    "products": {
        "pageInfo": {"hasNextPage": True, "endCursor": "abc"},
        "edges": [
            {"node": {
                "id": "gid://shopify/Product/1", "title": "Hat", "handle": "hat",
                "metafields": {"edges": [
                    {"node": {"id": "gid://shopify/Metafield/1", "namespace": "custom", "key": "color",
                              "value": "red", "type": "string", "definition": None}},
                    {"node": {"id": "gid://shopify/Metafield/2", "namespace": "specs", "key": "size",
                              "value": "M", "type": "single_line_text_field",
                              "definition": {"id": "gid://shopify/MetafieldDefinition/3"}}},
                ]},
            }},
        ],
    }
}


class TestParsing:
    def test_product_page(self):
        page = parse_page(PRODUCT_PAGE, PRODUCT)
        assert page.has_next_page is True
        assert page.end_cursor == "abc"
        resource = page.resources[0]
        assert resource.display_title == "Hat"
        assert resource.display_handle == "hat"
        assert [m.ledger_key for m in resource.unstructured_metafields()] == ["custom:color"]
        assert resource.metafields[1].structured
        assert resource.id == "gid://shopify/Product/1"
        assert resource.metafields[0].id == "gid://shopify/Metafield/1"
        assert resource.metafields[0].type == "string"

    def test_variant_page(self):
        data = {"productVariants": {
            "pageInfo": {"hasNextPage": False, "endCursor": None},
            "edges": [{"node": {
                "id": "gid://shopify/ProductVariant/9", "title": "Large", "sku": "HAT-L",
                "product": {"title": "Hat", "handle": "hat"},
                "metafields": {"edges": []},
            }}],
        }}
        page = parse_page(data, VARIANT)
        assert page.resources[0].display_title == "Hat - Large"
        assert page.resources[0].display_handle == "hat"
        assert not page.has_next_page

    def test_missing_connection_is_transport_error(self):
        with pytest.raises(TransportError):
            parse_page({}, PRODUCT)


class TestMetafieldAdmin:
    def test_fetch_page_uses_cursor(self):
        client = MagicMock()
        client.request.return_value = PRODUCT_PAGE
        page = MetafieldAdmin(client).fetch_page(PRODUCT, "xyz")
        assert client.request.call_args.args[1] == {"cursor": "xyz"}
        assert "products(first: 100" in client.request.call_args.args[0]
        assert len(page.resources) == 1

    def test_find_definition(self):
        client = MagicMock()
        client.request.return_value = {"metafieldDefinitions": {"edges": [{"node": {"id": "gid://Definition/55"}}]}}
        assert MetafieldAdmin(client).find_definition("custom", "color", "PRODUCT") == "gid://Definition/55"
        assert client.request.call_args.args[1]["ownerType"] == "PRODUCT"

    def test_find_definition_none(self):
        client = MagicMock()
        client.request.return_value = {"metafieldDefinitions": {"edges": []}}
        assert MetafieldAdmin(client).find_definition("custom", "color", "PRODUCTVARIANT") is None

    def test_create_definition_maps_type(self):
        client = MagicMock()
        client.request.return_value = {"metafieldDefinitionCreate": {
            "createdDefinition": {"id": "gid://Definition/77"}, "userErrors": []}}

        def_id = MetafieldAdmin(client).create_definition("legacy", "blob", "json_string", "PRODUCT")

        assert def_id == "gid://Definition/77"
        definition = client.request.call_args.args[1]["definition"]
        assert definition == {
            "namespace": "legacy",
            "key": "blob",
            "name": "legacy blob",
            "type": "json",
            "ownerType": "PRODUCT",
        }

    def test_create_definition_user_errors(self):
        client = MagicMock()
        client.request.return_value = {"metafieldDefinitionCreate": {
            "createdDefinition": None, "userErrors": [{"field": ["definition"], "message": "Key is taken"}]}}
        with pytest.raises(UserErrorsError):
            MetafieldAdmin(client).create_definition("custom", "color", "string", "PRODUCT")

    def test_delete_definition_cascades(self):
        client = MagicMock()
        client.request.return_value = {"metafieldDefinitionDelete": {
            "deletedDefinitionId": "gid://Definition/55", "userErrors": []}}
        assert MetafieldAdmin(client).delete_definition("gid://Definition/55") == "gid://Definition/55"
        assert client.request.call_args.args[1] == {
            "id": "gid://Definition/55",
            "deleteAllAssociatedMetafields": True,
        }

    def test_delete_definition_user_errors(self):
        client = MagicMock()
        client.request.return_value = {"metafieldDefinitionDelete": {
            "deletedDefinitionId": None, "userErrors": [{"field": ["id"], "message": "not found"}]}}
        with pytest.raises(UserErrorsError):
            MetafieldAdmin(client).delete_definition("gid://Definition/1")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
