"""
Shopify Admin GraphQL transport.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

from .errors import GraphQLRequestError, TransportError, classify_errors
from .shop_store import ShopConfig


REDIRECT_CODES = (301, 302, 303, 307, 308)


class GraphQLResult:
    """Either data or a list of errors, never treated as loose JSON downstream."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, errors: Any = None,
                 extensions: Optional[Dict[str, Any]] = None):
        self.data = data
        self.errors = errors
        self.extensions = extensions or {}

    @property
    def ok(self) -> bool:
        return not self.errors and self.data is not None

    def __repr__(self) -> str:
        return f"GraphQLResult(ok={self.ok}, errors={self.errors!r})"


class ShopifyClient:
    """Client for one shop's Admin GraphQL endpoint."""

    def __init__(self, shop: ShopConfig, api_version: str, timeout: int = 60):
        self.shop = shop
        self.api_version = api_version
        self.timeout = timeout
        self.url = f"https://{shop.domain}/admin/api/{api_version}/graphql.json"
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Shopify-Access-Token": shop.access_token,
        })

    def _post(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        try:
            return self.session.post(url, json=payload, timeout=self.timeout, allow_redirects=False)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Network error talking to {self.shop.domain}: {e}")

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> GraphQLResult:
        payload = {"query": query, "variables": variables or {}}
        logging.debug("POST %s\n%s\nvariables=%s", self.url, query.strip(), json.dumps(payload["variables"]))

        r = self._post(self.url, payload)
        # Shopify answers with a canonical-domain redirect; re-POST to Location
        if r.status_code in REDIRECT_CODES:
            loc = r.headers.get("Location")
            if loc:
                r = self._post(loc, payload)

        if r.status_code == 429:
            return GraphQLResult(errors=[{"message": "Throttled: HTTP 429 Too Many Requests"}])
        if not r.ok:
            return GraphQLResult(errors=self._http_errors(r))

        try:
            body = r.json()
        except ValueError:
            raise TransportError(f"Malformed response from {self.shop.domain}: {r.text[:400]}")
        logging.debug("Response: %s", json.dumps(body, indent=2))
        if not isinstance(body, dict):
            raise TransportError(f"Unexpected response shape from {self.shop.domain}")

        return GraphQLResult(body.get("data"), body.get("errors"), body.get("extensions"))

    @staticmethod
    def _http_errors(r: requests.Response) -> Any:
        try:
            body = r.json()
        except ValueError:
            return f"HTTP {r.status_code}: {r.text[:400]}"
        if isinstance(body, dict) and body.get("errors"):
            return body["errors"]
        return f"HTTP {r.status_code}: {json.dumps(body)[:400]}"

    def request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a query and return its data, raising on GraphQL errors."""
        result = self.execute(query, variables)
        if result.errors:
            raise GraphQLRequestError(classify_errors(result.errors, self.shop.name))
        if result.data is None:
            raise TransportError("Response did not contain a data envelope")
        cost = result.extensions.get("cost")
        if cost:
            logging.debug("Query cost: %s", json.dumps(cost))
        return result.data
