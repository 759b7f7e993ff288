import re
from typing import Dict


PAGE_SIZES = {
    "products": 100,
    "variants": 100,
    "metafields": 250,
    "customers": 250,
    "orders": 100,
}

# Seconds to wait before a forced cleanup starts deleting
FORCE_MODE_DELAY = 2

VALUE_PREVIEW_LENGTH = 200
ELLIPSIS = "..."

SECTION_LINE = "─" * 80
THICK_LINE = "═" * 80

# Legacy metafield type names -> current Shopify metafield types.
# Canonical names map to themselves.
TYPE_MAPPINGS: Dict[str, str] = {
    "string": "single_line_text_field",
    "integer": "number_integer",
    "json_string": "json",
    "boolean": "boolean",
    "number_decimal": "number_decimal",
    "number_integer": "number_integer",
    "date": "date",
    "date_time": "date_time",
    "url": "url",
    "color": "color",
    "rating": "rating",
    "multi_line_text_field": "multi_line_text_field",
    "single_line_text_field": "single_line_text_field",
    "json": "json",
}

ERROR_PATTERNS = {
    "access_denied": re.compile(r"access denied|unauthorized|invalid api key|access token", re.IGNORECASE),
    "rate_limit": re.compile(r"throttled|rate limit", re.IGNORECASE),
}


def map_type(metafield_type: str) -> str:
    return TYPE_MAPPINGS.get(metafield_type, metafield_type)
