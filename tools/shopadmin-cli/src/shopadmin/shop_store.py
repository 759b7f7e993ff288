"""
Local credential store for shopadmin.

Shops live in a JSON file (default ~/.shopadmin/shops.json, override with
SHOPADMIN_CONFIG). A per-project default shop can be pinned with a
.shopadmin.json file in the working directory.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv

from .errors import ConfigError


DEFAULT_CONFIG_PATH = Path("~/.shopadmin/shops.json")
LOCAL_CONFIG_NAME = ".shopadmin.json"


def load_env(path: Optional[str] = None) -> None:
    env_path = path or os.environ.get("AGENTS_ENV_PATH", os.path.expanduser("~/AGENTS.env"))
    if os.path.exists(env_path):
        load_dotenv(env_path)


class ShopConfig:
    """A named store and the credentials used to reach it."""

    def __init__(self, name: str, url: str, access_token: str, added_at: Optional[str] = None):
        self.name = name
        self.url = url
        self.access_token = access_token
        self.added_at = added_at or datetime.now(timezone.utc).isoformat()

    @property
    def domain(self) -> str:
        return re.sub(r"^https?://", "", self.url).rstrip("/")

    @property
    def masked_token(self) -> str:
        return f"{self.access_token[:10]}..."

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ShopConfig":
        try:
            return cls(raw["name"], raw["url"], raw["accessToken"], raw.get("addedAt"))
        except (KeyError, TypeError):
            raise ConfigError(f"Invalid shop entry in shops file: {raw!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "accessToken": self.access_token,
            "addedAt": self.added_at,
        }

    def __repr__(self) -> str:
        return f"ShopConfig(name={self.name!r}, url={self.url!r})"


def normalize_subdomain(value: str) -> str:
    sub = re.sub(r"^https?://", "", value.strip())
    sub = re.sub(r"\.myshopify\.com.*$", "", sub)
    return sub.split("/")[0]


class ShopStore:
    """Reads and writes the shops file."""

    def __init__(self, path: Optional[str] = None, local_dir: Optional[str] = None):
        raw_path = path or os.environ.get("SHOPADMIN_CONFIG") or str(DEFAULT_CONFIG_PATH)
        self.path = Path(os.path.expanduser(raw_path))
        self.local_path = Path(local_dir or os.getcwd()) / LOCAL_CONFIG_NAME

    # Raw file access
    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"shops": []}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                config = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Could not read shops file {self.path}: {e}")
        if not isinstance(config, dict):
            raise ConfigError(f"Shops file {self.path} must contain a JSON object")
        config.setdefault("shops", [])
        return config

    def save(self, config: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
            f.write("\n")
        try:
            os.chmod(self.path, 0o600)
        except OSError as e:
            logging.warning("Could not restrict permissions on %s: %s", self.path, e)

    # Shops
    def list_shops(self) -> List[ShopConfig]:
        return [ShopConfig.from_dict(s) for s in self.load()["shops"]]

    def get_shop(self, name: str) -> Optional[ShopConfig]:
        for shop in self.list_shops():
            if shop.name == name:
                return shop
        return None

    def add_shop(self, name: Optional[str], subdomain: str, access_token: str) -> ShopConfig:
        sub = normalize_subdomain(subdomain)
        if not sub:
            raise ConfigError("Store subdomain is required")
        if not access_token or not access_token.strip():
            raise ConfigError("Access token is required")
        shop = ShopConfig(name or sub, f"https://{sub}.myshopify.com", access_token.strip())
        config = self.load()
        shops = [s for s in config["shops"] if s.get("name") != shop.name]
        replaced = len(shops) != len(config["shops"])
        shops.append(shop.to_dict())
        config["shops"] = shops
        self.save(config)
        logging.info("%s shop %s in %s", "Updated" if replaced else "Added", shop.name, self.path)
        return shop

    def remove_shop(self, name: str) -> bool:
        config = self.load()
        remaining = [s for s in config["shops"] if s.get("name") != name]
        if len(remaining) == len(config["shops"]):
            return False
        config["shops"] = remaining
        self.save(config)
        return True

    # API version
    def get_api_version(self) -> str:
        version = self.load().get("apiVersion") or os.environ.get("SHOPIFY_API_VERSION")
        if not version:
            raise ConfigError(
                f'API version not configured. Add "apiVersion" to {self.path} '
                'or set SHOPIFY_API_VERSION.\nExample: "apiVersion": "2025-10"'
            )
        return version

    def set_api_version(self, version: str) -> None:
        if not re.match(r"^\d{4}-\d{2}$|^unstable$", version):
            raise ConfigError(f"Invalid API version {version!r}; expected YYYY-MM, e.g. 2025-10")
        config = self.load()
        config["apiVersion"] = version
        self.save(config)

    # Local default
    def get_default_shop_name(self) -> Optional[str]:
        if not self.local_path.exists():
            return None
        try:
            with open(self.local_path, "r", encoding="utf-8") as f:
                return (json.load(f) or {}).get("defaultShop")
        except (OSError, ValueError, AttributeError) as e:
            logging.warning("Ignoring unreadable %s: %s", self.local_path, e)
            return None

    def set_default_shop(self, name: str) -> None:
        if not self.get_shop(name):
            raise ConfigError(f'Shop "{name}" not found')
        with open(self.local_path, "w", encoding="utf-8") as f:
            json.dump({"defaultShop": name}, f, indent=2)
            f.write("\n")

    def resolve_shop(self, name: Optional[str] = None,
                     chooser: Optional[Callable[[List[ShopConfig]], ShopConfig]] = None) -> ShopConfig:
        """Pick the shop a command runs against."""
        if name:
            shop = self.get_shop(name)
            if not shop:
                raise ConfigError(f'Shop "{name}" not found. Use "shopadmin shops list" to see configured shops.')
            return shop

        shops = self.list_shops()
        if not shops:
            raise ConfigError('No shops configured. Use "shopadmin shops add" to add a shop.')

        default_name = self.get_default_shop_name()
        if default_name:
            shop = self.get_shop(default_name)
            if shop:
                logging.info("Using default shop from %s: %s", self.local_path, shop.name)
                return shop
            logging.warning("Default shop %r from %s is not configured", default_name, self.local_path)

        if len(shops) == 1:
            return shops[0]
        return (chooser or choose_shop)(shops)


def choose_shop(shops: List[ShopConfig]) -> ShopConfig:
    for i, shop in enumerate(shops, 1):
        print(f"  {i}. {shop.name} ({shop.url})")
    while True:
        try:
            ans = input(f"Select a shop [1-{len(shops)}]: ").strip()
        except EOFError:
            raise ConfigError("No shop selected; pass --shop")
        if ans.isdigit() and 1 <= int(ans) <= len(shops):
            return shops[int(ans) - 1]
        print("Invalid selection.")
