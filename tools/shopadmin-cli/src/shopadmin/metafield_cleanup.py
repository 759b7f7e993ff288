"""
Delete unstructured metafields (metafields without a definition) store-wide.

Each key is removed by cascade-deleting a metafield definition for it: an
existing definition is reused, otherwise a temporary one is created first.
A cascade delete changes the result set under the scan, so after any
successful deletion the scan starts over from the first page. Keys deleted
in this run are remembered and never offered again.
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .constants import ELLIPSIS, FORCE_MODE_DELAY, SECTION_LINE, THICK_LINE, VALUE_PREVIEW_LENGTH
from .errors import GraphQLRequestError, ShopAdminError
from .metafields import OWNER_TYPES, PRODUCT, VARIANT, Metafield, MetafieldAdmin, Resource


def value_preview(value: str) -> str:
    if len(value) > VALUE_PREVIEW_LENGTH:
        return value[:VALUE_PREVIEW_LENGTH] + ELLIPSIS
    return value


def confirm_prompt(message: str, default: bool = False) -> bool:
    hint = "[Y/n]" if default else "[y/N]"
    try:
        ans = input(f"{message} {hint}: ").strip().lower()
    except EOFError:
        return default
    if not ans:
        return default
    return ans in ("y", "yes")


def first_unstructured(resources: List[Resource], ledger: Iterable[str] = ()) -> Optional[Tuple[Resource, List[Metafield]]]:
    """First resource in page order with an unstructured key not yet in the ledger."""
    done = set(ledger)
    for resource in resources:
        unstructured = resource.unstructured_metafields()
        if any(mf.ledger_key not in done for mf in unstructured):
            return resource, unstructured
    return None


class CleanupSummary:
    def __init__(self, resource_type: str):
        self.resource_type = resource_type
        self.scanned = 0
        self.deleted_keys: List[str] = []
        self.skipped_keys: List[str] = []
        self.failed: Dict[str, str] = {}
        self.restarts = 0

    @property
    def deleted(self) -> int:
        return len(self.deleted_keys)


class UnstructuredMetafieldCleaner:
    """Scan products or variants and delete unstructured metafield keys."""

    def __init__(
        self,
        admin: MetafieldAdmin,
        resource_type: str = PRODUCT,
        force: bool = False,
        confirm: Callable[..., bool] = confirm_prompt,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if resource_type not in OWNER_TYPES:
            raise ValueError(f"resource_type must be one of {sorted(OWNER_TYPES)}")
        self.admin = admin
        self.resource_type = resource_type
        self.owner_type = OWNER_TYPES[resource_type]
        self.force = force
        self.confirm = confirm
        self.sleep = sleep
        self.ledger: set = set()

    @property
    def noun(self) -> str:
        return "variants" if self.resource_type == VARIANT else "products"

    def run(self) -> CleanupSummary:
        summary = CleanupSummary(self.resource_type)

        if self.force:
            print("\n⚠️  FORCE MODE ENABLED - All unstructured metafields will be deleted automatically!")
            print("    This action cannot be undone. Press Ctrl+C to cancel.\n")
            self.sleep(FORCE_MODE_DELAY)

        print(f"\nScanning for {self.noun} with unstructured metafields...\n")

        cursor: Optional[str] = None
        while True:
            logging.debug("Fetching batch of %s, cursor=%s", self.noun, cursor or "start")
            page = self.admin.fetch_page(self.resource_type, cursor)

            if not page.resources:
                print(f"\n✅ No more {self.noun} to process.")
                break

            summary.scanned += len(page.resources)
            print(f"\rScanned {summary.scanned} {self.noun}...", end="", flush=True)

            found = first_unstructured(page.resources, self.ledger)
            if found and self._process_resource(found[0], found[1], summary):
                cursor = None
                summary.scanned = 0
                summary.restarts += 1
                print("\nRestarting scan from beginning after deletion...\n")
                continue

            if page.has_next_page and page.end_cursor:
                cursor = page.end_cursor
            else:
                print(f"\n\n✅ Finished scanning all {self.noun}.")
                break

        self.print_summary(summary)
        return summary

    def _process_resource(self, resource: Resource, unstructured: List[Metafield], summary: CleanupSummary) -> bool:
        """Decide on each metafield of one resource. Returns True if anything was deleted."""
        kind = "variant" if self.resource_type == VARIANT else "product"
        print(f"\n\nFound {len(unstructured)} unstructured metafield(s) in {kind}: \"{resource.display_title}\"")

        deleted_any = False
        for mf in unstructured:
            if mf.ledger_key in self.ledger:
                print(f"  Skipping {mf.ledger_key} (already deleted)")
                continue

            self._present(resource, mf)
            if not self._decide(mf):
                print("Skipped.")
                if mf.ledger_key not in summary.skipped_keys:
                    summary.skipped_keys.append(mf.ledger_key)
                continue

            if self.delete_everywhere(mf, summary):
                self.ledger.add(mf.ledger_key)
                summary.deleted_keys.append(mf.ledger_key)
                summary.failed.pop(mf.ledger_key, None)
                deleted_any = True
        return deleted_any

    def _present(self, resource: Resource, mf: Metafield) -> None:
        print(f"\n{SECTION_LINE}")
        print(f"\nMetafield: {mf.ledger_key}")
        print(f"Type: {mf.type}")
        label = "Variant" if self.resource_type == VARIANT else "Product"
        print(f"{label}: \"{resource.display_title}\" ({resource.display_handle})")
        print(f"Value: {value_preview(mf.value)}\n")

    def _decide(self, mf: Metafield) -> bool:
        if self.force:
            print(f"🔥 Force mode: Automatically deleting {mf.ledger_key}")
            return True
        return bool(self.confirm(
            f"Delete ALL instances of {mf.ledger_key} across ALL {self.noun}?",
            default=False,
        ))

    def delete_everywhere(self, mf: Metafield, summary: CleanupSummary) -> bool:
        """Cascade-delete every instance of mf's key. Returns True on success."""
        print(f"\nDeleting all instances of {mf.ledger_key}...")
        created_id = None
        try:
            definition_id = self.admin.find_definition(mf.namespace, mf.key, self.owner_type)
            if definition_id:
                print("Found existing definition, will delete it along with all metafields...")
            else:
                definition_id = created_id = self.admin.create_definition(
                    mf.namespace, mf.key, mf.type, self.owner_type)
                print("Created temporary definition...")
            self.admin.delete_definition(definition_id, cascade=True)
        except GraphQLRequestError as e:
            self._warn_leftover(mf, created_id)
            if e.fatal:
                raise
            self._record_failure(mf, e, summary)
            return False
        except ShopAdminError as e:
            self._warn_leftover(mf, created_id)
            self._record_failure(mf, e, summary)
            return False

        print(f"✓ Successfully deleted all instances of {mf.ledger_key}")
        return True

    @staticmethod
    def _warn_leftover(mf: Metafield, created_id: Optional[str]) -> None:
        # The created definition now structures every instance of the key,
        # so later scans will not offer it again.
        if created_id:
            logging.warning(
                "Temporary definition %s for %s was not deleted; remove it manually in Shopify admin",
                created_id, mf.ledger_key,
            )

    @staticmethod
    def _record_failure(mf: Metafield, exc: Exception, summary: CleanupSummary) -> None:
        logging.error("Error processing %s: %s", mf.ledger_key, exc)
        summary.failed[mf.ledger_key] = str(exc)

    def print_summary(self, summary: CleanupSummary) -> None:
        noun = "variant(s)" if self.resource_type == VARIANT else "product(s)"
        print(f"\n{THICK_LINE}")
        print("\nSummary:")
        print(f"- Scanned {summary.scanned} {noun}")
        print(f"- Deleted {summary.deleted} metafield type(s)")
        if summary.deleted_keys:
            print("\nDeleted metafields:")
            for key in summary.deleted_keys:
                print(f"  - {key}")
        if summary.failed:
            print("\nFailed metafields:")
            for key, err in summary.failed.items():
                print(f"  - {key}: {err}")
        if summary.skipped_keys:
            print("\nSkipped metafields:")
            for key in summary.skipped_keys:
                print(f"  - {key}")
