"""Load shop catalogs from JSON definitions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence, TYPE_CHECKING

from ..storage.base import ShopItemRecord

if TYPE_CHECKING:
    from ..app import EconomyApp

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CatalogDefinition:
    guild_id: str
    items: Sequence[ShopItemRecord]


async def load_catalog_from_json(
    app: "EconomyApp", path: str | Path, *, guild_id: str | None = None
) -> CatalogDefinition:
    """Load shop items from a JSON file and register the ones the shop lacks.

    Items already stored keep their current stock and fields; change them with
    the admin ``update_item`` and ``restock`` operations. ``guild_id`` overrides
    the ``guild`` key of the file.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    definition = parse_catalog_dict(data, guild_id=guild_id)
    for item in definition.items:
        await app.admin.create_item(item, exist_ok=True)
    logger.info(
        "Loaded %s shop items for guild %s from %s", len(definition.items), definition.guild_id, path
    )
    return definition


def parse_catalog_dict(data: dict[str, Any], *, guild_id: str | None = None) -> CatalogDefinition:
    """Parse a JSON dict (already decoded) into shop item records."""
    errors = validate_catalog_dict(data)
    if errors:
        raise ValueError(_format_errors("Catalog validation failed", errors))
    resolved_guild = guild_id or str(data.get("guild", "default"))
    items = tuple(parse_item(entry, resolved_guild) for entry in data["items"])
    return CatalogDefinition(guild_id=resolved_guild, items=items)


def parse_item(entry: dict[str, Any], guild_id: str) -> ShopItemRecord:
    capability = entry.get("capability")
    return ShopItemRecord(
        guild_id=guild_id,
        item_id=entry["id"],
        name=entry["name"],
        price=int(entry["price"]),
        description=entry.get("description", ""),
        stock=int(entry.get("stock", -1)),
        is_active=bool(entry.get("active", True)),
        capability=str(capability) if capability is not None else None,
    )


def validate_catalog_file(path: str | Path) -> list[str]:
    """Validate catalog JSON file and return a list of errors."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        return [f"Catalog is not valid JSON: {exc}"]
    return validate_catalog_dict(data)


def validate_catalog_dict(data: Any) -> list[str]:
    if not isinstance(data, dict):
        return ["Catalog must be a JSON object."]
    errors: list[str] = []

    guild = data.get("guild")
    if guild is not None and (not isinstance(guild, (str, int)) or isinstance(guild, bool)):
        errors.append("Catalog 'guild' must be a string or integer.")

    items_raw = data.get("items")
    if not isinstance(items_raw, list) or not items_raw:
        errors.append("Catalog must contain non-empty 'items' array.")
        return errors

    item_ids: set[str] = set()
    for idx, entry in enumerate(items_raw, start=1):
        if not isinstance(entry, dict):
            errors.append(f"Item #{idx} must be an object.")
            continue
        item_id = entry.get("id")
        if not isinstance(item_id, str) or not item_id.strip():
            errors.append(f"Item #{idx} must define non-empty 'id'.")
            continue
        if item_id in item_ids:
            errors.append(f"Item id '{item_id}' defined multiple times.")
        item_ids.add(item_id)

        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"Item '{item_id}' must define non-empty 'name'.")

        price = entry.get("price")
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            errors.append(f"Item '{item_id}' has invalid 'price' value '{price}'.")

        stock = entry.get("stock", -1)
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < -1:
            errors.append(
                f"Item '{item_id}' has invalid 'stock' value '{stock}' (use -1 for unlimited)."
            )

        description = entry.get("description", "")
        if not isinstance(description, str):
            errors.append(f"Item '{item_id}' description must be a string.")

        active = entry.get("active", True)
        if not isinstance(active, bool):
            errors.append(f"Item '{item_id}' 'active' must be true or false.")

        capability = entry.get("capability")
        if capability is not None and (
            isinstance(capability, bool)
            or not isinstance(capability, (str, int))
            or not str(capability).strip()
        ):
            errors.append(f"Item '{item_id}' capability must be a non-empty string.")

    return errors


def _format_errors(prefix: str, errors: Iterable[str]) -> str:
    formatted = "\n".join(f"- {err}" for err in errors)
    return f"{prefix}:\n{formatted}"
