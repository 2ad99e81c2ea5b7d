from __future__ import annotations

from vegledger import store
from vegledger.enums import ItemCategory
from vegledger.errors import ValidationError
from vegledger.logger import get_logger
from vegledger.utils import clean_text, iso_now

logger = get_logger(__name__)


def add_vegetable_item(conn, *, name: str, category) -> int:
    name = clean_text(name)
    if not name:
        raise ValidationError("Item name is required.")
    category = ItemCategory.parse(category)

    existing = {v["name"].lower() for v in list_vegetable_items(conn)}
    if name.lower() in existing:
        raise ValidationError(f"'{name}' is already in the catalog.")

    item_id = store.create(
        conn,
        "vegetables",
        {"name": name, "category": category.value, "created_at": iso_now()},
    )
    logger.info("Catalog item %s added: %s (%s)", item_id, name, category.value)
    return item_id


def list_vegetable_items(conn) -> list[dict]:
    return store.get_all(conn, "vegetables", order_by="name")


def category_map(catalog: list[dict]) -> dict[str, ItemCategory]:
    return {v["name"]: ItemCategory.parse(v["category"]) for v in catalog}
