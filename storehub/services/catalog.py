"""
Catalog Import and Uploads

CSV columns (header row required; only name and price are mandatory):
    name,price,mrp,sku,brand,category,inventory_count,requires_rx,description

Rows are validated one by one. Valid rows are created, invalid ones are
reported by line number; one bad row never blocks the rest.
"""
import csv
import io
import os
import uuid
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from fastapi import UploadFile

from storehub.config import get_settings
from storehub.core.exceptions import UploadRejectedError
from storehub.core.tenancy import TenantScope
from storehub.models.catalog import Category, Product
from storehub.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

CSV_COLUMNS = [
    "name", "price", "mrp", "sku", "brand", "category",
    "inventory_count", "requires_rx", "description",
]
TRUE_VALUES = {"1", "true", "yes", "y"}

IMAGE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


def _decimal(value: str, field: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"{field} is not a number: {value!r}")
    # NaN and Infinity parse but cannot be compared or quantized
    if not amount.is_finite():
        raise ValueError(f"{field} is not a number: {value!r}")
    if amount <= 0:
        raise ValueError(f"{field} must be positive")
    try:
        return amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValueError(f"{field} is out of range: {value!r}")


def parse_product_row(row: Dict[str, str]) -> Dict:
    """Validate one CSV row; raises ValueError with a readable message."""
    values = {key.strip().lower(): (value or "").strip() for key, value in row.items() if key}

    name = values.get("name")
    if not name:
        raise ValueError("name is required")
    if not values.get("price"):
        raise ValueError("price is required")

    price = _decimal(values["price"], "price")
    mrp = _decimal(values["mrp"], "mrp") if values.get("mrp") else price

    inventory = values.get("inventory_count") or "0"
    if not inventory.isdigit():
        raise ValueError(f"inventory_count must be a non-negative integer: {inventory!r}")

    return {
        "name": name[:255],
        "price": price,
        "mrp": mrp,
        "sku": values.get("sku") or None,
        "brand": values.get("brand") or None,
        "category": values.get("category") or None,
        "inventory_count": int(inventory),
        "requires_rx": values.get("requires_rx", "").lower() in TRUE_VALUES,
        "description": values.get("description") or None,
    }


def _category_for(scope: TenantScope, name: str, cache: Dict[str, Category]) -> Category:
    key = name.lower()
    if key not in cache:
        category = scope.query(Category, Category.name == name).first()
        if category is None:
            category = scope.add(Category(name=name))
            scope.db.flush()
        cache[key] = category
    return cache[key]


def import_products_csv(scope: TenantScope, content: bytes) -> Tuple[List[Product], List[Tuple[int, str]]]:
    """
    Create products from CSV content.

    Returns (created products, [(line number, error)]). Categories named in
    the file are created when missing.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise UploadRejectedError("CSV file must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames or "name" not in [f.strip().lower() for f in reader.fieldnames]:
        raise UploadRejectedError(f"CSV header must include: {', '.join(CSV_COLUMNS)}")

    created: List[Product] = []
    errors: List[Tuple[int, str]] = []
    categories: Dict[str, Category] = {}

    # Line 1 is the header
    for line_number, row in enumerate(reader, start=2):
        try:
            data = parse_product_row(row)
        except ValueError as e:
            errors.append((line_number, str(e)))
            continue

        category_name = data.pop("category")
        product = Product(**data)
        if category_name:
            product.category_id = _category_for(scope, category_name, categories).id
        created.append(scope.add(product))

    logger.info(f"CSV import: {len(created)} created, {len(errors)} rejected", extra={"tenant_id": scope.tenant_id})
    return created, errors


async def save_image(tenant_id: str, upload: UploadFile, folder: str) -> str:
    """
    Store an uploaded image under UPLOAD_DIR/<tenant_id>/<folder>/.

    Returns the public URL path (/uploads/...).
    """
    content_type = (upload.content_type or "").lower()
    if content_type not in settings.ALLOWED_IMAGE_TYPES:
        raise UploadRejectedError(f"Unsupported image type: {content_type or 'unknown'}")

    content = await upload.read()
    if not content:
        raise UploadRejectedError("Empty file")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise UploadRejectedError(
            f"File too large: limit is {settings.MAX_UPLOAD_BYTES} bytes",
            status_code=413,
        )

    directory = os.path.join(settings.UPLOAD_DIR, tenant_id, folder)
    os.makedirs(directory, exist_ok=True)

    filename = f"{uuid.uuid4().hex}{IMAGE_EXTENSIONS.get(content_type, '')}"
    with open(os.path.join(directory, filename), "wb") as f:
        f.write(content)

    logger.info(f"Stored upload {folder}/{filename}", extra={"tenant_id": tenant_id})
    return f"/uploads/{tenant_id}/{folder}/{filename}"


async def read_csv_upload(upload: UploadFile) -> bytes:
    content = await upload.read()
    if len(content) > settings.MAX_CSV_BYTES:
        raise UploadRejectedError(f"CSV too large: limit is {settings.MAX_CSV_BYTES} bytes", status_code=413)
    return content


def find_category(scope: TenantScope, category_id: Optional[str]) -> Optional[Category]:
    if not category_id:
        return None
    return scope.get(Category, category_id)
