"""
Product catalogue endpoints.

Prices cross this boundary in dollars and are stored in cents.  Updates and
deletes report the recomputed metrics of every shelf holding the product.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Any

from fastapi import APIRouter, File, HTTPException, UploadFile
from sqlmodel import col, select

from shelfsim import services
from shelfsim.design import dollars_to_cents, validate_price_levels
from shelfsim.io import delete_upload, download_image, save_upload
from shelfsim.logging_config import get_logger
from shelfsim.models import Product, ProductImage, RecordStatus
from shelfsim.schemas import (
    DownloadImageRequest,
    EditImageRequest,
    PriceConfigRequest,
    ProductCreate,
    ProductIdea,
    ProductIdeaRequest,
    ProductImageRead,
    ProductRead,
    ProductUpdate,
)
from web.deps import CurrentUser, SessionDep, SettingsDep, SimulatorDep, UploadDirDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["products"])

PRICE_FIELDS = ("list_price", "cost", "low_price", "high_price")


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: dollars_to_cents(value) if key in PRICE_FIELDS else value
        for key, value in data.items()
    }


# ---------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------

@router.get("/products", response_model=list[ProductRead])
def list_products(session: SessionDep, _user: CurrentUser) -> list[ProductRead]:
    products = session.exec(
        select(Product)
        .where(Product.status == RecordStatus.ACTIVE)
        .order_by(col(Product.created_at).desc(), col(Product.id).desc())
    )
    return [services.product_read(session, p) for p in products]


@router.post("/products", response_model=ProductRead)
def create_product(body: ProductCreate, session: SessionDep, _user: CurrentUser) -> ProductRead:
    data = _to_columns(body.model_dump(exclude_none=True))
    product = Product(**data)
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info("Created product %s (%s %s)", product.id, product.brand_name, product.product_name)
    return services.product_read(session, product)


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    body: ProductUpdate,
    session: SessionDep,
    _user: CurrentUser,
) -> dict[str, Any]:
    product = services.get_product(session, product_id)
    for key, value in _to_columns(body.model_dump(exclude_unset=True)).items():
        if key in ("brand_name", "product_name", "list_price", "new_product") and value is None:
            continue
        setattr(product, key, value)
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info("Updated product %s", product_id)
    return {
        "product": services.product_read(session, product).model_dump(mode="json"),
        "affected_shelves": services.affected_shelf_metrics(session, product_id),
    }


@router.delete("/products/{product_id}")
def delete_product(product_id: int, session: SessionDep, _user: CurrentUser) -> dict[str, Any]:
    product = services.get_product(session, product_id)
    product.status = RecordStatus.DELETED
    session.add(product)
    session.commit()
    logger.info("Deleted product %s", product_id)
    return {
        "success": True,
        "affected_shelves": services.affected_shelf_metrics(session, product_id),
    }


@router.post("/products/{product_id}/price-config", response_model=ProductRead)
def configure_prices(
    product_id: int,
    body: PriceConfigRequest,
    session: SessionDep,
    _user: CurrentUser,
) -> ProductRead:
    if body.low_price >= body.high_price:
        raise HTTPException(status_code=400, detail="High price must be greater than low price")
    levels = validate_price_levels(body.price_levels)

    product = services.get_product(session, product_id)
    product.low_price = dollars_to_cents(body.low_price)
    product.high_price = dollars_to_cents(body.high_price)
    product.price_levels = levels
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info("Product %s priced %s-%s over %d levels", product_id, product.low_price, product.high_price, levels)
    return services.product_read(session, product)


# ---------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------

@router.post("/products/{product_id}/images", response_model=ProductImageRead)
def upload_image(
    product_id: int,
    image: Annotated[UploadFile, File()],
    session: SessionDep,
    settings: SettingsDep,
    upload_dir: UploadDirDep,
    _user: CurrentUser,
) -> ProductImage:
    services.get_product(session, product_id)
    url = save_upload(
        image.file.read(),
        image.filename,
        image.content_type,
        upload_dir,
        max_bytes=settings.max_upload_bytes,
    )
    return services.add_product_image(session, product_id, url)


@router.delete("/products/{product_id}/images/{image_id}")
def delete_image(
    product_id: int,
    image_id: int,
    session: SessionDep,
    upload_dir: UploadDirDep,
    _user: CurrentUser,
) -> dict[str, bool]:
    image = session.exec(
        select(ProductImage).where(ProductImage.id == image_id, ProductImage.product_id == product_id)
    ).first()
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")

    if not delete_upload(image.url, upload_dir):
        logger.warning("No stored file behind image %s (%s)", image_id, image.url)
    session.delete(image)
    session.commit()
    return {"success": True}


@router.post("/products/{product_id}/download-image", response_model=ProductImageRead)
def download_product_image(
    product_id: int,
    body: DownloadImageRequest,
    session: SessionDep,
    upload_dir: UploadDirDep,
    _user: CurrentUser,
) -> ProductImage:
    services.get_product(session, product_id)
    url = download_image(body.image_url, upload_dir)
    return services.add_product_image(session, product_id, url)


# ---------------------------------------------------------------------
# AI generation
# ---------------------------------------------------------------------

@router.post("/generate-products", response_model=list[ProductIdea])
def generate_products(
    body: ProductIdeaRequest,
    simulator: SimulatorDep,
    _user: CurrentUser,
) -> list[ProductIdea]:
    ideas = simulator.generate_product_ideas(body.brand_name, body.prompt)
    logger.info("Generated %d product ideas for %s", len(ideas), body.brand_name)
    return ideas


@router.post("/edit-image")
def edit_image(
    body: EditImageRequest,
    simulator: SimulatorDep,
    upload_dir: UploadDirDep,
    _user: CurrentUser,
) -> dict[str, list[str]]:
    try:
        image = base64.b64decode(body.image, validate=True)
        mask = base64.b64decode(body.mask, validate=True)
    except binascii.Error as exc:
        raise HTTPException(status_code=400, detail="Image and mask must be base64 encoded") from exc

    remote_urls = simulator.edit_image(image, mask, body.prompt)
    return {"urls": [download_image(url, upload_dir) for url in remote_urls]}
