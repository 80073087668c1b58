# storefront/shop.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .config import Settings
from .database import get_session
from .deps import get_alert_sink, get_settings
from .errors import NotificationFailure
from .models import Product, ProductVariant
from .schemas import InventoryUpdate, ProductCreate, ProductOut, VariantSnapshot
from .triggers import monitor_stock_levels

log = logging.getLogger("storefront.shop")

router = APIRouter(prefix="/api/products", tags=["products"])


async def _get_product(session: AsyncSession, product_id: str) -> Product:
    result = await session.execute(
        select(Product)
        .options(selectinload(Product.variants))
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Товар не найден")
    return product


@router.get("", response_model=List[ProductOut])
async def list_products(session: AsyncSession = Depends(get_session)):
    result = await session.execute(
        select(Product).options(selectinload(Product.variants)).order_by(Product.name)
    )
    return result.scalars().all()


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: str, session: AsyncSession = Depends(get_session)):
    return await _get_product(session, product_id)


# admin dashboard; auth is handled by the platform in front of this service
@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreate, session: AsyncSession = Depends(get_session)):
    if await session.get(Product, payload.id) is not None:
        raise HTTPException(status_code=409, detail="Товар с таким id уже существует")

    product = Product(
        id=payload.id,
        name=payload.name,
        description=payload.description,
        price=payload.price,
        image_url=payload.image_url,
        category=payload.category,
        variants=[
            ProductVariant(id=v.id, color=v.color, size=v.size, inventory=v.inventory)
            for v in payload.variants
        ],
    )
    session.add(product)
    await session.commit()
    return await _get_product(session, product.id)


# 📦 Изменение остатка варианта -> проверка низкого остатка
@router.put("/{product_id}/variants/{variant_id}", response_model=ProductOut)
async def update_inventory(
    product_id: str,
    variant_id: str,
    payload: InventoryUpdate,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    alert_sink=Depends(get_alert_sink),
):
    product = await _get_product(session, product_id)
    variant = next((v for v in product.variants if v.id == variant_id), None)
    if variant is None:
        raise HTTPException(status_code=404, detail="Вариант товара не найден")

    before = [VariantSnapshot.model_validate(v, from_attributes=True) for v in product.variants]
    variant.inventory = payload.inventory
    await session.commit()
    after = [VariantSnapshot.model_validate(v, from_attributes=True) for v in product.variants]

    try:
        await monitor_stock_levels(
            alert_sink,
            product_id=product.id,
            product_name=product.name,
            before=before,
            after=after,
            threshold=settings.low_stock_threshold,
        )
    except NotificationFailure as e:
        # остаток уже сохранён; оповещение не критично
        log.warning("low stock alert for %s failed: %s", product.id, e)
    return product
