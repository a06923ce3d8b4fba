# app/services/catalog.py
"""
Static catalog of purchasable goods and pay-per-view content.

Both lists are built once at import time and never mutated.
"""
from typing import Dict, Mapping, Optional, Tuple

from app.api.models.shop import Product
from app.api.models.ppv import PPVContent, PPVContentType


PRODUCTS: Tuple[Product, ...] = (
    Product(id="p1", name="Alpha Sticker", priceUSD=0.1),
    Product(id="p2", name="Beta T-shirt", priceUSD=0.5),
    Product(id="p3", name="Gamma Mug", priceUSD=1.25),
)

PPV_CONTENT: Tuple[PPVContent, ...] = (
    PPVContent(
        id="song",
        name="Argy & Omnya - Aria",
        priceUSD=0.1,
        type=PPVContentType.SONG,
        url="https://soundcloud.com/obsessiveprogressive/argy-omnya-aria",
    ),
    PPVContent(
        id="video",
        name="Exclusive Video",
        priceUSD=0.25,
        type=PPVContentType.VIDEO,
        url="https://youtu.be/D1y64Hy-_VI",
    ),
)

PRODUCTS_BY_ID: Dict[str, Product] = {product.id: product for product in PRODUCTS}
PPV_BY_ID: Dict[str, PPVContent] = {content.id: content for content in PPV_CONTENT}


def get_product(product_id, catalog: Optional[Mapping[str, Product]] = None) -> Optional[Product]:
    """Look up a product by id, None if the catalog has no such product."""
    if not isinstance(product_id, str):
        return None
    products = catalog if catalog is not None else PRODUCTS_BY_ID
    return products.get(product_id)


def get_ppv_content(content_id: str) -> Optional[PPVContent]:
    """Look up a pay-per-view item by id."""
    return PPV_BY_ID.get(content_id)
