"""Product catalog: amount label shown to the user -> provider SKU code."""
from typing import Dict, List, Mapping

# Keep in sync with the SKU codes configured at BOS StoreID
SKU_CODES: Dict[str, str] = {
    "30M": "HD30M",
    "60M": "HD60M",
    "200M": "HD200M",
}


def resolve_sku(amount_code: str, catalog: Mapping[str, str] = SKU_CODES) -> str:
    """Unknown codes pass through unchanged so new SKUs work without a release."""
    return catalog.get(amount_code, amount_code)


def amount_labels(catalog: Mapping[str, str] = SKU_CODES) -> List[str]:
    return list(catalog.keys())
