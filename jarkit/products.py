"""Read-only lookup table tagging packages with the product family they belong to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Tuple

DEFAULT_PRODUCTS: Dict[str, Tuple[str, ...]] = {
    "JakartaEE": (
        "jakarta/annotation",
        "jakarta/batch",
        "jakarta/ejb",
        "jakarta/el",
        "jakarta/enterprise",
        "jakarta/faces",
        "jakarta/inject",
        "jakarta/jms",
        "jakarta/json",
        "jakarta/mail",
        "jakarta/persistence",
        "jakarta/security",
        "jakarta/servlet",
        "jakarta/transaction",
        "jakarta/validation",
        "jakarta/websocket",
        "jakarta/ws/rs",
        "jakarta/xml/bind",
        "jakarta/xml/ws",
        "jakartaee/servlet",
    ),
    "JavaEE": (
        "javax/annotation",
        "javax/batch",
        "javax/ejb",
        "javax/el",
        "javax/enterprise",
        "javax/faces",
        "javax/inject",
        "javax/jms",
        "javax/json",
        "javax/mail",
        "javax/persistence",
        "javax/security/enterprise",
        "javax/servlet",
        "javax/transaction",
        "javax/validation",
        "javax/websocket",
        "javax/ws/rs",
        "javax/xml/bind",
        "javax/xml/ws",
    ),
}


@dataclass(frozen=True)
class Product:
    """A named product family and the package paths it owns."""

    description: str
    packages: FrozenSet[str]

    def owns(self, package: str) -> bool:
        """Return True when a listed package path contains ``package``."""
        if not package:
            return False
        return any(package in listed for listed in self.packages)


class ProductCatalog:
    """Immutable collection of products, injected into each archive index."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: Tuple[Product, ...] = tuple(products)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Sequence[str]]) -> "ProductCatalog":
        products = [
            Product(description=name, packages=frozenset(p.strip("/") for p in packages if p.strip()))
            for name, packages in mapping.items()
        ]
        return cls(products)

    @classmethod
    def default(cls) -> "ProductCatalog":
        return cls.from_mapping(DEFAULT_PRODUCTS)

    @classmethod
    def empty(cls) -> "ProductCatalog":
        return cls()

    @property
    def products(self) -> Tuple[Product, ...]:
        return self._products

    def belongs(self, package: str) -> List[Product]:
        """Return the products owning ``package``, empty when none do."""
        return [product for product in self._products if product.owns(package)]

    def __len__(self) -> int:
        return len(self._products)


__all__ = ["DEFAULT_PRODUCTS", "Product", "ProductCatalog"]
