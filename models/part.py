from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class Part:
    """
    Read snapshot of a catalog part.

    The model tag is not a separate field: it lives inside the designation text
    (e.g. "AMORTISSEUR AV G CELERIO").
    """

    designation: str
    reference: str
    stock: int = 0
    unit_price: Decimal | None = None
    id: Any = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if self.stock is None or self.stock < 0:
            object.__setattr__(self, "stock", 0)
        if self.unit_price is not None and not isinstance(self.unit_price, Decimal):
            object.__setattr__(self, "unit_price", Decimal(str(self.unit_price)))

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def is_available(self) -> bool:
        """Sellable right now: in stock and priced."""
        return self.stock > 0 and self.unit_price is not None


@dataclass(frozen=True)
class ScoredPart:
    part: Part
    score: int

    @property
    def stock(self) -> int:
        return self.part.stock

    @property
    def designation(self) -> str:
        return self.part.designation

    @property
    def reference(self) -> str:
        return self.part.reference

    def sort_key(self) -> tuple:
        # score desc, stock desc, then reference for a stable total order
        return (-self.score, -self.part.stock, self.part.reference.upper(), self.part.designation.upper())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.part.id,
            "designation": self.part.designation,
            "reference": self.part.reference,
            "unit_price": str(self.part.unit_price) if self.part.unit_price is not None else None,
            "stock": self.part.stock,
            "available": self.part.is_available,
            "score": self.score,
        }


def filter_available(parts: list[ScoredPart]) -> list[ScoredPart]:
    """Keep only parts that are in stock and have a price."""
    return [p for p in parts if p.part.is_available]
