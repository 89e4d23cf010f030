from typing import Dict, Optional

from cart_service.exceptions import ProductUnavailable, TransportError


class MockProductCatalog:
    """
    In-memory availability oracle for local runs and tests.
    Unknown products are unavailable; `fail_with` simulates a transport outage.
    """

    def __init__(self, stock: Optional[Dict[str, int]] = None):
        self.stock = dict(stock or {})
        self.fail_with: Optional[Exception] = None
        self.calls = []

    def set_stock(self, product_id: str, stock: int):
        self.stock[product_id] = stock

    def check_availability(self, product_id: str, quantity: int) -> None:
        self.calls.append((product_id, quantity))
        if self.fail_with is not None:
            raise TransportError(f"Product service unreachable: {self.fail_with}")
        available = self.stock.get(product_id)
        if available is None or available < quantity:
            raise ProductUnavailable()

    def health_check(self) -> bool:
        return self.fail_with is None
