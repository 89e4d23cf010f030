import requests

from cart_service.exceptions import ProductUnavailable, TransportError
from cart_service.utils.logging import get_logger

log = get_logger(__name__)


class HttpProductClient:
    """
    Availability oracle backed by the product service.

    GET {base_url}/products/{id} -> {"id", "stock", "price"}
    A 404 or short stock means the product is unavailable; anything else that
    goes wrong on the wire is a TransportError, never "available".
    """

    def __init__(self, base_url: str, timeout: float = 10.0, session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _get(self, path: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning(f"Product service request GET {url} failed: {e}")
            raise TransportError(f"Product service unreachable: {e}") from e

    def check_availability(self, product_id: str, quantity: int) -> None:
        resp = self._get(f"/products/{requests.utils.quote(product_id, safe='')}")
        if resp.status_code == 404:
            raise ProductUnavailable(f"Product {product_id} not found")
        if resp.status_code != 200:
            raise TransportError(f"Product service returned unexpected status {resp.status_code}")
        try:
            stock = int(resp.json().get("stock", 0))
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportError(f"Product service sent a malformed product: {e}") from e
        if stock < quantity:
            raise ProductUnavailable(
                f"Product {product_id} has {stock} in stock, {quantity} requested"
            )

    def health_check(self) -> bool:
        try:
            resp = self.http.get(f"{self.base_url}/health", timeout=self.timeout)
            return resp.status_code == 200
        except requests.RequestException:
            return False
