"""
HTTP client for the store API and the checkout flow built on it.

Credentials are read from the client store on every call and sent in the
``Authorization`` header of that request only.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from cart import CartStore
from client_store import AUTH_KEY, ClientStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, body: Optional[Dict[str, Any]] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.body = body or {}


class ShopClient:
    def __init__(self, base_url: str, store: ClientStore, session=None):
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.session = session or requests.Session()

    # Session state

    @property
    def auth(self) -> Optional[Dict[str, Any]]:
        return self.store.read(AUTH_KEY)

    @property
    def is_authenticated(self) -> bool:
        return bool((self.auth or {}).get("token"))

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return (self.auth or {}).get("user")

    def _headers(self) -> Dict[str, str]:
        token = (self.auth or {}).get("token")
        return {"Authorization": token} if token else {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self.session.request(method, f"{self.base_url}{API_PREFIX}{path}", headers=self._headers(), **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            if not isinstance(body, dict):
                body = {}
            raise ApiError(response.status_code, body.get("message") or f"HTTP {response.status_code}", body)
        return body

    # Auth

    def register(self, **fields) -> Dict[str, Any]:
        return self._request("POST", "/auth/register", json=fields)["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.store.write(AUTH_KEY, {"user": body["user"], "token": body["token"]})
        return body["user"]

    def logout(self) -> None:
        self.store.clear(AUTH_KEY)

    def forgot_password(self, email: str, answer: str, new_password: str) -> None:
        self._request("POST", "/auth/forgot-password", json={"email": email, "answer": answer, "newPassword": new_password})

    def update_profile(self, **fields) -> Dict[str, Any]:
        user = self._request("PUT", "/auth/profile", json=fields)["updatedUser"]
        self.store.write(AUTH_KEY, {**(self.auth or {}), "user": user})
        return user

    def orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/auth/orders")["orders"]

    # Catalog

    def categories(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/category/get-category")["category"]

    def products(self, page: int = 1) -> List[Dict[str, Any]]:
        return self._request("GET", f"/product/product-list/{page}")["products"]

    def product(self, slug: str) -> Dict[str, Any]:
        return self._request("GET", f"/product/get-product/{slug}")["product"]

    def filter_products(self, checked: List[str], radio: List[float]) -> List[Dict[str, Any]]:
        return self._request("POST", "/product/product-filters", json={"checked": checked, "radio": radio})["products"]

    def search(self, keyword: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/product/search/{quote(keyword, safe='')}")["products"]

    # Payment

    def client_token(self) -> str:
        return self._request("GET", "/product/braintree/token")["clientToken"]

    def pay(self, nonce: str, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._request("POST", "/product/braintree/payment", json={"nonce": nonce, "cart": lines})["order"]


class CheckoutState(Enum):
    IDLE = "idle"
    LOGIN_REQUIRED = "login_required"
    TOKEN_READY = "token_ready"
    TOKEN_FAILED = "token_failed"
    PAID = "paid"
    DECLINED = "declined"
    FAILED = "failed"


class CheckoutFlow:
    """One checkout attempt.

    ``start`` fetches a client token for signed-in users; guests stop at
    LOGIN_REQUIRED and never reach the gateway. ``pay`` asks
    ``nonce_provider`` for a nonce, submits the cart and inspects the payment
    recorded on the returned order. The cart is cleared only when that
    payment succeeded.
    """

    def __init__(self, client: ShopClient, cart: CartStore, nonce_provider: Callable[[str], str]):
        self.client = client
        self.cart = cart
        self.nonce_provider = nonce_provider
        self.state = CheckoutState.IDLE
        self.client_token: Optional[str] = None
        self.order: Optional[Dict[str, Any]] = None
        self.error: Optional[ApiError] = None

    def start(self) -> CheckoutState:
        if not self.client.is_authenticated:
            self.state = CheckoutState.LOGIN_REQUIRED
            return self.state
        try:
            self.client_token = self.client.client_token()
        except ApiError as exc:
            logger.warning("Could not get a client token: %s", exc)
            self.error = exc
            self.state = CheckoutState.TOKEN_FAILED
            return self.state
        self.state = CheckoutState.TOKEN_READY
        return self.state

    def pay(self) -> CheckoutState:
        if self.state is not CheckoutState.TOKEN_READY:
            raise RuntimeError(f"Cannot pay from state {self.state.value}")
        nonce = self.nonce_provider(self.client_token)
        try:
            self.order = self.client.pay(nonce, self.cart.lines)
        except ApiError as exc:
            logger.warning("Payment request failed: %s", exc)
            self.error = exc
            self.state = CheckoutState.FAILED
            return self.state
        if self.order.get("payment", {}).get("success"):
            self.cart.clear()
            self.state = CheckoutState.PAID
        else:
            self.state = CheckoutState.DECLINED
        return self.state
