"""
bKash Tokenized Checkout client.

Wraps the four calls the checkout needs:
- token/grant and token/refresh (id token cached in-process)
- create (opens a checkout session and returns the bkashURL)
- execute (captures the payment after the payer approves it)

All responses are returned as the raw bKash JSON dict; callers inspect
``statusCode`` ("0000" on success) and ``transactionStatus``.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError
from app.core.logging_config import logger


BKASH_SUCCESS = "0000"
CHECKOUT_MODE = "0011"  # tokenized checkout without agreement
INTENT_SALE = "sale"


@dataclass
class BkashToken:
    id_token: str
    refresh_token: Optional[str]
    expires_at: float


class BkashClient:
    """Async bKash client with a cached id token"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        app_key: Optional[str] = None,
        app_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = (base_url or settings.BKASH_BASE_URL).rstrip("/")
        self.username = username if username is not None else settings.BKASH_USERNAME
        self.password = password if password is not None else settings.BKASH_PASSWORD
        self.app_key = app_key if app_key is not None else settings.BKASH_APP_KEY
        self.app_secret = app_secret if app_secret is not None else settings.BKASH_APP_SECRET
        self.timeout = timeout or settings.BKASH_TIMEOUT_SECONDS
        self.expiry_margin = settings.BKASH_TOKEN_EXPIRY_MARGIN_SECONDS
        self._transport = transport
        self._clock = clock
        self._token: Optional[BkashToken] = None
        self._token_lock = asyncio.Lock()

    @property
    def token(self) -> Optional[BkashToken]:
        return self._token

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(
                    path,
                    json=payload,
                    headers={"Accept": "application/json", "Content-Type": "application/json", **headers},
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[bKash] {path} returned HTTP {e.response.status_code}: {e.response.text}")
            raise PaymentGatewayError(f"bKash request failed with HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"[bKash] {path} request error: {e}")
            raise PaymentGatewayError("Could not reach bKash")
        except ValueError as e:
            logger.error(f"[bKash] {path} returned invalid JSON: {e}")
            raise PaymentGatewayError("Invalid response from bKash")

    def _credential_headers(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}

    def _store_token(self, data: Dict[str, Any]) -> BkashToken:
        id_token = data.get("id_token")
        if not id_token:
            message = data.get("statusMessage") or data.get("msg") or "Token grant failed"
            logger.error(f"[bKash] Token response without id_token: {data}")
            raise PaymentGatewayError(message, gateway_status=data.get("statusCode"))

        expires_in = int(data.get("expires_in") or 3600)
        self._token = BkashToken(
            id_token=id_token,
            refresh_token=data.get("refresh_token"),
            expires_at=self._clock() + max(expires_in - self.expiry_margin, 0),
        )
        return self._token

    async def grant_token(self) -> BkashToken:
        data = await self._post(
            "/tokenized/checkout/token/grant",
            {"app_key": self.app_key, "app_secret": self.app_secret},
            self._credential_headers(),
        )
        logger.info("[bKash] Granted new id token")
        return self._store_token(data)

    async def refresh_token(self) -> BkashToken:
        """Refresh the id token, granting a new one when no refresh token is held or refresh fails"""
        current = self._token
        if current is None or not current.refresh_token:
            return await self.grant_token()

        try:
            data = await self._post(
                "/tokenized/checkout/token/refresh",
                {
                    "app_key": self.app_key,
                    "app_secret": self.app_secret,
                    "refresh_token": current.refresh_token,
                },
                self._credential_headers(),
            )
            token = self._store_token(data)
            logger.info("[bKash] Refreshed id token")
            return token
        except PaymentGatewayError as e:
            logger.warning(f"[bKash] Token refresh failed, granting a new token: {e}")
            return await self.grant_token()

    async def get_id_token(self, force_refresh: bool = False) -> str:
        async with self._token_lock:
            if force_refresh:
                return (await self.refresh_token()).id_token
            if self._token is None:
                return (await self.grant_token()).id_token
            if self._clock() >= self._token.expires_at:
                return (await self.refresh_token()).id_token
            return self._token.id_token

    async def _authorized_headers(self) -> Dict[str, str]:
        return {
            "Authorization": await self.get_id_token(),
            "X-App-Key": self.app_key,
        }

    async def create_payment(
        self,
        amount: float,
        payer_reference: str,
        merchant_invoice_number: str,
        callback_url: str,
    ) -> Dict[str, Any]:
        payload = {
            "mode": CHECKOUT_MODE,
            "payerReference": payer_reference or " ",
            "callbackURL": callback_url,
            "amount": f"{amount:.2f}",
            "currency": settings.PAYMENT_CURRENCY,
            "intent": INTENT_SALE,
            "merchantInvoiceNumber": merchant_invoice_number,
        }
        data = await self._post("/tokenized/checkout/create", payload, await self._authorized_headers())
        logger.log_payment_event(
            "create",
            payment_id=data.get("paymentID"),
            amount=amount,
            gateway_status=data.get("statusCode"),
        )
        return data

    async def execute_payment(self, payment_id: str) -> Dict[str, Any]:
        data = await self._post(
            "/tokenized/checkout/execute",
            {"paymentID": payment_id},
            await self._authorized_headers(),
        )
        logger.log_payment_event(
            "execute",
            payment_id=payment_id,
            gateway_status=data.get("statusCode"),
            transaction_status=data.get("transactionStatus"),
        )
        return data


def is_completed(execute_response: Dict[str, Any]) -> bool:
    """True when bKash reports the payment as captured"""
    return (
        execute_response.get("statusCode") == BKASH_SUCCESS
        and execute_response.get("transactionStatus") == "Completed"
    )


bkash_client = BkashClient()
