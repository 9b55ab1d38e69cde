"""External service communication layer."""
import httpx
import logging
import time
from typing import Any, Dict, List

from storefront.config import (
    NOVA_POSHTA_API_KEY,
    NOVA_POSHTA_API_URL,
    ORDERS_ADMIN_URL,
    TELEGRAM_API_URL,
    TELEGRAM_BOT_TOKEN,
    TELEGRAM_CHAT_ID,
)
from storefront.constants import BRANCH_TYPE_OFFICE, BRANCH_TYPE_PARCEL_LOCKER
from storefront.errors import UpstreamError
from storefront.monitoring import (
    external_address_lookup_duration_histogram,
    order_notification_failures_counter,
)

logger = logging.getLogger(__name__)


class ExternalServiceClient:
    """Client for the order notification bot and the shipping address API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        bot_token: str = TELEGRAM_BOT_TOKEN,
        chat_id: str = TELEGRAM_CHAT_ID,
        address_api_key: str = NOVA_POSHTA_API_KEY
    ):
        """
        Initialize external service client.

        Args:
            http_client: Async HTTP client
            bot_token: Telegram bot token for order notifications
            chat_id: Telegram chat receiving order notifications
            address_api_key: Nova Poshta API key
        """
        self.http_client = http_client
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.address_api_key = address_api_key

    async def notify_order_placed(self, order_id: int) -> bool:
        """
        Send the new-order message to the shop chat (fire and forget).

        Failures are logged and counted, never raised.

        Args:
            order_id: Order identifier

        Returns:
            True if the message was accepted
        """
        if not self.bot_token or not self.chat_id:
            logger.warning("Order notification skipped: bot is not configured", extra={
                "order_id": order_id
            })
            return False

        # HTTPXClientInstrumentor already creates spans for HTTP calls
        try:
            response = await self.http_client.post(
                f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": f"Надійшло нове замовлення №{order_id}\n{ORDERS_ADMIN_URL}"
                }
            )
            if response.status_code >= 400:
                order_notification_failures_counter.add(1, {"reason": "http_status"})
                logger.warning("Order notification returned error status", extra={
                    "status_code": response.status_code,
                    "order_id": order_id
                })
                return False
            return True
        except Exception as e:
            order_notification_failures_counter.add(1, {"reason": "connection"})
            logger.error("Failed to send order notification", extra={
                "order_id": order_id,
                "error": str(e)
            })
            return False

    async def _address_api(self, called_method: str, method_properties: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Call the address API and return its ``data`` list.

        Raises:
            UpstreamError: If the call fails or the API reports failure
        """
        start_time = time.time()
        status = "success"
        try:
            response = await self.http_client.post(
                NOVA_POSHTA_API_URL,
                json={
                    "modelName": "Address",
                    "calledMethod": called_method,
                    "methodProperties": method_properties,
                    "apiKey": self.address_api_key
                }
            )
            response.raise_for_status()
            payload = response.json()
            if not payload.get("success"):
                status = "error"
                logger.error("Address API reported failure", extra={
                    "method": called_method,
                    "errors": payload.get("errors")
                })
                raise UpstreamError(f"Address lookup failed: {called_method}")
            return payload.get("data") or []
        except (httpx.HTTPError, ValueError) as e:
            status = "error"
            logger.error("Failed to call address API", extra={
                "method": called_method,
                "error": str(e)
            })
            raise UpstreamError(f"Address lookup failed: {called_method}")
        finally:
            external_address_lookup_duration_histogram.record(
                time.time() - start_time,
                {
                    "method": called_method,
                    "status": status
                }
            )

    async def search_cities(self, prefix: str) -> List[str]:
        """
        Find cities whose name starts with the given text (case-insensitive).

        Args:
            prefix: Beginning of the city name

        Returns:
            City names
        """
        cities = await self._address_api("getCities", {})
        needle = prefix.lower()
        return [
            city["Description"]
            for city in cities
            if city.get("Description", "").lower().startswith(needle)
        ]

    async def search_branches(self, city: str, branch_type: str) -> List[str]:
        """
        List the delivery branches of one kind in a city.

        Args:
            city: City name
            branch_type: ``Відділення`` for post offices; anything else
                selects parcel lockers

        Returns:
            Branch descriptions
        """
        warehouses = await self._address_api("getWarehouses", {
            "CityName": city,
            "Language": "ua"
        })
        kind = BRANCH_TYPE_OFFICE if branch_type == BRANCH_TYPE_OFFICE else BRANCH_TYPE_PARCEL_LOCKER
        return [
            warehouse["Description"]
            for warehouse in warehouses
            if warehouse.get("Description", "").startswith(kind)
        ]
