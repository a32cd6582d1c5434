"""
BOS StoreID provider client - signed order placement.

THIS CLIENT DOES NOT:
- Write to the ledger (the workflow persists the result)
- Retry (a failed placement is re-initiated by the user)
- Talk to Telegram

Flow:
1. Generate a fresh ref_id
2. sign = md5(username + api_key + ref_id)
3. POST {username, ref_id, userid, sku_code, sign} as JSON, bounded timeout
4. Normalize the reply to PlacementResult(ref_id, status, raw_response)

Any transport problem (connection error, timeout, HTTP >= 400, body that is
not a JSON object) raises TransportFailure.
"""
import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from vmtopup.core.config import settings
from vmtopup.core.exceptions import TransportFailure
from vmtopup.core.signatures import make_sign

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"


def generate_ref_id() -> str:
    """
    Millisecond timestamp (readable, roughly sortable) + 64 random bits.

    The random suffix is what guarantees uniqueness: two confirmations in the
    same millisecond still get different ids.
    """
    return f"{int(time.time() * 1000)}{secrets.token_hex(8).upper()}"


@dataclass
class PlacementResult:
    ref_id: str
    status: str
    raw_response: Dict[str, Any]


class ProviderClient:
    def __init__(
        self,
        api_url: str,
        username: str,
        api_key: str,
        timeout_seconds: float = 15.0,
        http: Optional[requests.Session] = None,
        ref_id_factory: Callable[[], str] = generate_ref_id,
    ):
        self.api_url = api_url
        self.username = username
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.http = http or requests.Session()
        self.ref_id_factory = ref_id_factory

    @classmethod
    def from_settings(cls) -> "ProviderClient":
        return cls(
            api_url=settings.PROVIDER_API_URL,
            username=settings.PROVIDER_USERNAME,
            api_key=settings.PROVIDER_API_KEY,
            timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def build_payload(self, ref_id: str, target_account_id: str, sku_code: str) -> Dict[str, str]:
        return {
            "username": self.username,
            "ref_id": ref_id,
            "userid": target_account_id,
            "sku_code": sku_code,
            "sign": make_sign(self.username, self.api_key, ref_id),
        }

    def place_order_sync(self, target_account_id: str, sku_code: str) -> PlacementResult:
        ref_id = self.ref_id_factory()
        payload = self.build_payload(ref_id, target_account_id, sku_code)

        logger.info(f"[PROVIDER] Placing ref_id={ref_id} sku={sku_code} userid={target_account_id}")
        try:
            resp = self.http.post(self.api_url, json=payload, timeout=self.timeout_seconds)
        except requests.Timeout as e:
            logger.error(f"[PROVIDER] Timeout after {self.timeout_seconds}s for ref_id={ref_id}")
            raise TransportFailure(f"provider timeout: {e}", ref_id=ref_id) from e
        except requests.RequestException as e:
            logger.error(f"[PROVIDER] Request failed for ref_id={ref_id}: {e}")
            raise TransportFailure(f"provider request failed: {e}", ref_id=ref_id) from e

        if resp.status_code >= 400:
            logger.error(f"[PROVIDER] HTTP {resp.status_code} for ref_id={ref_id}: {resp.text[:500]}")
            raise TransportFailure(f"provider HTTP {resp.status_code}", ref_id=ref_id)

        try:
            body = resp.json()
        except ValueError as e:
            logger.error(f"[PROVIDER] Non-JSON response for ref_id={ref_id}: {resp.text[:500]}")
            raise TransportFailure("provider returned non-JSON body", ref_id=ref_id) from e

        if not isinstance(body, dict):
            logger.error(f"[PROVIDER] Unexpected JSON shape for ref_id={ref_id}: {body!r}")
            raise TransportFailure("provider returned non-object JSON", ref_id=ref_id)

        status = body.get("status")
        status = str(status) if status not in (None, "") else UNKNOWN_STATUS
        logger.info(f"[PROVIDER] ref_id={ref_id} accepted, status={status}")
        return PlacementResult(ref_id=ref_id, status=status, raw_response=body)

    async def place_order(self, target_account_id: str, sku_code: str) -> PlacementResult:
        """Async wrapper: the blocking HTTP call runs in a worker thread."""
        return await asyncio.to_thread(self.place_order_sync, target_account_id, sku_code)
