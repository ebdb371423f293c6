# labsupply/utils/mercury_client.py
import httpx
import logging
from typing import Optional
from urllib.parse import urljoin
from labsupply.config import settings

logger = logging.getLogger(__name__)

class MercuryClient:
    def __init__(self, api_url: Optional[str] = None, token: Optional[str] = None):
        # Accounts-receivable API of the banking provider used for invoicing merchants
        self.api_url = api_url or settings.MERCURY_API_URL
        self.token = token if token is not None else settings.MERCURY_API_TOKEN

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    async def create_customer(self, name: str, email: str) -> str:
        # Register the merchant as an invoicing customer and return its id
        url = urljoin(self.api_url, "ar/customers")
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(timeout=15.0) as client:
            try:
                response = await client.post(url, json={"name": name, "email": email}, headers=headers)
                response.raise_for_status()
                return response.json()["id"]
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                try:
                    resp_text = e.response.text if getattr(e, "response", None) is not None else str(e)
                except Exception:
                    resp_text = str(e)
                logger.error("Mercury customer creation error: %s", resp_text)
                raise

mercury_client = MercuryClient()
