"""Bank API HTTP client for fetching account transactions"""

import httpx
from datetime import date
from typing import List
from card_reconciler.domain.models import BankTransaction
from card_reconciler.domain.exceptions import BankAPIError
from card_reconciler.config import settings


class BankClient:
    """Client for external bank transaction API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.bank_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def find_by_date_range(self, start: date, end: date) -> List[BankTransaction]:
        """
        Fetch account transactions dated between start and end (inclusive).

        Raises:
            BankAPIError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/bank/transactions",
                    params={"start": start.isoformat(), "end": end.isoformat()},
                )
                response.raise_for_status()
                data = response.json()

                # Parse and validate transaction data
                return [
                    BankTransaction(
                        id=txn["id"],
                        date=date.fromisoformat(txn["date"]),
                        amount=txn["amount"],
                        description=txn.get("description") or "",
                    )
                    for txn in data.get("transactions", [])
                ]

            except httpx.TimeoutException as e:
                raise BankAPIError(f"Bank API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise BankAPIError(f"Bank API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise BankAPIError(f"Bank API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise BankAPIError(f"Invalid transaction data from bank: {e}") from e
