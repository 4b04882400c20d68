"""
QuickBooks Online client.

Token acquisition and refresh belong to the caller; this client only makes
authenticated reads against ``/v3/company/{realm_id}``.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests
from pydantic import ValidationError as PayloadError

from giftsync.config import settings
from giftsync.exceptions import CollaboratorError
from giftsync.schemas import CompanyDetail, CustomerDetail, ReportParams, SalesReceiptDetail

logger = logging.getLogger(__name__)

QB_API_BASE = {
    "sandbox": "https://sandbox-quickbooks.api.intuit.com/v3/company",
    "production": "https://quickbooks.api.intuit.com/v3/company",
}


def _parse(model, payload: dict):
    try:
        return model.from_quickbooks(payload)
    except (PayloadError, ValueError, TypeError) as e:
        raise CollaboratorError(f"Unusable {model.__name__} payload: {e}") from e


class QuickBooksClient:
    def __init__(
        self,
        access_token: str,
        realm_id: str,
        environment: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        environment = environment or settings.QUICKBOOKS_ENVIRONMENT
        if environment not in QB_API_BASE:
            raise ValueError(f"Unknown QuickBooks environment: {environment}")
        self.access_token = access_token
        self.realm_id = realm_id
        self.base_url = f"{QB_API_BASE[environment]}/{realm_id}"
        self.timeout = timeout or settings.QUICKBOOKS_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def _get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Authenticated GET; any transport or HTTP failure becomes ``CollaboratorError``."""
        url = f"{self.base_url}/{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }
        query = {"minorversion": str(settings.QUICKBOOKS_MINOR_VERSION)}
        query.update(params or {})
        try:
            response = self.http.get(url, headers=headers, params=query, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("QuickBooks request to %s failed: %s", endpoint, e)
            raise CollaboratorError(f"QuickBooks request failed: {e}") from e

        if response.status_code != 200:
            logger.error("QuickBooks API error %s on %s", response.status_code, endpoint)
            raise CollaboratorError(
                f"QuickBooks API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise CollaboratorError("QuickBooks returned a non-JSON response") from e

    def get_customer_by_id(self, customer_id: str) -> CustomerDetail:
        payload = self._get(f"customer/{customer_id}")
        if "Customer" not in payload:
            raise CollaboratorError(f"Customer {customer_id} missing from response")
        return _parse(CustomerDetail, payload)

    def get_company_info(self) -> CompanyDetail:
        payload = self._get(f"companyinfo/{self.realm_id}")
        if "CompanyInfo" not in payload:
            raise CollaboratorError("CompanyInfo missing from response")
        return _parse(CompanyDetail, payload)

    def get_transaction_report(self, params: ReportParams) -> dict:
        return self._get(f"reports/{params.report_type}", params.to_query())

    def get_sales_receipt_by_id(self, sales_receipt_id: str) -> SalesReceiptDetail:
        payload = self._get(f"salesreceipt/{sales_receipt_id}")
        if "SalesReceipt" not in payload:
            raise CollaboratorError(f"SalesReceipt {sales_receipt_id} missing from response")
        return _parse(SalesReceiptDetail, payload)
