from abc import abstractmethod
from datetime import datetime, timedelta, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.commerce.models.Store import StoreProfile
from shared.clients.commerce.models.Product import Product
from shared.clients.commerce.models.Order import Order
from shared.clients.commerce.models.Customer import Customer
from shared.clients.commerce.models.Analytics import StoreAnalytics
from shared.models.credentials import Credential
from shared.models.errors import ClientRequestError


class CommerceClientInterface(ClientInterface):
    """
    Read-only client for one store on an upstream e-commerce platform.

    Unlike the other clients, a commerce client is bound to a single
    credential, so one instance is created per store and per sync run.
    """

    def __init__(self, helper_config: HelperConfig, credential: Credential):
        self.credential = credential
        super().__init__(helper_config=helper_config)
        self.page_size_max = int(self.get_config_val("PAGE_SIZE_MAX", default=200, val_type="number"))
        self.analytics_days = int(self.get_config_val("ANALYTICS_DAYS", default=30, val_type="number"))
        self.analytics_orders_limit = int(self.get_config_val("ANALYTICS_ORDERS_LIMIT", default=200, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "commerce"

    def get_platform_store_id(self) -> str:
        return self.credential.platform_store_id

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_store(self) -> str:
        """
        Returns the endpoint path for the store profile (e.g. "/store")
        """
        pass

    @abstractmethod
    def _get_endpoint_products(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_orders(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_customers(self) -> str:
        pass

    @abstractmethod
    def _get_pagination_params(self, page: int, page_size: int) -> dict:
        """
        Returns the query parameters selecting one page of a listing.

        Args:
            page (int): 1-based page number.
            page_size (int): Number of records per page.
        """
        pass

    @abstractmethod
    def _get_orders_since_params(self, since: datetime) -> dict:
        """
        Returns the query parameters restricting orders to those created after `since`.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_store(self, response: dict) -> StoreProfile:
        pass

    @abstractmethod
    def _parse_product(self, item: dict) -> Product:
        pass

    @abstractmethod
    def _parse_order(self, item: dict) -> Order:
        pass

    @abstractmethod
    def _parse_customer(self, item: dict) -> Customer:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_store(self, timeout: float | None = None) -> StoreProfile:
        """Fetch the store profile.

        Args:
            timeout (float | None): Request timeout override, used for connectivity tests.

        Raises:
            ClientRequestError: On a non-2xx answer.
        """
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_store(), raise_on_error=True, timeout=timeout)
        return self._parse_store(response.json())

    async def do_fetch_products(self, limit: int = 200) -> list[Product]:
        items = await self._fetch_paginated(self._get_endpoint_products(), limit)
        return [self._parse_product(item) for item in items]

    async def do_fetch_orders(self, limit: int = 100, params: dict | None = None) -> list[Order]:
        items = await self._fetch_paginated(self._get_endpoint_orders(), limit, params=params)
        return [self._parse_order(item) for item in items]

    async def do_fetch_customers(self, limit: int = 100) -> list[Customer]:
        items = await self._fetch_paginated(self._get_endpoint_customers(), limit)
        return [self._parse_customer(item) for item in items]

    async def do_fetch_store_analytics(self, now: datetime | None = None) -> StoreAnalytics:
        """Build an analytics snapshot from the orders of the last ANALYTICS_DAYS days.

        The platform exposes no analytics endpoint, so revenue, order counts
        and best sellers are aggregated locally.
        """
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=self.analytics_days)
        orders = await self.do_fetch_orders(limit=self.analytics_orders_limit, params=self._get_orders_since_params(since))
        analytics = StoreAnalytics.from_orders(orders, now=now)
        self.logging.debug("Built analytics for platform store %s from %d orders.", self.get_platform_store_id(), len(orders))
        return analytics

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _fetch_paginated(self, endpoint: str, limit: int, params: dict | None = None) -> list[dict]:
        """
        Walks the listing page by page until `limit` records were collected or
        the platform runs out of data.

        A not-found answer on the first page is raised, since platforms use it
        for disabled features. On later pages it only marks the end of the listing.
        """
        page_size = max(1, min(limit, self.page_size_max))
        collected: list[dict] = []
        page = 1
        while len(collected) < limit:
            query = dict(params or {})
            query.update(self._get_pagination_params(page, page_size))
            try:
                response = await self.do_request(method="GET", endpoint=endpoint, params=query, raise_on_error=True)
            except ClientRequestError as e:
                if page > 1 and e.is_not_found:
                    break
                raise
            items = response.json()
            if not isinstance(items, list):
                raise ClientRequestError(
                    f"{self.get_engine_name()} API returned an unexpected listing payload for {endpoint}",
                    status_code=response.status_code,
                    url=str(response.url),
                )
            collected.extend(items)
            if len(items) < page_size:
                break
            page += 1
        return collected[:limit]
