from datetime import datetime

from shared.clients.commerce.CommerceClientInterface import CommerceClientInterface
from shared.clients.commerce.models.Store import StoreProfile
from shared.clients.commerce.models.Product import Product
from shared.clients.commerce.models.Order import Order
from shared.clients.commerce.models.Customer import Customer
from shared.clients.commerce.models.common import Address
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.credentials import Credential


class CommerceClientTiendanube(CommerceClientInterface):
    def __init__(self, helper_config: HelperConfig, credential: Credential):
        super().__init__(helper_config=helper_config, credential=credential)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.tiendanube.com/v1", val_type="string")
        self._user_agent = self.get_config_val("USER_AGENT", default="CommerceRagBridge (support@example.com)", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Tiendanube"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.tiendanube.com/v1"),
            EnvConfig(env_key="USER_AGENT", val_type="string", default="CommerceRagBridge (support@example.com)"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # the platform expects "Authentication", not "Authorization"
        return {"Authentication": f"bearer {self.credential.token}"}

    def _get_default_headers(self) -> dict:
        return {"User-Agent": self._user_agent, "Content-Type": "application/json"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return f"{self._base_url.rstrip('/')}/{self.credential.platform_store_id}"

    def _get_endpoint_healthcheck(self) -> str:
        return "/store"

    def _get_endpoint_store(self) -> str:
        return "/store"

    def _get_endpoint_products(self) -> str:
        return "/products"

    def _get_endpoint_orders(self) -> str:
        return "/orders"

    def _get_endpoint_customers(self) -> str:
        return "/customers"

    def _get_pagination_params(self, page: int, page_size: int) -> dict:
        return {"page": page, "per_page": page_size}

    def _get_orders_since_params(self, since: datetime) -> dict:
        return {"created_at_min": since.strftime("%Y-%m-%dT%H:%M:%S%z")}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_store(self, response: dict) -> StoreProfile:
        return StoreProfile(
            id=response.get("id", self.credential.platform_store_id),
            name=response.get("name"),
            description=response.get("description"),
            url=response.get("url_with_protocol") or response.get("original_domain"),
            email=response.get("email") or response.get("contact_email"),
            phone=response.get("phone"),
            address=response.get("address"),
            country=response.get("country"),
            currency=response.get("main_currency"),
            language=response.get("main_language"),
            business_name=response.get("business_name"),
            created_at=response.get("created_at"),
        )

    def _parse_product(self, item: dict) -> Product:
        return Product(
            id=item.get("id"),
            name=item.get("name"),
            description=item.get("description"),
            handle=item.get("handle"),
            brand=item.get("brand"),
            published=item.get("published"),
            categories=[{"id": c.get("id"), "name": c.get("name")} for c in item.get("categories") or []],
            variants=[
                {
                    "id": v.get("id"),
                    "sku": v.get("sku"),
                    "price": v.get("price"),
                    "promotional_price": v.get("promotional_price"),
                    "stock": v.get("stock"),
                    "values": v.get("values"),
                }
                for v in item.get("variants") or []
            ],
            tags=item.get("tags"),
            seo_title=item.get("seo_title"),
            seo_description=item.get("seo_description"),
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
        )

    def _parse_order(self, item: dict) -> Order:
        customer = item.get("customer") or None
        return Order(
            id=item.get("id"),
            number=item.get("number"),
            status=item.get("status"),
            payment_status=item.get("payment_status"),
            shipping_status=item.get("shipping_status"),
            currency=item.get("currency"),
            subtotal=item.get("subtotal"),
            discount=item.get("discount"),
            total=item.get("total"),
            shipping_cost=item.get("shipping_cost_customer"),
            customer={"id": customer.get("id"), "name": customer.get("name"), "email": customer.get("email")} if customer else None,
            products=[
                {
                    "product_id": p.get("product_id"),
                    "name": p.get("name"),
                    "price": p.get("price"),
                    "quantity": p.get("quantity") or 0,
                    "sku": p.get("sku"),
                }
                for p in item.get("products") or []
            ],
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
        )

    def _parse_customer(self, item: dict) -> Customer:
        address = item.get("default_address") or None
        return Customer(
            id=item.get("id"),
            name=item.get("name"),
            email=item.get("email"),
            phone=item.get("phone"),
            total_spent=item.get("total_spent"),
            total_spent_currency=item.get("total_spent_currency"),
            last_order_id=item.get("last_order_id"),
            default_address=Address(
                address=address.get("address"),
                city=address.get("city"),
                province=address.get("province"),
                country=address.get("country"),
                zipcode=address.get("zipcode"),
            ) if address else None,
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
        )
