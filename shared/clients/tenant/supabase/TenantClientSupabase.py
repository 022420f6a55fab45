from shared.clients.tenant.TenantClientInterface import TenantClientInterface
from shared.clients.tenant.models.TenantRecord import TenantRecord
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class TenantClientSupabase(TenantClientInterface):
    """
    Tenant records stored in a Supabase table, accessed through its PostgREST API.
    """

    COLUMNS = "id,user_id,name,platform_store_id,access_token,is_active,last_sync_at"

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._table = self.get_config_val("TABLE", default="stores", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Supabase"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="TABLE", val_type="string", default="stores"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"apikey": self._api_key, "Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return f"{self._base_url.rstrip('/')}/rest/v1"

    def _get_endpoint_healthcheck(self) -> str:
        return f"/{self._table}?select=id&limit=1"

    def _get_endpoint_table(self) -> str:
        return f"/{self._table}"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_store(self, store_id: str) -> TenantRecord | None:
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_table(),
            params={"select": self.COLUMNS, "id": f"eq.{store_id}", "limit": 1},
            raise_on_error=True,
        )
        rows = response.json()
        return TenantRecord(**rows[0]) if rows else None

    async def do_fetch_active_stores(self) -> list[TenantRecord]:
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_table(),
            params={"select": self.COLUMNS, "is_active": "eq.true"},
            raise_on_error=True,
        )
        return [TenantRecord(**row) for row in response.json()]

    async def do_fetch_active_stores_for_user(self, user_id: str) -> list[TenantRecord]:
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_table(),
            params={"select": self.COLUMNS, "is_active": "eq.true", "user_id": f"eq.{user_id}"},
            raise_on_error=True,
        )
        return [TenantRecord(**row) for row in response.json()]

    async def _do_patch_store(self, store_id: str, values: dict) -> TenantRecord | None:
        response = await self.do_request(
            method="PATCH",
            endpoint=self._get_endpoint_table(),
            params={"id": f"eq.{store_id}", "select": self.COLUMNS},
            json=values,
            additional_headers={"Prefer": "return=representation"},
            raise_on_error=True,
        )
        rows = response.json()
        if not rows:
            self.logging.warning("Tenant record %s not found while updating %s.", store_id, ", ".join(values))
            return None
        return TenantRecord(**rows[0])
