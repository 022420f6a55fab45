from pydantic import BaseModel


class Credential(BaseModel):
    """An upstream platform credential for one store.

    Attributes:
        token:              OAuth access token for the platform API.
        platform_store_id:  The store's id on the platform, part of every API path.
        source:             Which resolution tier produced it (e.g. "token_manager").
    """

    token: str
    platform_store_id: str
    source: str = "unknown"
