from typing import Any, Dict

from pydantic import Field

from website_improver.features.analysis.schemas.site import CamelModel


class CreditBalanceResponse(CamelModel):
    user_id: str
    credits: float
    plan: str


class IdentityEvent(CamelModel):
    """Event delivered by the identity provider's webhook."""
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
