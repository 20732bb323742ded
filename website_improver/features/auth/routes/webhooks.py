import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from website_improver.features.credits.models.user_account import PlanTier
from website_improver.features.credits.schemas.credits import IdentityEvent
from website_improver.features.credits.services.credit_ledger import provision_account
from website_improver.platform.config import settings
from website_improver.platform.db.session import get_db
from website_improver.platform.exceptions import InputValidationError, UnauthorizedError
from website_improver.platform.logger import get_logger
from website_improver.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def verify_webhook_secret(x_webhook_secret: Optional[str] = Header(None)) -> None:
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, settings.IDENTITY_WEBHOOK_SECRET):
        raise UnauthorizedError("Invalid webhook secret")


def _primary_email(data: dict) -> Optional[str]:
    if data.get("email"):
        return data["email"]
    addresses = data.get("email_addresses") or []
    if addresses and isinstance(addresses[0], dict):
        return addresses[0].get("email_address")
    return None


@router.post(
    "/identity",
    response_model=dict,
    summary="Identity provider events",
    description="Provisions a credit account when the identity provider creates a user",
    dependencies=[Depends(verify_webhook_secret)],
)
async def identity_webhook(event: IdentityEvent, db: AsyncSession = Depends(get_db)):
    if event.type == "user.created":
        user_id = event.data.get("id")
        if not user_id:
            raise InputValidationError("user.created event is missing the user id")

        account = await provision_account(
            db,
            user_id=str(user_id),
            email=_primary_email(event.data),
            plan=PlanTier.free,
            credits=settings.FREE_CREDIT_ALLOCATION,
        )
        return api_response(
            data={"userId": account.id, "credits": account.credits},
            message="User account provisioned",
        )

    # user.deleted and anything else: acknowledged, no ledger change
    logger.info(f"Ignoring identity event {event.type}")
    return api_response(data={"type": event.type}, message="Event acknowledged")
