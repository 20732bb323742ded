from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from website_improver.features.auth.dependencies import get_current_user_id
from website_improver.features.credits.schemas.credits import CreditBalanceResponse
from website_improver.features.credits.services.credit_ledger import get_account
from website_improver.platform.db.session import get_db
from website_improver.platform.exceptions import NotFoundError
from website_improver.platform.response import api_response

router = APIRouter(prefix="/credits", tags=["Credits"])


@router.get("", response_model=dict, summary="Get the caller's credit balance")
async def get_credits(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    account = await get_account(db, user_id)
    if account is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    balance = CreditBalanceResponse(user_id=account.id, credits=account.credits, plan=account.plan.value)
    return api_response(
        data=balance.model_dump(by_alias=True),
        message="Credit balance retrieved successfully",
    )
