from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from vynn.deps import get_current_user
from vynn.models.user import User
from vynn.services import referral_codes
from vynn.services import referrals as referrals_service

router = APIRouter()


class ValidateReferralRequest(BaseModel):
    code: str


class GiftCreditsRequest(BaseModel):
    username: str
    amount: int = Field(..., gt=0)


@router.get("/code")
async def referral_code(user: User = Depends(get_current_user)):
    """Get my standard and premium referral codes (generated on first request)."""
    return await referrals_service.get_codes(user)


@router.post("/validate")
async def referral_validate(body: ValidateReferralRequest):
    """Public: check a code and return the referrer's public identity."""
    referrer = await referral_codes.validate_referral_code(body.code)
    return {"valid": True, "referrer": referrer}


@router.get("/stats")
async def referral_stats(user: User = Depends(get_current_user)):
    return referrals_service.referral_stats(user)


@router.get("/list")
async def referral_list(user: User = Depends(get_current_user)):
    """Users I referred, in referral order."""
    return await referrals_service.list_referrals(user)


@router.get("/referrer")
async def referral_referrer(user: User = Depends(get_current_user)):
    return await referrals_service.get_referrer(user)


@router.get("/credits")
async def referral_credits(user: User = Depends(get_current_user)):
    return {"credits": user.credits}


@router.get("/credits/history")
async def referral_credit_history(user: User = Depends(get_current_user)):
    """Credit transactions, newest first."""
    return referrals_service.credit_history(user)


@router.post("/credits/gift")
async def referral_gift_credits(body: GiftCreditsRequest, user: User = Depends(get_current_user)):
    """Premium only: send credits to another user."""
    remaining = await referrals_service.gift_credits(user, body.username, body.amount)
    return {
        "message": f"Successfully gifted {body.amount} credits to {body.username.lower()}",
        "remaining_credits": remaining,
    }


@router.post("/click/{code}")
async def referral_click(code: str):
    """Public: record a referral link click."""
    referrer = await referrals_service.track_click(code)
    return {"status": "tracked", "username": referrer.username}
