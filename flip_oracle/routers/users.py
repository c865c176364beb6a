from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from flip_oracle.config import settings
from flip_oracle.core.database import db
from flip_oracle.core.logger import get_logger
from flip_oracle.core.security import api_rate_limit, limiter

logger = get_logger("api.users")

router = APIRouter(prefix="/users", tags=["users"])


def _check(result: dict) -> dict:
    """Invalid input is a 400; an already-claimed reward is a normal answer with success False."""
    if result.get("error"):
        raise HTTPException(status_code=400, detail=result["error"])
    return result


@router.get("/leaderboard/top")
async def get_leaderboard(limit: Optional[int] = Query(None, ge=1, le=100)):
    """Top wallets by points."""
    leaderboard = db.get_leaderboard(limit=limit or settings.points.leaderboard_limit)
    return {"success": True, "leaderboard": leaderboard}


@router.get("/{wallet_address}")
async def get_user(wallet_address: str):
    """Get or create the points record for a wallet."""
    return _check(db.get_or_create_user(wallet_address))


@router.post("/{wallet_address}/flip")
@limiter.limit(api_rate_limit)
async def award_flip_points(request: Request, wallet_address: str):
    result = _check(db.award_flip(wallet_address, settings.points.per_flip))
    logger.info(f"Flip points for {wallet_address.lower()}: total {result['points']}")
    return result


@router.post("/{wallet_address}/twitter-follow")
@limiter.limit(api_rate_limit)
async def award_twitter_follow_points(request: Request, wallet_address: str):
    """Trust-based follow reward, paid once per wallet."""
    return _check(db.award_twitter_follow(wallet_address, settings.points.per_twitter_follow))


@router.post("/{wallet_address}/referral")
@limiter.limit(api_rate_limit)
async def award_referral_points(request: Request, wallet_address: str):
    return _check(db.award_referral(wallet_address, settings.points.per_referral))
