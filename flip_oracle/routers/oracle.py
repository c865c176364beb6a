from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from flip_oracle.core.commitment import UINT256_MAX
from flip_oracle.core.logger import get_logger
from flip_oracle.core.resolver import OracleResolver, get_resolver
from flip_oracle.core.security import limiter, require_cron_secret, resolve_rate_limit

logger = get_logger("api.oracle")

router = APIRouter(prefix="/oracle", tags=["oracle"])


# ==================== Request Models ====================

class ResolveBetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Browsers send ids as decimal strings because they overflow JS numbers
    bet_id: int = Field(alias="betId", ge=0, le=UINT256_MAX)


# ==================== Endpoints ====================

@router.api_route("/check-pending", methods=["GET", "POST"])
async def check_pending(
    request: Request,
    _authorized: bool = Depends(require_cron_secret),
    resolver: OracleResolver = Depends(get_resolver),
):
    """Sweep recent blocks and resolve a batch of pending bets (cron target)."""
    report = await resolver.sweep()
    return report.to_dict()


@router.post("/resolve-bet")
@limiter.limit(resolve_rate_limit)
async def resolve_bet(
    request: Request,
    data: ResolveBetRequest,
    resolver: OracleResolver = Depends(get_resolver),
):
    """Resolve a single bet right after the player placed it."""
    result = await resolver.resolve_bet(data.bet_id)

    if result.not_pending:
        return {
            "success": True,
            "betId": str(data.bet_id),
            "pending": False,
            "status": result.status.label,
            "message": "Bet is not pending",
        }

    return {
        "success": True,
        "betId": str(data.bet_id),
        "transactionHash": result.tx_hash,
        "blockNumber": result.block_number,
        "outcome": result.outcome.label,
        "message": "Bet resolved successfully",
    }
