from fastapi import APIRouter, Depends, Query

from flip_oracle.config import settings
from flip_oracle.core.exceptions import ChainError
from flip_oracle.core.log_reader import get_log_lines
from flip_oracle.core.logger import get_logger
from flip_oracle.core.resolver import OracleResolver, get_resolver
from flip_oracle.core.security import require_admin

logger = get_logger("admin")

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/status")
async def oracle_status(resolver: OracleResolver = Depends(get_resolver)):
    """Signer health check: does the ledger trust the key we sign with?"""
    status = {
        "signer": resolver.signer_address,
        "config": resolver.config.public_view(),
        "sweep": resolver.sweep_config.model_dump(),
    }
    try:
        onchain = await resolver.ledger.oracle_signer()
        status["onchainSigner"] = onchain
        status["signerMatches"] = onchain.lower() == resolver.signer_address.lower()
        status["latestBlock"] = await resolver.ledger.get_block_number()
    except ChainError as e:
        logger.warning(f"Status check could not reach the ledger: {e}")
        status["chainError"] = e.message
    return status


@router.get("/logs")
async def oracle_logs(lines: int = Query(100, ge=1, le=2000), level: str = "all"):
    return {"lines": get_log_lines(settings.paths.get_log_path(), lines=lines, level=level)}
