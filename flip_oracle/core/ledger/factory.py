from flip_oracle.config import OracleConfig, SweepConfig
from flip_oracle.core.exceptions import ConfigurationError
from flip_oracle.core.ledger.base import ContractVersion, Ledger


def create_ledger(config: OracleConfig, sweep: SweepConfig, oracle_address: str) -> Ledger:
    """Build the ledger backend named by config.ledger_backend."""
    try:
        version = ContractVersion(config.contract_version)
    except ValueError:
        raise ConfigurationError(
            f"Unknown contract version '{config.contract_version}' (expected 'token' or 'native')"
        ) from None

    if config.ledger_backend == "memory":
        from flip_oracle.core.ledger.memory import MemoryLedger

        return MemoryLedger(oracle_signer=oracle_address, version=version)

    if config.ledger_backend == "onchain":
        from flip_oracle.core.ledger.onchain import OnchainLedger

        try:
            return OnchainLedger(
                rpc_url=config.rpc_url,
                contract_address=config.contract_address,
                chain_id=config.chain_id,
                version=version,
                stake_token=config.stake_token,
                poa=config.poa,
                receipt_timeout=sweep.receipt_timeout,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid ledger settings: {e}") from e

    raise ConfigurationError(f"Unknown ledger backend '{config.ledger_backend}'")
