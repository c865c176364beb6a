from typing import Dict

from flip_oracle.core.ledger.base import Side


class CoinflipGame:
    """
    Payout rule of the ledger contract: even-odds flip paying 1.95x on a win.

    Amounts are integers in the stake token's smallest unit, so the
    multiplier is applied in basis points and rounded down like the contract.
    """

    # 19500 bps = 1.95x, a 2.5% house edge
    PAYOUT_BPS = 19_500
    BPS_DENOMINATOR = 10_000

    def payout_for(self, amount: int) -> int:
        return amount * self.PAYOUT_BPS // self.BPS_DENOMINATOR

    def settle(self, amount: int, guess: Side, outcome: Side) -> Dict:
        """
        Resolve a wager once the outcome is known.

        Returns:
            Dict with won, payout_total and profit (profit is 0 on a loss)
        """
        if amount < 0:
            raise ValueError("amount must not be negative")

        won = Side(guess) == Side(outcome)
        payout_total = self.payout_for(amount) if won else 0

        return {
            "guess": Side(guess),
            "outcome": Side(outcome),
            "won": won,
            "amount_in": amount,
            "payout_total": payout_total,
            "profit": payout_total - amount if won else 0,
        }


# Singleton instance
coinflip_game = CoinflipGame()
