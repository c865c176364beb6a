import unittest

from flip_oracle.core.coinflip import coinflip_game
from flip_oracle.core.ledger.base import Side


class TestCoinflipPayout(unittest.TestCase):
    def test_win_pays_195_percent(self):
        result = coinflip_game.settle(100, Side.HEADS, Side.HEADS)
        self.assertTrue(result["won"])
        self.assertEqual(result["payout_total"], 195)
        self.assertEqual(result["profit"], 95)

    def test_loss_pays_nothing(self):
        result = coinflip_game.settle(100, Side.HEADS, Side.TAILS)
        self.assertFalse(result["won"])
        self.assertEqual(result["payout_total"], 0)
        self.assertEqual(result["profit"], 0)

    def test_rounds_down(self):
        self.assertEqual(coinflip_game.payout_for(1), 1)
        self.assertEqual(coinflip_game.payout_for(3), 5)
        self.assertEqual(coinflip_game.payout_for(10**18), 195 * 10**16)

    def test_gas_only_wager(self):
        result = coinflip_game.settle(0, Side.TAILS, Side.TAILS)
        self.assertTrue(result["won"])
        self.assertEqual(result["payout_total"], 0)

    def test_negative_amount(self):
        with self.assertRaises(ValueError):
            coinflip_game.settle(-1, Side.HEADS, Side.HEADS)


class TestSideParsing(unittest.TestCase):
    def test_parse(self):
        self.assertEqual(Side.parse("Heads"), Side.HEADS)
        self.assertEqual(Side.parse(1), Side.TAILS)
        self.assertEqual(Side.parse(Side.HEADS), Side.HEADS)
        with self.assertRaises(ValueError):
            Side.parse("edge")
        with self.assertRaises(ValueError):
            Side.parse(2)


if __name__ == "__main__":
    unittest.main()
