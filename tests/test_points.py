"""
Points ledger tests: SQLite storage and the /api/users routes.
"""

import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from fastapi.testclient import TestClient

from flip_oracle.core.database import Database, normalize_wallet
from flip_oracle.main import create_app

WALLET = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20


class TestNormalizeWallet(unittest.TestCase):
    def test_lowercases_and_strips(self):
        self.assertEqual(normalize_wallet("  0x" + "AB" * 20 + " "), WALLET)

    def test_rejects_malformed(self):
        for bad in ("", None, "0x123", "ab" * 20, "0x" + "zz" * 20):
            self.assertEqual(normalize_wallet(bad), "")


class TestDatabase(unittest.TestCase):
    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.db = Database(Path(self.tmp.name) / "points.db")

    def tearDown(self):
        self.tmp.cleanup()

    def test_new_user_starts_at_zero(self):
        result = self.db.get_or_create_user(WALLET)
        self.assertTrue(result["success"])
        self.assertEqual(result["user"]["points"], 0)
        self.assertFalse(result["user"]["twitterFollowed"])

    def test_flip_points_accumulate(self):
        self.db.award_flip(WALLET, 100)
        result = self.db.award_flip(WALLET.upper().replace("0X", "0x"), 100)
        self.assertEqual(result["points"], 200)
        self.assertEqual(result["pointsAwarded"], 100)
        self.assertEqual(self.db.get_or_create_user(WALLET)["user"]["flips"], 2)

    def test_twitter_follow_paid_once(self):
        first = self.db.award_twitter_follow(WALLET, 10)
        second = self.db.award_twitter_follow(WALLET, 10)

        self.assertTrue(first["success"])
        self.assertFalse(second["success"])
        self.assertEqual(second["points"], 10)
        self.assertEqual(second["message"], "Twitter follow points already awarded")
        self.assertNotIn("error", second)

    def test_referral_paid_once(self):
        self.assertTrue(self.db.award_referral(WALLET, 5)["success"])
        self.assertFalse(self.db.award_referral(WALLET, 5)["success"])
        self.assertTrue(self.db.get_or_create_user(WALLET)["user"]["referralUsed"])

    def test_invalid_wallet(self):
        self.assertFalse(self.db.award_flip("nope", 100)["success"])

    def test_leaderboard_order(self):
        self.db.award_flip(WALLET, 100)
        self.db.award_flip(OTHER, 100)
        self.db.award_flip(OTHER, 100)

        board = self.db.get_leaderboard(limit=10)

        self.assertEqual([row["walletAddress"] for row in board], [OTHER, WALLET])
        self.assertEqual(board[0]["points"], 200)
        self.assertEqual(len(self.db.get_leaderboard(limit=1)), 1)


class TestUserRoutes(unittest.TestCase):
    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.db = Database(Path(self.tmp.name) / "points.db")
        self.patcher = patch("flip_oracle.routers.users.db", self.db)
        self.patcher.start()
        self.client = TestClient(create_app())

    def tearDown(self):
        self.patcher.stop()
        self.tmp.cleanup()

    def test_get_user(self):
        response = self.client.get(f"/api/users/{WALLET}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["walletAddress"], WALLET)

    def test_flip_awards_configured_points(self):
        response = self.client.post(f"/api/users/{WALLET}/flip")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["pointsAwarded"], 100)

    def test_twitter_follow_twice(self):
        self.assertEqual(self.client.post(f"/api/users/{WALLET}/twitter-follow").status_code, 200)
        response = self.client.post(f"/api/users/{WALLET}/twitter-follow")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertFalse(data["success"])
        self.assertEqual(data["points"], 10)
        self.assertEqual(data["message"], "Twitter follow points already awarded")

    def test_referral_twice(self):
        self.client.post(f"/api/users/{WALLET}/referral")
        response = self.client.post(f"/api/users/{WALLET}/referral")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": False, "message": "Referral points already awarded", "points": 5})

    def test_referral(self):
        response = self.client.post(f"/api/users/{WALLET}/referral")
        self.assertEqual(response.json()["pointsAwarded"], 5)

    def test_invalid_wallet(self):
        response = self.client.get("/api/users/not-a-wallet")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid wallet address")

    def test_leaderboard(self):
        self.client.post(f"/api/users/{WALLET}/flip")
        response = self.client.get("/api/users/leaderboard/top", params={"limit": 5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["leaderboard"][0]["walletAddress"], WALLET)

        self.assertEqual(self.client.get("/api/users/leaderboard/top", params={"limit": 0}).status_code, 400)


if __name__ == "__main__":
    unittest.main()
