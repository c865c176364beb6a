"""
Off-chain points ledger.
Uses SQLite to track points, flip counts and one-time rewards per wallet address.
"""

import re
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from flip_oracle.config import settings
from flip_oracle.core.logger import get_logger

logger = get_logger("database")

WALLET_RE = re.compile(r"^0x[0-9a-f]{40}$")


def normalize_wallet(wallet_address: str) -> str:
    """Lower-cased, stripped address, or "" if it is not a 20-byte hex address."""
    if not wallet_address:
        return ""
    address = wallet_address.strip().lower()
    return address if WALLET_RE.match(address) else ""


class Database:
    """Thread-safe SQLite wrapper keyed by wallet address."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._local = threading.local()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initializing database at {self.db_path}")
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    def _init_db(self):
        conn = self._get_connection()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                wallet_address TEXT PRIMARY KEY,
                points INTEGER NOT NULL DEFAULT 0,
                flips INTEGER NOT NULL DEFAULT 0,
                twitter_followed INTEGER NOT NULL DEFAULT 0,
                referral_used INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                last_active TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_users_points ON users (points DESC)")
        conn.commit()

    @staticmethod
    def _to_public(row: sqlite3.Row) -> Dict:
        return {
            "walletAddress": row["wallet_address"],
            "points": row["points"],
            "flips": row["flips"],
            "twitterFollowed": bool(row["twitter_followed"]),
            "referralUsed": bool(row["referral_used"]),
        }

    def _fetch(self, address: str) -> Optional[sqlite3.Row]:
        cursor = self._get_connection().execute(
            "SELECT * FROM users WHERE wallet_address = ?", (address,)
        )
        return cursor.fetchone()

    def _ensure_user(self, address: str):
        conn = self._get_connection()
        cursor = conn.execute(
            "INSERT OR IGNORE INTO users (wallet_address, last_active) VALUES (?, ?)",
            (address, datetime.now().isoformat()),
        )
        if cursor.rowcount:
            logger.info(f"Created user {address}")

    # ==================== Users ====================

    def get_or_create_user(self, wallet_address: str) -> Dict:
        address = normalize_wallet(wallet_address)
        if not address:
            return {"success": False, "error": "Invalid wallet address"}

        self._ensure_user(address)
        self._get_connection().commit()
        return {"success": True, "user": self._to_public(self._fetch(address))}

    def award_flip(self, wallet_address: str, points: int) -> Dict:
        address = normalize_wallet(wallet_address)
        if not address:
            return {"success": False, "error": "Invalid wallet address"}

        conn = self._get_connection()
        self._ensure_user(address)
        conn.execute(
            "UPDATE users SET points = points + ?, flips = flips + 1, last_active = ? WHERE wallet_address = ?",
            (points, datetime.now().isoformat(), address),
        )
        conn.commit()

        user = self._fetch(address)
        return {
            "success": True,
            "message": f"Awarded {points} points for coin flip",
            "points": user["points"],
            "pointsAwarded": points,
        }

    def _award_once(self, wallet_address: str, flag: str, points: int, reason: str) -> Dict:
        address = normalize_wallet(wallet_address)
        if not address:
            return {"success": False, "error": "Invalid wallet address"}

        conn = self._get_connection()
        self._ensure_user(address)
        # the flag check and the award happen in one statement so double-clicks cannot double pay
        cursor = conn.execute(
            f"UPDATE users SET points = points + ?, {flag} = 1, last_active = ? "
            f"WHERE wallet_address = ? AND {flag} = 0",
            (points, datetime.now().isoformat(), address),
        )
        conn.commit()

        user = self._fetch(address)
        if not cursor.rowcount:
            return {
                "success": False,
                "message": f"{reason.capitalize()} points already awarded",
                "points": user["points"],
            }

        logger.info(f"Awarded {points} {reason} points to {address}")
        return {
            "success": True,
            "message": f"Awarded {points} points for {reason}",
            "points": user["points"],
            "pointsAwarded": points,
        }

    def award_twitter_follow(self, wallet_address: str, points: int) -> Dict:
        return self._award_once(wallet_address, "twitter_followed", points, "Twitter follow")

    def award_referral(self, wallet_address: str, points: int) -> Dict:
        return self._award_once(wallet_address, "referral_used", points, "referral")

    def get_leaderboard(self, limit: int = 10) -> List[Dict]:
        """Top wallets by points; ties go to the wallet with more flips."""
        cursor = self._get_connection().execute(
            """
            SELECT wallet_address, points, flips
            FROM users
            ORDER BY points DESC, flips DESC, created_at ASC
            LIMIT ?
        """,
            (limit,),
        )
        return [
            {"walletAddress": row["wallet_address"], "points": row["points"], "flips": row["flips"]}
            for row in cursor.fetchall()
        ]


db = Database(settings.paths.get_db_path())
