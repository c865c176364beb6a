import json
import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from flip_oracle.config import DEFAULT_CHAIN_ID, OracleConfig, load_config
from flip_oracle.core.exceptions import ConfigurationError


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.path = Path(self.tmp.name) / "config.json"

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults_without_file(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_config(self.path)
        self.assertEqual(config.server.port, 3001)
        self.assertEqual(config.oracle.chain_id, DEFAULT_CHAIN_ID)
        self.assertEqual(config.sweep.batch_size, 5)
        self.assertEqual(config.sweep.block_window, 1000)

    def test_env_overrides_file(self):
        self.path.write_text(json.dumps({"sweep": {"batch_size": 3}, "oracle": {"rpc_url": "http://file"}}))
        env = {"RPC_URL": "http://env", "SWEEP_DELAY_SECONDS": "0.25", "RPC_POA": "true"}
        with patch.dict(os.environ, env, clear=True):
            config = load_config(self.path)
        self.assertEqual(config.oracle.rpc_url, "http://env")
        self.assertEqual(config.sweep.batch_size, 3)
        self.assertEqual(config.sweep.delay_seconds, 0.25)
        self.assertTrue(config.oracle.poa)

    def test_frontend_chain_id_fallback(self):
        with patch.dict(os.environ, {"VITE_CHAIN_ID": "57073"}, clear=True):
            self.assertEqual(load_config(self.path).oracle.chain_id, 57073)
        with patch.dict(os.environ, {"VITE_CHAIN_ID": "57073", "CHAIN_ID": "1"}, clear=True):
            self.assertEqual(load_config(self.path).oracle.chain_id, 1)

    def test_bad_chain_id_is_reported_missing(self):
        for value in ("abc", "0", "-5"):
            with patch.dict(os.environ, {"CHAIN_ID": value}, clear=True):
                config = load_config(self.path)
            self.assertIsNone(config.oracle.chain_id, value)
            self.assertIn("chain_id", config.oracle.missing_fields())


class TestOracleConfig(unittest.TestCase):
    def test_non_positive_chain_id_is_missing(self):
        config = OracleConfig(
            rpc_url="http://rpc", signing_key="0xkey", contract_address="0xabc", server_secret="0xseed", chain_id=0
        )
        self.assertEqual(config.missing_fields(), ["chain_id"])
        with self.assertRaises(ConfigurationError):
            config.require()

    def test_missing_fields(self):
        config = OracleConfig(rpc_url="http://rpc", signing_key="  ")
        self.assertEqual(config.missing_fields(), ["signing_key", "contract_address", "server_secret"])
        with self.assertRaises(ConfigurationError) as ctx:
            config.require()
        self.assertEqual(ctx.exception.to_dict()["required"], config.missing_fields())

    def test_secrets_never_shown(self):
        config = OracleConfig(signing_key="0xkey", server_secret="0xseed", cron_secret="cron")
        view = config.public_view()
        for name in ("signing_key", "server_secret", "cron_secret"):
            self.assertNotIn(name, view)
        self.assertTrue(view["cron_protected"])
        self.assertNotIn("0xkey", repr(config))
        self.assertNotIn("0xseed", repr(config))


if __name__ == "__main__":
    unittest.main()
