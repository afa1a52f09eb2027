import os
import tempfile
import unittest
from unittest import mock

from quartermaster.config import constants
from quartermaster.config.settings import Settings


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            cfg = Settings.from_env()

        self.assertEqual(cfg.check_interval, constants.DEFAULT_CHECK_INTERVAL)
        self.assertEqual(cfg.notify_interval, constants.DEFAULT_NOTIFY_INTERVAL)
        self.assertEqual(cfg.repository_file, constants.DEFAULT_REPOSITORY_FILE)
        self.assertEqual(cfg.esi_base_url, constants.DEFAULT_ESI_BASE_URL)
        self.assertEqual(cfg.corporation_id, 0)
        self.assertEqual(cfg.discord_auth_token, "")

    def test_env_overrides(self):
        env = {
            "QM_CORPORATION_ID": "98000001",
            "QM_ALLIANCE_ID": "99000001",
            "QM_CHECK_INTERVAL": "60",
            "QM_DISCORD_CHANNEL_ID": "1234",
            "QM_DISCORD_AUTH_TOKEN": " token ",
            "QM_API_PORT": "not-a-number",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            cfg = Settings.from_env()

        self.assertEqual(cfg.corporation_id, 98000001)
        self.assertEqual(cfg.alliance_id, 99000001)
        self.assertEqual(cfg.check_interval, 60.0)
        self.assertEqual(cfg.discord_channel_id, "1234")
        self.assertEqual(cfg.discord_auth_token, "token")
        self.assertEqual(cfg.api_port, constants.DEFAULT_API_PORT)

    def test_secret_file_is_preferred(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "refresh_token")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("from-file\n")
            env = {
                "QM_EVE_REFRESH_TOKEN": "from-env",
                "QM_EVE_REFRESH_TOKEN_FILE": path,
            }
            with mock.patch.dict(os.environ, env, clear=True):
                cfg = Settings.from_env()

        self.assertEqual(cfg.eve_refresh_token, "from-file")

    def test_missing_secret_file_falls_back_to_env(self):
        env = {
            "QM_EVE_SSO_SECRET": "from-env",
            "QM_EVE_SSO_SECRET_FILE": "/nonexistent/secret",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            cfg = Settings.from_env()

        self.assertEqual(cfg.eve_sso_secret, "from-env")


if __name__ == "__main__":
    unittest.main()
