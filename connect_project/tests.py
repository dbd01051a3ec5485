from __future__ import annotations

import importlib
import os
from unittest import mock

from django.test import SimpleTestCase

from connect_project import settings as project_settings


class SettingsEnvironmentTests(SimpleTestCase):
    def _reload(self):
        self.addCleanup(importlib.reload, project_settings)
        return importlib.reload(project_settings)

    def test_dotenv_file_is_loaded_from_project_root(self):
        with mock.patch("dotenv.load_dotenv") as load:
            reloaded = self._reload()
        load.assert_called_once_with(reloaded.BASE_DIR / ".env")

    def test_environment_drives_deployment_values(self):
        env = {
            "DJANGO_DEBUG": "yes",
            "DJANGO_ALLOWED_HOSTS": "connect.example.com, ,api.example.com",
            "DATABASE_PATH": "/srv/connect/db.sqlite3",
            "LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, env), mock.patch("dotenv.load_dotenv"):
            reloaded = self._reload()
        self.assertTrue(reloaded.DEBUG)
        self.assertEqual(reloaded.ALLOWED_HOSTS, ["connect.example.com", "api.example.com"])
        self.assertEqual(reloaded.DATABASES["default"]["NAME"], "/srv/connect/db.sqlite3")
        self.assertEqual(reloaded.LOGGING["loggers"]["leave"]["level"], "DEBUG")
