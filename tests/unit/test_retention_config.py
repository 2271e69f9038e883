"""
Unit tests for retention configuration loading.
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from partprune.storage.retention_catalog import DEFAULT_CONN_STR
from partprune.storage.retention_config import CONN_STR_ENV, RetentionConfigManager, resolve_conn_str
from partprune.storage.retention_errors import ConfigError


class TestRetentionConfigManager(unittest.TestCase):
    """Test retention configuration loading."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "retention.yaml"

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def _write(self, data):
        with open(self.config_path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                yaml.dump(data, f)

    def test_load_valid_config(self):
        self._write({
            'conn_str': 'host=db user=admin password=quest port=8812',
            'tables': {'trades': 7, 'quotes': 48},
            'dry_run': True,
            'metrics_textfile': '/tmp/partprune.prom',
        })

        manager = RetentionConfigManager(str(self.config_path))

        self.assertEqual(manager.get_tables(), {'trades': 7, 'quotes': 48})
        self.assertEqual(manager.config.conn_str, 'host=db user=admin password=quest port=8812')
        self.assertTrue(manager.config.dry_run)
        self.assertTrue(manager.config.audit_log)
        self.assertEqual(manager.config.metrics_textfile, '/tmp/partprune.prom')

    def test_defaults(self):
        self._write({'tables': {'trades': 7}})

        manager = RetentionConfigManager(str(self.config_path))

        self.assertEqual(manager.config.conn_str, DEFAULT_CONN_STR)
        self.assertFalse(manager.config.dry_run)
        self.assertIsNone(manager.config.metrics_textfile)

    def test_non_positive_amounts_are_not_config_errors(self):
        self._write({'tables': {'trades': 0, 'quotes': -5}})

        manager = RetentionConfigManager(str(self.config_path))

        self.assertEqual(manager.get_tables(), {'trades': 0, 'quotes': -5})

    def test_table_order_preserved(self):
        self._write("tables:\n  zeta: 1\n  alpha: 2\n  mid: 3\n")

        manager = RetentionConfigManager(str(self.config_path))

        self.assertEqual(list(manager.get_tables()), ['zeta', 'alpha', 'mid'])

    def test_missing_file(self):
        with self.assertRaises(ConfigError) as ctx:
            RetentionConfigManager(str(Path(self.temp_dir) / "missing.yaml"))
        self.assertIn("error opening config", str(ctx.exception))

    def test_invalid_yaml(self):
        self._write("tables: [trades: 7\n")
        with self.assertRaises(ConfigError):
            RetentionConfigManager(str(self.config_path))

    def test_top_level_not_mapping(self):
        self._write("- trades\n- quotes\n")
        with self.assertRaises(ConfigError):
            RetentionConfigManager(str(self.config_path))

    def test_missing_tables(self):
        self._write({'conn_str': 'host=db'})
        with self.assertRaises(ConfigError):
            RetentionConfigManager(str(self.config_path))

    def test_non_integer_amount(self):
        self._write({'tables': {'trades': 'seven'}})
        with self.assertRaises(ConfigError):
            RetentionConfigManager(str(self.config_path))

    def test_config_error_is_startup_error(self):
        self._write("")
        with self.assertRaises(ConfigError) as ctx:
            RetentionConfigManager(str(self.config_path))
        self.assertEqual(ctx.exception.kind, "startup")


class TestResolveConnStr:
    """Test cases for connection string precedence."""

    @pytest.fixture(autouse=True)
    def no_dotenv(self, monkeypatch):
        monkeypatch.delenv(CONN_STR_ENV, raising=False)
        with patch('partprune.storage.retention_config.load_dotenv'):
            yield

    def test_override_wins(self, monkeypatch):
        monkeypatch.setenv(CONN_STR_ENV, "host=env")
        assert resolve_conn_str("host=cli", "host=config") == "host=cli"

    def test_environment_over_config(self, monkeypatch):
        monkeypatch.setenv(CONN_STR_ENV, "host=env")
        assert resolve_conn_str(None, "host=config") == "host=env"

    def test_config_value(self):
        assert resolve_conn_str(None, "host=config") == "host=config"

    def test_default(self):
        assert resolve_conn_str() == DEFAULT_CONN_STR
