"""
設定管理モジュールの単体テスト
"""

import os
import unittest
from unittest.mock import patch

from srt_to_vtt.config_handler import (
    DEFAULT_API_URL,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MODEL_NAME,
    ConfigHandler,
    ConverterConfig,
)


class TestConverterConfig(unittest.TestCase):
    """ConverterConfigのテスト"""

    def test_defaults(self):
        config = ConverterConfig()

        self.assertEqual(config.api_url, DEFAULT_API_URL)
        self.assertEqual(config.model_name, DEFAULT_MODEL_NAME)
        self.assertEqual(config.correction_language, "German")
        self.assertEqual(config.timeout, 30)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.max_file_size, 10 * 1024 * 1024)
        self.assertFalse(config.use_charset_detection)
        self.assertFalse(config.correction_enabled)

    def test_correction_enabled(self):
        self.assertTrue(ConverterConfig(api_key="sk-test").correction_enabled)
        self.assertFalse(ConverterConfig(api_key="   ").correction_enabled)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            ConverterConfig(timeout=0)
        with self.assertRaises(ValueError):
            ConverterConfig(max_retries=-1)
        with self.assertRaises(ValueError):
            ConverterConfig(max_file_size=0)


class TestConfigHandler(unittest.TestCase):
    """ConfigHandlerのテスト"""

    def setUp(self):
        self.handler = ConfigHandler()

    def test_validate_url(self):
        self.assertTrue(self.handler.validate_url("https://api.openai.com/v1"))
        self.assertTrue(self.handler.validate_url("http://localhost:1234/v1"))

        self.assertFalse(self.handler.validate_url(""))
        self.assertFalse(self.handler.validate_url(None))
        self.assertFalse(self.handler.validate_url("ftp://example.com"))
        self.assertFalse(self.handler.validate_url("https://"))
        self.assertFalse(self.handler.validate_url("http://localhost:99999"))

    def test_validate_model_name(self):
        self.assertTrue(self.handler.validate_model_name("gpt-3.5-turbo"))
        self.assertTrue(self.handler.validate_model_name("org/model:latest"))

        self.assertFalse(self.handler.validate_model_name(""))
        self.assertFalse(self.handler.validate_model_name("   "))
        self.assertFalse(self.handler.validate_model_name("model name"))

    def test_validate_config(self):
        self.assertTrue(self.handler.validate_config(ConverterConfig(api_key="sk-test")))
        self.assertFalse(self.handler.validate_config(ConverterConfig(api_url="not a url")))
        self.assertFalse(self.handler.validate_config(ConverterConfig(model_name="bad model")))

    def test_validate_config_warns_without_api_key(self):
        with self.assertLogs('srt_to_vtt.config_handler', level='WARNING') as logs:
            self.assertTrue(self.handler.validate_config(ConverterConfig()))
        self.assertTrue(any("OPENAI_API_KEY" in line for line in logs.output))

    @patch.dict(os.environ, {}, clear=True)
    def test_load_from_env_defaults(self):
        config = self.handler.load_from_env()

        self.assertIsNotNone(config)
        self.assertEqual(config.api_url, DEFAULT_API_URL)
        self.assertIsNone(config.api_key)
        self.assertEqual(config.max_file_size, DEFAULT_MAX_FILE_SIZE)
        self.assertFalse(config.use_charset_detection)

    @patch.dict(os.environ, {
        'OPENAI_BASE_URL': 'http://localhost:1234/v1',
        'OPENAI_API_KEY': 'sk-test',
        'CORRECTION_MODEL': 'local-model',
        'CORRECTION_LANGUAGE': 'French',
        'REQUEST_TIMEOUT': '60',
        'MAX_RETRIES': '5',
        'MAX_FILE_SIZE': '2048',
        'USE_CHARSET_DETECTION': 'true',
    }, clear=True)
    def test_load_from_env(self):
        config = self.handler.load_from_env()

        self.assertEqual(config.api_url, 'http://localhost:1234/v1')
        self.assertEqual(config.api_key, 'sk-test')
        self.assertEqual(config.model_name, 'local-model')
        self.assertEqual(config.correction_language, 'French')
        self.assertEqual(config.timeout, 60)
        self.assertEqual(config.max_retries, 5)
        self.assertEqual(config.max_file_size, 2048)
        self.assertTrue(config.use_charset_detection)
        self.assertTrue(config.correction_enabled)

    @patch.dict(os.environ, {'OPENAI_API_KEY': ''}, clear=True)
    def test_load_from_env_empty_api_key(self):
        self.assertIsNone(self.handler.load_from_env().api_key)

    @patch.dict(os.environ, {'REQUEST_TIMEOUT': 'soon'}, clear=True)
    def test_load_from_env_invalid_number(self):
        self.assertIsNone(self.handler.load_from_env())

    @patch.dict(os.environ, {'MAX_RETRIES': '-1'}, clear=True)
    def test_load_from_env_negative_retries(self):
        self.assertIsNone(self.handler.load_from_env())

    @patch.dict(os.environ, {'OPENAI_BASE_URL': 'localhost'}, clear=True)
    def test_load_from_env_invalid_url(self):
        self.assertIsNone(self.handler.load_from_env())


if __name__ == '__main__':
    unittest.main()
