"""
設定管理モジュール

SRT→VTT変換システムの設定値を管理し、検証を行います。
"""

import os
import re
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

DEFAULT_API_URL = "https://api.openai.com/v1"
DEFAULT_MODEL_NAME = "gpt-3.5-turbo"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass
class ConverterConfig:
    """変換設定を格納するデータクラス"""
    api_url: str = DEFAULT_API_URL
    api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    correction_language: str = "German"
    timeout: int = 30
    max_retries: int = 3
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    use_charset_detection: bool = False

    def __post_init__(self):
        """初期化後の検証"""
        if self.timeout <= 0:
            raise ValueError("タイムアウト値は正の整数である必要があります")
        if self.max_retries < 0:
            raise ValueError("リトライ回数は0以上である必要があります")
        if self.max_file_size <= 0:
            raise ValueError("最大ファイルサイズは正の整数である必要があります")

    @property
    def correction_enabled(self) -> bool:
        """APIキーが設定されている場合のみテキスト補正を行う"""
        return bool(self.api_key and self.api_key.strip())


class ConfigHandler:
    """設定管理クラス"""

    TRUE_VALUES = ('1', 'true', 'yes', 'on')

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def validate_config(self, config: ConverterConfig) -> bool:
        """
        設定値の検証

        Args:
            config: 検証対象の設定

        Returns:
            bool: 検証結果（True: 成功, False: 失敗）
        """
        if not self.validate_url(config.api_url):
            self.logger.error(f"無効なAPI URL: {config.api_url}")
            return False

        if not self.validate_model_name(config.model_name):
            self.logger.error(f"無効なモデル名: {config.model_name}")
            return False

        if config.timeout <= 0:
            self.logger.error(f"タイムアウト値が無効: {config.timeout}")
            return False

        if config.max_retries < 0:
            self.logger.error(f"リトライ回数が無効: {config.max_retries}")
            return False

        if config.max_file_size <= 0:
            self.logger.error(f"最大ファイルサイズが無効: {config.max_file_size}")
            return False

        if not config.correction_enabled:
            self.logger.warning("OPENAI_API_KEYが未設定のため、テキスト補正は無効です")

        self.logger.info("設定検証が完了しました")
        return True

    def validate_url(self, url: str) -> bool:
        """
        URL形式の検証

        Args:
            url: 検証対象のURL

        Returns:
            bool: 検証結果
        """
        if not url or not isinstance(url, str):
            return False

        try:
            parsed = urlparse(url.strip())

            if parsed.scheme not in ('http', 'https'):
                return False

            if not parsed.netloc:
                return False

            # ポート番号チェック（範囲外の場合はValueError）
            if parsed.port is not None and not (1 <= parsed.port <= 65535):
                return False
        except ValueError:
            return False

        return True

    def validate_model_name(self, model_name: str) -> bool:
        """
        モデル名の検証

        Args:
            model_name: 検証対象のモデル名

        Returns:
            bool: 検証結果
        """
        if not model_name or not isinstance(model_name, str):
            return False

        if not model_name.strip():
            return False

        # アルファベット、数字、ハイフン、アンダースコア、ピリオド、スラッシュ、コロンを許可
        pattern = r'^[a-zA-Z0-9._/:-]+$'
        return bool(re.match(pattern, model_name.strip()))

    def load_from_env(self) -> Optional[ConverterConfig]:
        """
        環境変数から設定を読み込み

        Returns:
            ConverterConfig: 設定オブジェクト（失敗時はNone）
        """
        try:
            config = ConverterConfig(
                api_url=os.getenv('OPENAI_BASE_URL', DEFAULT_API_URL),
                api_key=os.getenv('OPENAI_API_KEY') or None,
                model_name=os.getenv('CORRECTION_MODEL', DEFAULT_MODEL_NAME),
                correction_language=os.getenv('CORRECTION_LANGUAGE', 'German'),
                timeout=int(os.getenv('REQUEST_TIMEOUT', '30')),
                max_retries=int(os.getenv('MAX_RETRIES', '3')),
                max_file_size=int(os.getenv('MAX_FILE_SIZE', str(DEFAULT_MAX_FILE_SIZE))),
                use_charset_detection=os.getenv('USE_CHARSET_DETECTION', '').strip().lower() in self.TRUE_VALUES,
            )
        except ValueError as e:
            self.logger.error(f"環境変数の値が無効: {str(e)}")
            return None

        if self.validate_config(config):
            return config
        return None
