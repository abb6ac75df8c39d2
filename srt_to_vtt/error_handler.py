"""
エラーハンドリングモジュール

SRT→VTT変換システムの例外クラスとエラー処理機能を提供します。
"""

import logging
import traceback
import datetime
from typing import Dict, Optional, Any


class SubtitleConversionError(Exception):
    """SRT→VTT変換システムの基底例外クラス"""

    def __init__(self, message: str, error_code: str = None, context: Dict[str, Any] = None):
        """
        初期化

        Args:
            message: エラーメッセージ
            error_code: エラーコード
            context: エラーコンテキスト情報
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.timestamp = datetime.datetime.now()


class EncodingFailure(SubtitleConversionError):
    """文字コード変換エラー（呼び出し側には送出されない）"""

    def __init__(self, message: str, encoding: str = None):
        context = {}
        if encoding:
            context['encoding'] = encoding

        super().__init__(message, "ENCODING_FAILURE", context)


class InvalidFormatError(SubtitleConversionError, ValueError):
    """SRT形式エラー"""

    def __init__(self, message: str, line_number: int = None, file_path: str = None):
        """
        SRT形式エラーの初期化

        Args:
            message: エラーメッセージ
            line_number: エラーが発生した行番号
            file_path: エラーが発生したファイルパス
        """
        context = {}
        if line_number is not None:
            context['line_number'] = line_number
        if file_path:
            context['file_path'] = file_path

        super().__init__(message, "INVALID_FORMAT", context)


class InvalidTimestampError(SubtitleConversionError, ValueError):
    """タイムスタンプ形式エラー

    stage には検出した段階（"parser" または "generator"）が入ります。
    """

    def __init__(self, message: str, timestamp: str = None, stage: str = None):
        context = {}
        if timestamp is not None:
            context['timestamp'] = timestamp
        if stage:
            context['stage'] = stage

        super().__init__(message, "INVALID_TIMESTAMP", context)


class GenerationError(SubtitleConversionError):
    """VTT生成エラー"""

    def __init__(self, message: str, subtitle_index: int = None):
        """
        VTT生成エラーの初期化

        Args:
            message: エラーメッセージ
            subtitle_index: 問題のあった字幕の位置（0始まり）
        """
        context = {}
        if subtitle_index is not None:
            context['subtitle_index'] = subtitle_index

        super().__init__(message, "GENERATION_FAILURE", context)


class ComplianceViolationError(SubtitleConversionError, ValueError):
    """VTT準拠性違反エラー"""

    def __init__(self, message: str, check: str = None):
        context = {}
        if check:
            context['check'] = check

        super().__init__(message, "COMPLIANCE_VIOLATION", context)


class InvalidInputError(SubtitleConversionError, ValueError):
    """言語検出の入力エラー"""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_INPUT")


class CorrectionError(SubtitleConversionError):
    """テキスト補正処理エラー"""

    def __init__(self, message: str, model_name: str = None, api_response: str = None):
        """
        テキスト補正処理エラーの初期化

        Args:
            message: エラーメッセージ
            model_name: 使用していたモデル名
            api_response: API応答内容
        """
        context = {}
        if model_name:
            context['model_name'] = model_name
        if api_response:
            context['api_response'] = api_response

        super().__init__(message, "CORRECTION_ERROR", context)


class APIConnectionError(SubtitleConversionError):
    """API接続エラー"""

    def __init__(self, message: str, url: str = None, status_code: int = None, timeout: float = None):
        """
        API接続エラーの初期化

        Args:
            message: エラーメッセージ
            url: 接続先URL
            status_code: HTTPステータスコード
            timeout: タイムアウト時間
        """
        context = {}
        if url:
            context['url'] = url
        if status_code is not None:
            context['status_code'] = status_code
        if timeout is not None:
            context['timeout'] = timeout

        super().__init__(message, "API_CONNECTION_ERROR", context)

    @property
    def retryable(self) -> bool:
        """レート制限・サーバーエラー・接続失敗の場合はリトライ可能"""
        status_code = self.context.get('status_code')
        if status_code is None:
            return True
        return status_code == 429 or status_code >= 500


class FileError(SubtitleConversionError):
    """ファイル操作エラー"""

    def __init__(self, message: str, file_path: str = None, operation: str = None, size: int = None):
        """
        ファイル操作エラーの初期化

        Args:
            message: エラーメッセージ
            file_path: 操作対象ファイルパス
            operation: 実行していた操作
            size: ファイルサイズ（バイト）
        """
        context = {}
        if file_path:
            context['file_path'] = file_path
        if operation:
            context['operation'] = operation
        if size is not None:
            context['size'] = size

        super().__init__(message, "FILE_ERROR", context)


class ErrorHandler:
    """エラー処理クラス"""

    def __init__(self, logger_name: str = __name__):
        """
        初期化

        Args:
            logger_name: ロガー名
        """
        self.logger = logging.getLogger(logger_name)

    def log_error(self, error: Exception, context: Dict[str, Any] = None) -> None:
        """
        エラーをログに記録

        Args:
            error: ログに記録する例外
            context: 追加のコンテキスト情報
        """
        error_info = {
            'error_type': error.__class__.__name__,
            'error_message': str(error),
            'timestamp': datetime.datetime.now().isoformat(),
        }

        # SubtitleConversionErrorの場合は追加情報を含める
        if isinstance(error, SubtitleConversionError):
            error_info.update({
                'error_code': error.error_code,
                'error_context': error.context,
            })

        if context:
            error_info['additional_context'] = context

        error_info['stack_trace'] = traceback.format_exc()

        # 入力起因のエラーは警告、それ以外はエラーとして記録
        if isinstance(error, (GenerationError, APIConnectionError)):
            self.logger.error(f"重大なエラー: {error_info}")
        elif isinstance(error, SubtitleConversionError):
            self.logger.warning(f"処理エラー: {error_info}")
        else:
            self.logger.error(f"未知のエラー: {error_info}")

    def format_user_message(self, error: Exception) -> str:
        """
        ユーザー向けエラーメッセージ生成

        Args:
            error: フォーマット対象の例外

        Returns:
            str: ユーザー向けのエラーメッセージ
        """
        if isinstance(error, InvalidFormatError):
            base_message = f"SRTファイルの解析に失敗しました: {error.message}"
            if 'line_number' in error.context:
                base_message += f" (行番号: {error.context['line_number']})"
            if 'file_path' in error.context:
                base_message += f" (ファイル: {error.context['file_path']})"
            return base_message

        elif isinstance(error, InvalidTimestampError):
            base_message = f"タイムスタンプが不正です: {error.message}"
            if 'stage' in error.context:
                base_message += f" (段階: {error.context['stage']})"
            return base_message

        elif isinstance(error, GenerationError):
            base_message = f"VTTの生成に失敗しました: {error.message}"
            if 'subtitle_index' in error.context:
                base_message += f" (字幕位置: {error.context['subtitle_index']})"
            return base_message

        elif isinstance(error, ComplianceViolationError):
            return f"VTTがBunny Streamの要件を満たしていません: {error.message}"

        elif isinstance(error, InvalidInputError):
            return f"入力内容が不正です: {error.message}"

        elif isinstance(error, APIConnectionError):
            base_message = "補正APIへの接続に失敗しました。"
            if 'url' in error.context:
                base_message += f" 接続先: {error.context['url']}"
            if 'status_code' in error.context:
                base_message += f" (ステータスコード: {error.context['status_code']})"
            return base_message

        elif isinstance(error, CorrectionError):
            base_message = "テキスト補正に失敗しました。"
            if 'model_name' in error.context:
                base_message += f" 使用モデル: {error.context['model_name']}"
            return base_message

        elif isinstance(error, FileError):
            base_message = f"ファイル操作に失敗しました: {error.message}"
            if 'file_path' in error.context:
                base_message += f" ファイル: {error.context['file_path']}"
            if 'operation' in error.context:
                base_message += f" (操作: {error.context['operation']})"
            return base_message

        elif isinstance(error, SubtitleConversionError):
            return f"処理中にエラーが発生しました: {error.message}"

        else:
            return f"予期しないエラーが発生しました: {str(error)}"

    @staticmethod
    def status_code_for(error: Exception) -> int:
        """
        例外に対応するHTTPステータスコードを返す

        Args:
            error: 対象の例外

        Returns:
            int: 入力起因なら4xx、生成失敗なら500、外部サービス不可なら503
        """
        if isinstance(error, FileError) and 'size' in error.context:
            return 413
        if isinstance(error, (InvalidFormatError, InvalidTimestampError,
                              InvalidInputError, ComplianceViolationError, FileError)):
            return 400
        if isinstance(error, APIConnectionError):
            return 503
        return 500

    def handle_error(self, error: Exception, context: Dict[str, Any] = None) -> str:
        """
        エラーの総合的な処理

        Args:
            error: 処理対象の例外
            context: 追加のコンテキスト情報

        Returns:
            str: ユーザー向けメッセージ
        """
        self.log_error(error, context)
        return self.format_user_message(error)

    @staticmethod
    def create_context(operation: str = None, file_path: str = None,
                      line_number: int = None, **kwargs) -> Dict[str, Any]:
        """
        コンテキスト情報を作成

        Args:
            operation: 実行中の操作
            file_path: 処理中のファイルパス
            line_number: 処理中の行番号
            **kwargs: その他の情報

        Returns:
            Dict[str, Any]: コンテキスト辞書
        """
        context = {}

        if operation:
            context['operation'] = operation
        if file_path:
            context['file_path'] = file_path
        if line_number is not None:
            context['line_number'] = line_number

        context.update(kwargs)

        return context
