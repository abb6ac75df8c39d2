"""
エラーハンドリングモジュールの単体テスト
"""

import unittest

from srt_to_vtt.error_handler import (
    APIConnectionError,
    ComplianceViolationError,
    CorrectionError,
    EncodingFailure,
    ErrorHandler,
    FileError,
    GenerationError,
    InvalidFormatError,
    InvalidInputError,
    InvalidTimestampError,
    SubtitleConversionError,
)


class TestErrors(unittest.TestCase):
    """例外クラスのテスト"""

    def test_error_codes(self):
        cases = [
            (EncodingFailure("x"), "ENCODING_FAILURE"),
            (InvalidFormatError("x"), "INVALID_FORMAT"),
            (InvalidTimestampError("x"), "INVALID_TIMESTAMP"),
            (GenerationError("x"), "GENERATION_FAILURE"),
            (ComplianceViolationError("x"), "COMPLIANCE_VIOLATION"),
            (InvalidInputError("x"), "INVALID_INPUT"),
            (CorrectionError("x"), "CORRECTION_ERROR"),
            (APIConnectionError("x"), "API_CONNECTION_ERROR"),
            (FileError("x"), "FILE_ERROR"),
        ]
        for error, code in cases:
            with self.subTest(code=code):
                self.assertIsInstance(error, SubtitleConversionError)
                self.assertEqual(error.error_code, code)
                self.assertEqual(error.message, "x")

    def test_input_errors_are_value_errors(self):
        for error in (InvalidFormatError("x"), InvalidTimestampError("x"),
                      ComplianceViolationError("x"), InvalidInputError("x")):
            with self.subTest(error=error):
                self.assertIsInstance(error, ValueError)

    def test_context(self):
        error = InvalidFormatError("bad", line_number=3, file_path="a.srt")
        self.assertEqual(error.context, {'line_number': 3, 'file_path': 'a.srt'})

        error = InvalidTimestampError("bad", timestamp="00:61:00,000", stage="generator")
        self.assertEqual(error.context, {'timestamp': '00:61:00,000', 'stage': 'generator'})

        self.assertEqual(FileError("big", size=0).context, {'size': 0})

    def test_retryable(self):
        self.assertTrue(APIConnectionError("x").retryable)
        self.assertTrue(APIConnectionError("x", status_code=429).retryable)
        self.assertTrue(APIConnectionError("x", status_code=503).retryable)
        self.assertFalse(APIConnectionError("x", status_code=401).retryable)
        self.assertFalse(APIConnectionError("x", status_code=404).retryable)


class TestErrorHandler(unittest.TestCase):
    """ErrorHandlerのテスト"""

    def setUp(self):
        self.handler = ErrorHandler("test_error_handler")

    def test_format_user_message(self):
        message = self.handler.format_user_message(
            InvalidFormatError("Invalid SRT format: x", line_number=5, file_path="movie.srt")
        )
        self.assertIn("SRTファイルの解析に失敗しました", message)
        self.assertIn("行番号: 5", message)
        self.assertIn("movie.srt", message)

        message = self.handler.format_user_message(APIConnectionError("x", url="http://api", status_code=503))
        self.assertIn("http://api", message)
        self.assertIn("503", message)

        message = self.handler.format_user_message(GenerationError("x", subtitle_index=2))
        self.assertIn("字幕位置: 2", message)

        message = self.handler.format_user_message(RuntimeError("boom"))
        self.assertIn("予期しないエラーが発生しました", message)

    def test_status_code_for(self):
        self.assertEqual(ErrorHandler.status_code_for(FileError("x", size=20)), 413)
        self.assertEqual(ErrorHandler.status_code_for(FileError("x")), 400)
        self.assertEqual(ErrorHandler.status_code_for(InvalidFormatError("x")), 400)
        self.assertEqual(ErrorHandler.status_code_for(InvalidInputError("x")), 400)
        self.assertEqual(ErrorHandler.status_code_for(APIConnectionError("x")), 503)
        self.assertEqual(ErrorHandler.status_code_for(GenerationError("x")), 500)
        self.assertEqual(ErrorHandler.status_code_for(RuntimeError("x")), 500)

    def test_handle_error_logs(self):
        with self.assertLogs("test_error_handler", level="WARNING") as logs:
            message = self.handler.handle_error(InvalidInputError("empty"), {'operation': 'detect'})

        self.assertEqual(message, "入力内容が不正です: empty")
        self.assertTrue(logs.output[0].startswith("WARNING"))
        self.assertIn("INVALID_INPUT", logs.output[0])
        self.assertIn("detect", logs.output[0])

    def test_handle_error_logs_generation_as_error(self):
        with self.assertLogs("test_error_handler", level="ERROR") as logs:
            self.handler.handle_error(GenerationError("broken"))
        self.assertTrue(logs.output[0].startswith("ERROR"))

    def test_create_context(self):
        context = ErrorHandler.create_context(operation="convert", file_path="a.srt", line_number=0, stage="x")
        self.assertEqual(context, {
            'operation': 'convert',
            'file_path': 'a.srt',
            'line_number': 0,
            'stage': 'x',
        })
        self.assertEqual(ErrorHandler.create_context(), {})


if __name__ == '__main__':
    unittest.main()
