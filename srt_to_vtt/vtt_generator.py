"""
VTT生成モジュール

解析済みのSRT字幕からBunny Stream互換のWebVTTを生成し、
形式の検証とBase64パッケージングを行う。
"""

import re
import base64
import copy
import logging
from typing import Any, Dict, Sequence

from .error_handler import ComplianceViolationError, GenerationError, InvalidTimestampError
from .models import (
    Base64Metadata,
    Base64Output,
    ComplianceChecks,
    ComplianceReport,
    EncodedSize,
)

logger = logging.getLogger(__name__)

VTT_HEADER = "WEBVTT\n\n"

MIME_TYPE_CONFIG: Dict[str, Any] = {
    "primary": "text/vtt",
    "alternatives": ["text/vtt; charset=utf-8"],
    "fileExtension": ".vtt",
    "bunnyStream": {
        "mimeType": "text/vtt",
        "charset": "utf-8",
        "contentType": "text/vtt; charset=utf-8",
    },
    "browser": {
        "download": "text/vtt; charset=utf-8",
        # text/vttを表示できないブラウザ向け
        "display": "text/plain; charset=utf-8",
    },
}


class VTTGenerator:
    """SRT字幕からWebVTTを生成・検証するクラス"""

    # 時は99まで許容、分・秒は00-59
    SRT_TIMESTAMP_PATTERN = re.compile(r'([0-9]{2}):([0-5][0-9]):([0-5][0-9]),([0-9]{3})')

    VTT_TIMESTAMP_PATTERN = re.compile(
        r'[0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{3}\s*-->\s*[0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{3}'
    )

    SEQUENCE_NUMBER_PATTERN = re.compile(r'[0-9]+')

    def convert_timestamp(self, srt_timestamp: str) -> str:
        """SRT形式のタイムスタンプをVTT形式に変換する

        00:00:00,000 → 00:00:00.000

        Raises:
            InvalidTimestampError: 空・非文字列・形式不正の場合
        """
        if not srt_timestamp or not isinstance(srt_timestamp, str):
            raise InvalidTimestampError(
                "Invalid timestamp: must be a non-empty string", stage="generator"
            )

        if not self.SRT_TIMESTAMP_PATTERN.fullmatch(srt_timestamp):
            raise InvalidTimestampError(
                f"Invalid SRT timestamp format: {srt_timestamp}. Expected format: HH:MM:SS,mmm",
                timestamp=srt_timestamp,
                stage="generator",
            )

        return srt_timestamp.replace(',', '.')

    def generate_vtt(self, subtitles: Sequence) -> str:
        """字幕リストからVTT文字列を生成する

        シーケンス番号は出力しない。1件でも不正な字幕があれば全体を中止する。

        Args:
            subtitles: Subtitleのリスト（start_time, end_time, text属性を持つもの）

        Returns:
            str: BOMなしのVTT文字列

        Raises:
            GenerationError: 入力が不正、または変換できない字幕がある場合
        """
        if not isinstance(subtitles, (list, tuple)):
            raise GenerationError("Invalid input: subtitles must be an array")

        if not subtitles:
            raise GenerationError("No subtitles provided for VTT generation")

        parts = [VTT_HEADER]

        for position, subtitle in enumerate(subtitles):
            if subtitle is None:
                raise GenerationError(
                    f"Invalid subtitle object at index {position}", subtitle_index=position
                )

            start_time = getattr(subtitle, 'start_time', None)
            end_time = getattr(subtitle, 'end_time', None)
            text = getattr(subtitle, 'text', None)

            if not start_time or not end_time or text is None:
                raise GenerationError(
                    f"Missing required fields in subtitle at index {position}. "
                    "Required: start_time, end_time, text",
                    subtitle_index=position,
                )

            try:
                vtt_start = self.convert_timestamp(start_time)
                vtt_end = self.convert_timestamp(end_time)
            except InvalidTimestampError as e:
                raise GenerationError(
                    f"Error processing subtitle at index {position}: {e.message}",
                    subtitle_index=position,
                ) from e

            parts.append(f"{vtt_start} --> {vtt_end}\n{text}\n\n")

        logger.debug(f"Generated VTT with {len(subtitles)} cues")
        return ''.join(parts)

    def validate_vtt_format(self, vtt_content: str) -> bool:
        """VTTがBunny Streamの要件を満たすかを検証する

        検査順: 空文字列 → BOM → ヘッダー → ヘッダー後の空行 → タイムスタンプ → シーケンス番号

        Returns:
            bool: 常にTrue（違反時は例外）

        Raises:
            ComplianceViolationError: 最初に見つかった違反
        """
        if not vtt_content or not isinstance(vtt_content, str):
            raise ComplianceViolationError(
                "Invalid VTT content: must be a non-empty string", check="content"
            )

        if vtt_content.startswith('\ufeff'):
            raise ComplianceViolationError(
                "VTT content must not contain BOM (Byte Order Mark)", check="noBOM"
            )

        if not vtt_content.startswith('WEBVTT\n'):
            raise ComplianceViolationError(
                'VTT content must start with "WEBVTT" header followed by newline',
                check="hasWebVTTHeader",
            )

        if not vtt_content.startswith(VTT_HEADER):
            raise ComplianceViolationError(
                "VTT content must have empty line after WEBVTT header",
                check="hasEmptyLineAfterHeader",
            )

        if not self.VTT_TIMESTAMP_PATTERN.search(vtt_content):
            raise ComplianceViolationError(
                "No valid VTT timestamps found in content", check="validTimestamps"
            )

        if self._has_sequence_numbers(vtt_content.split('\n')):
            raise ComplianceViolationError(
                "VTT content must not contain subtitle sequence numbers for Bunny Stream compatibility",
                check="noSequenceNumbers",
            )

        return True

    def _has_sequence_numbers(self, lines: Sequence[str]) -> bool:
        """数字だけの行の直後にタイムスタンプ行があればシーケンス番号とみなす"""
        # ヘッダーと空行は対象外
        for i in range(2, len(lines) - 1):
            if (self.SEQUENCE_NUMBER_PATTERN.fullmatch(lines[i].strip())
                    and self.VTT_TIMESTAMP_PATTERN.search(lines[i + 1])):
                return True
        return False

    def validate_bunny_stream_compliance(self, vtt_content: str) -> ComplianceReport:
        """各準拠項目を個別に評価したレポートを返す（例外は送出しない）

        Returns:
            ComplianceReport: 検査結果、エラー、警告
        """
        report = ComplianceReport()

        if not isinstance(vtt_content, str):
            report.errors.append("Invalid VTT content: must be a non-empty string")
            return report

        lines = re.split(r'\r?\n', vtt_content)
        checks = ComplianceChecks(
            no_bom=not vtt_content.startswith('\ufeff'),
            has_webvtt_header=vtt_content.startswith(('WEBVTT\n', 'WEBVTT\r\n')),
            has_empty_line_after_header=vtt_content.startswith(('WEBVTT\n\n', 'WEBVTT\r\n\r\n')),
            valid_timestamps=bool(self.VTT_TIMESTAMP_PATTERN.search(vtt_content)),
            no_sequence_numbers=not self._has_sequence_numbers(lines),
        )

        try:
            checks.proper_encoding = vtt_content.encode('utf-8').decode('utf-8') == vtt_content
        except UnicodeError:
            checks.proper_encoding = False
            report.errors.append("Content is not valid UTF-8")

        report.compliance = checks

        if '\r\n' in vtt_content:
            report.warnings.append(
                "Content contains Windows line endings (CRLF). Unix line endings (LF) are recommended."
            )

        if '\t' in vtt_content:
            report.warnings.append(
                "Content contains tab characters. Spaces are recommended for indentation."
            )

        if lines[0] != 'WEBVTT':
            report.warnings.append("WEBVTT header should not have leading or trailing whitespace.")

        try:
            self.validate_vtt_format(vtt_content)
        except ComplianceViolationError as e:
            report.errors.append(e.message)

        report.is_valid = all(report.checks.values()) and not report.errors
        return report

    def generate_base64_output(self, vtt_content: str) -> Base64Output:
        """検証済みのVTTをBase64に変換し、API送信用のメタデータを付与する

        Raises:
            ComplianceViolationError: 空・非文字列、またはVTTが要件を満たさない場合
        """
        if not vtt_content or not isinstance(vtt_content, str):
            raise ComplianceViolationError("Invalid VTT content for Base64 encoding", check="content")

        self.validate_vtt_format(vtt_content)

        raw = vtt_content.encode('utf-8')
        encoded = base64.b64encode(raw).decode('ascii')

        return Base64Output(
            content=encoded,
            size=EncodedSize(original=len(raw), encoded=len(encoded)),
            metadata=Base64Metadata(),
        )

    @staticmethod
    def get_vtt_mime_type_config() -> Dict[str, Any]:
        """VTT配信用のMIMEタイプ設定を返す"""
        return copy.deepcopy(MIME_TYPE_CONFIG)
