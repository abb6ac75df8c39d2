"""
変換パイプラインモジュール

バイト列 → 文字コード正規化 → SRT解析 → （任意）テキスト補正 → 言語検出
→ VTT生成 → 準拠性チェック → （任意）Base64化 の各段階を実行する。
"""

import logging
from pathlib import PurePath
from typing import Dict, List, Optional

from .config_handler import ConverterConfig
from .corrector import SubtitleCorrector
from .encoding import EncodingNormalizer
from .error_handler import (
    ComplianceViolationError,
    FileError,
    GenerationError,
    InvalidFormatError,
    InvalidInputError,
    SubtitleConversionError,
)
from .language_detection import LanguageDetector
from .models import (
    ConversionResult,
    ConversionStats,
    ConversionWarning,
    DetectionResult,
)
from .srt_parser import SRTParser, Subtitle
from .vtt_generator import VTTGenerator

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('file', 'base64')


class ConversionPipeline:
    """SRTバイト列をBunny Stream互換のVTTに変換するパイプライン"""

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        corrector: Optional[SubtitleCorrector] = None
    ):
        """
        初期化

        Args:
            config: 変換設定（省略時はデフォルト値）
            corrector: テキスト補正クライアント（省略時は補正しない）
        """
        self.config = config or ConverterConfig()
        self.corrector = corrector
        self.normalizer = EncodingNormalizer()
        self.parser = SRTParser(self.normalizer)
        self.generator = VTTGenerator()
        self.detector = LanguageDetector()

    def _check_size(self, data: bytes, filename: str) -> None:
        if not data:
            raise FileError("Uploaded file is empty", file_path=filename, operation="upload")
        if len(data) > self.config.max_file_size:
            limit_mb = self.config.max_file_size / (1024 * 1024)
            raise FileError(
                f"File too large. Maximum size is {limit_mb:g}MB.",
                file_path=filename,
                operation="upload",
                size=len(data),
            )

    def decode(self, data: bytes) -> tuple:
        """バイト列を正規化し、(検出した文字コード, UTF-8テキスト) を返す"""
        encoding = self.normalizer.detect_encoding(data, use_chardet=self.config.use_charset_detection)
        text = self.normalizer.convert_to_utf8(data, encoding).decode('utf-8', errors='replace')
        return encoding, text

    async def _correct(self, srt_content: str, subtitles: List[Subtitle],
                       warnings: List[ConversionWarning]) -> tuple:
        """補正を行い、(補正後テキスト, 字幕リスト, 補正適用有無) を返す

        補正結果は必ず再解析し、解析できなければ元の字幕に戻す。
        """
        if self.corrector is None or not self.corrector.is_available():
            logger.info("Correction service not available, skipping text correction")
            warnings.append(ConversionWarning(type="correction", message="Correction API key not configured"))
            return srt_content, subtitles, False

        canonical = self.parser.generate_srt_string(subtitles)
        result = await self.corrector.correct_with_fallback(canonical)

        if result.used_fallback:
            logger.warning(f"Correction fell back to original text: {result.error}")
            warnings.append(ConversionWarning(type="correction", message=result.error or "Correction failed"))
            return srt_content, subtitles, False

        try:
            corrected_subtitles = self.parser.parse_srt(result.corrected_text)
        except InvalidFormatError as e:
            logger.warning(f"Failed to parse corrected content, using original: {e.message}")
            warnings.append(ConversionWarning(
                type="correction", message="Corrected content was invalid, used original"
            ))
            return srt_content, subtitles, False

        logger.info(
            f"Correction applied (original {len(canonical)} chars, corrected {len(result.corrected_text)} chars)"
        )
        return result.corrected_text, corrected_subtitles, True

    def _detect_language(self, content: str) -> DetectionResult:
        try:
            return self.detector.detect_language(content)
        except InvalidInputError as e:
            logger.warning(f"Language detection failed: {e.message}")
            return DetectionResult.empty()

    async def convert(
        self,
        data: bytes,
        filename: str = "subtitle.srt",
        output_format: str = "file",
        correct: bool = True
    ) -> ConversionResult:
        """
        SRTファイルの内容をVTTに変換する

        Args:
            data: アップロードされたSRTのバイト列
            filename: 元のファイル名（出力ファイル名の生成に使用）
            output_format: 'file' または 'base64'
            correct: 補正サービスが利用可能な場合に補正を行うか

        Returns:
            ConversionResult: VTT本文、統計、言語、準拠性レポート、ヘッダー

        Raises:
            FileError: 空または大きすぎる入力
            InvalidFormatError: SRT形式が不正
            GenerationError: VTTの生成または準拠性チェックに失敗
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format: {output_format}")

        stage = 'upload'
        try:
            self._check_size(data, filename)
            logger.info(f"[{stage}] {filename}: {len(data)} bytes")

            stage = 'encoding'
            encoding, srt_content = self.decode(data)
            logger.info(f"[{stage}] {filename}: detected {encoding}")

            stage = 'validation'
            subtitles = self.parser.parse_srt(srt_content)
            logger.info(f"[{stage}] {filename}: {len(subtitles)} subtitles")

            stage = 'correction'
            warnings: List[ConversionWarning] = []
            correction_applied = False
            if correct:
                srt_content, subtitles, correction_applied = await self._correct(
                    srt_content, subtitles, warnings
                )

            stage = 'language-detection'
            language = self._detect_language(srt_content)
            logger.info(
                f"[{stage}] {filename}: "
                f"{language.language.code if language.language else 'undetected'} "
                f"({round(language.confidence * 100)}%)"
            )

            stage = 'conversion'
            vtt_content = self.generator.generate_vtt(subtitles)
            compliance = self.generator.validate_bunny_stream_compliance(vtt_content)
            if not compliance.is_valid:
                raise GenerationError(
                    f"VTT compliance validation failed: {', '.join(compliance.errors)}"
                )
            for warning in compliance.warnings:
                logger.warning(f"VTT compliance warning: {warning}")
                warnings.append(ConversionWarning(type="compliance", message=warning))

            stage = 'complete'
            base64_output = None
            if output_format == 'base64':
                try:
                    base64_output = self.generator.generate_base64_output(vtt_content)
                except ComplianceViolationError as e:
                    logger.error(f"Base64 generation failed: {e.message}")
                    warnings.append(ConversionWarning(
                        type="base64", message=f"Base64 encoding failed: {e.message}"
                    ))

        except SubtitleConversionError as e:
            e.context.setdefault('stage', stage)
            logger.error(f"Error during {stage} stage: {e.message}")
            raise

        vtt_filename = f"{PurePath(filename).stem or 'subtitle'}.vtt"
        mime_config = self.generator.get_vtt_mime_type_config()
        converted_size = len(vtt_content.encode('utf-8'))

        result = ConversionResult(
            vtt_content=vtt_content,
            vtt_filename=vtt_filename,
            stats=ConversionStats(
                original_encoding=encoding,
                subtitle_count=len(subtitles),
                correction_applied=correction_applied,
                file_size={'original': len(data), 'converted': converted_size},
            ),
            language=language,
            compliance=compliance,
            mime_type=mime_config['primary'],
            headers=self._build_headers(vtt_filename, converted_size, language, base64_output is not None),
            warnings=warnings,
            base64=base64_output,
        )

        logger.info(
            f"Conversion completed: {vtt_filename} "
            f"({len(data)} -> {converted_size} bytes, correction={correction_applied})"
        )
        return result

    def _build_headers(self, vtt_filename: str, size: int,
                       language: DetectionResult, as_json: bool) -> Dict[str, str]:
        """HTTP応答用のヘッダーを組み立てる"""
        mime_config = self.generator.get_vtt_mime_type_config()
        headers = {
            'Content-Type': mime_config['bunnyStream']['contentType'],
            'Content-Disposition': f'attachment; filename="{vtt_filename}"',
            'Content-Length': str(size),
            'Cache-Control': 'no-cache',
            'X-Content-Type-Options': 'nosniff',
        }

        if language.detected:
            headers['Content-Language'] = language.language.code
            headers['X-Detected-Language'] = f"{language.language.name} ({language.language.code})"
            headers['X-Language-Confidence'] = str(round(language.language.confidence * 100))

        if as_json:
            headers['Content-Type'] = 'application/json; charset=utf-8'
            del headers['Content-Disposition']
            del headers['Content-Length']

        return headers

    def detect_language_from_bytes(self, data: bytes) -> DetectionResult:
        """SRTのバイト列を正規化・検証してから言語を推定する

        Raises:
            FileError: 空または大きすぎる入力
            InvalidFormatError: SRT形式が不正
        """
        self._check_size(data, "upload")
        _, srt_content = self.decode(data)

        if not self.parser.validate_srt_format(srt_content):
            raise InvalidFormatError("Invalid SRT file format")

        return self.detector.detect_language(srt_content)
