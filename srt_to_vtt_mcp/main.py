#!/usr/bin/env python3
"""
SRT→VTT変換MCPサーバー
fastmcpを使用したMCPサーバー実装

使用例:
1. 基本的な変換:
   result = convert_srt_to_vtt(srt_content=content)
   vtt = result["vttContent"]

2. Bunny Stream API向けのBase64出力:
   result = convert_srt_to_vtt(srt_content=content, output_format="base64")
   payload = result["base64"]["content"]
"""

import os
import logging
from pathlib import Path
from typing import Optional
from datetime import datetime

from fastmcp import FastMCP

from srt_to_vtt import __version__
from srt_to_vtt.config_handler import ConfigHandler, ConverterConfig
from srt_to_vtt.corrector import SubtitleCorrector
from srt_to_vtt.error_handler import ErrorHandler, FileError, SubtitleConversionError
from srt_to_vtt.language_detection import LanguageDetector
from srt_to_vtt.pipeline import ConversionPipeline
from srt_to_vtt.srt_parser import SRTParser
from srt_to_vtt.vtt_generator import VTTGenerator

# ログ設定（LOG_LEVELで変更可能）
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# 環境変数から設定を読み込む（不正な値の場合はデフォルト設定）
config = ConfigHandler().load_from_env() or ConverterConfig()
error_handler = ErrorHandler(__name__)

mcp = FastMCP(
    "srt-to-vtt",
    instructions="SRT字幕をBunny Stream互換のWebVTTに変換するMCPサーバー。文字コードの正規化、任意のAIテキスト補正、言語の自動検出を行います。"
)

# 変換統計を保持
conversion_stats = {
    "total_conversions": 0,
    "total_subtitles": 0,
    "total_bytes": 0,
    "corrections_applied": 0,
    "last_conversion": None,
    "errors": 0
}


def _raise_for_tool(error: SubtitleConversionError, operation: str, file_path: Optional[str] = None) -> None:
    """変換エラーをMCPクライアント向けの例外に変換する"""
    context = ErrorHandler.create_context(operation=operation, file_path=file_path)
    message = error_handler.handle_error(error, context)
    if error_handler.status_code_for(error) < 500:
        raise ValueError(message) from error
    raise RuntimeError(message) from error


def _load_input(srt_content: Optional[str], file_path: Optional[str]) -> tuple:
    """SRTのバイト列と元ファイル名を返す"""
    if file_path:
        return SRTParser.read_file(file_path), Path(file_path).name
    if srt_content:
        return srt_content.encode('utf-8'), "subtitle.srt"
    raise FileError("No SRT content provided", operation="upload")


@mcp.tool(
    description="""SRT字幕をBunny Stream互換のWebVTTに変換する。

使用例:
1. テキストから変換:
   result = convert_srt_to_vtt(srt_content=srt_content)
   write_file("movie.vtt", result["vttContent"])

2. ファイルから変換してBase64で受け取る:
   result = convert_srt_to_vtt(file_path="movie.srt", output_format="base64")

注意事項:
- 文字コード（UTF-8 / Windows-1252 / ISO-8859-1）は自動判定されます
- OPENAI_API_KEYが設定されている場合のみテキスト補正を行います
- 出力にはBOMとシーケンス番号は含まれません"""
)
async def convert_srt_to_vtt(
    srt_content: Optional[str] = None,
    file_path: Optional[str] = None,
    output_format: str = "file",
    correct: bool = True
) -> dict:
    """
    SRT字幕をVTTに変換する

    Args:
        srt_content: 変換対象のSRT形式テキスト
        file_path: 変換対象のSRTファイルパス（srt_contentより優先）
        output_format: 'file'（VTT本文のみ）または 'base64'（Base64とメタデータ付き）
        correct: テキスト補正を行うか

    Returns:
        dict: 変換結果（vttContent, stats, language, compliance, headers, warnings, base64）

    Raises:
        ValueError: 入力が不正な場合
        RuntimeError: VTTの生成に失敗した場合
    """
    global conversion_stats
    conversion_stats["total_conversions"] += 1
    conversion_stats["last_conversion"] = datetime.now().isoformat()

    logger.info(f"Conversion started (Conversion #{conversion_stats['total_conversions']})")

    corrector = SubtitleCorrector.from_config(config) if correct and config.correction_enabled else None
    try:
        data, filename = _load_input(srt_content, file_path)
        pipeline = ConversionPipeline(config=config, corrector=corrector)
        result = await pipeline.convert(data, filename=filename, output_format=output_format, correct=correct)
    except SubtitleConversionError as e:
        conversion_stats["errors"] += 1
        _raise_for_tool(e, "convert", file_path)
    finally:
        if corrector is not None:
            await corrector.aclose()

    conversion_stats["total_subtitles"] += result.stats.subtitle_count
    conversion_stats["total_bytes"] += len(data)
    if result.stats.correction_applied:
        conversion_stats["corrections_applied"] += 1

    return result.to_api()


@mcp.tool(
    description="""SRT字幕の言語を自動検出する。
    ISO 639-1コードと信頼度、上位3件の候補を返します。"""
)
async def detect_subtitle_language(srt_content: str) -> dict:
    """
    SRT字幕の言語を検出

    Args:
        srt_content: 検出対象のSRT形式テキスト

    Returns:
        dict: 検出結果と対応言語一覧
    """
    pipeline = ConversionPipeline(config=config)
    try:
        language = pipeline.detect_language_from_bytes(srt_content.encode('utf-8'))
    except SubtitleConversionError as e:
        _raise_for_tool(e, "detect_language")

    return {
        "success": True,
        "language": language.to_api(),
        "supportedLanguages": LanguageDetector().get_supported_languages()
    }


@mcp.tool(description="対応している言語の一覧を取得")
async def list_supported_languages() -> dict:
    """
    対応言語の一覧を取得

    Returns:
        dict: ISO 639-1コードと言語名のリスト
    """
    return {
        "success": True,
        "languages": LanguageDetector().get_supported_languages()
    }


@mcp.tool(
    description="""VTTテキストのBunny Stream準拠性を検査する。
    BOM、ヘッダー、空行、シーケンス番号、タイムスタンプ、UTF-8の各項目を個別に評価します。"""
)
async def validate_vtt(vtt_content: str) -> dict:
    """
    VTTの準拠性レポートを生成

    Args:
        vtt_content: 検査対象のVTTテキスト

    Returns:
        dict: isValid, compliance, errors, warnings
    """
    return VTTGenerator().validate_bunny_stream_compliance(vtt_content).to_api()


@mcp.tool(
    description="""SRTファイルの検証と分析を行う。
    字幕数、総時間、平均文字数などの統計情報を提供します。"""
)
async def analyze_srt(
    srt_content: Optional[str] = None,
    file_path: Optional[str] = None,
    detailed: bool = False
) -> dict:
    """
    SRTファイルの内容を分析

    Args:
        srt_content: 分析対象のSRT形式テキスト
        file_path: 分析対象のSRTファイルパス（srt_contentより優先、文字コードは自動判定）
        detailed: 詳細分析を行うか

    Returns:
        dict: 分析結果
    """
    parser = SRTParser()
    try:
        if file_path:
            subtitles = parser.parse_file(file_path)
        else:
            subtitles = parser.parse_srt(srt_content)
    except SubtitleConversionError as e:
        return {
            "valid": False,
            "error": e.message,
            "subtitle_count": 0
        }

    subtitle_count = len(subtitles)
    total_chars = sum(len(subtitle.text) for subtitle in subtitles)

    # 時刻はミリ秒に変換して計算
    first_start = parser.parse_timestamp(subtitles[0].start_time).total_milliseconds()
    last_end = parser.parse_timestamp(subtitles[-1].end_time).total_milliseconds()
    total_duration = max(last_end - first_start, 0) / 1000

    result = {
        "valid": True,
        "subtitle_count": subtitle_count,
        "total_characters": total_chars,
        "average_characters": round(total_chars / subtitle_count, 1),
        "total_duration_seconds": round(total_duration, 2),
        "duration_formatted": f"{int(total_duration // 60)}:{int(total_duration % 60):02d}",
        "first_timestamp": subtitles[0].start_time,
        "last_timestamp": subtitles[-1].end_time
    }

    if detailed:
        line_counts = [len(subtitle.text.split('\n')) for subtitle in subtitles]
        char_counts = [len(subtitle.text) for subtitle in subtitles]

        result["detailed_stats"] = {
            "max_lines_per_subtitle": max(line_counts),
            "avg_lines_per_subtitle": round(sum(line_counts) / len(line_counts), 1),
            "max_characters": max(char_counts),
            "min_characters": min(char_counts),
            "multi_line_subtitles": sum(1 for count in line_counts if count > 1)
        }
        result["language"] = LanguageDetector().detect_language(
            "\n".join(subtitle.text for subtitle in subtitles)
        ).to_api()

    return result


@mcp.tool(
    description="""テキスト補正APIの接続状態を確認する。
    APIキーの設定と到達可能性をチェックします。"""
)
async def check_correction_service() -> dict:
    """
    補正APIの接続状態を確認

    Returns:
        dict: 接続状態
    """
    result = {
        "api_url": config.api_url,
        "model_name": config.model_name,
        "api_key_configured": config.correction_enabled,
        "api_reachable": False
    }

    if not config.correction_enabled:
        result["recommendation"] = "Set OPENAI_API_KEY to enable text correction"
        return result

    async with SubtitleCorrector.from_config(config) as corrector:
        result["api_reachable"] = await corrector.health_check()

    if result["api_reachable"]:
        result["recommendation"] = "Correction service is properly configured"
    else:
        result["recommendation"] = "Please check OPENAI_BASE_URL and OPENAI_API_KEY"

    return result


@mcp.tool(
    description="サーバー情報と統計を取得"
)
async def get_server_info() -> dict:
    """
    サーバー情報と統計を取得

    Returns:
        dict: サーバーの名前、バージョン、統計情報
    """
    return {
        "name": "srt-to-vtt",
        "version": __version__,
        "description": "SRT to Bunny Stream compatible WebVTT conversion MCP server",
        "configuration": {
            "api_url": config.api_url,
            "model_name": config.model_name,
            "correction_enabled": config.correction_enabled,
            "correction_language": config.correction_language,
            "max_file_size": config.max_file_size,
            "charset_detection": config.use_charset_detection
        },
        "statistics": conversion_stats,
        "capabilities": [
            "Encoding detection and UTF-8 normalization",
            "Double-encoded text repair",
            "SRT validation and parsing",
            "Bunny Stream compatible VTT generation",
            "Base64 output for API uploads",
            "Language detection (ISO 639-1)",
            "Optional AI text correction"
        ],
        "mime_types": VTTGenerator.get_vtt_mime_type_config()
    }


def main():
    """メインエントリーポイント"""
    # MCPサーバーを起動（stdioトランスポート使用）
    mcp.run()


if __name__ == "__main__":
    main()
