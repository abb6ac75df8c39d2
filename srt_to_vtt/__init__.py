"""
SRT→VTT変換システム - モジュールパッケージ

文字コード正規化、SRT解析、言語検出、VTT生成の各機能を提供します。
"""

from .config_handler import ConverterConfig, ConfigHandler
from .encoding import EncodingNormalizer
from .srt_parser import SRTParser, Subtitle, Timestamp
from .vtt_generator import VTTGenerator
from .language_detection import LanguageDetector, LanguageProfile, LANGUAGE_PROFILES
from .corrector import SubtitleCorrector
from .pipeline import ConversionPipeline
from .error_handler import (
    SubtitleConversionError,
    EncodingFailure,
    InvalidFormatError,
    InvalidTimestampError,
    GenerationError,
    ComplianceViolationError,
    InvalidInputError,
    CorrectionError,
    APIConnectionError,
    FileError,
    ErrorHandler
)

__all__ = [
    'ConverterConfig',
    'ConfigHandler',
    'EncodingNormalizer',
    'SRTParser',
    'Subtitle',
    'Timestamp',
    'VTTGenerator',
    'LanguageDetector',
    'LanguageProfile',
    'LANGUAGE_PROFILES',
    'SubtitleCorrector',
    'ConversionPipeline',
    'SubtitleConversionError',
    'EncodingFailure',
    'InvalidFormatError',
    'InvalidTimestampError',
    'GenerationError',
    'ComplianceViolationError',
    'InvalidInputError',
    'CorrectionError',
    'APIConnectionError',
    'FileError',
    'ErrorHandler'
]

__version__ = "1.0.0"
