"""
SRTファイルの検証と解析を行うモジュール

このモジュールはSRT (SubRip) 形式の字幕テキストを検証・解析し、
字幕オブジェクトのリストとして返す機能を提供する。
"""

import re
import logging
from pathlib import Path
from typing import List, NamedTuple, Union
from dataclasses import dataclass

from .encoding import EncodingNormalizer
from .error_handler import FileError, InvalidFormatError, InvalidTimestampError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Subtitle:
    """字幕エントリを表すデータクラス

    Attributes:
        index (int): 字幕の番号（1から開始）
        start_time (str): 開始時刻（HH:MM:SS,mmm形式）
        end_time (str): 終了時刻（HH:MM:SS,mmm形式）
        text (str): 字幕テキスト（改行を含む可能性がある）
    """
    index: int
    start_time: str
    end_time: str
    text: str


class Timestamp(NamedTuple):
    """SRTタイムスタンプの各要素"""
    hours: int
    minutes: int
    seconds: int
    milliseconds: int

    def total_milliseconds(self) -> int:
        return ((self.hours * 60 + self.minutes) * 60 + self.seconds) * 1000 + self.milliseconds


class SRTParser:
    """SRTテキストの検証と解析を行うクラス"""

    # 字幕番号の行
    INDEX_PATTERN = re.compile(r'[0-9]+')

    # タイムスタンプ行（分・秒の範囲はここでは検証しない）
    TIME_PATTERN = re.compile(
        r'([0-9]{2}:[0-9]{2}:[0-9]{2},[0-9]{3})\s*-->\s*([0-9]{2}:[0-9]{2}:[0-9]{2},[0-9]{3})'
    )

    TIMESTAMP_PATTERN = re.compile(r'([0-9]{2}):([0-9]{2}):([0-9]{2}),([0-9]{3})')

    def __init__(self, normalizer: EncodingNormalizer = None):
        """SRTParserのインスタンスを初期化する

        Args:
            normalizer (EncodingNormalizer): ファイル読み込み時に使う文字コード正規化
        """
        self.normalizer = normalizer or EncodingNormalizer()

    def validate_srt_format(self, content) -> bool:
        """内容がSRT形式として解析できるかを判定する

        Args:
            content: 検証対象のテキスト

        Returns:
            bool: parse_srtが成功する場合はTrue
        """
        if not content or not isinstance(content, str):
            return False

        try:
            self._parse(content)
            return True
        except InvalidFormatError:
            return False

    def parse_srt(self, content: str) -> List[Subtitle]:
        """SRTテキストを解析して字幕オブジェクトのリストを返す

        Args:
            content (str): SRT形式のテキスト

        Returns:
            List[Subtitle]: 解析された字幕オブジェクトのリスト（ブロック順）

        Raises:
            InvalidFormatError: SRT形式が不正な場合
        """
        if not isinstance(content, str):
            raise InvalidFormatError("Invalid SRT format: content must be a string")

        try:
            return self._parse(content)
        except InvalidFormatError as e:
            raise InvalidFormatError(
                f"Invalid SRT format: {e.message}",
                line_number=e.context.get('line_number'),
            ) from e

    def _parse(self, content: str) -> List[Subtitle]:
        # BOMの除去と改行コードの統一
        if content.startswith('\ufeff'):
            content = content[1:]
        normalized = content.replace('\r\n', '\n').replace('\r', '\n')

        lines = normalized.split('\n')
        subtitles = []
        i = 0

        while i < len(lines):
            # ブロック間の空行を読み飛ばす
            while i < len(lines) and lines[i].strip() == '':
                i += 1

            if i >= len(lines):
                break

            # 1行目: 字幕番号
            index_line = lines[i].strip()
            if not self.INDEX_PATTERN.fullmatch(index_line):
                raise InvalidFormatError(
                    f'Invalid subtitle index "{index_line}" at line {i + 1} (expected number)',
                    line_number=i + 1,
                )
            index = int(index_line)
            i += 1

            # 2行目: タイムスタンプ
            if i >= len(lines):
                raise InvalidFormatError(f"Missing timestamp for subtitle {index}", line_number=i)

            time_match = self.TIME_PATTERN.fullmatch(lines[i].strip())
            if not time_match:
                raise InvalidFormatError(
                    f'Invalid timestamp format "{lines[i].strip()}" for subtitle {index}',
                    line_number=i + 1,
                )
            start_time, end_time = time_match.groups()
            i += 1

            # 3行目以降: 次のブロックが始まるまでが字幕テキスト
            text_lines = []
            while i < len(lines):
                line = lines[i]
                if line.strip() == '' and i + 1 < len(lines) and self._starts_next_block(lines, i):
                    break
                text_lines.append(line)
                i += 1

            if not any(line.strip() for line in text_lines):
                raise InvalidFormatError(f"No text content found for subtitle {index}", line_number=i)

            subtitles.append(Subtitle(
                index=index,
                start_time=start_time,
                end_time=end_time,
                text='\n'.join(text_lines).strip(),
            ))

        if not subtitles:
            raise InvalidFormatError("No valid subtitle blocks found")

        return subtitles

    def _starts_next_block(self, lines: List[str], blank: int) -> bool:
        """空行 lines[blank] の直後から次の字幕ブロックが始まるかを判定する

        空行の次が数字だけの行であれば次のブロックとみなす。数字でなくても
        その次の行がタイムスタンプであれば、字幕番号の誤りとしてエラーにする。
        それ以外の空行は字幕テキスト内の空行として扱う。
        """
        next_line = lines[blank + 1].strip()

        if next_line and blank + 2 < len(lines):
            if self.TIME_PATTERN.fullmatch(lines[blank + 2].strip()):
                if not self.INDEX_PATTERN.fullmatch(next_line):
                    raise InvalidFormatError(
                        f'Invalid subtitle index "{next_line}" at line {blank + 2} (expected number)',
                        line_number=blank + 2,
                    )
                return True

        return bool(self.INDEX_PATTERN.fullmatch(next_line))

    def parse_timestamp(self, timestamp: str) -> Timestamp:
        """SRT形式のタイムスタンプを各要素に分解する

        Args:
            timestamp (str): HH:MM:SS,mmm形式の時刻文字列

        Returns:
            Timestamp: 時・分・秒・ミリ秒

        Raises:
            InvalidTimestampError: 形式が不正な場合
        """
        match = self.TIMESTAMP_PATTERN.fullmatch(timestamp) if isinstance(timestamp, str) else None
        if not match:
            raise InvalidTimestampError(
                f"Invalid timestamp format: {timestamp}. Expected format: HH:MM:SS,mmm",
                timestamp=timestamp if isinstance(timestamp, str) else None,
                stage="parser",
            )

        hours, minutes, seconds, milliseconds = map(int, match.groups())
        return Timestamp(hours, minutes, seconds, milliseconds)

    def generate_srt_string(self, subtitles: List[Subtitle]) -> str:
        """字幕オブジェクトのリストからSRT形式の文字列を生成する

        Args:
            subtitles (List[Subtitle]): 字幕オブジェクトのリスト

        Returns:
            str: SRT形式の文字列データ

        Raises:
            ValueError: 字幕データが不正な場合
        """
        if not subtitles:
            raise ValueError("No subtitles to serialize")

        for i, subtitle in enumerate(subtitles):
            if not subtitle.start_time or not subtitle.end_time or not subtitle.text:
                raise ValueError(f"Incomplete subtitle data at index {i}")

        blocks = [
            f"{subtitle.index}\n{subtitle.start_time} --> {subtitle.end_time}\n{subtitle.text}"
            for subtitle in subtitles
        ]
        return "\n\n".join(blocks)

    @staticmethod
    def read_file(file_path: Union[str, Path]) -> bytes:
        """SRTファイルをバイト列のまま読み込む

        Raises:
            FileError: ファイルが読み込めない場合
        """
        path = Path(file_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise FileError(f"Failed to read file: {e}", file_path=str(path), operation="read") from e

    def parse_file(self, file_path: Union[str, Path]) -> List[Subtitle]:
        """SRTファイルを読み込み、文字コードを正規化してから解析する

        Args:
            file_path: ファイルパス（Path オブジェクトまたは文字列）

        Returns:
            List[Subtitle]: 解析された字幕オブジェクトのリスト

        Raises:
            FileError: ファイルが読み込めない場合
            InvalidFormatError: SRT形式が不正な場合
        """
        path = Path(file_path)
        raw = self.read_file(path)

        encoding = self.normalizer.detect_encoding(raw)
        logger.debug(f"Detected encoding for {path.name}: {encoding}")
        content = self.normalizer.convert_to_utf8(raw, encoding).decode('utf-8', errors='replace')

        try:
            return self.parse_srt(content)
        except InvalidFormatError as e:
            e.context['file_path'] = str(path)
            raise
