"""
文字コード検出と正規化を行うモジュール

アップロードされた字幕ファイルのバイト列から文字コードを判定し、
BOMなしのUTF-8へ変換する。二重エンコードされたテキスト（文字化け）の
修復も行う。
"""

import logging
from typing import Optional

import chardet

from .error_handler import EncodingFailure

logger = logging.getLogger(__name__)

UTF8_BOM = b'\xef\xbb\xbf'
UTF16_BOMS = (b'\xff\xfe', b'\xfe\xff')

# Windows-1252で印字可能文字が割り当てられている0x80-0x9Fのバイト
# （ISO-8859-1では制御文字。0x81, 0x8D, 0x8F, 0x90, 0x9Dは未定義）
WINDOWS_1252_INDICATORS = frozenset(
    b for b in range(0x80, 0xA0) if b not in (0x81, 0x8D, 0x8F, 0x90, 0x9D)
)

# ISO-8859-1系としてまとめて扱うchardetの判定結果
LATIN_FAMILY = frozenset({
    'ascii', 'utf-8', 'iso-8859-1', 'iso-8859-15', 'windows-1252', 'latin-1',
})

CHARDET_MIN_CONFIDENCE = 0.8
MAX_REPAIR_ROUNDS = 5

# 二重エンコードの目印となる文字（U+00C3）
DOUBLE_ENCODING_MARKER = 'Ã'


class EncodingNormalizer:
    """文字コードの検出とUTF-8への正規化を行うクラス"""

    def detect_encoding(self, data: Optional[bytes], use_chardet: bool = False) -> str:
        """バイト列の文字コードを検出する

        Args:
            data (bytes): 判定対象のバイト列（Noneまたは空も可）
            use_chardet (bool): 上位バイトを含む場合にchardetの判定も参照するか

        Returns:
            str: 'utf-8', 'windows-1252', 'iso-8859-1'
                 （use_chardet有効時はchardetが返した文字コード名もあり得る）
        """
        if not data:
            return 'utf-8'

        if data.startswith(UTF8_BOM):
            return 'utf-8'

        # UTF-16は変換時にUTF-8へ変換するため、判定上はUTF-8扱い
        if data.startswith(UTF16_BOMS):
            return 'utf-8'

        if self.is_valid_encoding(data, 'utf-8'):
            return 'utf-8'

        high_bytes = [b for b in data if b > 0x7F]
        if not high_bytes:
            return 'utf-8'

        if use_chardet:
            guessed = self._guess_with_chardet(data)
            if guessed:
                return guessed

        if any(b in WINDOWS_1252_INDICATORS for b in high_bytes):
            return 'windows-1252'

        # 両方デコードできる場合はより一般的なWindows-1252を優先
        # （ISO-8859-1は全バイトを受け付けるため常に成功する）
        if self.is_valid_encoding(data, 'windows-1252'):
            return 'windows-1252'

        return 'iso-8859-1'

    def _guess_with_chardet(self, data: bytes) -> Optional[str]:
        """chardetでLatin-1系以外の文字コードを推定する"""
        detected = chardet.detect(data)
        encoding = detected.get('encoding')
        confidence = detected.get('confidence') or 0.0

        if not encoding or confidence < CHARDET_MIN_CONFIDENCE:
            return None

        encoding = encoding.lower()
        if encoding in LATIN_FAMILY:
            return None

        logger.debug(f"chardet detected {encoding} (confidence {confidence:.2f})")
        return encoding

    def convert_to_utf8(self, data: Optional[bytes], encoding: Optional[str] = None) -> bytes:
        """バイト列をBOMなしのUTF-8に変換する

        変換に失敗しても例外は送出せず、入力をUTF-8として扱う。

        Args:
            data (bytes): 変換対象のバイト列
            encoding (str): 元の文字コード（省略時は自動検出）

        Returns:
            bytes: BOMなしのUTF-8バイト列
        """
        if not data:
            return b''

        source_encoding = encoding or self.detect_encoding(data)

        try:
            decoded = self._decode(data, source_encoding)
        except EncodingFailure as e:
            logger.warning(f"Encoding conversion failed for {source_encoding}: {e.message}")
            logger.warning("Falling back to UTF-8 interpretation")
            return self.strip_bom(data)

        if decoded.startswith('\ufeff'):
            decoded = decoded[1:]
        decoded = self.fix_double_encoded_utf8(decoded)

        return decoded.encode('utf-8', errors='replace')

    def _decode(self, data: bytes, encoding: str) -> str:
        """指定の文字コードでデコードする（不正なバイトは置換文字になる）

        Raises:
            EncodingFailure: 文字コード名が不明な場合
        """
        # UTF-16のBOM付き入力はUTF-8と判定されるが、実際はUTF-16として読む
        if data.startswith(UTF16_BOMS) and encoding.lower().replace('_', '-') in ('utf-8', 'utf8'):
            encoding = 'utf-16'

        try:
            return data.decode(encoding, errors='replace')
        except LookupError as e:
            raise EncodingFailure(f"Unknown encoding: {encoding}", encoding=encoding) from e

    def fix_double_encoded_utf8(self, text: str) -> str:
        """二重エンコードされたUTF-8テキストを修復する

        UTF-8のバイト列を1バイト文字コードとして解釈してしまった文字列
        （例: 'ü' → 'Ã¼'）を、バイト列に戻してUTF-8として再デコードする。
        正しいテキストに対しては何も変更しない。

        Args:
            text (str): 修復対象の文字列

        Returns:
            str: 修復後の文字列
        """
        for _ in range(MAX_REPAIR_ROUNDS):
            if DOUBLE_ENCODING_MARKER not in text:
                break

            fixed = self._reverse_misdecoding(text)
            if fixed is None or fixed == text:
                break

            text = fixed

        return text

    @staticmethod
    def _reverse_misdecoding(text: str) -> Optional[str]:
        for single_byte in ('latin-1', 'windows-1252'):
            try:
                raw = text.encode(single_byte)
            except UnicodeEncodeError:
                continue
            try:
                return raw.decode('utf-8')
            except UnicodeDecodeError:
                return None
        return None

    @staticmethod
    def is_valid_encoding(data: bytes, encoding: str) -> bool:
        """バイト列が指定の文字コードとして正しくデコードできるかを判定する"""
        try:
            data.decode(encoding)
            return True
        except (UnicodeDecodeError, LookupError):
            return False

    @staticmethod
    def strip_bom(data: bytes) -> bytes:
        """先頭のUTF-8 BOMを取り除く"""
        if data.startswith(UTF8_BOM):
            return data[len(UTF8_BOM):]
        return data
