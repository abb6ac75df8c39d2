"""
言語検出モジュール

字幕テキストを各言語のパターンと頻出語で採点し、
ISO 639-1コードの候補を返す。
"""

import re
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from .error_handler import InvalidInputError
from .models import DetectionResult, LanguageMatch

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.1
SUGGESTION_CONFIDENCE = 0.05
MAX_SUGGESTIONS = 3

PATTERN_WEIGHT = 0.4
COMMON_WORD_WEIGHT = 0.6
PATTERN_BOOST = 2.0
COMMON_WORD_BOOST = 3.0
SPECIAL_CHARACTER_BONUS = 0.3


@dataclass(frozen=True)
class LanguageProfile:
    """言語ごとの採点ルール

    Attributes:
        code (str): ISO 639-1コード
        name (str): 表示名
        patterns (tuple): 原文（大文字小文字そのまま）に適用する正規表現
        common_words (frozenset): 小文字の頻出語
        bonus_chars (Pattern): 特有の文字（含まれていれば一度だけ加点）
    """
    code: str
    name: str
    patterns: Tuple[Pattern, ...]
    common_words: frozenset
    bonus_chars: Optional[Pattern] = None


def _profile(code: str, name: str, patterns: Iterable[str], common_words: Iterable[str],
             bonus_chars: str = None) -> LanguageProfile:
    return LanguageProfile(
        code=code,
        name=name,
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
        common_words=frozenset(common_words),
        bonus_chars=re.compile(bonus_chars, re.IGNORECASE) if bonus_chars else None,
    )


LANGUAGE_PROFILES: Mapping[str, LanguageProfile] = MappingProxyType({
    profile.code: profile for profile in (
        _profile(
            'en', 'English',
            [
                r'\b(the|and|or|but|in|on|at|to|for|of|with|by)\b',
                r'\b(is|are|was|were|have|has|had|will|would|could|should)\b',
                r'\b(this|that|these|those|here|there|where|when|what|who|how|why)\b',
            ],
            ['the', 'and', 'to', 'of', 'a', 'in', 'is', 'it', 'you', 'that',
             'he', 'was', 'for', 'on', 'are', 'as', 'with', 'his', 'they', 'i'],
        ),
        _profile(
            'de', 'German',
            [
                r'\b(der|die|das|den|dem|des|ein|eine|einen|einem|einer|eines)\b',
                r'\b(und|oder|aber|in|auf|an|zu|für|von|mit|bei|nach|über|unter|vor|hinter)\b',
                r'\b(ist|sind|war|waren|haben|hat|hatte|wird|würde|könnte|sollte)\b',
                r'[äöüß]',
            ],
            ['der', 'die', 'und', 'in', 'den', 'von', 'zu', 'das', 'mit', 'sich',
             'des', 'auf', 'für', 'ist', 'im', 'dem', 'nicht', 'ein', 'eine', 'als'],
            bonus_chars=r'[äöüß]',
        ),
        _profile(
            'es', 'Spanish',
            [
                r'\b(el|la|los|las|un|una|unos|unas|de|del|al)\b',
                r'\b(y|o|pero|en|con|por|para|desde|hasta|sobre|bajo|ante|tras)\b',
                r'\b(es|son|era|eran|tiene|tienen|tenía|será|sería|podría|debería)\b',
                r'[ñáéíóúü]',
            ],
            ['de', 'la', 'que', 'el', 'en', 'y', 'a', 'es', 'se', 'no',
             'te', 'lo', 'le', 'da', 'su', 'por', 'son', 'con', 'para', 'al'],
            bonus_chars=r'[ñáéíóúü]',
        ),
        _profile(
            'fr', 'French',
            [
                r"\b(le|la|les|un|une|des|du|de|d')\b",
                r'\b(et|ou|mais|dans|sur|avec|par|pour|sans|sous|entre|pendant|après|avant)\b',
                r'\b(est|sont|était|étaient|a|ont|avait|sera|serait|pourrait|devrait)\b',
                r'[àâäéèêëïîôöùûüÿç]',
            ],
            ['de', 'le', 'et', 'à', 'un', 'il', 'être', 'en', 'avoir', 'que',
             'pour', 'dans', 'ce', 'son', 'une', 'sur', 'avec', 'ne', 'se'],
            bonus_chars=r'[àâäéèêëïîôöùûüÿç]',
        ),
        _profile(
            'it', 'Italian',
            [
                r'\b(il|la|lo|gli|le|un|una|uno|del|della|dello|degli|delle)\b',
                r'\b(e|o|ma|in|su|con|per|da|di|a|tra|fra|durante|dopo|prima)\b',
                r'\b(è|sono|era|erano|ha|hanno|aveva|sarà|sarebbe|potrebbe|dovrebbe)\b',
                r'[àèéìíîòóù]',
            ],
            ['di', 'a', 'da', 'in', 'con', 'su', 'per', 'tra', 'fra', 'la',
             'il', 'lo', 'gli', 'le', 'un', 'una', 'uno', 'del', 'della', 'dello'],
        ),
        _profile(
            'pt', 'Portuguese',
            [
                r'\b(o|a|os|as|um|uma|uns|umas|do|da|dos|das|no|na|nos|nas)\b',
                r'\b(e|ou|mas|em|com|por|para|de|desde|até|sobre|sob|entre|durante|após|antes)\b',
                r'\b(é|são|era|eram|tem|têm|tinha|será|seria|poderia|deveria)\b',
                r'[ãâáàçéêíóôõú]',
            ],
            ['de', 'a', 'o', 'que', 'e', 'do', 'da', 'em', 'um', 'para',
             'é', 'com', 'não', 'uma', 'os', 'no', 'se', 'na', 'por', 'mais'],
        ),
        _profile(
            'ru', 'Russian',
            [
                r'[а-яё]',
                r'\b(и|в|не|на|я|быть|тот|он|оно|она|они|мы|вы|ты|что|это|как|где|когда)\b',
            ],
            ['в', 'и', 'не', 'на', 'я', 'быть', 'тот', 'он', 'оно', 'она',
             'они', 'мы', 'вы', 'ты', 'что', 'это', 'как', 'где', 'когда', 'почему'],
        ),
        _profile(
            'ja', 'Japanese',
            [
                r'[ひらがなカタカナ漢字]',
                r'[あ-んア-ン一-龯]',
                r'\b(です|である|だ|は|が|を|に|で|と|の|から|まで|より|について)\b',
            ],
            ['の', 'に', 'は', 'を', 'た', 'が', 'で', 'て', 'と', 'し',
             'れ', 'さ', 'ある', 'いる', 'も', 'する', 'から', 'な', 'こと', 'として'],
        ),
        _profile(
            'zh', 'Chinese',
            [
                r'[一-龯]',
                r'\b(的|了|和|是|在|有|不|我|你|他|她|它|们|这|那|什么|怎么|为什么|哪里|什么时候)\b',
            ],
            ['的', '了', '和', '是', '在', '有', '不', '我', '你', '他',
             '她', '它', '们', '这', '那', '什么', '怎么', '为什么', '哪里', '什么时候'],
        ),
        _profile(
            'ko', 'Korean',
            [
                r'[가-힣]',
                r'\b(이|그|저|의|를|을|에|에서|와|과|로|으로|는|은|가|하다|있다|없다|되다)\b',
            ],
            ['이', '그', '저', '의', '를', '을', '에', '에서', '와', '과',
             '로', '으로', '는', '은', '가', '하다', '있다', '없다', '되다'],
        ),
    )
})

# SRTのタイムスタンプらしき部分文字列
SRT_HINT_PATTERN = re.compile(r'[0-9]{2}:[0-9]{2}:[0-9]{2}[,.][0-9]{3}')
BLOCK_SEPARATOR = re.compile(r'\n\s*\n')


class LanguageDetector:
    """字幕テキストの言語を推定するクラス"""

    def __init__(self, profiles: Mapping[str, LanguageProfile] = LANGUAGE_PROFILES):
        self.profiles = profiles

    def extract_text_from_srt(self, srt_content: str) -> str:
        """SRTから字幕番号とタイムスタンプを除いたテキストを取り出す

        Args:
            srt_content (str): SRT形式のテキスト

        Returns:
            str: 各字幕の行を空白1つで連結したテキスト
        """
        if not srt_content or not isinstance(srt_content, str):
            raise InvalidInputError("Invalid SRT content: must be a non-empty string")

        normalized = srt_content.replace('\r\n', '\n').replace('\r', '\n')
        text_lines = []

        for block in BLOCK_SEPARATOR.split(normalized.strip()):
            lines = block.strip().split('\n')
            # 番号とタイムスタンプだけのブロックは対象外
            if len(lines) < 3:
                continue
            text_lines.extend(line.strip() for line in lines[2:] if line.strip())

        return ' '.join(text_lines)

    def calculate_language_score(self, text: str, lang_code: str) -> float:
        """指定言語らしさのスコアを0〜1で返す"""
        profile = self.profiles.get(lang_code)
        if profile is None:
            return 0.0

        words = [word for word in text.lower().split() if len(word) > 1]
        if not words:
            return 0.0

        # 正規表現パターンの一致率（平均して強調）
        pattern_score = 0.0
        for pattern in profile.patterns:
            matches = sum(1 for _ in pattern.finditer(text))
            if matches:
                pattern_score += min(matches / max(len(words), 5), 1.0)
        pattern_score = pattern_score / len(profile.patterns) * PATTERN_BOOST

        # 頻出語の割合
        common_matches = sum(1 for word in words if word in profile.common_words)
        common_word_score = common_matches / len(words) * COMMON_WORD_BOOST

        score = pattern_score * PATTERN_WEIGHT + common_word_score * COMMON_WORD_WEIGHT

        if profile.bonus_chars is not None and profile.bonus_chars.search(text):
            score += SPECIAL_CHARACTER_BONUS

        return max(0.0, min(score, 1.0))

    def detect_language(self, content: str) -> DetectionResult:
        """字幕テキスト（またはSRT全体）の言語を推定する

        Args:
            content (str): 抽出済みテキストまたはSRT形式のテキスト

        Returns:
            DetectionResult: 推定結果と上位3件までの候補

        Raises:
            InvalidInputError: 文字列でない、または空の場合
        """
        if not content or not isinstance(content, str):
            raise InvalidInputError("Invalid content: must be a non-empty string")

        text = content
        if '-->' in content or SRT_HINT_PATTERN.search(content):
            text = self.extract_text_from_srt(content)

        if not text.strip():
            return DetectionResult.empty()

        ranked = sorted(
            (
                LanguageMatch(
                    code=profile.code,
                    name=profile.name,
                    confidence=self.calculate_language_score(text, profile.code),
                )
                for profile in self.profiles.values()
            ),
            key=lambda match: match.confidence,
            reverse=True,
        )

        top = ranked[0]
        detected = top.confidence >= MIN_CONFIDENCE
        suggestions = [m for m in ranked if m.confidence >= SUGGESTION_CONFIDENCE][:MAX_SUGGESTIONS]

        logger.debug(f"Language scores: {[(m.code, round(m.confidence, 3)) for m in ranked]}")

        return DetectionResult(
            detected=detected,
            language=top if detected else None,
            confidence=top.confidence,
            suggestions=suggestions,
        )

    def get_supported_languages(self) -> List[Dict[str, str]]:
        """対応言語のコードと名前を名前順で返す"""
        return sorted(
            ({'code': profile.code, 'name': profile.name} for profile in self.profiles.values()),
            key=lambda language: language['name'],
        )

    def is_valid_language_code(self, lang_code) -> bool:
        """対応しているISO 639-1コードか（大文字小文字は区別しない）"""
        return (
            isinstance(lang_code, str)
            and len(lang_code) == 2
            and lang_code.lower() in self.profiles
        )

    def get_language_name(self, lang_code) -> Optional[str]:
        """ISO 639-1コードから言語名を返す（未対応ならNone）"""
        if not self.is_valid_language_code(lang_code):
            return None
        return self.profiles[lang_code.lower()].name
