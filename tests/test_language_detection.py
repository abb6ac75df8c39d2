"""
言語検出モジュールの単体テスト
"""

import unittest

from srt_to_vtt.error_handler import InvalidInputError
from srt_to_vtt.language_detection import (
    LANGUAGE_PROFILES,
    MIN_CONFIDENCE,
    SUGGESTION_CONFIDENCE,
    LanguageDetector,
)

ENGLISH_TEXT = (
    "The quick brown fox jumps over the lazy dog. "
    "This is a test of the English language detection system."
)
GERMAN_TEXT = "Der Mann und die Frau sind in dem Haus. Es ist schön für uns."


class TestLanguageDetector(unittest.TestCase):
    """LanguageDetectorクラスのテスト"""

    def setUp(self):
        self.detector = LanguageDetector()

    def assertWellFormed(self, result):
        """検出結果の不変条件を確認する"""
        confidences = [s.confidence for s in result.suggestions]
        self.assertEqual(confidences, sorted(confidences, reverse=True))
        self.assertLessEqual(len(result.suggestions), 3)
        self.assertTrue(all(c >= SUGGESTION_CONFIDENCE for c in confidences))
        self.assertTrue(0.0 <= result.confidence <= 1.0)

        if result.detected:
            self.assertGreaterEqual(result.confidence, MIN_CONFIDENCE)
            self.assertEqual(result.language, result.suggestions[0])
            self.assertEqual(result.language.confidence, result.confidence)
        else:
            self.assertIsNone(result.language)

    def test_detect_english(self):
        result = self.detector.detect_language(ENGLISH_TEXT)

        self.assertTrue(result.detected)
        self.assertEqual(result.language.code, "en")
        self.assertEqual(result.language.name, "English")
        self.assertGreater(result.confidence, 0.3)
        self.assertWellFormed(result)

    def test_detect_german(self):
        result = self.detector.detect_language(GERMAN_TEXT)

        self.assertTrue(result.detected)
        self.assertEqual(result.language.code, "de")
        self.assertWellFormed(result)

    def test_detect_from_srt(self):
        """SRT全体を渡した場合は字幕テキストだけで判定する"""
        srt = (
            "1\n00:00:01,000 --> 00:00:04,000\nThe quick brown fox jumps over the lazy dog.\n\n"
            "2\n00:00:05,000 --> 00:00:08,000\nThis is a test of the English language detection system.\n"
        )

        result = self.detector.detect_language(srt)

        self.assertEqual(result.language.code, "en")
        self.assertWellFormed(result)

    def test_srt_without_text(self):
        result = self.detector.detect_language("1\n00:00:01,000 --> 00:00:02,000\n")

        self.assertFalse(result.detected)
        self.assertEqual(result.confidence, 0.0)
        self.assertEqual(result.suggestions, [])

    def test_whitespace_only(self):
        result = self.detector.detect_language("   \n\t ")

        self.assertFalse(result.detected)
        self.assertIsNone(result.language)
        self.assertEqual(result.suggestions, [])

    def test_numbers_only(self):
        """どの言語にも一致しないテキストは未検出"""
        result = self.detector.detect_language("123 456 789")

        self.assertFalse(result.detected)
        self.assertEqual(result.suggestions, [])
        self.assertWellFormed(result)

    def test_invalid_input(self):
        for value in ("", None, 42, ["text"]):
            with self.subTest(value=value):
                with self.assertRaises(InvalidInputError):
                    self.detector.detect_language(value)

    def test_results_are_well_formed(self):
        samples = [
            ENGLISH_TEXT,
            GERMAN_TEXT,
            "El perro come la comida y el gato duerme en la casa.",
            "Le chat est sur la table avec les enfants.",
            "Привет, как дела? Это тест.",
            "こんにちは 世界 です",
            "안녕하세요 저는 학생 입니다",
            "a b c",
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                self.assertWellFormed(self.detector.detect_language(sample))

    def test_to_api(self):
        data = self.detector.detect_language(ENGLISH_TEXT).to_api()

        self.assertEqual(set(data), {'detected', 'language', 'confidence', 'suggestions'})
        self.assertEqual(data['language']['code'], "en")


class TestLanguageScore(unittest.TestCase):

    def setUp(self):
        self.detector = LanguageDetector()

    def test_score_range(self):
        for code in LANGUAGE_PROFILES:
            with self.subTest(code=code):
                score = self.detector.calculate_language_score(GERMAN_TEXT, code)
                self.assertGreaterEqual(score, 0.0)
                self.assertLessEqual(score, 1.0)

    def test_unknown_language(self):
        self.assertEqual(self.detector.calculate_language_score(ENGLISH_TEXT, "xx"), 0.0)

    def test_short_words_only(self):
        """1文字の単語しかない場合は0"""
        self.assertEqual(self.detector.calculate_language_score("a b c", "en"), 0.0)


class TestExtractText(unittest.TestCase):

    def setUp(self):
        self.detector = LanguageDetector()

    def test_extract(self):
        srt = (
            "1\r\n00:00:01,000 --> 00:00:02,000\r\nHello there\r\n  General  \r\n\r\n"
            "2\r\n00:00:03,000 --> 00:00:04,000\r\nSecond\r\n"
        )
        self.assertEqual(self.detector.extract_text_from_srt(srt), "Hello there General Second")

    def test_skips_blocks_without_text(self):
        srt = "1\n00:00:01,000 --> 00:00:02,000\n\n2\n00:00:03,000 --> 00:00:04,000\nOnly this"
        self.assertEqual(self.detector.extract_text_from_srt(srt), "Only this")

    def test_invalid_input(self):
        with self.assertRaises(InvalidInputError):
            self.detector.extract_text_from_srt("")


class TestSupportedLanguages(unittest.TestCase):

    def setUp(self):
        self.detector = LanguageDetector()

    def test_get_supported_languages(self):
        languages = self.detector.get_supported_languages()

        self.assertEqual(len(languages), 10)
        names = [language['name'] for language in languages]
        self.assertEqual(names, sorted(names))
        self.assertIn({'code': 'ja', 'name': 'Japanese'}, languages)
        self.assertEqual(
            {language['code'] for language in languages},
            {'en', 'de', 'es', 'fr', 'it', 'pt', 'ru', 'ja', 'zh', 'ko'},
        )

    def test_is_valid_language_code(self):
        self.assertTrue(self.detector.is_valid_language_code("en"))
        self.assertTrue(self.detector.is_valid_language_code("DE"))
        self.assertFalse(self.detector.is_valid_language_code("eng"))
        self.assertFalse(self.detector.is_valid_language_code("xx"))
        self.assertFalse(self.detector.is_valid_language_code(None))

    def test_get_language_name(self):
        self.assertEqual(self.detector.get_language_name("de"), "German")
        self.assertEqual(self.detector.get_language_name("KO"), "Korean")
        self.assertIsNone(self.detector.get_language_name("xx"))


if __name__ == '__main__':
    unittest.main()
