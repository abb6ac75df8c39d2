"""OpenAI互換API連携の字幕テキスト補正モジュール."""

import asyncio
import json
import logging
import random
from typing import Optional

import httpx
from pydantic import ValidationError

from .config_handler import ConverterConfig
from .error_handler import APIConnectionError, CorrectionError
from .models import CorrectionRequest, CorrectionResult

logger = logging.getLogger(__name__)

BASE_BACKOFF_DELAY = 1.0
MAX_BACKOFF_DELAY = 30.0


class SubtitleCorrector:
    """OpenAI互換APIでSRT字幕の綴りと文法を補正するクラス."""

    def __init__(
        self,
        api_url: str,
        model_name: str,
        api_key: Optional[str] = None,
        correction_language: str = "German",
        request_timeout: float = 30.0,
        max_retries: int = 3
    ):
        """
        補正クラスを初期化.

        Args:
            api_url: APIのベースURL（例: https://api.openai.com/v1）
            model_name: 使用するモデル名
            api_key: APIキー（未設定の場合は補正を行わない）
            correction_language: 補正対象の言語名
            request_timeout: リクエストタイムアウト（秒）
            max_retries: 最大リトライ回数
        """
        self.base_url = api_url.rstrip('/')
        self.model = model_name
        self.api_key = api_key
        self.correction_language = correction_language
        self.request_timeout = request_timeout
        self.max_retries = max_retries

        self.client = httpx.AsyncClient(timeout=httpx.Timeout(request_timeout))

    @classmethod
    def from_config(cls, config: ConverterConfig) -> "SubtitleCorrector":
        """設定オブジェクトから生成."""
        return cls(
            api_url=config.api_url,
            model_name=config.model_name,
            api_key=config.api_key,
            correction_language=config.correction_language,
            request_timeout=float(config.timeout),
            max_retries=config.max_retries,
        )

    async def __aenter__(self):
        """非同期コンテキストマネージャーの開始."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """非同期コンテキストマネージャーの終了."""
        await self.client.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    def is_available(self) -> bool:
        """APIキーが設定されていればTrue."""
        return bool(self.api_key)

    def build_correction_prompt(self, srt_content: str) -> str:
        """
        補正用プロンプトを構築.

        Args:
            srt_content: 補正対象のSRTテキスト

        Returns:
            構築されたプロンプト文字列
        """
        prompt_parts = [
            f"Correct the spelling and grammar of these {self.correction_language} subtitles.",
            "Keep the timestamps and the structure exactly as they are.",
            "Only correct the text between the timestamps.",
            "Keep the line breaks inside the subtitle text.",
            f"Use correct {self.correction_language} orthography, including special characters.",
            "Return only the corrected SRT content.",
            "",
            srt_content,
        ]
        return "\n".join(prompt_parts)

    def calculate_backoff_delay(self, attempt: int) -> float:
        """
        指数バックオフの待機時間（秒）を計算.

        Args:
            attempt: 試行回数（0始まり）

        Returns:
            待機時間（最大30秒 + 最大10%のジッター）
        """
        delay = min(BASE_BACKOFF_DELAY * (2 ** attempt), MAX_BACKOFF_DELAY)
        return delay + random.random() * 0.1 * delay

    async def _make_api_request(self, prompt: str) -> str:
        """
        chat completions APIにリクエストを送信.

        Args:
            prompt: 補正プロンプト

        Returns:
            補正結果

        Raises:
            APIConnectionError: 接続失敗・HTTPエラーの場合
            CorrectionError: 応答内容が不正な場合
        """
        api_url = f"{self.base_url}/chat/completions"

        try:
            request_data = CorrectionRequest(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
                max_tokens=4000
            )

            response = await self.client.post(
                api_url,
                json=request_data.model_dump(exclude_none=True),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                }
            )
            response.raise_for_status()

            result = response.json()

        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP Error {e.response.status_code}: {e.response.text}"
            logger.error(f"API request failed: {error_msg}")
            raise APIConnectionError(error_msg, url=api_url, status_code=e.response.status_code) from e
        except httpx.TimeoutException as e:
            error_msg = f"Request timed out: {str(e)}"
            logger.error(f"API request failed: {error_msg}")
            raise APIConnectionError(error_msg, url=api_url, timeout=self.request_timeout) from e
        except httpx.RequestError as e:
            error_msg = f"Request Error: {str(e)}"
            logger.error(f"API request failed: {error_msg}")
            raise APIConnectionError(error_msg, url=api_url) from e
        except json.JSONDecodeError as e:
            error_msg = f"Invalid API response format: {str(e)}"
            logger.error(f"API response parsing failed: {error_msg}")
            raise CorrectionError(error_msg, model_name=self.model) from e
        except ValidationError as e:
            error_msg = f"Request validation error: {str(e)}"
            logger.error(f"Request validation failed: {error_msg}")
            raise CorrectionError(error_msg, model_name=self.model) from e

        try:
            choices = result["choices"]
            if not choices:
                raise CorrectionError("No choices returned from API", model_name=self.model)
            corrected_text = choices[0]["message"]["content"].strip()
        except (KeyError, TypeError, IndexError, AttributeError) as e:
            raise CorrectionError(
                f"Invalid API response format: {str(e)}", model_name=self.model, api_response=str(result)
            ) from e

        if not corrected_text:
            raise CorrectionError("Empty response from API", model_name=self.model)

        return corrected_text

    async def correct_subtitle_text(self, srt_content: str, max_retries: Optional[int] = None) -> CorrectionResult:
        """
        リトライ付きで字幕テキストを補正.

        レート制限(429)・サーバーエラー(5xx)・タイムアウト・接続失敗のみリトライする。

        Args:
            srt_content: 補正対象のSRTテキスト
            max_retries: 最大リトライ回数（省略時はインスタンスの設定）

        Returns:
            CorrectionResult（失敗時は success=False と error）
        """
        if not self.is_available():
            return CorrectionResult(
                success=False,
                error="Correction API not available. API key may be missing or invalid."
            )

        if not srt_content or not isinstance(srt_content, str):
            return CorrectionResult(success=False, error="Invalid SRT content provided")

        retries = self.max_retries if max_retries is None else max_retries
        prompt = self.build_correction_prompt(srt_content)

        for attempt in range(retries + 1):
            try:
                logger.info(f"補正を試行中 (attempt {attempt + 1}/{retries + 1})")
                corrected_text = await self._make_api_request(prompt)
                logger.info("補正が完了しました")
                return CorrectionResult(success=True, corrected_text=corrected_text)

            except (APIConnectionError, CorrectionError) as e:
                logger.error(f"補正API attempt {attempt + 1} failed: {e.message}")

                retryable = isinstance(e, APIConnectionError) and e.retryable
                if attempt == retries or not retryable:
                    return CorrectionResult(
                        success=False,
                        error=f"Correction API failed after {attempt + 1} attempts: {e.message}"
                    )

                delay = self.calculate_backoff_delay(attempt)
                logger.info(f"{delay:.1f}秒後にリトライします")
                await asyncio.sleep(delay)

        return CorrectionResult(success=False, error="Unexpected error in retry logic")

    async def correct_with_fallback(self, srt_content: str) -> CorrectionResult:
        """
        補正に失敗した場合は元のテキストを返す.

        Args:
            srt_content: 補正対象のSRTテキスト

        Returns:
            CorrectionResult（常に success=True、失敗時は used_fallback=True）
        """
        result = await self.correct_subtitle_text(srt_content)

        if result.success:
            return CorrectionResult(
                success=True,
                corrected_text=result.corrected_text,
                used_fallback=False
            )

        logger.warning(f"補正に失敗したため元のテキストを使用します: {result.error}")
        return CorrectionResult(
            success=True,
            corrected_text=srt_content,
            used_fallback=True,
            error=result.error
        )

    async def health_check(self) -> bool:
        """
        補正APIの接続確認.

        Returns:
            接続可能な場合True
        """
        if not self.is_available():
            return False

        try:
            response = await self.client.get(
                f"{self.base_url}/models",
                headers={"Authorization": f"Bearer {self.api_key}"}
            )
            return response.status_code == 200

        except httpx.HTTPError as e:
            logger.error(f"Health check failed: {str(e)}")
            return False
