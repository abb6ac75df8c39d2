"""Data models for conversion, detection and compliance results."""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base model whose aliases are the camelCase names of the JSON API."""

    model_config = ConfigDict(populate_by_name=True)

    def to_api(self) -> dict:
        """Dump using the external field names."""
        return self.model_dump(by_alias=True)


class LanguageMatch(ApiModel):
    """A single language candidate."""

    code: str = Field(..., description="ISO 639-1 language code")
    name: str = Field(..., description="Display name of the language")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Score in [0, 1]")


class DetectionResult(ApiModel):
    """Outcome of language detection."""

    detected: bool = Field(..., description="Whether the top score reached the threshold")
    language: Optional[LanguageMatch] = Field(None, description="Detected language, if any")
    confidence: float = Field(0.0, description="Score of the top candidate")
    suggestions: List[LanguageMatch] = Field(default_factory=list, description="Up to three candidates")

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls(detected=False, language=None, confidence=0.0, suggestions=[])


class ComplianceChecks(ApiModel):
    """Named Bunny Stream compliance checks."""

    has_webvtt_header: bool = Field(False, alias="hasWebVTTHeader")
    has_empty_line_after_header: bool = Field(False, alias="hasEmptyLineAfterHeader")
    no_bom: bool = Field(False, alias="noBOM")
    no_sequence_numbers: bool = Field(False, alias="noSequenceNumbers")
    valid_timestamps: bool = Field(False, alias="validTimestamps")
    proper_encoding: bool = Field(False, alias="properEncoding")


class ComplianceReport(ApiModel):
    """Non-throwing VTT compliance diagnostic."""

    is_valid: bool = Field(False, alias="isValid")
    compliance: ComplianceChecks = Field(default_factory=ComplianceChecks)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def checks(self) -> Dict[str, bool]:
        """Named boolean checks keyed by their API names."""
        return self.compliance.model_dump(by_alias=True)


class EncodedSize(ApiModel):
    original: int = Field(..., description="Size of the UTF-8 bytes")
    encoded: int = Field(..., description="Length of the Base64 text")


class Base64Metadata(ApiModel):
    format: str = "WebVTT"
    bunny_stream_compatible: bool = Field(True, alias="bunnyStreamCompatible")
    encoding: str = "UTF-8 without BOM"


class Base64Output(ApiModel):
    """Base64 packaged VTT for JSON delivery."""

    content: str = Field(..., description="Base64 of the UTF-8 VTT bytes")
    mime_type: str = Field("text/vtt", alias="mimeType")
    charset: str = "utf-8"
    encoding: str = "base64"
    size: EncodedSize
    metadata: Base64Metadata = Field(default_factory=Base64Metadata)


class CorrectionRequest(BaseModel):
    """Request payload for an OpenAI-compatible chat completions API."""

    model: str = Field(..., description="Model name to use")
    messages: list[dict] = Field(..., description="Chat messages")
    temperature: float = Field(0.1, description="Temperature for correction")
    max_tokens: Optional[int] = Field(None, description="Maximum tokens to generate")


class CorrectionResult(ApiModel):
    """Outcome of a correction attempt."""

    success: bool = Field(..., description="Whether usable text is available")
    corrected_text: Optional[str] = Field(None, alias="correctedText")
    used_fallback: bool = Field(False, alias="usedFallback")
    error: Optional[str] = None


class ConversionWarning(ApiModel):
    type: str = Field(..., description="correction, compliance or base64")
    message: str


class ConversionStats(ApiModel):
    original_encoding: str = Field(..., alias="originalEncoding")
    subtitle_count: int = Field(..., alias="subtitleCount")
    correction_applied: bool = Field(False, alias="correctionApplied")
    file_size: Dict[str, int] = Field(default_factory=dict, alias="fileSize")


class ConversionResult(ApiModel):
    """Everything produced by one run of the conversion pipeline."""

    success: bool = True
    message: str = "Conversion completed successfully"
    stage: str = "complete"
    vtt_content: str = Field(..., alias="vttContent")
    vtt_filename: str = Field(..., alias="vttFilename")
    stats: ConversionStats
    language: DetectionResult
    compliance: ComplianceReport
    mime_type: str = Field("text/vtt", alias="mimeType")
    headers: Dict[str, str] = Field(default_factory=dict)
    warnings: List[ConversionWarning] = Field(default_factory=list)
    base64: Optional[Base64Output] = None
