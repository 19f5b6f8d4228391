"""Extract -> normalize -> classify pipeline with early-exit guardrails."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from amount_cli.amount_classify.classifier import AmountClassifier
from amount_cli.amount_classify.llm_client import LLMValidation, LLMValidator
from amount_cli.amount_classify.types import ClassificationOutput, ClassifiedAmount, ValidationReport
from amount_cli.amount_classify.validator import validate_classification
from amount_cli.amount_extract.extractor import TokenExtractor
from amount_cli.amount_extract.ocr import OCREngine
from amount_cli.amount_extract.types import ExtractionOutput
from amount_cli.amount_normalize.normalizer import AmountNormalizer
from amount_cli.amount_normalize.types import NormalizationOutput
from amount_cli.shared.config import AppConfig, default_config
from amount_cli.shared.exceptions import OCRError
from amount_cli.shared.logging import Logger, get_logger

STATUS_OK = "ok"
STATUS_NO_AMOUNTS = "no_amounts_found"
STATUS_NORMALIZATION_FAILED = "normalization_failed"

NO_AMOUNTS_REASON = "document too noisy or contains no numeric amounts"
NORMALIZATION_FAILED_REASON = "could not parse any valid numeric amounts from extracted tokens"
UNKNOWN_CURRENCY = "UNKNOWN"


@dataclass(slots=True)
class PipelineMetadata:
    extraction_confidence: float
    normalization_confidence: float
    classification_confidence: float
    total_tokens_extracted: int
    amounts_normalized: int
    amounts_classified: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "extraction_confidence": self.extraction_confidence,
            "normalization_confidence": self.normalization_confidence,
            "classification_confidence": self.classification_confidence,
            "total_tokens_extracted": self.total_tokens_extracted,
            "amounts_normalized": self.amounts_normalized,
            "amounts_classified": self.amounts_classified,
        }


@dataclass(slots=True)
class GuardrailResult:
    """Terminal result returned when a stage produced nothing usable."""

    status: str
    reason: str
    extracted_text: str = ""
    raw_tokens: list[str] | None = None

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status, "reason": self.reason}
        if self.raw_tokens is not None:
            payload["raw_tokens"] = list(self.raw_tokens)
        payload["extracted_text"] = self.extracted_text
        return payload


@dataclass(slots=True)
class DetectionResult:
    """Successful pipeline output with provenance-carrying amounts."""

    currency: str
    amounts: list[ClassifiedAmount]
    metadata: PipelineMetadata
    validation: ValidationReport = field(default_factory=ValidationReport)
    llm_validation: LLMValidation | None = None
    status: str = STATUS_OK

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "currency": self.currency,
            "amounts": [amount.to_dict() for amount in self.amounts],
            "status": self.status,
            "metadata": self.metadata.to_dict(),
            "validation": self.validation.to_dict(),
        }
        if self.llm_validation is not None:
            payload["llm_validation"] = self.llm_validation.to_dict()
        return payload


PipelineResult = DetectionResult | GuardrailResult


class AmountPipeline:
    """Run the three stages in order, stopping early when a stage yields nothing."""

    def __init__(
        self,
        config: AppConfig,
        logger: Logger | None = None,
        *,
        ocr_engine: OCREngine | None = None,
        llm_validator: LLMValidator | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger()
        self.ocr_engine = ocr_engine
        self.llm_validator = llm_validator
        self.extractor = TokenExtractor(config.confidence, self.logger)
        self.normalizer = AmountNormalizer(config.confidence, self.logger)
        self.classifier = AmountClassifier(config.confidence, self.logger)

    def recognize(self, image: bytes) -> tuple[str, float]:
        if self.ocr_engine is None:
            raise OCRError("Image input requires an OCR engine, but none is configured")
        result = self.ocr_engine.recognize(image, self.config.ocr.language)
        return result.text.strip(), result.confidence

    def extract(
        self,
        text: str | None = None,
        *,
        ocr_text: str | None = None,
        ocr_confidence: float | None = None,
        image: bytes | None = None,
    ) -> ExtractionOutput:
        if image is not None:
            recognized, recognized_confidence = self.recognize(image)
            ocr_text = f"{ocr_text}\n{recognized}" if ocr_text else recognized
            ocr_confidence = recognized_confidence
        return self.extractor.extract(text, ocr_text, ocr_confidence)

    def normalize(self, raw_tokens: Sequence[str]) -> NormalizationOutput:
        return self.normalizer.normalize_tokens(raw_tokens)

    def classify(self, text: str, normalized_amounts: Sequence[float]) -> ClassificationOutput:
        return self.classifier.classify_amounts(text, normalized_amounts)

    def run(
        self,
        text: str | None = None,
        *,
        ocr_text: str | None = None,
        ocr_confidence: float | None = None,
        image: bytes | None = None,
    ) -> PipelineResult:
        self.logger.info("Starting full pipeline")

        with self.logger.timed("Extraction"):
            extraction = self.extract(
                text, ocr_text=ocr_text, ocr_confidence=ocr_confidence, image=image
            )
        if not extraction.raw_tokens:
            self.logger.warning("No amounts found in document - pipeline terminated")
            return GuardrailResult(
                status=STATUS_NO_AMOUNTS,
                reason=NO_AMOUNTS_REASON,
                extracted_text=extraction.extracted_text,
            )

        with self.logger.timed("Normalization"):
            normalization = self.normalize(extraction.raw_tokens)
        if not normalization.normalized_amounts:
            self.logger.warning("Normalization failed - no valid amounts")
            return GuardrailResult(
                status=STATUS_NORMALIZATION_FAILED,
                reason=NORMALIZATION_FAILED_REASON,
                extracted_text=extraction.extracted_text,
                raw_tokens=list(extraction.raw_tokens),
            )

        # Classify against the full scanned text so provenance mirrors the layout.
        with self.logger.timed("Classification"):
            classification = self.classify(extraction.extracted_text, normalization.normalized_amounts)

        result = DetectionResult(
            currency=extraction.currency_hint or UNKNOWN_CURRENCY,
            amounts=list(classification.amounts),
            metadata=PipelineMetadata(
                extraction_confidence=extraction.confidence,
                normalization_confidence=normalization.normalization_confidence,
                classification_confidence=classification.confidence,
                total_tokens_extracted=len(extraction.raw_tokens),
                amounts_normalized=len(normalization.normalized_amounts),
                amounts_classified=len(classification.amounts),
            ),
            validation=validate_classification(classification.amounts),
        )
        for issue in result.validation.issues:
            self.logger.warning(issue.message)

        if self.llm_validator is not None and self.llm_validator.enabled:
            self.logger.info("Running LLM validation")
            result.llm_validation = self.llm_validator.validate(
                extraction.extracted_text, result.amounts
            )

        self.logger.success(f"Pipeline completed: {len(result.amounts)} amounts classified")
        return result


def run_pipeline(
    text: str | None = None,
    *,
    ocr_text: str | None = None,
    ocr_confidence: float | None = None,
    config: AppConfig | None = None,
    logger: Logger | None = None,
) -> PipelineResult:
    """Run the text-only pipeline with default settings and no LLM validation."""

    pipeline = AmountPipeline(config or default_config(), logger)
    return pipeline.run(text, ocr_text=ocr_text, ocr_confidence=ocr_confidence)
