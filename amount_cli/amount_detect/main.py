"""amount-detect CLI entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from amount_cli.amount_classify.llm_client import LLMValidator
from amount_cli.amount_classify.validator import validate_classification
from amount_cli.amount_extract.ocr import TesseractEngine, decode_base64_image
from amount_cli.shared.cli import CLIContext, common_cli_options, emit_json, handle_cli_errors, pass_cli_context
from amount_cli.shared.exceptions import InputValidationError
from amount_cli.shared.utils import (
    sanitize_text,
    validate_amount_values,
    validate_image_size,
    validate_raw_tokens,
    validate_text,
)

from .pipeline import NO_AMOUNTS_REASON, STATUS_NO_AMOUNTS, STATUS_NORMALIZATION_FAILED, AmountPipeline

NORMALIZE_FAILED_REASON = "could not parse any valid numeric amounts from tokens"


def _input_options(func):
    func = click.option("--image-base64", "image_base64", type=str, help="Base64 image (data URI prefix allowed).")(func)
    func = click.option(
        "--image", "image_path", type=click.Path(exists=True, dir_okay=False, path_type=str), help="Image file to OCR."
    )(func)
    func = click.option(
        "--text-file", type=click.Path(exists=True, dir_okay=False, path_type=str), help="Read bill text from a file."
    )(func)
    func = click.option("--text", type=str, help="Bill or receipt text.")(func)
    return func


def build_pipeline(cli_ctx: CLIContext, *, with_ocr: bool = False) -> AmountPipeline:
    """Wire the pipeline and its optional collaborators from the loaded config."""

    config = cli_ctx.config
    ocr_engine = TesseractEngine(config.ocr, cli_ctx.logger) if with_ocr else None
    llm_validator = LLMValidator(config.llm, cli_ctx.logger) if config.llm.enabled else None
    return AmountPipeline(config, cli_ctx.logger, ocr_engine=ocr_engine, llm_validator=llm_validator)


def _read_text(cli_ctx: CLIContext, text: str | None, text_file: str | None) -> str | None:
    if text_file:
        text = Path(text_file).read_text(encoding="utf-8")
    if text is None:
        return None
    cleaned = sanitize_text(text)
    validate_text(cleaned, cli_ctx.config.limits)
    return cleaned


def _read_image(cli_ctx: CLIContext, image_path: str | None, image_base64: str | None) -> bytes | None:
    image: bytes | None = None
    if image_path:
        image = Path(image_path).read_bytes()
    elif image_base64:
        image = decode_base64_image(image_base64)
    if image is not None:
        validate_image_size(image, cli_ctx.config.limits)
    return image


def _read_inputs(
    cli_ctx: CLIContext,
    text: str | None,
    text_file: str | None,
    image_path: str | None,
    image_base64: str | None,
) -> tuple[str | None, bytes | None]:
    if not (text or text_file or image_path or image_base64):
        raise InputValidationError("Provide either --text, --text-file, --image or --image-base64")
    return _read_text(cli_ctx, text, text_file), _read_image(cli_ctx, image_path, image_base64)


@click.group(help="Detect and classify monetary amounts in bill and receipt text.")
@common_cli_options
def main(cli_ctx: CLIContext) -> None:
    return


@main.command("extract")
@_input_options
@handle_cli_errors
@pass_cli_context
def extract_command(
    cli_ctx: CLIContext,
    text: str | None,
    text_file: str | None,
    image_path: str | None,
    image_base64: str | None,
) -> None:
    """Extract raw monetary tokens from text or an image."""

    text_value, image = _read_inputs(cli_ctx, text, text_file, image_path, image_base64)
    pipeline = build_pipeline(cli_ctx, with_ocr=image is not None)
    result = pipeline.extract(text_value, image=image)
    if not result.raw_tokens:
        cli_ctx.logger.warning("No amounts found in document")
        emit_json({"status": STATUS_NO_AMOUNTS, "reason": NO_AMOUNTS_REASON})
        return
    emit_json(result.to_dict())


@main.command("normalize")
@click.argument("raw_tokens", nargs=-1, required=True)
@handle_cli_errors
@pass_cli_context
def normalize_command(cli_ctx: CLIContext, raw_tokens: tuple[str, ...]) -> None:
    """Normalize raw tokens (e.g. 'l200' '1O00' '10%') into numeric amounts."""

    validate_raw_tokens(raw_tokens, cli_ctx.config.limits)
    pipeline = build_pipeline(cli_ctx)
    result = pipeline.normalize(list(raw_tokens))
    if not result.normalized_amounts:
        cli_ctx.logger.warning("Failed to normalize any tokens")
        emit_json(
            {
                "status": STATUS_NORMALIZATION_FAILED,
                "reason": NORMALIZE_FAILED_REASON,
                "raw_tokens": list(raw_tokens),
            }
        )
        return

    sanity = pipeline.normalizer.validate_amounts(result.normalized_amounts)
    for issue in sanity.issues:
        cli_ctx.logger.warning(issue)
    payload = result.to_dict()
    payload["sanity"] = sanity.to_dict()
    emit_json(payload)


@main.command("classify")
@click.option("--text", type=str, help="Bill or receipt text.")
@click.option(
    "--text-file", type=click.Path(exists=True, dir_okay=False, path_type=str), help="Read bill text from a file."
)
@click.option("--amount", "amounts", type=float, multiple=True, required=True, help="Normalized amount (repeatable).")
@handle_cli_errors
@pass_cli_context
def classify_command(
    cli_ctx: CLIContext,
    text: str | None,
    text_file: str | None,
    amounts: tuple[float, ...],
) -> None:
    """Classify normalized amounts using the surrounding text."""

    text_value = _read_text(cli_ctx, text, text_file)
    if text_value is None:
        raise InputValidationError("text is required (--text or --text-file)")
    validate_amount_values(amounts, cli_ctx.config.limits)

    pipeline = build_pipeline(cli_ctx)
    result = pipeline.classify(text_value, list(amounts))
    if pipeline.llm_validator is not None and pipeline.llm_validator.enabled and result.amounts:
        verdict = pipeline.llm_validator.validate(text_value, result.amounts)
        for suggestion in verdict.suggestions:
            cli_ctx.logger.info(f"LLM suggestion: {suggestion}")
    emit_json(result.to_dict())


@main.command("run")
@_input_options
@handle_cli_errors
@pass_cli_context
def run_command(
    cli_ctx: CLIContext,
    text: str | None,
    text_file: str | None,
    image_path: str | None,
    image_base64: str | None,
) -> None:
    """Run the full extract -> normalize -> classify pipeline."""

    text_value, image = _read_inputs(cli_ctx, text, text_file, image_path, image_base64)
    pipeline = build_pipeline(cli_ctx, with_ocr=image is not None)
    result = pipeline.run(text_value, image=image)
    emit_json(result.to_dict())


@main.command("validate")
@click.option("--text", type=str, help="Bill or receipt text the amounts came from.")
@click.option(
    "--amounts",
    "amounts_json",
    type=str,
    required=True,
    help='JSON list of classified amounts, e.g. \'[{"type": "total_bill", "value": 2000}]\'.',
)
@handle_cli_errors
@pass_cli_context
def validate_command(cli_ctx: CLIContext, text: str | None, amounts_json: str) -> None:
    """Check classified amounts for consistency, with optional LLM review."""

    amounts = _parse_amounts_json(amounts_json)
    report = validate_classification(amounts)
    payload: dict[str, Any] = report.to_dict()

    pipeline = build_pipeline(cli_ctx)
    if pipeline.llm_validator is not None and pipeline.llm_validator.enabled:
        if not text:
            raise InputValidationError("--text is required for LLM validation")
        payload["llm_validation"] = pipeline.llm_validator.validate(sanitize_text(text), amounts).to_dict()
    else:
        cli_ctx.logger.debug("LLM validation not available; reporting consistency checks only")
    emit_json(payload)


def _parse_amounts_json(raw: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InputValidationError(f"--amounts is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise InputValidationError("--amounts must be a JSON list")
    amounts: list[dict[str, Any]] = []
    for entry in data:
        if not isinstance(entry, dict) or "type" not in entry or "value" not in entry:
            raise InputValidationError("Each amount needs 'type' and 'value'")
        try:
            value = float(entry["value"])
        except (TypeError, ValueError) as exc:
            raise InputValidationError(f"Amount value {entry['value']!r} is not numeric") from exc
        amounts.append({"type": str(entry["type"]), "value": value})
    return amounts


if __name__ == "__main__":  # pragma: no cover
    main()
