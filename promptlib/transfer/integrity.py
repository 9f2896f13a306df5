"""Integrity and schema checks for collections and import documents.

Checks never stop at the first problem: every record is inspected and every
violation is reported.
"""

from __future__ import annotations

from typing import Any

from ..models import MAX_RATING, is_token_count, is_valid_rating, is_valid_timestamp
from .models import SCHEMA_VERSION, IntegrityReport


def validate_data_integrity(prompts: Any) -> IntegrityReport:
    if not isinstance(prompts, list):
        return IntegrityReport(valid=False, errors=["Data is not an array"])

    errors: list[str] = []
    for index, prompt in enumerate(prompts):
        if not isinstance(prompt, dict):
            errors.append(f"Prompt at index {index} is not an object")
            continue

        if not prompt.get("id"):
            errors.append(f"Prompt at index {index} missing ID")
        if not prompt.get("title"):
            errors.append(f"Prompt at index {index} missing title")
        if not prompt.get("content"):
            errors.append(f"Prompt at index {index} missing content")
        if "rating" in prompt and not is_valid_rating(prompt["rating"]):
            errors.append(
                f"Prompt at index {index} has invalid rating {prompt['rating']!r}"
                f" (expected 0-{MAX_RATING})"
            )

        metadata = prompt.get("metadata")
        if metadata:
            title = prompt.get("title")
            if not isinstance(metadata, dict):
                errors.append(f'Prompt "{title}" has malformed metadata')
                continue
            if not metadata.get("model"):
                errors.append(f'Prompt "{title}" missing model in metadata')
            if not is_valid_timestamp(metadata.get("createdAt")):
                errors.append(f'Prompt "{title}" has invalid createdAt timestamp')
            estimate = metadata.get("tokenEstimate")
            if not estimate:
                errors.append(f'Prompt "{title}" missing token estimate')
            elif not isinstance(estimate, dict) or not all(
                is_token_count(estimate.get(bound)) for bound in ("min", "max")
            ):
                errors.append(f'Prompt "{title}" has malformed token estimate')

    return IntegrityReport(valid=not errors, errors=errors)


def validate_import_data(data: Any) -> IntegrityReport:
    """Check an export document's envelope and fold in record integrity."""
    if not isinstance(data, dict):
        return IntegrityReport(valid=False, errors=["Import data must be a JSON object"])

    errors: list[str] = []
    version = data.get("version")
    if not version:
        errors.append("Missing version number")

    prompts = data.get("prompts")
    if not isinstance(prompts, list):
        errors.append("Missing or invalid prompts array")

    if not data.get("exportedAt"):
        errors.append("Missing export timestamp")

    if version != SCHEMA_VERSION:
        errors.append(f"Unsupported version: {version}. Expected: {SCHEMA_VERSION}")

    if prompts:
        errors.extend(validate_data_integrity(prompts).errors)

    return IntegrityReport(valid=not errors, errors=errors)
