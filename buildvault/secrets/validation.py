"""Structural validation of secret documents.

Validation never needs a private key. It aggregates every issue it finds
instead of stopping at the first one, and only errors make a document
invalid; warnings (plaintext values, non-string fields) are reported but
never fail validation on their own.

Example:
    Validating a file on disk::

        result = ValidationEngine().validate_file(Path("env/dev/keys.json"))
        for issue in result.issues:
            print(issue.severity.value, issue.message)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from .document import is_unicode_text, is_valid_public_key, parse_value
from .models import CURRENT_VERSION, PUBLIC_KEY_FIELD, Ciphertext, Plaintext, SecretDocument

log = structlog.get_logger(__name__)


class Severity(str, Enum):
    """How serious a validation issue is."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found in a secret document."""

    severity: Severity
    """ERROR fails validation, WARNING is informational."""

    message: str
    """Human-readable description."""

    key: str | None = None
    """Secret name the issue refers to, or None for document-level issues."""


@dataclass
class ValidationResult:
    """Outcome of validating one secret document.

    Example:
        >>> result = ValidationEngine().validate_text('{"_public_key": "00"}')
        >>> result.is_valid
        False
    """

    is_valid: bool
    """False only when at least one ERROR issue was found."""

    public_key_present: bool
    """Whether the ``_public_key`` field exists at all."""

    public_key: str | None = None
    """The public key as found in the document, when it is a string."""

    secret_count: int = 0
    """Number of fields other than the public key."""

    encrypted_count: int = 0
    plaintext_count: int = 0

    issues: list[ValidationIssue] = field(default_factory=list)
    """All issues in the order they were found."""

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.WARNING]


def _error(message: str, key: str | None = None) -> ValidationIssue:
    return ValidationIssue(severity=Severity.ERROR, message=message, key=key)


def _warning(message: str, key: str | None = None) -> ValidationIssue:
    return ValidationIssue(severity=Severity.WARNING, message=message, key=key)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, public_key_present=False, issues=[_error(message)])


class ValidationEngine:
    """Check secret documents for structural problems and unsealed values."""

    def validate(self, document: SecretDocument) -> ValidationResult:
        """Validate a parsed document.

        Non-string fields kept in ``document.extra`` count as secrets and
        produce warnings.
        """
        issues: list[ValidationIssue] = []

        if not is_valid_public_key(document.public_key):
            issues.append(_error("Invalid public key format (expected 64-character hex string)"))

        encrypted = 0
        plaintext = 0
        for name in sorted(document.entries):
            value = document.entries[name]
            if not is_unicode_text(name) or (isinstance(value, Plaintext) and not is_unicode_text(value.text)):
                issues.append(_error(f"Secret {name!r} is not valid Unicode text", key=name))
                plaintext += isinstance(value, Plaintext)
                encrypted += isinstance(value, Ciphertext)
                continue
            if isinstance(value, Plaintext):
                plaintext += 1
                issues.append(_warning(f"Secret '{name}' is not encrypted", key=name))
            elif isinstance(value, Ciphertext):
                encrypted += 1
                if value.version != CURRENT_VERSION:
                    issues.append(
                        _warning(f"Secret '{name}' uses unsupported format version {value.version}", key=name)
                    )

        for name in sorted(document.extra):
            issues.append(_warning(f"Secret '{name}' is not a string value", key=name))

        result = ValidationResult(
            is_valid=not any(issue.severity is Severity.ERROR for issue in issues),
            public_key_present=True,
            public_key=document.public_key,
            secret_count=len(document.entries) + len(document.extra),
            encrypted_count=encrypted,
            plaintext_count=plaintext,
            issues=issues,
        )
        log.debug(
            "document_validated",
            valid=result.is_valid,
            secrets=result.secret_count,
            warnings=len(result.warnings),
        )
        return result

    def validate_mapping(self, data: Any) -> ValidationResult:
        """Validate already-decoded JSON.

        Unlike the document parser this never raises; a missing or
        non-string public key is reported as an issue and the remaining
        fields are still counted.
        """
        if not isinstance(data, dict):
            return _invalid("Secret document must be a JSON object")

        raw_key = data.get(PUBLIC_KEY_FIELD)
        public_key = raw_key if isinstance(raw_key, str) else ""
        document = SecretDocument(public_key=public_key)
        for name, raw in data.items():
            if name == PUBLIC_KEY_FIELD:
                continue
            if isinstance(raw, str):
                document.entries[name] = parse_value(raw)
            else:
                document.extra[name] = raw

        result = self.validate(document)
        if raw_key is None:
            result.public_key_present = False
            result.public_key = None
            result.issues = [
                _error(f"Missing {PUBLIC_KEY_FIELD} field"),
                *(issue for issue in result.issues if issue.key is not None),
            ]
            result.is_valid = False
        elif not isinstance(raw_key, str):
            result.public_key = None
            result.issues = [
                _error(f"{PUBLIC_KEY_FIELD} must be a string"),
                *(issue for issue in result.issues if issue.key is not None),
            ]
            result.is_valid = False
        return result

    def validate_text(self, text: str) -> ValidationResult:
        """Validate raw document text."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            return _invalid(f"File is not valid JSON ({e.msg})")
        except (ValueError, RecursionError) as e:
            return _invalid(f"File is not valid JSON ({e})")
        return self.validate_mapping(data)

    def validate_file(self, path: Path) -> ValidationResult:
        """Validate a document on disk; a missing file is an error, not an exception."""
        if not path.is_file():
            return _invalid(f"File not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return _invalid("File is not UTF-8 text")
        return self.validate_text(text)
