"""Reading and writing secret documents.

At rest a secret document is a JSON object::

    {
      "_public_key": "<64 hex chars>",
      "all_api_key": "SV[1:<ephemeral key>:<nonce>:<ciphertext>]",
      "ios_widget_token": "not sealed yet"
    }

The raw JSON is validated once here and turned into typed ``Plaintext`` /
``Ciphertext`` values; nothing downstream inspects raw dictionaries.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import structlog

from buildvault.exceptions import SecretDocumentFormatError, SecretDocumentNotFoundError

from .models import (
    CIPHERTEXT_MARKER,
    KEY_SIZE,
    PUBLIC_KEY_FIELD,
    Ciphertext,
    Plaintext,
    SecretDocument,
    SecretValue,
)

log = structlog.get_logger(__name__)

CIPHERTEXT_PATTERN = re.compile(rf"^{CIPHERTEXT_MARKER}\[(\d{{1,9}}):(.*)\]$", re.DOTALL)
PUBLIC_KEY_PATTERN = re.compile(rf"^[0-9a-fA-F]{{{KEY_SIZE * 2}}}$")


def is_valid_public_key(key: str) -> bool:
    """Check that a public key is a 64-character hex string."""
    return bool(PUBLIC_KEY_PATTERN.match(key))


def is_unicode_text(text: str) -> bool:
    """Check that a string can be written as UTF-8 (no lone surrogates)."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def parse_value(raw: str) -> SecretValue:
    """Classify a raw field value as sealed or plaintext.

    Anything that does not carry the ``SV[<version>:`` marker, with a version
    of at most nine digits, is plaintext.
    """
    match = CIPHERTEXT_PATTERN.match(raw)
    if match is None:
        return Plaintext(raw)
    return Ciphertext(version=int(match.group(1)), payload=match.group(2))


def serialize_value(value: SecretValue) -> str:
    if isinstance(value, Ciphertext):
        return value.serialize()
    return value.text


def document_from_mapping(data: Any, path: str | None = None) -> SecretDocument:
    """Build a document from already-decoded JSON.

    Raises:
        SecretDocumentFormatError: If the top level is not an object, the
            public key field is missing or not a string, or a field holds
            a lone surrogate
    """
    if not isinstance(data, dict):
        raise SecretDocumentFormatError("Secret document must be a JSON object", path=path)

    public_key = data.get(PUBLIC_KEY_FIELD)
    if public_key is None:
        raise SecretDocumentFormatError(f"Missing {PUBLIC_KEY_FIELD} field", path=path)
    if not isinstance(public_key, str):
        raise SecretDocumentFormatError(f"{PUBLIC_KEY_FIELD} must be a string", path=path)

    entries: dict[str, SecretValue] = {}
    extra: dict[str, Any] = {}
    for name, raw in data.items():
        if name == PUBLIC_KEY_FIELD:
            continue
        if not is_unicode_text(name) or (isinstance(raw, str) and not is_unicode_text(raw)):
            raise SecretDocumentFormatError(f"Field {name!r} is not valid Unicode text", path=path)
        if isinstance(raw, str):
            entries[name] = parse_value(raw)
        else:
            extra[name] = raw

    if extra:
        log.debug("non_string_fields_preserved", path=path, fields=sorted(extra))

    return SecretDocument(public_key=public_key, entries=entries, extra=extra)


def parse_document(text: str, path: str | None = None) -> SecretDocument:
    """Parse secret document text.

    Raises:
        SecretDocumentFormatError: If the text is not a valid document
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SecretDocumentFormatError(f"File is not valid JSON ({e.msg})", path=path) from e
    except (ValueError, RecursionError) as e:
        raise SecretDocumentFormatError(f"File is not valid JSON ({e})", path=path) from e
    return document_from_mapping(data, path=path)


def serialize_document(document: SecretDocument) -> str:
    """Render a document as stable JSON: public key first, then fields by name."""
    fields: dict[str, Any] = {name: serialize_value(value) for name, value in document.entries.items()}
    fields.update(document.extra)

    ordered: dict[str, Any] = {PUBLIC_KEY_FIELD: document.public_key}
    for name in sorted(fields):
        ordered[name] = fields[name]
    return json.dumps(ordered, indent=2, ensure_ascii=False) + "\n"


def load_document(path: Path) -> SecretDocument:
    """Read and parse a secret document from disk.

    Raises:
        SecretDocumentNotFoundError: If the file does not exist
        SecretDocumentFormatError: If the file is malformed
    """
    if not path.is_file():
        raise SecretDocumentNotFoundError(str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SecretDocumentFormatError("File is not UTF-8 text", path=str(path)) from e
    return parse_document(text, path=str(path))


def save_document(document: SecretDocument, path: Path) -> None:
    """Write a document atomically.

    The content goes to a temporary file in the target directory first and
    is then renamed over the destination, so readers never see a partial
    document.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(serialize_document(document))
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    log.debug("document_saved", path=str(path), entries=len(document.entries))
