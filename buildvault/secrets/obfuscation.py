"""XOR-based obfuscation for secrets compiled into shipped code.

This keeps secrets out of ``strings``-style scans of the build output. It is
obfuscation, not encryption: anyone who reads the generated code can undo
it. At-rest protection is the sealed secret document.

An obfuscated literal is ``xor(value, mask) + mask`` where ``mask`` is
random and as long as the value; splitting it in half and XOR-ing the
halves gives the value back.
"""

import secrets


def obfuscate(text: str) -> bytes:
    """Mask a string's UTF-8 bytes with a fresh random key.

    Example:
        >>> data = obfuscate("sk_live_123")
        >>> len(data)
        22
        >>> deobfuscate(data)
        b'sk_live_123'
    """
    clear = text.encode("utf-8")
    mask = secrets.token_bytes(len(clear))
    return bytes(c ^ m for c, m in zip(clear, mask)) + mask


def deobfuscate(data: bytes) -> bytes:
    """Recover the original bytes; empty or odd-length input yields ``b""``."""
    if not data or len(data) % 2:
        return b""
    half = len(data) // 2
    return bytes(a ^ b for a, b in zip(data[:half], data[half:]))
