"""Custom Jinja2 filters for emitting source code."""


def byte_rows(data: bytes, per_row: int = 12) -> list[str]:
    """Format bytes as rows of comma-terminated decimal values.

    Example:
        >>> byte_rows(bytes([1, 2, 3]), per_row=2)
        ['1, 2,', '3,']
    """
    values = list(data)
    return [
        " ".join(f"{value}," for value in values[start : start + per_row])
        for start in range(0, len(values), per_row)
    ]


def comment_safe(value: object) -> str:
    """Collapse a value onto one line so it can sit inside a comment or docstring.

    Quotes and backslashes are dropped; non-printable characters become
    spaces.
    """
    text = "".join(
        char if char.isprintable() else " "
        for char in str(value)
        if char not in ('"', "\\")
    )
    return " ".join(text.split())
