"""Padded version encoding.

NVD version strings are free-form dotted tokens ("2.5.1", "4.13",
"2.5.1-k9", "r22", "12.2\\(33\\)sxi"), so they cannot be ordered numerically.
``padded_version`` rewrites each token into a fixed-width form so that plain
string comparison orders versions the way a human would read them:

    >>> padded_version("2.5") < padded_version("2.5.1") < padded_version("2.10")
    True

The encoded value is computed once when a CPE is ingested and stored next to
it; range queries then compare encoded bounds against the stored field.
"""

from __future__ import annotations

from typing import Optional

PAD_WIDTH = 5
SEPARATOR = "."

# Values NVD uses for "no version" / "not applicable"
SENTINELS = ("", "-")


def _as_int(token: str) -> Optional[int]:
    # int() also takes "1_0", "+1" and " 1"; only plain ASCII digits count
    if not (token.isascii() and token.isdigit()):
        return None
    return int(token)


def _pad_token(token: str) -> str:
    """Pad a single non-final token to the fixed width."""
    number = _as_int(token)
    if number is not None:
        return f"{number:0{PAD_WIDTH}d}"
    return token.rjust(PAD_WIDTH, "0")


def _pad_tail(token: str) -> str:
    """Pad the final token when it is not an integer.

    Short tokens are padded as strings.  Long mixed tokens ("1-k9b23")
    get every digit widened individually so that embedded numbers still
    compare in order.
    """
    if len(token) <= PAD_WIDTH:
        return token.rjust(PAD_WIDTH, "0")
    number = _as_int(token)
    if number is not None:
        return f"{number:0{PAD_WIDTH}d}"
    widened = "".join(
        char.rjust(PAD_WIDTH, "0") if char.isdigit() else char for char in token
    )
    return widened.rjust(PAD_WIDTH, "0")


def normalize_version(version: str) -> str:
    """Turn escaped parentheses into separators and drop one trailing dot."""
    version = version.replace("\\(", SEPARATOR).replace("\\)", SEPARATOR)
    if version.endswith(SEPARATOR):
        version = version[:-1]
    return version


def padded_version(version: str) -> str:
    """Encode a version string into its lexicographically comparable form.

    Args:
        version: Raw version string as found in a CPE name or a range bound

    Returns:
        Encoded version.  ``""`` and ``"-"`` are returned unchanged.
    """
    if version in SENTINELS:
        return version

    tokens = normalize_version(version).split(SEPARATOR)
    head, tail = tokens[:-1], tokens[-1]

    if _as_int(tail) is not None:
        return SEPARATOR.join(_pad_token(token) for token in tokens)

    padded = [_pad_token(token) for token in head]
    padded.append(_pad_tail(tail))
    return SEPARATOR.join(padded)


def compare_versions(left: str, right: str) -> int:
    """Compare two raw versions through their encodings (-1, 0 or 1)."""
    a, b = padded_version(left), padded_version(right)
    return (a > b) - (a < b)
