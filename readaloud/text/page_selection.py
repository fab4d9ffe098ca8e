"""Page selection parsing for CLI flows.

Responsibilities:
- Parse 1-based page selection expressions (`1`, `1,3`, `2-5`, mixed).
- Validate page numbers against the document page count.
- Keep the requested processing order, since sentences are indexed in the
  order pages are processed.
"""

from __future__ import annotations

from typing import Iterable


def parse_page_selection(selection: str | None, page_count: int) -> list[int]:
    """Parse a page selection expression into page numbers in request order.

    Args:
        selection: User selection string. `None` or blank selects every page.
        page_count: Number of pages in the document.

    Returns:
        Selected 1-based page numbers in the order they were requested.

    Raises:
        ValueError: If the selection syntax or bounds are invalid.
    """

    if page_count < 1:
        raise ValueError("The document has no pages to select.")

    if selection is None or not selection.strip():
        return list(range(1, page_count + 1))

    tokens = [part.strip() for part in selection.split(",")]
    if any(not token for token in tokens):
        raise ValueError(
            "Malformed page selection: empty item in list. "
            "Use syntax like `1`, `1,3`, `2-4`, or `1,3-5`."
        )

    selected: list[int] = []
    seen: set[int] = set()
    for token in tokens:
        for page_number in _expand_token(token, page_count):
            if page_number in seen:
                raise ValueError(
                    f"Overlapping page selection contains duplicate page `{page_number}`."
                )
            seen.add(page_number)
            selected.append(page_number)
    return selected


def format_page_selection(page_numbers: Iterable[int]) -> str:
    """Format page numbers into normalized compact range syntax."""

    ordered = sorted(set(int(page) for page in page_numbers))
    if not ordered:
        return ""

    parts: list[str] = []
    start = end = ordered[0]
    for page_number in ordered[1:]:
        if page_number == end + 1:
            end = page_number
            continue
        parts.append(str(start) if start == end else f"{start}-{end}")
        start = end = page_number
    parts.append(str(start) if start == end else f"{start}-{end}")
    return ",".join(parts)


def _expand_token(token: str, page_count: int) -> list[int]:
    """Expand one token (`N` or `N-M`) to concrete page numbers."""

    if "-" not in token:
        page_number = _parse_page_number(token)
        _validate_page_number(page_number, page_count)
        return [page_number]

    start_text, _, end_text = token.partition("-")
    if not start_text or not end_text or "-" in end_text:
        raise ValueError(f"Malformed page range `{token}`. Use closed range syntax like `2-4`.")

    start = _parse_page_number(start_text)
    end = _parse_page_number(end_text)
    if start > end:
        raise ValueError(
            f"Malformed page range `{token}`: range start must be less than or equal to end."
        )
    _validate_page_number(end, page_count)
    return list(range(start, end + 1))


def _parse_page_number(token: str) -> int:
    try:
        value = int(token.strip(), 10)
    except ValueError as exc:
        raise ValueError(f"Invalid page number `{token}`. Pages must be integers.") from exc
    if value < 1:
        raise ValueError(f"Invalid page number `{token}`. Pages are positive and 1-based.")
    return value


def _validate_page_number(page_number: int, page_count: int) -> None:
    if page_number > page_count:
        raise ValueError(
            f"Page `{page_number}` is out of available bounds `1-{page_count}`."
        )
