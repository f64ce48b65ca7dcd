"""Pure rendering helpers shared by the NiceGUI pages."""

import json
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from dataroom.models.schemas import FileRecord
from dataroom.storage.file_cache import UNCATEGORIZED

CONTEXT_PREVIEW_CHARS = 200
CONTEXT_PREVIEW_COUNT = 3

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

UL_OPEN = '<ul class="list-disc list-inside my-2 space-y-1">'
OL_OPEN = '<ol class="list-decimal list-inside my-2 space-y-1">'


def markdown_to_html(text: str) -> str:
    """Convert markdown to HTML for chat display.

    Supports: bold, italic, inline code, code blocks, links, lists.
    """
    # Escape HTML entities first
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    # Code blocks (```code```)
    text = re.sub(
        r"```(\w*)\n?([\s\S]*?)```",
        r'<pre class="bg-gray-800 text-gray-100 rounded-lg p-3 my-2 overflow-x-auto text-xs"><code>\2</code></pre>',
        text,
    )

    # Inline code (`code`)
    text = re.sub(
        r"`([^`]+)`",
        r'<code class="bg-gray-200 text-pink-600 px-1.5 py-0.5 rounded text-xs">\1</code>',
        text,
    )

    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"__(.+?)__", r"<strong>\1</strong>", text)
    text = re.sub(r"(?<![\w*])\*([^*\n]+)\*(?![\w*])", r"<em>\1</em>", text)
    text = re.sub(r"(?<!\w)_([^_\n]+)_(?!\w)", r"<em>\1</em>", text)

    # Links [text](url)
    text = re.sub(
        r"\[([^\]]+)\]\(([^)]+)\)",
        r'<a href="\2" class="text-blue-600 underline" target="_blank">\1</a>',
        text,
    )

    text = _wrap_list(text, r"^[-*•]\s+", UL_OPEN, "</ul>")
    text = _wrap_list(text, r"^\d+\.\s+", OL_OPEN, "</ol>")

    # Line breaks, except right after block tags
    text = re.sub(r"(</?(?:ul|ol|li|pre)[^>]*>)\n", r"\1", text)
    return text.replace("\n", "<br>")


def _wrap_list(text: str, marker: str, open_tag: str, close_tag: str) -> str:
    in_list = False
    result = []
    for line in text.split("\n"):
        stripped = line.strip()
        if re.match(marker, stripped):
            if not in_list:
                result.append(open_tag)
                in_list = True
            item = re.sub(marker, "", stripped)
            result.append(f"<li>{item}</li>")
        else:
            if in_list:
                result.append(close_tag)
                in_list = False
            result.append(line)
    if in_list:
        result.append(close_tag)
    return "\n".join(result)


def value_type(value: Any) -> str:
    """Classify a metadata value for icon and color selection.

    Returns:
        One of null, boolean, currency, percentage, number, date, email,
        string, array, object, unknown.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        if value > 1_000_000:
            return "currency"
        if 0 < value < 1:
            return "percentage"
        return "number"
    if isinstance(value, str):
        if _DATE_PREFIX.match(value):
            return "date"
        if "@" in value:
            return "email"
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return "unknown"


def format_value(value: Any) -> str:
    """Render a metadata leaf value.

    Large numbers are shown as whole dollars and fractions as percentages.
    """
    kind = value_type(value)
    if kind == "null":
        return "null"
    if kind == "boolean":
        return "true" if value else "false"
    if kind == "currency":
        return f"${value:,.0f}"
    if kind == "percentage":
        return f"{value * 100:.1f}%"
    if kind == "number":
        if isinstance(value, int) or float(value).is_integer():
            return f"{int(value):,}"
        return f"{value:.2f}"
    if isinstance(value, str):
        return f'"{value}"'
    if kind in ("array", "object"):
        return json.dumps(value, default=str)
    return str(value)


def group_files_by_category(
    files: Iterable[FileRecord],
    categories: Iterable[str] = (),
) -> dict[str, list[FileRecord]]:
    """Group files by category.

    Known categories come first, in the given order, and appear even when
    empty. Categories seen only on files follow in first-seen order. Files
    without a category land under UNCATEGORIZED.
    """
    grouped: dict[str, list[FileRecord]] = {category: [] for category in categories}
    for record in files:
        grouped.setdefault(record.category or UNCATEGORIZED, []).append(record)
    return grouped


def _value_matches(value: Any, needle: str) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, bool | int | float):
        return needle in str(value).lower()
    if isinstance(value, list | tuple):
        return any(_value_matches(item, needle) for item in value)
    if isinstance(value, Mapping):
        return any(_value_matches(item, needle) for item in value.values())
    return False


def filter_categories(
    grouped: Mapping[str, list[FileRecord]],
    query: str,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, list[FileRecord]]:
    """Filter grouped files by a case-insensitive search query.

    A file matches on its name or on any value in its metadata (looked up
    by file_id). A category with no matching files is kept whole when its
    own name matches.

    Args:
        grouped: Output of group_files_by_category.
        query: Search text; blank returns everything.
        metadata: Optional file_id -> metadata mapping to search in.
    """
    needle = query.strip().lower()
    if not needle:
        return dict(grouped)

    metadata = metadata or {}
    result: dict[str, list[FileRecord]] = {}
    for category, records in grouped.items():
        matching = [
            record
            for record in records
            if needle in record.file_name.lower()
            or needle in record.original_name.lower()
            or _value_matches(metadata.get(record.file_id), needle)
        ]
        if matching:
            result[category] = matching
        elif needle in category.lower():
            result[category] = list(records)
    return result


def truncate(text: str, limit: int = CONTEXT_PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def format_score(score: float | None) -> str | None:
    """Similarity score as a whole-percent match badge."""
    if not score:
        return None
    return f"{score * 100:.0f}% match"


def format_timestamp(value: str | None) -> str:
    """Human-readable form of an ISO timestamp; unparseable input is returned as is."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%b %d, %Y %I:%M %p")
