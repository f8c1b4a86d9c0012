# services/business-rules-service/app/core/siddhi_text.py
from __future__ import annotations

import re
from typing import Optional

from app.errors import CompositionError, SubstitutionError

# @App:name('SomeApp') or @App:name("SomeApp"), plus trailing whitespace
APP_NAME_PATTERN = re.compile(r"""@App:name\(\s*['"](.*?)['"]\s*\)\s*""", re.IGNORECASE)

# "define stream StockStream(symbol string, price double);" -> StockStream
# Leading annotations (@source(...), @sink(...)) are skipped by the search.
STREAM_DEFINITION_PATTERN = re.compile(r"\bdefine\s+\w+\s+([^\s(;]+)", re.IGNORECASE)


def app_name(content: str) -> Optional[str]:
    m = APP_NAME_PATTERN.search(content or "")
    return m.group(1) if m else None


def rename_app(content: str, new_name: str) -> str:
    """
    Rewrite every @App:name(...) annotation to carry `new_name`. Content
    without one gets the annotation prepended, since the engine addresses
    apps by that name only.
    """
    if not new_name or "'" in new_name:
        raise SubstitutionError(f"Invalid Siddhi app name: {new_name!r}")
    if not APP_NAME_PATTERN.search(content or ""):
        return f"@App:name('{new_name}')\n{content or ''}"
    return APP_NAME_PATTERN.sub(lambda _m: f"@App:name('{new_name}')\n", content)


def strip_app_name(content: str) -> str:
    """Remove the first @App:name(...) annotation, if any."""
    return APP_NAME_PATTERN.sub("", content or "", count=1)


def stream_name(definition: Optional[str]) -> str:
    """
    Name of the stream declared by an exposed stream definition.
    Equivalent to the third whitespace token truncated at '(' for plain
    'define stream X(...)' text.
    """
    m = STREAM_DEFINITION_PATTERN.search(definition or "")
    if not m:
        raise CompositionError(f"Cannot parse a stream name from definition: {definition!r}")
    return m.group(1)
