# services/business-rules-service/app/core/placeholders.py
from __future__ import annotations

import re
from typing import List, Mapping, Optional, Sequence

from app.errors import SubstitutionError

# ${name}: any run of non-space characters without braces
TEMPLATED_ELEMENT_PATTERN = re.compile(r"\$\{([^\s{}]+)\}")
# ${1}, ${2}, ... used by rule logic
POSITIONAL_ELEMENT_PATTERN = re.compile(r"\$\{(\d+)\}")


def unresolved_markers(text: Optional[str], pattern: re.Pattern[str] = TEMPLATED_ELEMENT_PATTERN) -> List[str]:
    """
    Marker names still present in `text`, in order of first appearance.
    """
    seen: List[str] = []
    for m in pattern.finditer(text or ""):
        if m.group(1) not in seen:
            seen.append(m.group(1))
    return seen


def _replace(
    text: Optional[str],
    values: Mapping[str, str],
    pattern: re.Pattern[str],
    strict: bool,
) -> str:
    source = text or ""
    if strict:
        missing = [name for name in unresolved_markers(source, pattern) if name not in values]
        if missing:
            raise SubstitutionError(
                f"No value supplied for placeholder(s): {', '.join(missing)}",
                markers=missing,
            )

    def _sub(m: re.Match[str]) -> str:
        name = m.group(1)
        if name in values:
            return str(values[name])
        return m.group(0)

    # single pass: substituted values are never re-scanned for markers
    return pattern.sub(_sub, source)


def substitute(text: Optional[str], values: Mapping[str, str], *, strict: bool = False) -> str:
    """
    Replace every ${name} marker with values[name].

    Markers without an entry are left untouched, unless strict=True in which
    case a SubstitutionError names every unresolved marker.
    """
    return _replace(text, values, TEMPLATED_ELEMENT_PATTERN, strict)


def substitute_positional(text: Optional[str], fragments: Sequence[str], *, strict: bool = False) -> str:
    """
    Fill ${1}..${n} from an ordered fragment list (1-based).
    """
    values = {str(i + 1): fragment for i, fragment in enumerate(fragments)}
    return _replace(text, values, POSITIONAL_ELEMENT_PATTERN, strict)
