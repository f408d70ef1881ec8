"""Pattern based secret detection for workflow definitions.

Two independent layers are applied:

* ``scan_serialized`` looks for human readable assignments such as
  ``password=hunter2`` anywhere in the serialized definition.
* ``find_secret_values`` walks node parameters and flags individual string
  values shaped like live vendor credentials, whatever surrounds them.

The layers overlap on purpose and are never merged.
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterator, List, Pattern, Tuple

_SEPARATORS = r"[\s\"'_.:\-]*"
_ASSIGNED_VALUE = r"=\s*[^\s{]"

# Vendor prefixes are case-fixed and never start mid-word
_TOKEN_START = r"(?<![A-Za-z0-9])"

ASSIGNMENT_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (
        re.compile(r"password" + _SEPARATORS + _ASSIGNED_VALUE, re.IGNORECASE),
        "Potential hardcoded password detected",
    ),
    (
        re.compile(r"api[\s_.\-]?key" + _SEPARATORS + _ASSIGNED_VALUE, re.IGNORECASE),
        "Potential hardcoded API key detected",
    ),
    (
        re.compile(r"secret" + _SEPARATORS + _ASSIGNED_VALUE, re.IGNORECASE),
        "Potential hardcoded secret detected",
    ),
    (
        re.compile(r"token" + _SEPARATORS + _ASSIGNED_VALUE, re.IGNORECASE),
        "Potential hardcoded token detected",
    ),
]

TOKEN_PATTERNS: List[Pattern[str]] = [
    re.compile(_TOKEN_START + r"sk-(?:proj-)?[A-Za-z0-9]{20,}"),  # OpenAI API keys
    re.compile(_TOKEN_START + r"xox[baprs]-[A-Za-z0-9-]{10,}"),  # Slack tokens
    re.compile(_TOKEN_START + r"gh[pousr]_[A-Za-z0-9]{36}"),  # GitHub tokens
    re.compile(_TOKEN_START + r"github_pat_[A-Za-z0-9_]{22,}"),  # GitHub fine-grained PATs
    re.compile(_TOKEN_START + r"AKIA[0-9A-Z]{16}"),  # AWS access key ids
]


def serialize_document(document: Any) -> str:
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False, default=str)


def scan_serialized(document: Any) -> List[str]:
    """Return one message per assignment pattern found in the serialized document.

    Serialization recurses; check nesting_depth() first for untrusted input.
    """
    text = serialize_document(document)
    return [message for pattern, message in ASSIGNMENT_PATTERNS if pattern.search(text)]


def looks_like_secret(value: str) -> bool:
    return any(pattern.search(value) for pattern in TOKEN_PATTERNS)


def _walk_strings(obj: Any, path: str) -> Iterator[Tuple[str, str]]:
    # iterative, so depth is bounded by the parser only
    stack: List[Tuple[str, Any]] = [(path, obj)]
    while stack:
        current, value = stack.pop()
        if isinstance(value, str):
            yield current, value
        elif isinstance(value, dict):
            stack.extend(reversed([(f"{current}.{key}", child) for key, child in value.items()]))
        elif isinstance(value, list):
            stack.extend(reversed([(f"{current}.{index}", child) for index, child in enumerate(value)]))


def nesting_depth(obj: Any) -> int:
    """Depth of nested mappings and lists; scalars have depth 0."""
    deepest = 0
    stack: List[Tuple[Any, int]] = [(obj, 1)]
    while stack:
        value, depth = stack.pop()
        if isinstance(value, dict):
            children = list(value.values())
        elif isinstance(value, list):
            children = value
        else:
            continue
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in children)
    return deepest


def find_secret_values(obj: Any, path: str) -> Iterator[str]:
    """Yield the dotted path of every string value under ``obj`` that looks like a credential.

    Mappings and lists are walked depth-first; other leaf types are ignored.
    """
    for value_path, value in _walk_strings(obj, path):
        if looks_like_secret(value):
            yield value_path
