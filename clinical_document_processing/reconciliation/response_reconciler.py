"""
Response Reconciler - Structured Values from Free-Text Model Output

Model output is not guaranteed to be valid JSON, especially for large
arrays cut off by generation length limits. The reconciler recovers as much
as it can and otherwise degrades to a caller-supplied fallback value. It
never raises and never hands raw text back to the caller.

Cascade (each step returns None to fall through to the next):
    1. Fenced extraction   → interior of a ```json ... ``` block, else full text
    2. Boundary trim       → cut before the first {/[ and after the last }/]
    3. Bracket scan        → if 2 yields no bracketed text, slice the raw text
                             from its first [ to its last ]
    4. Truncation check    → dangling comma, open quote, wrong closing
                             bracket or unbalanced brackets
    5. Truncation repair   → cut after the last complete }, close every
                             bracket still open
    6. Parse               → strict json.loads
    7. Shape validation    → caller's validator returns a ShapeCheck

Author: Shubham Singh
Date: January 2026
"""

import json
import re
from typing import Any, Callable, List, NamedTuple, Optional, TypeVar

from loguru import logger

from clinical_document_processing.core.config import ConfigDefaults
from clinical_document_processing.core.models import ParsedResult, ShapeCheck

T = TypeVar("T")

ShapeValidator = Callable[[Any], ShapeCheck]

_FENCED_JSON_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_OPENERS = "{["
_CLOSERS = {"{": "}", "[": "]"}


# =============================================================================
# STAGE 1: STRUCTURE SCAN
# =============================================================================


class _Structure(NamedTuple):
    open_brackets: List[str]
    last_object_close: int
    in_string: bool


def _scan_structure(text: str) -> _Structure:
    """Walk ``text`` once, tracking open brackets outside string literals."""
    stack: List[str] = []
    last_object_close = -1
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _OPENERS:
            stack.append(char)
        elif char in "}]":
            if stack and _CLOSERS[stack[-1]] == char:
                stack.pop()
            if char == "}":
                last_object_close = index

    return _Structure(stack, last_object_close, in_string)


# =============================================================================
# STAGE 2: CASCADE STEPS
# =============================================================================


def extract_fenced_block(text: str) -> Optional[str]:
    """Interior of the first ```json fenced block, or None."""
    match = _FENCED_JSON_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1)


def trim_to_boundaries(text: str) -> Optional[str]:
    """Strip text before the first opening and after the last closing bracket."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]"))
    if end < start:
        # Opening bracket with nothing closed after it: keep the tail for repair.
        return text[start:].strip()
    return text[start : end + 1]


def scan_for_array(text: str) -> Optional[str]:
    """Slice from the first [ to the last ] of ``text``, or None."""
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def is_truncated(text: str) -> bool:
    """
    Decide whether a bracketed candidate was cut off mid-generation.

    Truncated when it ends with a dangling comma or quote, does not end with
    the closer matching its first bracket, leaves a string literal open, or
    leaves any bracket unclosed.
    """
    stripped = text.rstrip()
    if not stripped:
        return True
    if stripped.endswith((",", '"')):
        return True
    expected_closer = _CLOSERS.get(stripped[0])
    if expected_closer is None or not stripped.endswith(expected_closer):
        return True
    structure = _scan_structure(stripped)
    return structure.in_string or bool(structure.open_brackets)


def repair_truncation(text: str) -> Optional[str]:
    """
    Cut after the last complete object and close every open bracket.

    Returns None when no complete object exists at all.
    """
    last_close = _scan_structure(text).last_object_close
    if last_close == -1:
        return None
    head = text[: last_close + 1]
    closers = "".join(_CLOSERS[b] for b in reversed(_scan_structure(head).open_brackets))
    return head + closers


def parse_json(text: str) -> Optional[Any]:
    """Strict parse; None when the text is not valid JSON."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


# =============================================================================
# STAGE 3: RECONCILER
# =============================================================================


class ResponseReconciler:
    """
    Turns raw provider text into a ParsedResult of the caller's shape.

    What it does:
        Runs the extraction/repair cascade, parses, validates the shape with
        the caller-supplied validator and, on any failure, substitutes the
        caller-supplied fallback tagged ``from_fallback=True``.

    Example:
        >>> reconciler = ResponseReconciler()
        >>> result = reconciler.reconcile(text, schema_validator(StudyProtocol), fallback_protocol())
        >>> result.from_fallback
        False
    """

    def __init__(self, diagnostic_excerpt_chars: int = ConfigDefaults.DEFAULT_DIAGNOSTIC_EXCERPT_CHARS):
        self._excerpt_chars = diagnostic_excerpt_chars

    def reconcile(self, raw_text: str, validator: ShapeValidator, fallback: T) -> ParsedResult[T]:
        """
        Recover a validated value from ``raw_text``.

        Args:
            raw_text: Unstructured provider output
            validator: Shape validator returning a ShapeCheck
            fallback: Value of the expected shape used when recovery fails

        Returns:
            ParsedResult holding the validated value or the fallback
        """
        raw_text = raw_text or ""

        # Steps 1-3: locate the structured payload
        candidate = extract_fenced_block(raw_text)
        if candidate is None:
            candidate = raw_text
        trimmed = trim_to_boundaries(candidate)
        if trimmed is None or not trimmed.startswith(tuple(_OPENERS)):
            trimmed = scan_for_array(raw_text)
        if trimmed is None:
            return self._fall_back(raw_text, fallback, "no JSON structure found")

        # Steps 4-5: truncation
        repaired = False
        if is_truncated(trimmed):
            fixed = repair_truncation(trimmed)
            if fixed is None:
                return self._fall_back(raw_text, fallback, "truncated with no complete object")
            logger.warning(
                f"Truncated response repaired | Kept {len(fixed)} of {len(trimmed)} chars"
            )
            trimmed = fixed
            repaired = True

        # Step 6: parse
        parsed = parse_json(trimmed)
        if parsed is None:
            return self._fall_back(raw_text, fallback, "invalid JSON")

        # Step 7: shape
        check = validator(parsed)
        if not check.ok:
            return self._fall_back(raw_text, fallback, f"shape rejected: {check.error}")

        return ParsedResult(value=check.value, repaired=repaired)

    def _fall_back(self, raw_text: str, fallback: T, reason: str) -> ParsedResult[T]:
        excerpt = raw_text[: self._excerpt_chars]
        logger.warning(
            f"Reconciliation fell back | Reason: {reason} | "
            f"Raw length: {len(raw_text)} | Excerpt: {excerpt}"
        )
        return ParsedResult(
            value=fallback,
            from_fallback=True,
            failure_reason=reason,
            diagnostic_excerpt=excerpt,
        )
