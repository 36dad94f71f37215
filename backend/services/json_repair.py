"""
JSON Reply Extraction

Pulls a JSON object out of an LLM reply and parses it. Chat models asked
for "JSON with fields ..." often wrap it in a code fence, prepend a
sentence, use Python literals or curly quotes, or leave a trailing comma.

Used by: TriageOrchestrator (remote structured assessment)
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from errors import ParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


def extract_json_from_response(text: Optional[str]) -> Optional[str]:
    """
    Extract a JSON object string from an LLM reply.

    Tries (in order):
    1. Fenced code blocks (```json or bare ```) containing an object
    2. Outermost { ... } span in the text

    Returns:
        Extracted JSON string, or None if no object found
    """
    if not text:
        return None

    for block in _FENCE_RE.findall(text):
        block = block.strip()
        if block.startswith("{"):
            return block

    start = text.find("{")
    if start == -1:
        return None
    end = text.rfind("}")
    if end > start:
        return text[start : end + 1].strip()

    # Opening brace only: likely truncated by max_tokens
    return text[start:].strip()


def repair_json(json_str: str) -> str:
    """
    Repair common LLM JSON defects.

    1. Curly quotes to straight quotes
    2. Python literals (None, True, False)
    3. Single-quoted keys and values
    4. Unclosed strings, brackets and braces from truncation
    5. Trailing commas before } or ]

    Returns:
        Repaired JSON string (may still be invalid in edge cases)
    """
    original = json_str

    json_str = json_str.translate(_SMART_QUOTES)

    json_str = re.sub(r"\bNone\b", "null", json_str)
    json_str = re.sub(r"\bTrue\b", "true", json_str)
    json_str = re.sub(r"\bFalse\b", "false", json_str)

    # Only quotes that sit in delimiter position, so apostrophes survive
    json_str = re.sub(r"(?<=[{,\[])(\s*)'([^'\"]*?)'(\s*):", r'\1"\2"\3:', json_str)
    json_str = re.sub(r"(?<=[:,\[])(\s*)'([^'\"]*?)'(\s*)(?=[,}\]])", r'\1"\2"\3', json_str)

    if json_str.count('"') % 2 == 1:
        json_str += '"'

    open_brackets = json_str.count("[") - json_str.count("]")
    open_braces = json_str.count("{") - json_str.count("}")
    if open_brackets > 0 or open_braces > 0:
        json_str += "]" * max(open_brackets, 0) + "}" * max(open_braces, 0)
        logger.debug(f"Closed {open_braces} braces and {open_brackets} brackets")

    json_str = re.sub(r",\s*}", "}", json_str)
    json_str = re.sub(r",\s*]", "]", json_str)

    if json_str != original:
        logger.info("Applied JSON repairs")

    return json_str


def parse_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Full pipeline: extract, parse, repair on failure, parse again.

    Raises:
        ParseError: no object found (stage="extract") or unparseable after repair
    """
    json_str = extract_json_from_response(text)
    if json_str is None:
        raise ParseError("No JSON object found in reply", stage="extract")

    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError:
        repaired = repair_json(json_str)
        try:
            parsed = json.loads(repaired)
        except json.JSONDecodeError as e:
            raise ParseError("JSON parse failed after repairs", details=str(e)) from e

    if not isinstance(parsed, dict):
        raise ParseError("Reply JSON is not an object", stage="schema")
    return parsed
