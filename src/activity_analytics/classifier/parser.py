"""Best-effort repair of JSON embedded in classifier replies.

Replies often wrap the payload in prose or Markdown code fences, and long
replies are sometimes cut off. These helpers pull out whatever structure
can still be trusted.
"""

from __future__ import annotations

import json
import logging
import re

from activity_analytics.exceptions import ClassifierResponseMalformedError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[a-zA-Z]*")


def strip_code_fences(content: str) -> str:
    return _FENCE_RE.sub("", content or "").strip()


def extract_json_array(content: str) -> list:
    """Return the JSON array between the first ``[`` and the last ``]``.

    Missing brackets yield an empty list. When the bounded text does not
    decode, every well-formed object inside it is recovered instead.
    """
    text = strip_code_fences(content)
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        logger.warning("Classifier reply contains no JSON array; treating as empty")
        return []

    bounded = text[start : end + 1]
    try:
        parsed = json.loads(bounded)
    except json.JSONDecodeError:
        recovered = _recover_objects(bounded[1:-1])
        logger.warning(
            "Classifier array did not decode; recovered %d object(s)", len(recovered)
        )
        return recovered

    if not isinstance(parsed, list):
        return []
    return parsed


def extract_json_object(content: str) -> dict:
    """Return the JSON object between the first ``{`` and the last ``}``.

    Raises:
        ClassifierResponseMalformedError: no object could be decoded.
    """
    text = strip_code_fences(content)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ClassifierResponseMalformedError("Classifier reply contains no JSON object")
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise ClassifierResponseMalformedError(f"Classifier object did not decode: {e}") from e
    if not isinstance(parsed, dict):
        raise ClassifierResponseMalformedError("Classifier reply is not a JSON object")
    return parsed


def _recover_objects(text: str) -> list[dict]:
    decoder = json.JSONDecoder()
    recovered: list[dict] = []
    pos = text.find("{")
    while pos != -1:
        try:
            obj, end = decoder.raw_decode(text, pos)
        except json.JSONDecodeError:
            pos = text.find("{", pos + 1)
            continue
        if isinstance(obj, dict):
            recovered.append(obj)
        pos = text.find("{", end)
    return recovered
