from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterator

from sitewatch.domain.models import PathUpdate


def _decode_obj(obj: Dict[str, Any]) -> PathUpdate:
    """
    Decode a message dictionary into a path update.

    Supported message types
    -----------------------
    - ``type="value"`` -> :class:`~sitewatch.domain.models.PathUpdate`

    A message without ``type`` is treated as ``"value"``.

    Parameters
    ----------
    obj
        JSON-decoded dictionary with ``path`` and ``data`` fields.

    Returns
    -------
    PathUpdate
        Decoded update. ``data`` is passed through untouched.

    Raises
    ------
    KeyError
        If ``path`` is missing.
    ValueError
        If ``type`` is unknown or ``path`` is empty.
    """
    t = obj.get("type", "value")

    if t == "value":
        path = str(obj["path"]).strip("/")
        if not path:
            raise ValueError("Empty path")
        return PathUpdate(path=path, data=obj.get("data"))

    raise ValueError(f"Unknown message type: {t}")


_WS = re.compile(r"\s*")


def iter_json_objects(text: str) -> Iterator[Dict[str, Any]]:
    """
    Yield every JSON object in ``text``, in order.

    Some relays flush two updates back to back without a newline
    (``{"path": "a"}{"path": "b"}``); scanning with ``raw_decode`` recovers
    both. Top-level values that are not objects are skipped.

    Raises
    ------
    json.JSONDecodeError
        If the text is not valid JSON at some position.
    """
    dec = json.JSONDecoder()
    pos = _WS.match(text, 0).end()
    while pos < len(text):
        obj, pos = dec.raw_decode(text, pos)
        if isinstance(obj, dict):
            yield obj
        pos = _WS.match(text, pos).end()


def decode_message(line: str) -> PathUpdate:
    """
    Decode one feed line into a :class:`PathUpdate`.

    Only the first object of a concatenated line is used.

    Raises
    ------
    ValueError
        If the line holds no JSON object, is not valid JSON, or carries an
        unknown message type or an empty path.
    KeyError
        If the object has no ``path``.
    """
    first = next(iter_json_objects(line), None)
    if first is None:
        raise ValueError("No JSON object found in line")
    return _decode_obj(first)
