"""Namespace-agnostic lookups shared by the device resource parsers."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Optional


def child_text(element: Optional[ET.Element], path: str) -> Optional[str]:
    """Text of the first element matching path; empty text counts as missing."""
    if element is None:
        return None
    child = element.find(path)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def child_int(element: Optional[ET.Element], path: str) -> Optional[int]:
    """Integer value of the first element matching path, None if absent or not numeric."""
    text = child_text(element, path)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def child_bool(element: Optional[ET.Element], path: str) -> bool:
    """'true' (any case) is True; anything else, including absence, is False."""
    text = child_text(element, path)
    return text is not None and text.lower() == "true"
