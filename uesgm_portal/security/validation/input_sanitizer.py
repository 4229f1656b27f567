from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bleach.html5lib_shim import Filter
from bleach.sanitizer import Cleaner

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Elements whose content is code or markup rather than text. bleach strips
# disallowed tags but keeps their inner text, so these are let through the
# parser and removed whole by RawContentFilter.
RAW_CONTENT_ELEMENTS = frozenset(
    {
        "script",
        "style",
        "iframe",
        "object",
        "embed",
        "template",
        "noscript",
        "textarea",
        "xmp",
    }
)

RICH_TEXT_TAGS = frozenset(
    {"b", "i", "em", "strong", "a", "p", "br", "ul", "ol", "li"}
)
RICH_TEXT_ATTRIBUTES = ["href", "target", "rel"]

IMMUTABLE_CONTAINERS = (tuple, set, frozenset)


class RawContentFilter(Filter):
    """Drop raw-content elements together with every token inside them."""

    def __iter__(self):
        depth = 0
        for token in super().__iter__():
            name = (token.get("name") or "").lower()
            if name in RAW_CONTENT_ELEMENTS:
                if token["type"] == "StartTag":
                    depth += 1
                elif token["type"] == "EndTag":
                    depth = max(0, depth - 1)
                continue
            if depth == 0:
                yield token


def _clean(value: str, tags: Iterable[str], attributes) -> str:
    # Cleaner instances are not thread-safe, so each call builds its own
    cleaner = Cleaner(
        tags=frozenset(tags) | RAW_CONTENT_ELEMENTS,
        attributes=attributes,
        strip=True,
        strip_comments=True,
        filters=[RawContentFilter],
    )
    return cleaner.clean(value)


def sanitize_html(html: Optional[str]) -> str:
    """Keep a small rich-text subset of HTML and drop everything else."""
    if not html:
        return ""
    return _clean(html, RICH_TEXT_TAGS, RICH_TEXT_ATTRIBUTES)


def strip_html(text: Optional[str]) -> str:
    """Remove every tag, keeping only the (escaped) text content."""
    if not text:
        return ""
    return _clean(CONTROL_CHARS.sub("", text), (), {})


def sanitize_object(value: Any) -> Any:
    """
    Return a deep copy of `value` with `strip_html` applied to every string.

    Dicts, lists, tuples, sets and frozensets are walked with an explicit
    worklist instead of recursion, and each container is copied once, so
    shared and cyclic references keep their shape in the copy. Tuples and
    sets are first collected into a list and rebuilt once their contents are
    known. Dict keys, non-string scalars and other container types (tuple
    subclasses such as namedtuples included) are returned unchanged.
    """
    if isinstance(value, str):
        return strip_html(value)

    copies: Dict[int, Any] = {}
    # id(placeholder list) -> type to rebuild it as
    immutable_kinds: Dict[int, type] = {}
    pending: List[Tuple[Any, Any]] = []

    def copy_of(item: Any) -> Any:
        if isinstance(item, str):
            return strip_html(item)
        immutable = type(item) in IMMUTABLE_CONTAINERS
        if not immutable and not isinstance(item, (dict, list)):
            return item
        existing = copies.get(id(item))
        if existing is not None:
            return existing
        clone: Any = {} if isinstance(item, dict) else []
        if immutable:
            immutable_kinds[id(clone)] = type(item)
        copies[id(item)] = clone
        pending.append((item, clone))
        return clone

    root = copy_of(value)
    while pending:
        original, clone = pending.pop()
        if isinstance(original, dict):
            for key, item in original.items():
                clone[key] = copy_of(item)
        else:
            clone.extend(copy_of(item) for item in original)

    if not immutable_kinds:
        return root
    rebuilt = _rebuild_immutables(list(copies.values()), immutable_kinds)
    return rebuilt.get(id(root), root)


def _rebuild_immutables(
    clones: List[Any], kinds: Dict[int, type]
) -> Dict[int, Any]:
    """
    Turn placeholder lists back into tuples and sets.

    Inner placeholders are rebuilt before the ones holding them. An immutable
    container can only reach itself again through a dict or list, so the
    order always exists; those mutable copies are repointed afterwards.
    """
    rebuilt: Dict[int, Any] = {}
    for placeholder in clones:
        if id(placeholder) not in kinds:
            continue
        stack = [placeholder]
        while stack:
            current = stack[-1]
            waiting = [
                item
                for item in current
                if id(item) in kinds and id(item) not in rebuilt
            ]
            if waiting:
                stack.extend(waiting)
                continue
            stack.pop()
            if id(current) not in rebuilt:
                rebuilt[id(current)] = kinds[id(current)](
                    rebuilt.get(id(item), item) for item in current
                )

    for clone in clones:
        if id(clone) in kinds:
            continue
        if isinstance(clone, dict):
            for key, item in list(clone.items()):
                if id(item) in rebuilt:
                    clone[key] = rebuilt[id(item)]
        else:
            for index, item in enumerate(clone):
                if id(item) in rebuilt:
                    clone[index] = rebuilt[id(item)]
    return rebuilt
