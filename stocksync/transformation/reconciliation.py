"""
Change Reconciliation

Field-level diff between freshly computed entities and the documents already
stored. Deltas only ever add or overwrite fields; nothing is removed.

Normalization rules:
- strings are trimmed on both sides
- when the stored value is a number, a numeric new string is parsed to a
  number before comparing ("5" vs 5 is no change, "6" vs 5 writes 6)
- booleans are never treated as numbers
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Set, Tuple, Union

import structlog

from stocksync.database.store import new_document_id

ARTICLE_KEY_FIELDS = ("sku", "itemNumber")
PRODUCT_KEY_FIELDS = ("itemNumber", "productName", "leverandor")

Number = Union[int, float]
ExistingIndex = Dict[Tuple[str, ...], Tuple[str, Dict[str, Any]]]

_MISSING = object()

_DECIMAL_COMMA = re.compile(r"^[+-]?\d+,\d{1,2}$")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_number(text: str) -> Optional[Number]:
    """Int or float for a numeric string, None otherwise"""
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    # Prices use a decimal comma with at most two decimals ("199,95"). A comma
    # before three digits ("1,000") is ambiguous and is not parsed.
    if _DECIMAL_COMMA.match(text):
        text = text.replace(",", ".")
    elif "," in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def normalize(value: Any, stored: Any = _MISSING) -> Any:
    """Comparable form of a new value, given the value currently stored"""
    if isinstance(value, str):
        value = value.strip()
        if is_number(stored):
            parsed = parse_number(value)
            if parsed is not None:
                return parsed
    return value


def compute_delta(existing: Mapping[str, Any], new: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Fields of `new` whose normalized value differs from the stored one.

    Args:
        existing: Currently stored document
        new: Newly computed document

    Returns:
        Changed fields with their normalized new values; empty when nothing changed
    """
    delta = {}
    for field, value in new.items():
        stored = existing.get(field, _MISSING)
        candidate = normalize(value, stored)
        if stored is _MISSING:
            delta[field] = candidate
            continue
        current = stored.strip() if isinstance(stored, str) else stored
        if candidate != current or is_number(candidate) != is_number(current):
            delta[field] = candidate
    return delta


def entity_key(document: Mapping[str, Any], key_fields: Iterable[str]) -> Tuple[str, ...]:
    return tuple(str(document.get(name) or "").strip() for name in key_fields)


def index_by_key(
    documents: Mapping[str, Mapping[str, Any]],
    key_fields: Iterable[str],
    logger=None,
) -> ExistingIndex:
    """
    Stored documents keyed by their natural identity.

    When several documents share a key the first by document id wins and the
    duplicates are reported.
    """
    log = logger or structlog.get_logger(__name__)
    key_fields = tuple(key_fields)
    index: ExistingIndex = {}
    duplicates = []

    for doc_id in sorted(documents):
        data = dict(documents[doc_id])
        key = entity_key(data, key_fields)
        if key in index:
            duplicates.append(doc_id)
            continue
        index[key] = (doc_id, data)

    if duplicates:
        log.warning("Duplicate documents for identity key", key_fields=list(key_fields), doc_ids=duplicates[:20])
    return index


@dataclass
class EntityChange:
    """Write needed to bring one stored entity up to date"""
    doc_id: str
    fields: Dict[str, Any]
    is_new: bool


def plan_change(
    index: ExistingIndex,
    key: Tuple[str, ...],
    document: Mapping[str, Any],
) -> Optional[EntityChange]:
    """
    Create-or-patch decision for one entity.

    Unknown keys become full creates under a fresh id; known keys become a
    field patch, or None when nothing changed. The index is updated so a
    repeated key later in the same run diffs against this write.
    """
    match = index.get(key)

    if match is None:
        fields = {name: normalize(value) for name, value in document.items()}
        doc_id = new_document_id()
        index[key] = (doc_id, dict(fields))
        return EntityChange(doc_id=doc_id, fields=fields, is_new=True)

    doc_id, stored = match
    delta = compute_delta(stored, document)
    if not delta:
        return None

    index[key] = (doc_id, {**stored, **delta})
    return EntityChange(doc_id=doc_id, fields=delta, is_new=False)


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def find_mixed_type_fields(documents: Iterable[Mapping[str, Any]]) -> Dict[str, Set[str]]:
    """
    Fields stored with different value types across documents.

    The numeric/string normalization depends on the stored type, so such
    fields make diffs depend on which document is being compared.
    """
    seen: Dict[str, Set[str]] = {}
    for document in documents:
        for field, value in document.items():
            if value is None:
                continue
            seen.setdefault(field, set()).add(_type_name(value))
    return {field: types for field, types in seen.items() if len(types) > 1}
