"""Document query helpers shared by the document store backends.

Filters, update documents, sorting and grouping follow a small MongoDB-like
dialect so that services express queries once and every backend evaluates
them the same way:

Filters:
    {"field": value}                       equality (membership for arrays)
    {"a.b": {"$in": [...]}}                dotted paths and operators
    {"$or": [{...}, {...}]}                disjunction
    {"items": {"$elemMatch": {...}}}       array element match

    Operators: $eq $ne $in $nin $gt $gte $lt $lte $exists $elemMatch

Updates:
    {"a.b": value}                         plain keys are $set
    {"$set": {...}, "$inc": {...}, "$addToSet": {...}, "$unset": [...]}
"""

import copy
from typing import Any, Iterable, Mapping, Optional, Sequence

_MISSING = object()

SortSpec = Sequence[tuple[str, int]]


def get_path(document: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Resolve a dotted path inside nested dicts (list indexes allowed)."""
    current: Any = document
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default
    return current


def set_path(document: dict[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at a dotted path, creating intermediate dicts."""
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def unset_path(document: dict[str, Any], path: str) -> None:
    parts = path.split(".")
    current: Any = document
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, dict) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(parts[-1], None)


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if op == "$eq":
        if isinstance(actual, list) and not isinstance(expected, list):
            return expected in actual
        return actual == expected
    if op == "$ne":
        return not _compare("$eq", actual, expected)
    if op == "$in":
        if actual is _MISSING:
            return None in expected
        if isinstance(actual, list):
            return any(item in expected for item in actual)
        return actual in expected
    if op == "$nin":
        return not _compare("$in", actual, expected)
    if op == "$exists":
        return (actual is not _MISSING) == bool(expected)
    if op == "$elemMatch":
        if not isinstance(actual, list):
            return False
        return any(isinstance(item, Mapping) and matches(item, expected) for item in actual)
    if actual is _MISSING or actual is None:
        return False
    try:
        if op == "$gt":
            return actual > expected
        if op == "$gte":
            return actual >= expected
        if op == "$lt":
            return actual < expected
        if op == "$lte":
            return actual <= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported query operator: {op}")


def _is_operator_doc(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(str(key).startswith("$") for key in value)
    )


def matches(document: Mapping[str, Any], query: Optional[Mapping[str, Any]]) -> bool:
    """Return True when ``document`` satisfies ``query``."""
    if not query:
        return True
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
            continue
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
            continue
        actual = get_path(document, key, _MISSING)
        if _is_operator_doc(condition):
            for op, expected in condition.items():
                if not _compare(op, actual, expected):
                    return False
        else:
            if actual is _MISSING:
                if condition is not None:
                    return False
                continue
            if not _compare("$eq", actual, condition):
                return False
    return True


def apply_update(document: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` with ``update`` applied."""
    result = copy.deepcopy(dict(document))
    if not any(str(key).startswith("$") for key in update):
        update = {"$set": update}

    for op, fields in update.items():
        if op == "$set":
            for path, value in fields.items():
                set_path(result, path, copy.deepcopy(value))
        elif op == "$inc":
            for path, amount in fields.items():
                current = get_path(result, path) or 0
                set_path(result, path, current + amount)
        elif op == "$addToSet":
            for path, value in fields.items():
                current = list(get_path(result, path) or [])
                if value not in current:
                    current.append(copy.deepcopy(value))
                set_path(result, path, current)
        elif op == "$push":
            for path, value in fields.items():
                current = list(get_path(result, path) or [])
                current.append(copy.deepcopy(value))
                set_path(result, path, current)
        elif op == "$unset":
            for path in fields:
                unset_path(result, path)
        else:
            raise ValueError(f"Unsupported update operator: {op}")
    return result


def sort_documents(
    documents: Iterable[dict[str, Any]], sort: Optional[SortSpec]
) -> list[dict[str, Any]]:
    """Sort by several keys; ``None``/missing values always sort last."""
    docs = list(documents)
    if not sort:
        return docs
    for path, direction in reversed(list(sort)):
        present = [d for d in docs if get_path(d, path) is not None]
        missing = [d for d in docs if get_path(d, path) is None]
        present.sort(key=lambda d, p=path: get_path(d, p), reverse=direction < 0)
        docs = present + missing
    return docs


def group_documents(
    documents: Iterable[Mapping[str, Any]],
    by: Sequence[str],
    unwind: Optional[str] = None,
    sums: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> list[dict[str, Any]]:
    """Group documents and count them, with optional unwind and conditional sums.

    Args:
        documents: Documents that already passed the match stage.
        by: Dotted paths forming the group key.
        unwind: Top-level array field expanded into one document per element.
        sums: Named filters; each group reports how many members match.

    Returns:
        ``[{"key": {path: value, ...}, "count": n, <sum name>: m, ...}]``
        ordered by first appearance.
    """
    expanded: list[Mapping[str, Any]] = []
    for doc in documents:
        if unwind:
            for element in get_path(doc, unwind) or []:
                row = dict(doc)
                row[unwind] = element
                expanded.append(row)
        else:
            expanded.append(doc)

    groups: dict[tuple, dict[str, Any]] = {}
    for doc in expanded:
        key_values = tuple(get_path(doc, path) for path in by)
        group = groups.get(key_values)
        if group is None:
            group = {"key": dict(zip(by, key_values)), "count": 0}
            for name in sums or {}:
                group[name] = 0
            groups[key_values] = group
        group["count"] += 1
        for name, condition in (sums or {}).items():
            if matches(doc, condition):
                group[name] += 1
    return list(groups.values())
