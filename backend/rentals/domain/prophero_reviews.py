# backend/rentals/domain/prophero_reviews.py
from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .completion import PROPHERO_SECTIONS

# -----------------------------------------------------------------------------
# Prophero section reviews
# -----------------------------------------------------------------------------
# Stored on properties.prophero_section_reviews as:
#   {
#     "<section-id>": {reviewed, isCorrect, comments, submittedComments,
#                      hasIssue, snapshot},
#     "_meta": {commentsSubmitted, commentsSubmittedAt, commentSubmissionHistory}
#   }
#
# All functions here are pure: they take the stored JSON and return a new dict.
# -----------------------------------------------------------------------------

META_KEY = "_meta"

SECTION_FIELDS: dict[str, tuple[str, ...]] = {sid: names for sid, _title, names in PROPHERO_SECTIONS}
SECTION_TITLES: dict[str, str] = {sid: title for sid, title, _names in PROPHERO_SECTIONS}


class ReviewError(ValueError):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _copy(reviews: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    return copy.deepcopy(dict(reviews)) if isinstance(reviews, Mapping) else {}


def _require_section(section_id: str) -> None:
    if section_id not in SECTION_FIELDS:
        raise ReviewError(f"unknown prophero section: {section_id}")


def empty_review() -> dict[str, Any]:
    return {
        "reviewed": False,
        "isCorrect": None,
        "comments": None,
        "submittedComments": None,
        "hasIssue": False,
        "snapshot": None,
    }


def section_snapshot(section_id: str, values: Mapping[str, Any]) -> dict[str, Any]:
    return {name: _jsonable(values.get(name)) for name in SECTION_FIELDS.get(section_id, ())}


def _jsonable(v: Any) -> Any:
    if hasattr(v, "isoformat"):
        return v.isoformat()
    if isinstance(v, (list, tuple)):
        return list(v)
    return v


def set_review(
    reviews: Optional[Mapping[str, Any]],
    section_id: str,
    *,
    values: Mapping[str, Any],
    is_correct: Optional[bool],
    comments: Optional[str] = None,
) -> dict[str, Any]:
    """
    Record a reviewer verdict for one section.

    hasIssue is sticky: once a section was flagged incorrect it stays True.
    Omitted comments keep the stored ones.
    The snapshot captures field values at review time so later edits can be
    detected (see reset_on_field_change).
    """
    _require_section(section_id)
    out = _copy(reviews)
    cur = {**empty_review(), **(out.get(section_id) or {})}

    cur["reviewed"] = True
    cur["isCorrect"] = is_correct
    if comments is not None:
        cur["comments"] = comments.strip() or None
    if is_correct is False:
        cur["hasIssue"] = True
    cur["snapshot"] = section_snapshot(section_id, values)

    out[section_id] = cur
    return out


def update_comments(
    reviews: Optional[Mapping[str, Any]],
    section_id: str,
    *,
    comments: Optional[str],
    values: Mapping[str, Any],
) -> dict[str, Any]:
    _require_section(section_id)
    out = _copy(reviews)
    cur = {**empty_review(), **(out.get(section_id) or {})}

    cur["comments"] = (comments or "").strip() or None
    cur["reviewed"] = True
    if cur.get("isCorrect") is None:
        cur["isCorrect"] = False
    if cur["isCorrect"] is False:
        cur["hasIssue"] = True
        cur["snapshot"] = section_snapshot(section_id, values)

    out[section_id] = cur
    return out


def mark_complete(reviews: Optional[Mapping[str, Any]], section_id: str, *, values: Mapping[str, Any]) -> dict[str, Any]:
    _require_section(section_id)
    out = _copy(reviews)
    cur = {**empty_review(), **(out.get(section_id) or {})}
    cur["reviewed"] = True
    cur["isCorrect"] = True
    cur["snapshot"] = section_snapshot(section_id, values)
    out[section_id] = cur
    return out


def submit_comments(reviews: Optional[Mapping[str, Any]], *, values: Mapping[str, Any]) -> tuple[dict[str, Any], list[dict]]:
    """
    Sends every pending correction comment to the owner in one batch.

    Returns the new reviews JSON and the history entries appended.
    """
    out = _copy(reviews)
    meta = dict(out.get(META_KEY) or {})
    history = list(meta.get("commentSubmissionHistory") or [])
    now = _now_iso()

    entries: list[dict] = []
    for sid in SECTION_FIELDS:
        cur = out.get(sid)
        if not isinstance(cur, Mapping):
            continue
        comments = str(cur.get("comments") or "").strip()
        if cur.get("isCorrect") is not False or not comments:
            continue

        entry = {
            "sectionId": sid,
            "sectionTitle": SECTION_TITLES[sid],
            "comments": comments,
            "submittedAt": now,
            "fieldValues": section_snapshot(sid, values),
        }
        entries.append(entry)
        out[sid] = {**cur, "submittedComments": comments, "hasIssue": True}

    if not entries:
        raise ReviewError("no comments to submit")

    history.extend(entries)
    meta["commentSubmissionHistory"] = history
    meta["commentsSubmitted"] = True
    meta.setdefault("commentsSubmittedAt", now)
    out[META_KEY] = meta
    return out, entries


def _normalize(v: Any) -> Any:
    v = _jsonable(v)
    if isinstance(v, list):
        try:
            return sorted(v, key=lambda x: str(x))
        except TypeError:
            return v
    if isinstance(v, str):
        return v.strip() or None
    return v


def _same_value(current: Any, snapshot: Any) -> bool:
    """A missing value on one side equals an empty list on the other."""
    a, b = _normalize(current), _normalize(snapshot)
    if isinstance(a, list) and b is None:
        b = []
    elif isinstance(b, list) and a is None:
        a = []
    return a == b


def reset_on_field_change(
    reviews: Optional[Mapping[str, Any]],
    changed: Mapping[str, Any],
) -> tuple[dict[str, Any], list[str]]:
    """
    Owner edits after a correction request reopen the affected sections.

    A section resets (isCorrect=None, reviewed=False, comments=None) when it
    was marked incorrect, has a snapshot, and one of `changed` differs from
    that snapshot. Callers only invoke this while the property is in the
    Prophero phase. Returns (new reviews, reset section ids).
    """
    out = _copy(reviews)
    reset: list[str] = []

    for sid, names in SECTION_FIELDS.items():
        cur = out.get(sid)
        if not isinstance(cur, Mapping):
            continue
        if cur.get("isCorrect") is not False:
            continue
        snap = cur.get("snapshot")
        if not isinstance(snap, Mapping):
            continue

        touched = [n for n in names if n in changed]
        if not touched:
            continue
        if all(_same_value(changed[n], snap.get(n)) for n in touched):
            continue

        out[sid] = {**cur, "isCorrect": None, "reviewed": False, "comments": None}
        reset.append(sid)

    return out, reset
