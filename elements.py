"""Default element capabilities used by the sync client.

Elements are plain JSON objects carrying at least an ``id`` and an integer
``version`` that the editor bumps on every change. The functions here are the
defaults for the pluggable capabilities of ``SceneSyncClient``; editors with a
richer element model inject their own.
"""

import base64
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

Element = Dict[str, Any]

LINEAR_ELEMENT_TYPES = ("line", "arrow", "freedraw")


def scene_version(elements: Iterable[Mapping[str, Any]]) -> int:
    """Sum of element versions.

    A pure function of element contents: any edit bumps an element's version,
    so the sum changes whenever the scene does.
    """
    return sum(int(element.get("version", 0) or 0) for element in elements)


def _wins(local: Mapping[str, Any], remote: Mapping[str, Any]) -> bool:
    local_version = local.get("version", 0) or 0
    remote_version = remote.get("version", 0) or 0
    if local_version != remote_version:
        return local_version > remote_version
    # same version edited on two sides, lower nonce wins on every client
    return (local.get("versionNonce", 0) or 0) <= (remote.get("versionNonce", 0) or 0)


def reconcile_elements(
    local: Iterable[Element],
    remote: Iterable[Element],
    app_state: Optional[Mapping[str, Any]] = None,
) -> List[Element]:
    """Merge two element collections by id.

    For ids present on both sides the higher version wins, ties broken by the
    lower ``versionNonce``. An element the local user is currently editing is
    always kept as is. Local order is preserved, remote-only elements follow
    in remote order.
    """
    app_state = app_state or {}
    editing_ids = {
        app_state.get(key)
        for key in ("editingElementId", "resizingElementId", "draggingElementId")
        if app_state.get(key)
    }
    remote_by_id = {element["id"]: element for element in remote if "id" in element}

    merged: List[Element] = []
    seen = set()
    for element in local:
        element_id = element.get("id")
        if element_id is None or element_id in seen:
            continue
        seen.add(element_id)
        other = remote_by_id.get(element_id)
        if other is None or element_id in editing_ids or _wins(element, other):
            merged.append(element)
        else:
            merged.append(other)
    for element_id, element in remote_by_id.items():
        if element_id not in seen:
            seen.add(element_id)
            merged.append(element)
    return merged


def is_invisibly_small(element: Mapping[str, Any]) -> bool:
    if element.get("type") in LINEAR_ELEMENT_TYPES:
        return len(element.get("points") or []) < 2
    return element.get("width", 1) == 0 and element.get("height", 1) == 0


def restore_elements(elements: Optional[Iterable[Any]], delete_invisible: bool = False) -> List[Element]:
    """Validate stored elements: drop anything without an id, optionally prune invisible ones."""
    restored: List[Element] = []
    for element in elements or []:
        if not isinstance(element, dict) or not element.get("id"):
            continue
        if delete_invisible and not element.get("isDeleted") and is_invisibly_small(element):
            continue
        restored.append(dict(element))
    return restored


def decode_file_payload(buffer: bytes, decryption_key: Optional[str] = None) -> Tuple[bytes, Dict[str, Any]]:
    """Identity decoder: file bytes are stored unencrypted and uncompressed."""
    return buffer, {}


def to_data_url(data: bytes, mime_type: str) -> str:
    if data.startswith(b"data:"):
        return data.decode("ascii")
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(value: str) -> Tuple[bytes, Optional[str]]:
    """Split a ``data:<mime>;base64,<payload>`` URL into bytes and media type.

    Strings that are not data URLs are returned as UTF-8 bytes with no media type.
    """
    if not value.startswith("data:") or "," not in value:
        return value.encode("utf-8"), None
    header, payload = value.split(",", 1)
    media_type = header[len("data:"):].split(";", 1)[0] or None
    if header.endswith(";base64"):
        return base64.b64decode(payload), media_type
    return payload.encode("utf-8"), media_type
