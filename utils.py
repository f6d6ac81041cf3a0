import json
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote


def nest_parent_reference(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move a flat parentId into the reference object Raindrop expects

    {"title": "x", "parentId": 42} -> {"title": "x", "parent": {"$id": 42}}

    Args:
        fields: Collection fields as supplied by the caller

    Returns:
        New dict; the input is left untouched
    """
    data = dict(fields)
    parent_id = data.pop("parentId", None)
    if parent_id is not None:
        data["parent"] = {"$id": parent_id}
    return data


def split_identifier(
    arguments: Dict[str, Any], key: str = "id"
) -> Tuple[Any, Dict[str, Any]]:
    """
    Separate the identifying field from the fields to update

    Args:
        arguments: Tool arguments including the identifier
        key: Name of the identifier field

    Returns:
        (identifier, remaining fields)
    """
    remainder = dict(arguments)
    identifier = remainder.pop(key, None)
    return identifier, remainder


def quote_path_segment(value: Any) -> str:
    # JSON numbers may arrive as 5.0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return quote(str(value), safe="")


def tag_scope_endpoint(collection_id: Optional[Any], default: str) -> str:
    """
    Tag endpoints are scoped to one collection or fall back to a default path

    Args:
        collection_id: Collection to limit the operation to, or None
        default: Path used when no collection is given

    Returns:
        Endpoint path
    """
    if collection_id is None:
        return default
    return f"/tags/{quote_path_segment(collection_id)}"


def format_query_value(value: Any) -> str:
    """Render a query parameter the way the Raindrop API reads it"""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_json(result: Any) -> str:
    return json.dumps(result, indent=2, ensure_ascii=False)
