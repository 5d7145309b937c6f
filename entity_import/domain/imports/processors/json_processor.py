import json
from typing import Any, Dict, List


def _load_objects(file_content: bytes, kind: str) -> List[Dict[str, Any]]:
    try:
        data = json.loads(file_content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Invalid JSON file: {exc}") from exc

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"JSON must contain {kind} object or array of {kind} objects")

    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"Item {index} is not a JSON object")
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Item {index} is missing a name")
    return data


def process_entities_json(file_content: bytes) -> List[Dict[str, Any]]:
    """Process an entities JSON file and return list of entity dictionaries."""
    return _load_objects(file_content, "an entity")


def process_templates_json(file_content: bytes) -> List[Dict[str, Any]]:
    """Process a templates JSON file and return list of template dictionaries."""
    return _load_objects(file_content, "a template")
