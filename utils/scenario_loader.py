"""
Scenario Loader for the Wait-For Graph Deadlock Detector.

Loads JSON snapshot files in either the entity format
({"entities": [...]}) or the board lock-record format ({"locks": [...]}).
Only structure is validated here; allocation inconsistencies are left to
the detector (permissive) or algorithms.validation (strict).
"""

import json
from typing import Dict, List, Any, Tuple

from models.entity import Entity
from models.lock import LockRecord, entities_from_locks
from models.resource import Resource
from models.allocation_state import AllocationState


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


def load_scenario(file_path: str) -> AllocationState:
    """
    Load a snapshot from a JSON file.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        AllocationState with entities, resource catalogue and description

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    state, _ = load_scenario_with_locks(file_path)
    return state


def load_scenario_with_locks(file_path: str) -> Tuple[AllocationState, List[LockRecord]]:
    """
    Load a snapshot and, for lock-record files, the raw lock rows.

    Returns:
        Tuple of (AllocationState, lock rows; empty for entity files)

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    return parse_scenario(data)


def parse_scenario(data: Any) -> Tuple[AllocationState, List[LockRecord]]:
    """
    Build a snapshot from already-decoded scenario data.

    Args:
        data: Decoded JSON object

    Returns:
        Tuple of (AllocationState, lock rows)

    Raises:
        ScenarioLoadError: If the data is structurally invalid
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")

    description = data.get('description', '')

    if 'entities' in data:
        resources = _load_resources(data.get('resources', []), 'id', 'label')
        entities = [_load_entity(e) for e in _require_list(data, 'entities')]
        locks = []
    elif 'locks' in data:
        resources = _load_resources(data.get('components', []), 'id', 'title')
        locks = [_load_lock(lock) for lock in _require_list(data, 'locks')]
        entities = entities_from_locks(locks)
    else:
        raise ScenarioLoadError("Scenario missing 'entities' or 'locks' field")

    state = AllocationState(entities=entities, resources=resources, description=description)
    return state, locks


def _require_list(data: Dict, key: str) -> List:
    value = data[key]
    if not isinstance(value, list):
        raise ScenarioLoadError(f"'{key}' must be a list")
    return value


def _require_id(value: Any, what: str) -> Any:
    """Ids must be JSON strings or integers."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ScenarioLoadError(f"{what} must be a string or integer, got {value!r}")
    return value


def _load_resources(resource_data: Any, id_key: str, label_key: str) -> List[Resource]:
    """
    Load resource definitions from scenario data.

    Args:
        resource_data: List of resource dictionaries
        id_key: Field holding the resource id
        label_key: Field holding the display label

    Returns:
        List of Resource objects in file order
    """
    if not isinstance(resource_data, list):
        raise ScenarioLoadError("Resource catalogue must be a list")

    resources = []
    for res in resource_data:
        if not isinstance(res, dict) or id_key not in res:
            raise ScenarioLoadError(f"Resource missing '{id_key}' field")
        resource_id = _require_id(res[id_key], "Resource id")
        resources.append(Resource(resource_id=resource_id, label=res.get(label_key)))

    return resources


def _load_entity(entity_data: Any) -> Entity:
    """
    Load a single entity from scenario data.

    Args:
        entity_data: Entity dictionary from scenario

    Returns:
        Entity object
    """
    if not isinstance(entity_data, dict):
        raise ScenarioLoadError("Entity entries must be objects")
    if 'id' not in entity_data:
        raise ScenarioLoadError("Entity missing required field: id")

    entity_id = _require_id(entity_data['id'], "Entity id")
    held = entity_data.get('held', [])
    requested = entity_data.get('requested', [])

    for name, value in (('held', held), ('requested', requested)):
        if not isinstance(value, list):
            raise ScenarioLoadError(f"Entity {entity_id}: '{name}' must be a list")
        for resource_id in value:
            _require_id(resource_id, f"Entity {entity_id}: '{name}' entry")

    return Entity(
        entity_id=entity_id,
        held=list(held),
        requested=list(requested),
        label=entity_data.get('label')
    )


def _load_lock(lock_data: Any) -> LockRecord:
    """
    Load a single lock row.

    Raises:
        ScenarioLoadError: If a required field is missing or not an id
    """
    if not isinstance(lock_data, dict):
        raise ScenarioLoadError("Lock entries must be objects")

    required_fields = ['id', 'user_id', 'component_id']
    for field in required_fields:
        if field not in lock_data:
            raise ScenarioLoadError(f"Lock missing required field: {field}")
        _require_id(lock_data[field], f"Lock '{field}'")

    return LockRecord(
        lock_id=lock_data['id'],
        user_id=lock_data['user_id'],
        component_id=lock_data['component_id'],
        requested_at=lock_data.get('requested_at'),
        acquired_at=lock_data.get('acquired_at'),
        released_at=lock_data.get('released_at')
    )


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Description string, or empty string if not present or unreadable
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return ''
    if not isinstance(data, dict):
        return ''
    return data.get('description', '')
