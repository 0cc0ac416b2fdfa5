"""Pipeline behaviour - merge policy, priority roles, CSV parsing"""
import os
from typing import Dict

# Unmatched target rows are only deleted when this is switched on
MERGE_DELETE_UNMATCHED = os.getenv("MERGE_DELETE_UNMATCHED", "false").lower() == "true"

CSV_DELIMITER = os.getenv("CSV_DELIMITER", ",")

DEFAULT_PRIORITY_ROLES = "Data Engineer:1,Senior Data Engineer:1,Software Engineer:3"


def parse_priority_roles(value: str) -> Dict[str, int]:
    """
    Parse "Role A:1,Role B:3" into {role_name: priority_lvl}.
    1 = critical, 2 = important, 3 = monitor.
    """
    roles = {}
    for item in (value or "").split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, level = item.rpartition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid priority role entry: {item!r} (expected 'Role Name:level')")
        roles[name.strip()] = int(level)
    return roles


PRIORITY_ROLES = parse_priority_roles(os.getenv("PRIORITY_ROLES", DEFAULT_PRIORITY_ROLES))
