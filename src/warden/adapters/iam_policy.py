"""
IAM policy document adapter for Warden.

Translates AWS IAM JSON policy documents into normalized
PermissionStatements and back, and loads per-principal policy files.

A policy file is a JSON or YAML mapping of principal id to one of:

- an IAM policy document ({"Version": ..., "Statement": [...]})
- a list of IAM policy documents
- a list of normalized statements ({"effect", "actions", "resources"})

optionally nested under a top-level "principals" key.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from warden.models.statement import Effect, PermissionSet, PermissionStatement

logger = logging.getLogger(__name__)

POLICY_VERSION = "2012-10-17"


class PolicyParseError(ValueError):
    """Raised when a policy document cannot be translated."""

    pass


def _as_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise PolicyParseError(f"'{field_name}' must be a string or a list of strings")


def parse_statement(raw: Any) -> PermissionStatement:
    """
    Parse one IAM statement.

    Args:
        raw: Statement object from a policy document

    Returns:
        PermissionStatement

    Raises:
        PolicyParseError: If the statement is unsupported or incomplete
    """
    if not isinstance(raw, dict):
        raise PolicyParseError("Statement must be an object")

    for unsupported in ("NotAction", "NotResource"):
        if unsupported in raw:
            raise PolicyParseError(f"'{unsupported}' statements are not supported")

    effect_value = raw.get("Effect")
    if not isinstance(effect_value, str):
        raise PolicyParseError("Statement is missing 'Effect'")
    try:
        effect = Effect.from_string(effect_value)
    except ValueError as e:
        raise PolicyParseError(str(e)) from e

    actions = _as_list(raw.get("Action"), "Action")
    if not actions:
        raise PolicyParseError("Statement is missing 'Action'")

    # A statement without Resource applies to every resource.
    resources = _as_list(raw.get("Resource", "*"), "Resource") or ["*"]

    conditions = raw.get("Condition") or {}
    if not isinstance(conditions, dict):
        raise PolicyParseError("'Condition' must be an object")

    return PermissionStatement(
        effect=effect,
        actions=frozenset(actions),
        resources=frozenset(resources),
        conditions=dict(conditions),
        sid=raw.get("Sid"),
    )


def parse_policy_document(document: dict[str, Any] | str) -> list[PermissionStatement]:
    """
    Parse an IAM policy document.

    Args:
        document: Policy document as a dict or JSON string

    Returns:
        Statements in document order

    Raises:
        PolicyParseError: If the document is not a valid policy
    """
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise PolicyParseError(f"Invalid policy JSON: {e.msg}") from e

    if not isinstance(document, dict) or "Statement" not in document:
        raise PolicyParseError("Policy document has no 'Statement'")

    statements = document["Statement"]
    if isinstance(statements, dict):
        statements = [statements]
    if not isinstance(statements, list):
        raise PolicyParseError("'Statement' must be an object or a list")

    return [parse_statement(s) for s in statements]


def statement_to_iam(statement: PermissionStatement) -> dict[str, Any]:
    """Render a statement as an IAM statement object."""
    rendered: dict[str, Any] = {}
    if statement.sid:
        rendered["Sid"] = statement.sid
    rendered["Effect"] = statement.effect.value.capitalize()

    actions = sorted(statement.actions)
    rendered["Action"] = actions[0] if len(actions) == 1 else actions

    resources = sorted(statement.resources)
    rendered["Resource"] = resources[0] if len(resources) == 1 else resources

    if statement.conditions:
        rendered["Condition"] = statement.conditions
    return rendered


def permission_set_to_document(permission_set: PermissionSet) -> dict[str, Any]:
    """Render a permission set as an IAM policy document."""
    return {
        "Version": POLICY_VERSION,
        "Statement": [statement_to_iam(s) for s in permission_set.statements],
    }


def parse_principal_policies(principal_id: str, value: Any) -> PermissionSet:
    """
    Build a principal's permission set from any supported policy form.

    Raises:
        PolicyParseError: If an item is neither a policy document nor a
            normalized statement
    """
    items = value if isinstance(value, list) else [value]
    statements: list[PermissionStatement] = []
    for item in items:
        if isinstance(item, str) or (isinstance(item, dict) and "Statement" in item):
            statements.extend(parse_policy_document(item))
        elif isinstance(item, dict) and "actions" in item:
            try:
                statements.append(PermissionStatement.from_dict(item))
            except (KeyError, ValueError) as e:
                raise PolicyParseError(
                    f"Invalid statement for {principal_id}: {e}"
                ) from e
        else:
            raise PolicyParseError(
                f"Unrecognized policy entry for {principal_id}: expected a policy "
                f"document or a normalized statement"
            )
    return PermissionSet(principal_id=principal_id, statements=tuple(statements))


def load_policy_file(path: str) -> dict[str, PermissionSet]:
    """
    Load per-principal permission sets from a JSON or YAML file.

    Args:
        path: Policy file path

    Returns:
        Permission set per principal id

    Raises:
        PolicyParseError: If the file content is not a valid policy mapping
    """
    file_path = Path(path).expanduser()
    with open(file_path, "r", encoding="utf-8") as f:
        if file_path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if isinstance(data, dict) and isinstance(data.get("principals"), dict):
        data = data["principals"]
    if not isinstance(data, dict):
        raise PolicyParseError(f"{file_path}: expected a mapping of principal to policies")

    permission_sets = {
        str(principal_id): parse_principal_policies(str(principal_id), value)
        for principal_id, value in data.items()
    }
    logger.info(
        f"Loaded {sum(len(s) for s in permission_sets.values())} statements for "
        f"{len(permission_sets)} principals from {file_path}"
    )
    return permission_sets
