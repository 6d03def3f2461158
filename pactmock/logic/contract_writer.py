"""Contract writer and reader.

Serializes interactions to a Pact v3 JSON document with matching rules kept
symbolic, and reads such documents back into `Interaction` objects.

Writes are atomic (temporary file in the destination directory, then
`os.replace`) and deterministic (sorted keys, fixed indent, trailing
newline) so identical interaction sets produce byte-identical files.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from jsonschema import Draft202012Validator

from pactmock.errors import InvalidMatcherError, SerializationError
from pactmock.logic.contract_schema import CONTRACT_SCHEMA
from pactmock.logic.matchers import Regex
from pactmock.logic.matching_rules import body_rules, field_rules, rebuild, rebuild_field, rule_entry
from pactmock.models.interaction import Interaction, RequestSpec, ResponseSpec

logger = logging.getLogger(__name__)

PACT_SPECIFICATION_VERSION = "3.0.0"
LIBRARY_VERSION = "0.1.0"

_VALIDATOR = Draft202012Validator(CONTRACT_SCHEMA)


@dataclass(frozen=True)
class ContractDocument:
    consumer: str
    provider: str
    interactions: Tuple[Interaction, ...] = ()
    metadata: Dict[str, Any] = field(
        default_factory=lambda: {
            "pactSpecification": {"version": PACT_SPECIFICATION_VERSION},
            "pactmock": {"version": LIBRARY_VERSION},
        }
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consumer": {"name": self.consumer},
            "provider": {"name": self.provider},
            "interactions": [interaction_to_dict(i) for i in self.interactions],
            "metadata": self.metadata,
        }


def _query_values(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _request_to_dict(spec: RequestSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {"method": spec.method, "path": spec.path_example}
    rules: Dict[str, Any] = {}
    if isinstance(spec.path, Regex):
        rules["path"] = rule_entry({"match": "regex", "regex": spec.path.pattern})
    if spec.query:
        examples, query_rules = field_rules(spec.query)
        out["query"] = {name: _query_values(v) for name, v in examples.items()}
        if query_rules:
            rules["query"] = query_rules
    if spec.headers:
        examples, header_rules = field_rules(spec.headers)
        out["headers"] = {name: str(v) for name, v in examples.items()}
        if header_rules:
            rules["header"] = header_rules
    if spec.body is not None:
        example, rules_for_body = body_rules(spec.body)
        out["body"] = example
        if rules_for_body:
            rules["body"] = rules_for_body
    if rules:
        out["matchingRules"] = rules
    return out


def _response_to_dict(spec: ResponseSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {"status": spec.status}
    if spec.headers:
        out["headers"] = dict(spec.headers)
    if spec.body is not None:
        example, rules_for_body = body_rules(spec.body)
        out["body"] = example
        if rules_for_body:
            out["matchingRules"] = {"body": rules_for_body}
    return out


def interaction_to_dict(interaction: Interaction) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "description": interaction.description,
        "request": _request_to_dict(interaction.request),
        "response": _response_to_dict(interaction.response),
    }
    if interaction.provider_state:
        state: Dict[str, Any] = {"name": interaction.provider_state}
        if interaction.provider_state_params:
            state["params"] = dict(interaction.provider_state_params)
        out["providerStates"] = [state]
    return out


def _request_from_dict(data: Mapping[str, Any]) -> RequestSpec:
    rules = data.get("matchingRules") or {}
    path: Any = data["path"]
    if rules.get("path"):
        path = rebuild_field(path, rules["path"])
    query_rules = rules.get("query") or {}
    query: Dict[str, Any] = {}
    for name, values in (data.get("query") or {}).items():
        entry = query_rules.get(name)
        repeated = any("min" in m for m in (entry or {}).get("matchers") or [])
        value: Any = values[0] if len(values) == 1 and not repeated else list(values)
        query[name] = rebuild_field(value, entry)
    header_rules = rules.get("header") or {}
    headers = {name: rebuild_field(value, header_rules.get(name)) for name, value in (data.get("headers") or {}).items()}
    body = rebuild(data["body"], rules.get("body") or {}) if "body" in data else None
    return RequestSpec(method=data["method"], path=path, headers=headers, query=query, body=body)


def _response_from_dict(data: Mapping[str, Any]) -> ResponseSpec:
    rules = data.get("matchingRules") or {}
    body = rebuild(data["body"], rules.get("body") or {}) if "body" in data else None
    return ResponseSpec(status=int(data["status"]), headers=dict(data.get("headers") or {}), body=body)


def interaction_from_dict(data: Mapping[str, Any]) -> Interaction:
    states = data.get("providerStates") or []
    state: Optional[str] = states[0].get("name") if states else None
    params = states[0].get("params") if states else None
    return Interaction(
        description=data["description"],
        request=_request_from_dict(data["request"]),
        response=_response_from_dict(data["response"]),
        provider_state=state,
        provider_state_params=dict(params) if params else None,
    )


def _schema_errors(document: Mapping[str, Any]) -> List[str]:
    return [
        f"{'/'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
        for err in sorted(_VALIDATOR.iter_errors(document), key=lambda e: list(e.absolute_path))
    ]


def serialize(document: ContractDocument) -> str:
    """Render a document as deterministic JSON text."""
    try:
        data = document.to_dict()
        text = json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"contract is not JSON serializable: {e}") from e
    errors = _schema_errors(data)
    if errors:
        raise SerializationError("contract failed schema validation: " + "; ".join(errors))
    return text + "\n"


def contract_path(destination: str | os.PathLike[str], consumer: str, provider: str) -> Path:
    """A `.json` destination is used as-is; anything else is a directory."""
    dest = Path(destination)
    if dest.suffix.lower() == ".json":
        return dest
    return dest / f"{consumer}-{provider}.json"


def merge_interactions(existing: Sequence[Interaction], new: Sequence[Interaction]) -> List[Interaction]:
    """Replace existing interactions that share a key with a new one, append the rest."""
    by_key = {i.key: i for i in new}
    merged = [by_key.pop(i.key, i) for i in existing]
    merged.extend(i for i in new if i.key in by_key)
    return merged


def _file_mode(path: Path) -> int:
    """Mode for the written contract: keep an existing file's, else what `open()` would give."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _file_mode(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        # mkstemp creates the file as 0600
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def write(
    consumer: str,
    provider: str,
    interactions: Iterable[Interaction],
    destination: str | os.PathLike[str],
    *,
    mode: str = "overwrite",
) -> Path:
    """Write the contract for a consumer/provider pair and return its path.

    `mode="merge"` keeps interactions already present in the file (matched
    by description and provider state) and appends the new ones.
    """
    path = contract_path(destination, consumer, provider)
    items = list(interactions)
    if mode == "merge" and path.exists():
        items = merge_interactions(read(path).interactions, items)
    elif mode not in ("overwrite", "merge"):
        raise ValueError(f"unknown file write mode {mode!r}")

    text = serialize(ContractDocument(consumer=consumer, provider=provider, interactions=tuple(items)))
    try:
        _atomic_write(path, text)
    except OSError as e:
        logger.error("contract_write_failed path=%s", path, exc_info=True)
        raise SerializationError(f"failed to write contract {path}: {e}") from e
    logger.info("contract_written path=%s interactions=%s", path, len(items))
    return path


def read(path: str | os.PathLike[str]) -> ContractDocument:
    """Load a contract file, rebuilding matcher expressions from its rules."""
    source = Path(path)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationError(f"failed to read contract {source}: {e}") from e
    if not isinstance(data, dict):
        raise SerializationError(f"contract {source} is not a JSON object")
    errors = _schema_errors(data)
    if errors:
        raise SerializationError(f"contract {source} failed schema validation: " + "; ".join(errors))
    try:
        interactions = tuple(interaction_from_dict(item) for item in data["interactions"])
    except (InvalidMatcherError, ValueError, KeyError) as e:
        raise SerializationError(f"contract {source} holds an invalid interaction: {e}") from e
    return ContractDocument(
        consumer=data["consumer"]["name"],
        provider=data["provider"]["name"],
        interactions=interactions,
        metadata=dict(data.get("metadata") or {}),
    )


__all__ = [
    "PACT_SPECIFICATION_VERSION",
    "LIBRARY_VERSION",
    "ContractDocument",
    "interaction_to_dict",
    "interaction_from_dict",
    "serialize",
    "contract_path",
    "merge_interactions",
    "write",
    "read",
]
