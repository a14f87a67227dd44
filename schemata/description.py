"""
Declarative schema descriptions.

A description is a YAML document (or the equivalent dict) that drives a
SchemaBuilder. It uses the same shape Schema.to_dict() produces, so the
YAML dump of a frozen schema can be loaded and rebuilt:

    name: NonInflatableAsset
    version: 0
    globals:
      issuedSupply: RGBContract.Amount
      spec: {type: RGBContract.AssetSpec, visibility: public, multiplicity: once}
    owned:
      assetOwner: {type: RGBContract.Amount, kind: fungible}
    metadata: {}
    default_assignment: assetOwner
    transitions:
      genesis:
        genesis: true
        outputs: {assetOwner: none_or_more}
        globals: {issuedSupply: once}
        witness: [out.assetOwner, global.issuedSupply]
        script: |
          errno ERRNO_ISSUED_MISMATCH
          ...

An optional `types` section registers extra layouts on top of the base
type library.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .builder import SchemaBuilder
from .errors import DescriptionError, DuplicateTypeName
from .stl import standard_types
from .transitions import GlobalAccess
from .types import TypeLibrary, layout_from_dict

logger = logging.getLogger(__name__)

TRANSITION_KEYS = {
    "genesis", "input_free", "inputs", "outputs", "globals", "metadata",
    "witness", "script", "script_id",
}


def load_description(path: Path) -> Dict[str, Any]:
    """Load a schema description from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema description not found: {path}")

    with open(path) as f:
        try:
            desc = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise DescriptionError(str(path), f"invalid YAML: {exc}") from exc

    if not isinstance(desc, dict):
        raise DescriptionError(str(path), f"{path}: expected a mapping at the top level")
    return desc


def _mapping(desc: Dict[str, Any], key: str, where: str) -> Dict[str, Any]:
    value = desc.get(key) or {}
    if not isinstance(value, dict):
        raise DescriptionError(where, f"{where}: '{key}' must be a mapping")
    return value


def _state_args(name: str, spec: Any) -> Dict[str, Any]:
    if isinstance(spec, str):
        return {"type_ref": spec}
    if not isinstance(spec, dict) or "type" not in spec:
        raise DescriptionError(name, f"State '{name}' needs a type")
    args = {"type_ref": spec["type"]}
    for key in ("visibility", "multiplicity", "kind"):
        if key in spec:
            args[key] = spec[key]
    return args


def _global_rw(spec: Any) -> Dict[str, Any]:
    rw = {}
    for state, value in (spec or {}).items():
        if isinstance(value, dict):
            access = GlobalAccess(value.get("access", "write"))
            rw[state] = (value.get("occurrences"), access)
        else:
            rw[state] = value
    return rw


def build_types(desc: Dict[str, Any], base: Optional[TypeLibrary] = None) -> TypeLibrary:
    """Base library plus the description's `types` section, frozen."""
    base = base if base is not None else standard_types()
    extra = _mapping(desc, "types", desc.get("name", "schema"))
    if not extra:
        return base

    lib = TypeLibrary({ref.name: layout for ref, layout in base.items()})
    for name, data in extra.items():
        try:
            layout = layout_from_dict(data)
        except (ValueError, TypeError, KeyError) as exc:
            raise DescriptionError(name, f"Type '{name}': {exc}") from exc
        if name in lib:
            if lib.resolve(name) != layout:
                raise DuplicateTypeName(name, f"Type '{name}' conflicts with an existing definition")
            continue
        lib.register(name, layout)
    return lib.freeze()


def builder_from_description(
    desc: Dict[str, Any],
    types: Optional[TypeLibrary] = None,
) -> SchemaBuilder:
    """Drive a SchemaBuilder from a description; the builder is left OPEN."""
    name = desc.get("name")
    if not name or not isinstance(name, str):
        raise DescriptionError("schema", "Schema description needs a 'name'")

    builder = SchemaBuilder(name, int(desc.get("version", 0)), build_types(desc, types))

    for state, spec in _mapping(desc, "globals", name).items():
        builder.declare_global(state, **_state_args(state, spec))
    for state, spec in _mapping(desc, "owned", name).items():
        builder.declare_owned(state, **_state_args(state, spec))
    for field_name, type_ref in _mapping(desc, "metadata", name).items():
        builder.declare_metadata(field_name, type_ref)
    if desc.get("default_assignment"):
        builder.set_default_assignment(desc["default_assignment"])

    transitions = _mapping(desc, "transitions", name)
    for kind, spec in transitions.items():
        spec = spec or {}
        unknown = sorted(set(spec) - TRANSITION_KEYS)
        if unknown:
            raise DescriptionError(kind, f"Transition '{kind}' has unknown keys {unknown}")
        builder.declare_transition(
            kind,
            inputs=spec.get("inputs") or {},
            outputs=spec.get("outputs") or {},
            global_rw=_global_rw(spec.get("globals")),
            metadata_fields=spec.get("metadata") or [],
            genesis=bool(spec.get("genesis", False)),
            input_free=bool(spec.get("input_free", False)),
        )

    for kind, spec in transitions.items():
        spec = spec or {}
        if "script" not in spec:
            logger.debug("%s: transition %s has no script", name, kind)
            continue
        builder.bind_script(kind, spec["script"], spec.get("witness") or [])

    return builder


class _Dumper(yaml.SafeDumper):
    pass


def _represent_str(dumper, data):
    style = "|" if "\n" in data else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_Dumper.add_representer(str, _represent_str)


def dump_yaml(data: Dict[str, Any]) -> str:
    """YAML text with multi-line strings (scripts) in block style."""
    return yaml.dump(data, Dumper=_Dumper, sort_keys=False, default_flow_style=False)
