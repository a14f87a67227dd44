"""
Catalog of standard RGB asset schemas.

Each schema is assembled through SchemaBuilder once per process and shared
read-only afterwards.
"""

from typing import Dict

from ..errors import SchemaError
from ..schema import Schema
from .cfa import CFA_SCHEMA_ID, cfa_builder, cfa_schema
from .ifa import IFA_SCHEMA_ID, IfaState, ifa_builder, ifa_schema
from .nia import NIA_SCHEMA_ID, nia_builder, nia_schema
from .pfa import PFA_SCHEMA_ID, pfa_builder, pfa_schema
from .uda import UDA_SCHEMA_ID, uda_builder, uda_schema

SCHEMAS = {
    "NIA": nia_schema,
    "UDA": uda_schema,
    "CFA": cfa_schema,
    "PFA": pfa_schema,
    "IFA": ifa_schema,
}

BUILDERS = {
    "NIA": nia_builder,
    "UDA": uda_builder,
    "CFA": cfa_builder,
    "PFA": pfa_builder,
    "IFA": ifa_builder,
}

SCHEMA_IDS = {
    "NIA": NIA_SCHEMA_ID,
    "UDA": UDA_SCHEMA_ID,
    "CFA": CFA_SCHEMA_ID,
    "PFA": PFA_SCHEMA_ID,
    "IFA": IFA_SCHEMA_ID,
}


def catalog() -> Dict[str, Schema]:
    """Schema name -> frozen schema, for every catalog schema."""
    schemas = [factory() for factory in SCHEMAS.values()]
    return {schema.name: schema for schema in schemas}


def get_schema(name: str) -> Schema:
    """Look up a catalog schema by full name or abbreviation (`NIA`)."""
    factory = SCHEMAS.get(name.upper())
    if factory is not None:
        return factory()
    for schema in catalog().values():
        if schema.name.lower() == name.lower():
            return schema
    raise SchemaError(name, f"No catalog schema named '{name}' (known: {', '.join(SCHEMAS)})")
