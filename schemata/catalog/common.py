"""
Script sources shared by the fungible schemas.
"""

import logging

from ..builder import SchemaBuilder
from ..schema import Schema

logger = logging.getLogger(__name__)


def issue_script(supply: str, state: str) -> str:
    """Reported issued supply equals the sum of produced allocations."""
    return f"""\
errno ERRNO_ISSUED_MISMATCH
load global.{supply}
sum out.{state}
eq
test
ret
"""


def transfer_script(*states: str) -> str:
    """Sum of inputs equals sum of outputs, for each fungible state."""
    lines = ["errno ERRNO_NON_EQUAL_IN_OUT"]
    for state in states:
        lines += [f"sum in.{state}", f"sum out.{state}", "eq", "test"]
    lines.append("ret")
    return "\n".join(lines) + "\n"


def freeze(builder: SchemaBuilder, published_id: str) -> Schema:
    schema = builder.freeze()
    logger.info("Built schema %s %s", schema.name, schema.schema_id)
    if schema.schema_id != published_id:
        logger.warning(
            "Schema %s id %s differs from the published %s", schema.name, schema.schema_id, published_id
        )
    return schema
