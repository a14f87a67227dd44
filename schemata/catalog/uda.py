"""
Unique Digital Asset (UDA): a single non-fractionable token, issued at
genesis and moved whole by transfers.
"""

from functools import lru_cache

from ..builder import SchemaBuilder
from ..schema import Schema
from ..stl import ALLOCATION, ASSET_SPEC, CONTRACT_TERMS, TOKEN_DATA
from ..transitions import Occurrences
from .common import freeze

NAME = "UniqueDigitalAsset"

# Published identifier; a change here means the canonical encoding changed.
UDA_SCHEMA_ID = "2ecde32e693fb209bf51a52ae7fb1a2e72e67b0bf3072065c9e0819f4fd230ea"

GENESIS_SCRIPT = """\
; the single allocation carries the issued token, whole
errno ERRNO_NON_FRACTIONAL
count out.assetOwner
push 1
eq
test
load out.assetOwner.amount
push 1
eq
test
load out.assetOwner.index
load global.tokens.index
eq
test
ret
"""

TRANSFER_SCRIPT = """\
errno ERRNO_NON_EQUAL_IN_OUT
load in.assetOwner.index
load out.assetOwner.index
eq
test
load in.assetOwner.amount
load out.assetOwner.amount
eq
test
errno ERRNO_NON_FRACTIONAL
load out.assetOwner.amount
push 1
eq
test
ret
"""


def uda_builder() -> SchemaBuilder:
    builder = SchemaBuilder(NAME)

    builder.declare_global("spec", ASSET_SPEC)
    builder.declare_global("terms", CONTRACT_TERMS)
    builder.declare_global("tokens", TOKEN_DATA)
    builder.declare_owned("assetOwner", ALLOCATION)
    builder.set_default_assignment("assetOwner")

    builder.declare_transition(
        "genesis",
        outputs={"assetOwner": Occurrences.once()},
        global_rw={
            "spec": Occurrences.once(),
            "terms": Occurrences.once(),
            "tokens": Occurrences.once(),
        },
        genesis=True,
    )
    builder.declare_transition(
        "transfer",
        inputs={"assetOwner": Occurrences.once()},
        outputs={"assetOwner": Occurrences.once()},
    )

    builder.bind_script("genesis", GENESIS_SCRIPT, [
        "out.assetOwner", "global.spec", "global.terms", "global.tokens",
    ])
    builder.bind_script("transfer", TRANSFER_SCRIPT, ["in.assetOwner", "out.assetOwner"])
    return builder


@lru_cache(maxsize=1)
def uda_schema() -> Schema:
    return freeze(uda_builder(), UDA_SCHEMA_ID)
