"""
Non-Inflatable Asset (NIA): fixed supply issued once at genesis.
"""

from functools import lru_cache

from ..builder import SchemaBuilder
from ..schema import Schema
from ..stl import AMOUNT, ASSET_SPEC, CONTRACT_TERMS, REJECT_LIST_URL
from ..transitions import Occurrences
from .common import freeze, issue_script, transfer_script

NAME = "NonInflatableAsset"

# Published identifier; a change here means the canonical encoding changed.
NIA_SCHEMA_ID = "ca233b9198e790eaba8a64369318b6a4c38ff8647cc38245ea47090acef4a80f"

GENESIS_SCRIPT = issue_script("issuedSupply", "assetOwner")
TRANSFER_SCRIPT = transfer_script("assetOwner")


def nia_builder() -> SchemaBuilder:
    builder = SchemaBuilder(NAME)

    builder.declare_global("spec", ASSET_SPEC)
    builder.declare_global("terms", CONTRACT_TERMS)
    builder.declare_global("issuedSupply", AMOUNT)
    builder.declare_global("rejectListUrl", REJECT_LIST_URL)
    builder.declare_owned("assetOwner", AMOUNT)
    builder.set_default_assignment("assetOwner")

    builder.declare_transition(
        "genesis",
        outputs={"assetOwner": Occurrences.none_or_more()},
        global_rw={
            "spec": Occurrences.once(),
            "terms": Occurrences.once(),
            "issuedSupply": Occurrences.once(),
            "rejectListUrl": Occurrences.none_or_once(),
        },
        genesis=True,
    )
    builder.declare_transition(
        "transfer",
        inputs={"assetOwner": Occurrences.once_or_more()},
        outputs={"assetOwner": Occurrences.once_or_more()},
    )

    builder.bind_script("genesis", GENESIS_SCRIPT, [
        "out.assetOwner",
        "global.spec", "global.terms", "global.issuedSupply", "global.rejectListUrl",
    ])
    builder.bind_script("transfer", TRANSFER_SCRIPT, ["in.assetOwner", "out.assetOwner"])
    return builder


@lru_cache(maxsize=1)
def nia_schema() -> Schema:
    return freeze(nia_builder(), NIA_SCHEMA_ID)
