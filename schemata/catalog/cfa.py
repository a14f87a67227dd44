"""
Collectible Fungible Asset (CFA): fixed-supply fungible collectible with
optional attached media.
"""

from functools import lru_cache

from ..builder import SchemaBuilder
from ..schema import Schema
from ..stl import AMOUNT, CONTRACT_TERMS, DETAILS, NAME as ASSET_NAME, PRECISION
from ..transitions import Occurrences
from .common import freeze, issue_script, transfer_script

NAME = "CollectibleFungibleAsset"

# Published identifier; a change here means the canonical encoding changed.
CFA_SCHEMA_ID = "e9bedef5bdbcacb8831f4dfe109e20c03ddcdfc60ec5190aab88c8b5ee782d3c"

GENESIS_SCRIPT = issue_script("issuedSupply", "assetOwner")
TRANSFER_SCRIPT = transfer_script("assetOwner")


def cfa_builder() -> SchemaBuilder:
    builder = SchemaBuilder(NAME)

    builder.declare_global("name", ASSET_NAME)
    builder.declare_global("details", DETAILS)
    builder.declare_global("precision", PRECISION)
    builder.declare_global("terms", CONTRACT_TERMS)
    builder.declare_global("issuedSupply", AMOUNT)
    builder.declare_owned("assetOwner", AMOUNT)
    builder.set_default_assignment("assetOwner")

    builder.declare_transition(
        "genesis",
        outputs={"assetOwner": Occurrences.none_or_more()},
        global_rw={
            "name": Occurrences.once(),
            "details": Occurrences.none_or_once(),
            "precision": Occurrences.once(),
            "terms": Occurrences.once(),
            "issuedSupply": Occurrences.once(),
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
        "global.name", "global.details", "global.precision", "global.terms",
        "global.issuedSupply",
    ])
    builder.bind_script("transfer", TRANSFER_SCRIPT, ["in.assetOwner", "out.assetOwner"])
    return builder


@lru_cache(maxsize=1)
def cfa_schema() -> Schema:
    return freeze(cfa_builder(), CFA_SCHEMA_ID)
