"""
Permissioned Fungible Asset (PFA): fixed supply where every transfer must
be signed by the approver key recorded at genesis.

The approval is an Ed25519 signature over the transition commitment,
carried as transition metadata. A transfer may leave a pending-transfer
marker for the receiver, which the next transfer consumes.
"""

from functools import lru_cache

from ..builder import SchemaBuilder
from ..schema import Schema
from ..stl import AMOUNT, ASSET_SPEC, CONTRACT_TERMS, PUBLIC_KEY, SIGNATURE, VOID
from ..transitions import GlobalAccess, Occurrences
from .common import freeze, issue_script

NAME = "PermissionedFungibleAsset"

# Published identifier; a change here means the canonical encoding changed.
PFA_SCHEMA_ID = "8c809bb18cf943bc3e4fa588eb08112e072a9a956395ec7fd3821cbc1155d83f"

GENESIS_SCRIPT = issue_script("issuedSupply", "assetOwner")

TRANSFER_SCRIPT = """\
errno ERRNO_NON_EQUAL_IN_OUT
sum in.assetOwner
sum out.assetOwner
eq
test
errno ERRNO_INVALID_APPROVAL
vsig global.approver meta.approval
test
ret
"""


def pfa_builder() -> SchemaBuilder:
    builder = SchemaBuilder(NAME)

    builder.declare_global("spec", ASSET_SPEC)
    builder.declare_global("terms", CONTRACT_TERMS)
    builder.declare_global("issuedSupply", AMOUNT)
    builder.declare_global("approver", PUBLIC_KEY)
    builder.declare_owned("assetOwner", AMOUNT)
    builder.declare_owned("pendingTransfer", VOID)
    builder.declare_metadata("approval", SIGNATURE)
    builder.set_default_assignment("assetOwner")

    builder.declare_transition(
        "genesis",
        outputs={"assetOwner": Occurrences.none_or_more()},
        global_rw={
            "spec": Occurrences.once(),
            "terms": Occurrences.once(),
            "issuedSupply": Occurrences.once(),
            "approver": Occurrences.once(),
        },
        genesis=True,
    )
    builder.declare_transition(
        "transfer",
        inputs={
            "assetOwner": Occurrences.once_or_more(),
            "pendingTransfer": Occurrences.none_or_once(),
        },
        outputs={
            "assetOwner": Occurrences.once_or_more(),
            "pendingTransfer": Occurrences.none_or_once(),
        },
        global_rw={"approver": (Occurrences.once(), GlobalAccess.READ)},
        metadata_fields=["approval"],
    )

    builder.bind_script("genesis", GENESIS_SCRIPT, [
        "out.assetOwner",
        "global.spec", "global.terms", "global.issuedSupply", "global.approver",
    ])
    builder.bind_script("transfer", TRANSFER_SCRIPT, [
        "in.assetOwner", "in.pendingTransfer",
        "out.assetOwner", "out.pendingTransfer",
        "global.approver", "meta.approval",
    ])
    return builder


@lru_cache(maxsize=1)
def pfa_schema() -> Schema:
    return freeze(pfa_builder(), PFA_SCHEMA_ID)
