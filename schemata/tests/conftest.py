"""
Shared fixtures for schema tests.
"""

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from schemata.builder import SchemaBuilder
from schemata.stl import AMOUNT, standard_types
from schemata.vm import ReferenceVM


ISSUE_SOURCE = """\
errno ERRNO_ISSUED_MISMATCH
load global.supply
sum out.amount
eq
test
ret
"""

TRANSFER_SOURCE = """\
errno ERRNO_NON_EQUAL_IN_OUT
sum in.amount
sum out.amount
eq
test
ret
"""


@pytest.fixture
def types():
    return standard_types()


@pytest.fixture
def vm():
    return ReferenceVM()


@pytest.fixture
def token_builder():
    """A minimal fungible token with genesis and transfer, no scripts bound."""
    builder = SchemaBuilder("Token")
    builder.declare_global("supply", AMOUNT)
    builder.declare_owned("amount", AMOUNT)
    builder.declare_transition("genesis", outputs=["amount"], global_rw=["supply"], genesis=True)
    builder.declare_transition("transfer", inputs=["amount"], outputs=["amount"])
    return builder


@pytest.fixture
def bound_builder(token_builder):
    """The minimal token with both scripts bound; freezes cleanly."""
    token_builder.bind_script("genesis", ISSUE_SOURCE, ["out.amount", "global.supply"])
    token_builder.bind_script("transfer", TRANSFER_SOURCE, ["in.amount", "out.amount"])
    return token_builder


@pytest.fixture
def approver_key():
    return Ed25519PrivateKey.generate()
