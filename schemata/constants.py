"""
Shared constants: schema encoding version and validation error codes.
"""

# Version of the canonical schema encoding; part of every schema id.
SCHEMA_FORMAT_VERSION = 0

SCHEMA_ID_TAG = "urn:lnp-bp:rgb:schemata:schema#2025"
SCRIPT_ID_TAG = "urn:lnp-bp:rgb:schemata:script#2025"

# Error codes reported by validation scripts when a check fails.
ERRNO_ISSUED_MISMATCH = 0
ERRNO_NON_EQUAL_IN_OUT = 1
ERRNO_INFLATION_MISMATCH = 2
ERRNO_INFLATION_EXCEEDS_ALLOWANCE = 3
ERRNO_NON_FRACTIONAL = 4
ERRNO_INVALID_APPROVAL = 5
ERRNO_BURN_MISMATCH = 6
ERRNO_LINK_MISMATCH = 7

ERRNO_CODES = {
    "ERRNO_ISSUED_MISMATCH": ERRNO_ISSUED_MISMATCH,
    "ERRNO_NON_EQUAL_IN_OUT": ERRNO_NON_EQUAL_IN_OUT,
    "ERRNO_INFLATION_MISMATCH": ERRNO_INFLATION_MISMATCH,
    "ERRNO_INFLATION_EXCEEDS_ALLOWANCE": ERRNO_INFLATION_EXCEEDS_ALLOWANCE,
    "ERRNO_NON_FRACTIONAL": ERRNO_NON_FRACTIONAL,
    "ERRNO_INVALID_APPROVAL": ERRNO_INVALID_APPROVAL,
    "ERRNO_BURN_MISMATCH": ERRNO_BURN_MISMATCH,
    "ERRNO_LINK_MISMATCH": ERRNO_LINK_MISMATCH,
}
