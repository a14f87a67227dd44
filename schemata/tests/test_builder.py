"""Tests for SchemaBuilder and the freeze-time consistency passes."""

import logging

import pytest

from schemata.builder import BuilderState, SchemaBuilder
from schemata.errors import (
    BuilderStateError, DuplicateBinding, DuplicateStateName,
    DuplicateTransitionName, InvalidGenesisCardinality, MissingValidation,
    OrphanTransition, UnknownStateName, UnknownTransition, UnresolvedType,
    WitnessArityMismatch,
)
from schemata.state import OwnedKind
from schemata.stl import AMOUNT, DETAILS, NAME, VOID
from schemata.transitions import Occurrences
from schemata.types import Prim, Struct, TypeLibrary, TypeRef
from schemata.witness import SlotSection, WitnessSlot

from conftest import ISSUE_SOURCE, TRANSFER_SOURCE


# =============================================================================
# Declarations
# =============================================================================

class TestDeclarations:

    def test_duplicate_state_across_sections(self, token_builder):
        with pytest.raises(DuplicateStateName) as exc:
            token_builder.declare_owned("supply", AMOUNT)
        assert exc.value.name == "supply"
        with pytest.raises(DuplicateStateName):
            token_builder.declare_metadata("amount", AMOUNT)

    def test_unknown_type(self, token_builder):
        with pytest.raises(UnresolvedType) as exc:
            token_builder.declare_global("ticker", "RGBContract.Nope")
        assert exc.value.name == "RGBContract.Nope"

    def test_owned_kind_inferred(self, token_builder):
        assert token_builder.owned_types["amount"].kind is OwnedKind.FUNGIBLE
        assert token_builder.owned_types["amount"].is_fungible
        assert token_builder.declare_owned("right", VOID).kind is OwnedKind.DECLARATIVE
        assert token_builder.declare_owned("label", NAME).kind is OwnedKind.STRUCTURED

    def test_owned_kind_must_fit_type(self, token_builder):
        with pytest.raises(ValueError):
            token_builder.declare_owned("label", NAME, kind="fungible")
        with pytest.raises(ValueError):
            token_builder.declare_owned("right", AMOUNT, kind=OwnedKind.DECLARATIVE)

    def test_duplicate_transition(self, token_builder):
        with pytest.raises(DuplicateTransitionName) as exc:
            token_builder.declare_transition("transfer", inputs=["amount"], outputs=["amount"])
        assert exc.value.name == "transfer"

    def test_unknown_state_suggests_name(self, token_builder):
        with pytest.raises(UnknownStateName) as exc:
            token_builder.declare_transition("split", inputs=["amont"], outputs=["amount"])
        assert exc.value.name == "amont"
        assert "did you mean 'amount'" in str(exc.value)

    def test_unknown_metadata(self, token_builder):
        with pytest.raises(UnknownStateName):
            token_builder.declare_transition("split", inputs=["amount"], metadata_fields=["memo"])

    def test_slot_listed_twice(self, token_builder):
        with pytest.raises(DuplicateStateName):
            token_builder.declare_transition("split", inputs=["amount", ("amount", "once")])

    def test_occurrence_forms(self, token_builder):
        kind = token_builder.declare_transition(
            "split",
            inputs=[("amount", "once")],
            outputs={"amount": Occurrences.up_to(4, required=True)},
            global_rw={"supply": ("none_or_once", "read")},
        )
        assert kind.inputs[0].occurrences == Occurrences.once()
        assert kind.outputs[0].occurrences.name == "once_or_up_to(4)"
        assert kind.globals[0].occurrences == Occurrences.none_or_once()
        assert kind.globals[0].access.value == "read"
        assert kind.outputs[0].occurrences.allows(4)
        assert not kind.outputs[0].occurrences.allows(0)
        assert not kind.outputs[0].occurrences.allows(5)

    def test_default_slot_occurrences(self, token_builder):
        genesis = token_builder.transitions["genesis"]
        assert genesis.outputs[0].occurrences == Occurrences.once_or_more()
        assert genesis.globals[0].occurrences == Occurrences.once()

    def test_default_assignment_must_be_owned(self, token_builder):
        with pytest.raises(UnknownStateName):
            token_builder.set_default_assignment("supply")
        token_builder.set_default_assignment("amount")
        assert token_builder.default_assignment == "amount"


class TestBinding:

    def test_unknown_transition(self, token_builder):
        with pytest.raises(UnknownTransition) as exc:
            token_builder.bind_script("inflate", TRANSFER_SOURCE, [])
        assert isinstance(exc.value, KeyError)
        assert exc.value.name == "inflate"

    def test_rebinding_rejected(self, bound_builder):
        with pytest.raises(DuplicateBinding) as exc:
            bound_builder.bind_script("transfer", TRANSFER_SOURCE, ["in.amount", "out.amount"])
        assert exc.value.name == "transfer"

    def test_source_is_compiled(self, token_builder):
        binding = token_builder.bind_script("transfer", TRANSFER_SOURCE, ["in.amount", "out.amount"])
        assert binding.script.references[0].name == "amount"
        assert binding.witness_order[0] == WitnessSlot(SlotSection.INPUT, "amount")


# =============================================================================
# State machine
# =============================================================================

class TestLifecycle:

    def test_freeze(self, bound_builder):
        assert bound_builder.state is BuilderState.OPEN
        schema = bound_builder.freeze()
        assert bound_builder.state is BuilderState.FROZEN
        assert schema.genesis == "genesis"
        assert bound_builder.freeze() is schema

    def test_frozen_builder_refuses_declarations(self, bound_builder):
        bound_builder.freeze()
        with pytest.raises(BuilderStateError):
            bound_builder.declare_global("cap", AMOUNT)
        with pytest.raises(BuilderStateError):
            bound_builder.bind_script("transfer", TRANSFER_SOURCE, [])

    def test_missing_validation(self, token_builder):
        with pytest.raises(MissingValidation) as exc:
            token_builder.freeze()
        assert exc.value.name == "genesis"
        assert token_builder.state is BuilderState.REJECTED
        assert token_builder._schema is None

    def test_rejection_is_final(self, token_builder):
        with pytest.raises(MissingValidation) as first:
            token_builder.freeze()
        with pytest.raises(MissingValidation) as second:
            token_builder.freeze()
        assert second.value is first.value
        with pytest.raises(BuilderStateError):
            token_builder.declare_owned("right", VOID)

    def test_rejection_is_logged(self, token_builder, caplog):
        with caplog.at_level(logging.INFO, logger="schemata.builder"):
            with pytest.raises(MissingValidation):
                token_builder.freeze()
        assert "rejected" in caplog.text

    def test_script_types_filled_in(self, bound_builder):
        schema = bound_builder.freeze()
        layout = schema.witness_layout("genesis")
        assert [slot.type_ref for slot in layout] == [AMOUNT, AMOUNT]


# =============================================================================
# Consistency passes
# =============================================================================

class TestGenesis:

    def test_no_genesis(self):
        builder = SchemaBuilder("Loop")
        builder.declare_owned("amount", AMOUNT)
        builder.declare_transition("transfer", inputs=["amount"], outputs=["amount"])
        with pytest.raises(InvalidGenesisCardinality) as exc:
            builder.freeze()
        assert exc.value.name == "Loop"

    def test_two_genesis_like_kinds(self, bound_builder):
        bound_builder.declare_transition("airdrop", outputs=["amount"])
        with pytest.raises(InvalidGenesisCardinality) as exc:
            bound_builder.freeze()
        assert exc.value.name == "airdrop"

    def test_genesis_with_inputs(self):
        builder = SchemaBuilder("Token")
        builder.declare_owned("amount", AMOUNT)
        builder.declare_transition("genesis", inputs=["amount"], outputs=["amount"], genesis=True)
        with pytest.raises(InvalidGenesisCardinality) as exc:
            builder.freeze()
        assert exc.value.name == "genesis"

    def test_input_free_kind_is_root(self, bound_builder):
        bound_builder.declare_owned("voucher", VOID)
        bound_builder.declare_transition("claim", outputs=["voucher"], input_free=True)
        bound_builder.declare_transition("redeem", inputs=["voucher"], outputs=["amount"])
        bound_builder.bind_script("claim", "count out.voucher\npush 1\neq\ntest\nret", ["out.voucher"])
        bound_builder.bind_script("redeem", "sum out.amount\nret", ["in.voucher", "out.amount"])
        schema = bound_builder.freeze()
        assert schema.genesis == "genesis"
        assert not schema.is_genesis("claim")


class TestReachability:

    def test_orphan(self, bound_builder):
        bound_builder.declare_owned("ghost", VOID)
        bound_builder.declare_transition("haunt", inputs=["ghost"], outputs=["amount"])
        with pytest.raises(OrphanTransition) as exc:
            bound_builder.freeze()
        assert exc.value.name == "haunt"

    def test_orphans_reported_in_declaration_order(self, bound_builder):
        bound_builder.declare_owned("ghost", VOID)
        bound_builder.declare_transition("spook", inputs=["ghost"])
        bound_builder.declare_transition("haunt", inputs=["ghost"])
        result = bound_builder.check()
        orphans = [issue.name for issue in result.errors if isinstance(issue.error, OrphanTransition)]
        assert orphans == ["spook", "haunt"]
        assert [w.name for w in result.warnings] == ["ghost"]

    def test_reached_through_any_input(self, bound_builder):
        bound_builder.declare_owned("ghost", VOID)
        bound_builder.declare_transition("merge", inputs=["ghost", "amount"], outputs=["amount"])
        bound_builder.bind_script("merge", "ret", ["in.ghost", "in.amount", "out.amount"])
        bound_builder.freeze()


class TestWitness:

    def _bind(self, builder, order):
        builder.bind_script("genesis", ISSUE_SOURCE, order)
        builder.bind_script("transfer", TRANSFER_SOURCE, ["in.amount", "out.amount"])

    def test_permuted(self, token_builder):
        self._bind(token_builder, ["global.supply", "out.amount"])
        with pytest.raises(WitnessArityMismatch) as exc:
            token_builder.freeze()
        assert exc.value.name == "genesis"
        assert "slot 0" in str(exc.value)

    def test_too_short(self, token_builder):
        self._bind(token_builder, ["out.amount"])
        with pytest.raises(WitnessArityMismatch) as exc:
            token_builder.freeze()
        assert "slot 1" in str(exc.value)

    def test_too_long(self, token_builder):
        self._bind(token_builder, ["out.amount", "global.supply", "global.supply"])
        with pytest.raises(WitnessArityMismatch):
            token_builder.freeze()

    def test_wrong_type(self, token_builder):
        self._bind(token_builder, [
            WitnessSlot(SlotSection.OUTPUT, "amount", DETAILS),
            "global.supply",
        ])
        with pytest.raises(WitnessArityMismatch):
            token_builder.freeze()

    def test_typed_slot_accepted(self, token_builder):
        self._bind(token_builder, [
            WitnessSlot(SlotSection.OUTPUT, "amount", AMOUNT),
            "global.supply",
        ])
        token_builder.freeze()

    def test_script_reads_absent_slot(self, token_builder):
        token_builder.bind_script("genesis", ISSUE_SOURCE, ["out.amount", "global.supply"])
        token_builder.bind_script("transfer", "sum in.supply\nret", ["in.amount", "out.amount"])
        with pytest.raises(WitnessArityMismatch) as exc:
            token_builder.freeze()
        assert "in.supply" in str(exc.value)

    def test_script_reads_missing_field(self, token_builder):
        token_builder.bind_script("genesis", ISSUE_SOURCE, ["out.amount", "global.supply"])
        token_builder.bind_script("transfer", "load out.amount.value\nret", ["in.amount", "out.amount"])
        with pytest.raises(WitnessArityMismatch) as exc:
            token_builder.freeze()
        assert "no field 'value'" in str(exc.value)


class TestPassOrder:

    def test_unresolved_component_first(self):
        types = TypeLibrary({
            "T.U64": Prim("u64"),
            "T.Pair": Struct((("a", TypeRef("T.U64")), ("b", TypeRef("T.Missing")))),
        })
        builder = SchemaBuilder("Pairs", types=types)
        builder.declare_owned("pair", "T.Pair")
        builder.declare_transition("transfer", inputs=["pair"], outputs=["pair"])
        with pytest.raises(UnresolvedType) as exc:
            builder.freeze()
        assert exc.value.name == "T.Missing"
        assert "used by 'pair'" in str(exc.value)

    def test_genesis_before_bindings(self):
        builder = SchemaBuilder("Loop")
        builder.declare_owned("amount", AMOUNT)
        builder.declare_transition("transfer", inputs=["amount"], outputs=["amount"])
        with pytest.raises(InvalidGenesisCardinality):
            builder.freeze()

    def test_check_collects_everything(self, token_builder):
        result = token_builder.check()
        assert result.has_errors
        assert [issue.name for issue in result.errors] == ["genesis", "transfer"]
        assert all(isinstance(issue.error, MissingValidation) for issue in result.errors)
        assert token_builder.state is BuilderState.OPEN

    def test_check_clean(self, bound_builder):
        result = bound_builder.check()
        assert not result.has_errors
        assert not result.has_warnings
        assert str(result) == ""
