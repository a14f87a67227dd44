"""Tests for YAML schema descriptions."""

import pytest
import yaml

from schemata.catalog import BUILDERS, get_schema
from schemata.description import build_types, builder_from_description, dump_yaml, load_description
from schemata.errors import DescriptionError, DuplicateTypeName, MissingValidation
from schemata.state import OwnedKind
from schemata.types import Prim, TypeRef


POINTS_YAML = """\
name: Points
version: 2
types:
  Demo.Points: {prim: u32}
globals:
  cap: Demo.Points
owned:
  points: {type: Demo.Points, visibility: concealed}
transitions:
  genesis:
    genesis: true
    outputs: {points: once_or_more}
    globals: {cap: once}
    witness: [out.points, global.cap]
    script: |
      load global.cap
      sum out.points
      le
      test
      ret
  spend:
    inputs: {points: once_or_more}
    outputs: {points: none_or_more}
    witness: [in.points, out.points]
    script: |
      sum out.points
      sum in.points
      le
      test
      ret
"""


@pytest.fixture
def points_file(tmp_path):
    path = tmp_path / "points.yaml"
    path.write_text(POINTS_YAML)
    return path


class TestLoading:

    def test_load(self, points_file):
        desc = load_description(points_file)
        assert desc["name"] == "Points"
        assert set(desc["transitions"]) == {"genesis", "spend"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_description(tmp_path / "absent.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- genesis\n- transfer\n")
        with pytest.raises(DescriptionError):
            load_description(path)

    def test_yaml_syntax_error(self, tmp_path):
        path = tmp_path / "unclosed.yaml"
        path.write_text("name: [unclosed\n")
        with pytest.raises(DescriptionError) as exc:
            load_description(path)
        assert exc.value.name == str(path)
        assert "invalid YAML" in str(exc.value)


class TestBuilding:

    def test_custom_schema(self, points_file):
        builder = builder_from_description(load_description(points_file))
        schema = builder.freeze()
        assert schema.name == "Points"
        assert schema.version == 2
        assert "Demo.Points" in schema.types
        points = schema.owned_types["points"]
        assert points.visibility.value == "concealed"
        assert points.kind is OwnedKind.STRUCTURED
        assert [str(slot) for slot in schema.witness_layout("spend")] == ["in.points", "out.points"]

    def test_builder_left_open(self, points_file):
        builder = builder_from_description(load_description(points_file))
        assert builder.state.value == "open"
        assert set(builder.bindings) == {"genesis", "spend"}

    def test_name_required(self):
        with pytest.raises(DescriptionError):
            builder_from_description({"version": 0})

    def test_unknown_transition_key(self):
        desc = yaml.safe_load(POINTS_YAML)
        desc["transitions"]["spend"]["fee"] = 1
        with pytest.raises(DescriptionError) as exc:
            builder_from_description(desc)
        assert exc.value.name == "spend"

    def test_missing_script(self):
        desc = yaml.safe_load(POINTS_YAML)
        del desc["transitions"]["spend"]["script"]
        builder = builder_from_description(desc)
        with pytest.raises(MissingValidation) as exc:
            builder.freeze()
        assert exc.value.name == "spend"

    def test_state_needs_type(self):
        desc = yaml.safe_load(POINTS_YAML)
        desc["owned"]["points"] = {"visibility": "public"}
        with pytest.raises(DescriptionError):
            builder_from_description(desc)


class TestTypes:

    def test_extends_base(self, types):
        lib = build_types({"types": {"Demo.Flag": {"prim": "bool"}}}, types)
        assert lib.frozen
        assert lib.resolve("Demo.Flag") == Prim("bool")
        assert len(lib) == len(types) + 1

    def test_no_extra_types_returns_base(self, types):
        assert build_types({"name": "X"}, types) is types

    def test_identical_redefinition_accepted(self, types):
        lib = build_types({"types": {"RGBContract.Amount": {"prim": "u64"}}}, types)
        assert lib.resolve(TypeRef("RGBContract.Amount")) == Prim("u64")

    def test_conflicting_definition(self, types):
        with pytest.raises(DuplicateTypeName) as exc:
            build_types({"types": {"RGBContract.Amount": {"prim": "u32"}}}, types)
        assert exc.value.name == "RGBContract.Amount"

    def test_malformed_layout(self, types):
        with pytest.raises(DescriptionError):
            build_types({"types": {"Demo.Float": {"float": 32}}}, types)


class TestRoundTrip:
    """A frozen schema dumped to YAML rebuilds to the same schema id."""

    @pytest.mark.parametrize("abbrev", sorted(BUILDERS))
    def test_catalog_round_trip(self, abbrev):
        schema = get_schema(abbrev)
        desc = yaml.safe_load(dump_yaml(schema.to_dict()))
        rebuilt = builder_from_description(desc).freeze()
        assert rebuilt.schema_id == schema.schema_id

    def test_scripts_in_block_style(self):
        text = dump_yaml(get_schema("NIA").to_dict())
        assert "script: |" in text
