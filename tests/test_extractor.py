"""
Extractor tests

Tests that every SeqN construct lands in the right document field and
that malformed-but-parseable input is rejected with a position.
"""

import pytest

from seqn.config import appsettings
from seqn.lib.convert import seqn_toDocument
from seqn.lib.errors import ExtractionError
from seqn.lib.extractor import Extractor, number_parse
from seqn.lib.parser import Parser
from seqn.models.document import (
    AbsoluteTime,
    Activate,
    BooleanArgument,
    Command,
    CommandCompleteTime,
    CommandRelativeTime,
    EpochRelativeTime,
    GroundBlock,
    GroundEpoch,
    GroundEvent,
    HardwareCommand,
    HexArgument,
    ImmediateCommand,
    Load,
    Model,
    NumberArgument,
    Range,
    RepeatArgument,
    StringArgument,
    SymbolArgument,
    VariableDeclaration,
)

SEQUENCE = '''@ID "test.mod"
@INPUT_PARAMS_BEGIN
count INT "0...10"
mode ENUM MODE_T "" "IDLE,ACTIVE"
@INPUT_PARAMS_END
@LOCALS_BEGIN
tmp FLOAT
@LOCALS_END
@METADATA "author" "ops"
@LOAD_AND_GO

A2024-045T12:00:00.250 FSW_CMD "text" 42 -1.5 true IDLE 0x1F [1 2 3] # set things
@METADATA "priority" {
  "level": 2
}
@MODEL "temp" 25.5 "00:00:01"
R00:10:00 @ACTIVATE("child.mod") 7 # go
@ENGINE 2
@EPOCH "E1"
C @GROUND_EVENT("ev")
'''


def extract(source):
    return Extractor(Parser(source).parse()).extract()


class TestExtractHeader:
    """Test @ID, declarations and document metadata"""

    def test_id(self):
        """@ID becomes the document id"""
        assert extract('@ID "demo"\n').id == "demo"

    def test_escaped_id(self):
        """Quoted strings are unescaped"""
        assert extract('@ID "say \\"hi\\""\n').id == 'say "hi"'

    def test_parameters(self):
        """Types, enum names, ranges and values"""
        document = extract(SEQUENCE)
        assert document.parameters == (
            VariableDeclaration(name="count", type="INT", allowable_ranges=(Range(min=0, max=10),)),
            VariableDeclaration(name="mode", type="ENUM", enum_name="MODE_T", allowable_values=("IDLE", "ACTIVE")),
        )
        assert document.locals == (VariableDeclaration(name="tmp", type="FLOAT"),)

    def test_enum_name_without_type(self):
        """A single unknown word after the name is an enum name"""
        document = extract('@ID "demo"\n@LOCALS_BEGIN\nstate STATE_T\n@LOCALS_END\n')
        assert document.locals[0] == VariableDeclaration(name="state", enum_name="STATE_T")

    def test_numeric_values_and_ranges(self):
        """Numbers in ranges and values become numbers"""
        source = '@ID "demo"\n@INPUT_PARAMS_BEGIN\ngain FLOAT "0.5...1.5,2...3" "1,2.5,off"\n@INPUT_PARAMS_END\n'
        variable = extract(source).parameters[0]
        assert variable.allowable_ranges == (Range(min=0.5, max=1.5), Range(min=2, max=3))
        assert variable.allowable_values == (1, 2.5, "off")

    def test_metadata_and_load_and_go(self):
        """@LOAD_AND_GO is recorded as the lgo metadata key"""
        document = extract(SEQUENCE)
        assert document.metadata == {"author": "ops", "lgo": True}
        assert document.load_and_go is True

    def test_no_load_and_go(self):
        """Without the directive there is no lgo key"""
        document = extract('@ID "demo"\n@METADATA "author" "ops"\n')
        assert document.metadata == {"author": "ops"}
        assert document.load_and_go is False

    def test_file_comment_ignored(self):
        """A leading comment is not part of the document"""
        document = extract('# header\n@ID "demo"\nC NOOP\n')
        assert document.steps[0].description is None


class TestExtractSteps:
    """Test step extraction"""

    def test_command_arguments(self):
        """Every argument literal maps to its typed argument"""
        step = extract(SEQUENCE).steps[0]
        assert step == Command(
            time=AbsoluteTime(tag="2024-045T12:00:00.250"),
            stem="FSW_CMD",
            args=(
                StringArgument(value="text"),
                NumberArgument(value=42),
                NumberArgument(value=-1.5),
                BooleanArgument(value=True),
                SymbolArgument(value="IDLE"),
                HexArgument(value="0x1F"),
                RepeatArgument(value=((NumberArgument(value=1), NumberArgument(value=2), NumberArgument(value=3)),)),
            ),
            description="set things",
            metadata={"priority": {"level": 2}},
            models=(Model(variable="temp", value=25.5, offset="00:00:01"),),
        )

    def test_number_types(self):
        """Integers stay int and decimals become float"""
        args = extract(SEQUENCE).steps[0].args
        assert type(args[1].value) is int
        assert type(args[2].value) is float

    def test_activate(self):
        """@ENGINE and @EPOCH attach to @ACTIVATE"""
        step = extract(SEQUENCE).steps[1]
        assert step == Activate(
            time=CommandRelativeTime(tag="00:10:00"),
            sequence="child.mod",
            args=(NumberArgument(value=7),),
            description="go",
            engine=2,
            epoch="E1",
        )

    def test_ground_event_without_args(self):
        """Ground steps with no arguments have args None"""
        step = extract(SEQUENCE).steps[2]
        assert step == GroundEvent(time=CommandCompleteTime(), name="ev")
        assert step.args is None

    def test_other_step_kinds(self):
        """@LOAD and @GROUND_BLOCK"""
        source = '@ID "demo"\nE-00:00:05 @LOAD("lib.mod") "x"\nC @GROUND_BLOCK("blk")\n'
        steps = extract(source).steps
        assert steps[0] == Load(
            time=EpochRelativeTime(tag="-00:00:05"), sequence="lib.mod", args=(StringArgument(value="x"),)
        )
        assert steps[1] == GroundBlock(time=CommandCompleteTime(), name="blk")

    def test_empty_repeat(self):
        """[] has no argument-sets"""
        step = extract('@ID "demo"\nC CMD []\n').steps[0]
        assert step.args == (RepeatArgument(value=()),)

    def test_description_spacing(self):
        """One space after '#' is dropped, further spaces kept"""
        steps = extract('@ID "demo"\nC A #tight\nC B #  wide\nC D #\n').steps
        assert [step.description for step in steps] == ["tight", " wide", None]

    def test_simple_relative_time(self):
        """Plain second counts are valid relative tags"""
        step = extract('@ID "demo"\nR30.5 NOOP\n').steps[0]
        assert step.time == CommandRelativeTime(tag="30.5")


class TestExtractSections:
    """Test requests, immediate and hardware commands"""

    def test_request(self):
        """Ground epoch timing, steps, description and trailing metadata"""
        source = (
            '@ID "demo"\n'
            'G+001T00:00:00 "ground" @REQUEST_BEGIN("r1") # first\n'
            'C CMD_A 1\n'
            'R10 CMD_B\n'
            '@REQUEST_END\n'
            '@METADATA "owner" "ops"\n'
        )
        document = extract(source)
        assert document.steps is None
        request = document.requests[0]
        assert request.name == "r1"
        assert request.ground_epoch == GroundEpoch(name="ground", delta="+001T00:00:00")
        assert request.time is None
        assert request.description == "first"
        assert request.metadata == {"owner": "ops"}
        assert request.steps == (
            Command(time=CommandCompleteTime(), stem="CMD_A", args=(NumberArgument(value=1),)),
            Command(time=CommandRelativeTime(tag="10"), stem="CMD_B"),
        )

    def test_timed_request(self):
        """A time tag in place of the ground epoch"""
        source = '@ID "demo"\nA2024-001T00:00:00 @REQUEST_BEGIN("r")\nC NOOP\n@REQUEST_END\n'
        request = extract(source).requests[0]
        assert request.time == AbsoluteTime(tag="2024-001T00:00:00")
        assert request.ground_epoch is None

    def test_immediate_and_hardware(self):
        """Out-of-band sections"""
        source = (
            '@ID "demo"\n'
            '@IMMEDIATE\n'
            'ECHO "hi" # say\n'
            '@METADATA "k" 1\n'
            '@HARDWARE\n'
            'HW_RESET\n'
        )
        document = extract(source)
        assert document.immediate_commands == (
            ImmediateCommand(stem="ECHO", args=(StringArgument(value="hi"),), description="say", metadata={"k": 1}),
        )
        assert document.hardware_commands == (HardwareCommand(stem="HW_RESET"),)


class TestExtractErrors:
    """Test rejected input"""

    def test_missing_id(self):
        """Every document needs an @ID"""
        with pytest.raises(ExtractionError, match="@ID"):
            extract("C NOOP\n")

    def test_empty_parameter_block(self):
        """Declaration blocks cannot be empty"""
        with pytest.raises(ExtractionError, match="@INPUT_PARAMS") as excinfo:
            extract('@ID "demo"\n@INPUT_PARAMS_BEGIN\n@INPUT_PARAMS_END\n')
        assert excinfo.value.line == 2

    def test_empty_request(self):
        """Requests need at least one step"""
        with pytest.raises(ExtractionError, match="no steps"):
            extract('@ID "demo"\nC @REQUEST_BEGIN("r")\n@REQUEST_END\n')

    def test_engine_on_command(self):
        """@ENGINE only follows @ACTIVATE and @LOAD"""
        with pytest.raises(ExtractionError, match="@ENGINE") as excinfo:
            extract('@ID "demo"\nC NOOP\n@ENGINE 1\n')
        assert excinfo.value.line == 3

    def test_duplicate_epoch(self):
        """One @EPOCH per step"""
        with pytest.raises(ExtractionError, match="Duplicate"):
            extract('@ID "demo"\nC @LOAD("x")\n@EPOCH "a"\n@EPOCH "b"\n')

    def test_engine_must_be_integer(self):
        """@ENGINE takes an integer"""
        with pytest.raises(ExtractionError, match="integer"):
            extract('@ID "demo"\nC @LOAD("x")\n@ENGINE 1.5\n')

    def test_invalid_time_tag(self):
        """Absolute tags must be full DOY timestamps"""
        with pytest.raises(ExtractionError, match="ABSOLUTE") as excinfo:
            extract('@ID "demo"\nA12:00 NOOP\n')
        assert excinfo.value.line == 2

    def test_relative_tag_with_short_fields(self):
        """Single-digit clock fields are neither hh:mm:ss nor plain seconds"""
        with pytest.raises(ExtractionError, match="RELATIVE") as excinfo:
            extract('@ID "demo"\nR1:2:3 NOOP\n')
        assert excinfo.value.line == 2

    def test_time_tag_validation_can_be_disabled(self, monkeypatch):
        """With validation off, tags are kept verbatim"""
        monkeypatch.setattr(appsettings, "validate_time_tags", False)
        step = extract('@ID "demo"\nA12:00 NOOP\n').steps[0]
        assert step.time == AbsoluteTime(tag="12:00")

    def test_malformed_range(self):
        """Ranges are min...max"""
        with pytest.raises(ExtractionError, match="min...max"):
            extract('@ID "demo"\n@LOCALS_BEGIN\nx INT "1-5"\n@LOCALS_END\n')

    def test_unknown_type_with_enum_name(self):
        """Three words need a known type in the middle"""
        with pytest.raises(ExtractionError, match="Unknown variable type"):
            extract('@ID "demo"\n@LOCALS_BEGIN\nx WORD ENUM_T\n@LOCALS_END\n')

    def test_empty_immediate_section(self):
        """Sections cannot be empty"""
        with pytest.raises(ExtractionError, match="@IMMEDIATE"):
            extract('@ID "demo"\n@IMMEDIATE\n')


class TestConvertEntryPoint:
    """Test the one-call wrapper"""

    def test_seqn_to_document(self):
        """seqn_toDocument runs parser and extractor"""
        assert seqn_toDocument(SEQUENCE) == extract(SEQUENCE)

    def test_number_parse(self):
        """int, float or None"""
        assert number_parse("7") == 7
        assert number_parse("-2.5e3") == -2500.0
        assert number_parse("7a") is None
