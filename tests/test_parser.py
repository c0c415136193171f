"""
Parser tests

Tests the shape of the concrete syntax tree and the position information
carried by parse errors.
"""

import pytest
from lark import Tree

from seqn.lib.errors import SeqnParseError
from seqn.lib.parser import Parser, grammar_load


def node_names(tree):
    return [str(child.data) for child in tree.children]


def steps_of(tree):
    return [child for child in tree.children if isinstance(child, Tree) and child.data == "step"]


class TestParserBasic:
    """Test basic tree structure"""

    def test_minimal_sequence(self):
        """@ID followed by one step"""
        tree = Parser('@ID "demo"\nC NOOP\n').parse()
        assert tree.data == "start"
        assert node_names(tree) == ["id_declaration", "step"]

    def test_missing_final_newline(self):
        """The last line does not need a newline"""
        tree = Parser('@ID "demo"\nC NOOP').parse()
        assert node_names(tree) == ["id_declaration", "step"]

    def test_comments_and_blank_lines(self):
        """Full-line comments and blank lines leave no nodes behind"""
        source = '# file header\n\n@ID "demo"\n\n# first step\nC NOOP\n\n\n# trailing\n'
        tree = Parser(source).parse()
        assert node_names(tree) == ["file_comment", "id_declaration", "step"]

    def test_header_nodes(self):
        """Declaration blocks, metadata and load-and-go"""
        source = (
            '@ID "demo"\n'
            '@INPUT_PARAMS_BEGIN\n'
            'count INT "0...10"\n'
            '@INPUT_PARAMS_END\n'
            '@LOCALS_BEGIN\n'
            'tmp FLOAT\n'
            '@LOCALS_END\n'
            '@METADATA "author" "ops"\n'
            '@LOAD_AND_GO\n'
        )
        tree = Parser(source).parse()
        assert node_names(tree) == [
            "id_declaration",
            "parameter_block",
            "local_block",
            "metadata_entry",
            "load_and_go",
        ]
        declarations = list(tree.find_data("variable_declaration"))
        assert len(declarations) == 2

    def test_grammar_is_cached(self):
        """The compiled grammar is shared between parsers"""
        assert grammar_load() is grammar_load()


class TestParserSteps:
    """Test step nodes"""

    def test_time_tag_nodes(self):
        """Each time tag prefix has its own node"""
        source = (
            '@ID "demo"\n'
            'A2024-045T12:00:00 NOOP\n'
            'R00:00:01 NOOP\n'
            'E+00:00:05 NOOP\n'
            'C NOOP\n'
        )
        tree = Parser(source).parse()
        tags = [str(step.children[0].data) for step in steps_of(tree)]
        assert tags == ["absolute_time", "command_relative", "epoch_relative", "command_complete"]

    def test_step_variants(self):
        """Command, activate, load and ground steps"""
        source = (
            '@ID "demo"\n'
            'C CMD 1\n'
            'C @ACTIVATE("child")\n'
            'C @LOAD("child")\n'
            'C @GROUND_BLOCK("block")\n'
            'C @GROUND_EVENT("event") "payload"\n'
        )
        tree = Parser(source).parse()
        lines = [str(step.children[1].data) for step in steps_of(tree)]
        assert lines == ["command", "activate", "load", "ground_block", "ground_event"]

    def test_description_and_directives(self):
        """Description token and trailing directive nodes stay on the step"""
        source = (
            '@ID "demo"\n'
            'R00:00:01 @ACTIVATE("child") 1 # go\n'
            '@ENGINE 1\n'
            '@EPOCH "E1"\n'
            '@METADATA "k" "v"\n'
            '@MODEL "temp" 25.5 "00:00:01"\n'
        )
        tree = Parser(source).parse()
        step = steps_of(tree)[0]
        assert step.children[2].type == "DESCRIPTION"
        assert [str(child.data) for child in step.children[3:]] == [
            "engine",
            "epoch",
            "metadata_entry",
            "model_entry",
        ]

    def test_argument_kinds(self):
        """Every argument literal gets its own node"""
        tree = Parser('@ID "demo"\nC CMD "s" 1 -2.5 true 0x1F ENUM_VAL [1 2]\n').parse()
        args = next(tree.find_data("args"))
        assert [str(child.data) for child in args.children] == [
            "string_argument",
            "number_argument",
            "number_argument",
            "boolean_argument",
            "hex_argument",
            "symbol_argument",
            "repeat_argument",
        ]

    def test_positions(self):
        """Nodes carry their source line"""
        tree = Parser('@ID "demo"\n\nC FIRST\nC SECOND\n').parse()
        steps = steps_of(tree)
        assert [step.meta.line for step in steps] == [3, 4]

    def test_multiline_metadata(self):
        """Pretty-printed JSON metadata spans several lines"""
        source = '@ID "demo"\nC NOOP\n@METADATA "priority" {\n  "level": 2,\n  "tags": [\n    "a",\n    "b"\n  ]\n}\n'
        tree = Parser(source).parse()
        assert len(list(tree.find_data("json_pair"))) == 2
        assert len(list(tree.find_data("json_array"))) == 1


class TestParserSections:
    """Test requests and out-of-band sections"""

    def test_request(self):
        """Request block with ground epoch timing"""
        source = (
            '@ID "demo"\n'
            'G+001T00:00:00 "ground" @REQUEST_BEGIN("r1")\n'
            'C CMD_A\n'
            'R10 CMD_B\n'
            '@REQUEST_END\n'
            '@METADATA "owner" "ops"\n'
        )
        tree = Parser(source).parse()
        assert node_names(tree) == ["id_declaration", "request"]
        request = tree.children[1]
        assert str(request.children[0].data) == "ground_epoch"
        assert len(steps_of(request)) == 2

    def test_immediate_and_hardware(self):
        """Sections follow the timed steps"""
        source = (
            '@ID "demo"\n'
            'C NOOP\n'
            '@IMMEDIATE\n'
            'ECHO "hi" # say\n'
            '@HARDWARE\n'
            'HW_RESET\n'
        )
        tree = Parser(source).parse()
        assert node_names(tree) == ["id_declaration", "step", "immediate_block", "hardware_block"]


class TestParserErrors:
    """Test error reporting"""

    def test_unexpected_token_position(self):
        """Stray bracket is reported at its line and column"""
        with pytest.raises(SeqnParseError, match="Unexpected token") as excinfo:
            Parser('@ID "demo"\nC NOOP ]\n').parse()
        assert excinfo.value.line == 2
        assert excinfo.value.column == 8
        assert "^" in excinfo.value.context

    def test_unexpected_character(self):
        """Characters no token can start with"""
        with pytest.raises(SeqnParseError, match="Unexpected character") as excinfo:
            Parser('@ID "demo"\nC NOOP $\n').parse()
        assert excinfo.value.line == 2
        assert excinfo.value.column == 8

    def test_unclosed_parenthesis(self):
        """Missing ')' is reported on its line"""
        with pytest.raises(SeqnParseError) as excinfo:
            Parser('@ID "demo"\nC @ACTIVATE("child"\n').parse()
        assert excinfo.value.line == 2

    def test_unterminated_request(self):
        """Running out of input inside a request"""
        with pytest.raises(SeqnParseError, match="end of input"):
            Parser('@ID "demo"\nC @REQUEST_BEGIN("r")\nC NOOP\n').parse()

    def test_is_syntax_error(self):
        """Parse errors are SyntaxErrors with lineno set"""
        with pytest.raises(SyntaxError) as excinfo:
            Parser('@ID "demo"\n\n\nC CMD (\n').parse()
        assert excinfo.value.lineno == 4
