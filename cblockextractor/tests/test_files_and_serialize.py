import json
import logging

import mock
import pytest
from cblockextractor import extract_file, read_blocks
from cblockextractor.core import SourceFile
from cblockextractor.exceptions import UnclosedBlock
from cblockextractor.formula import TRUE, FALSE, Variable, Defined, Not, Or
from cblockextractor.serialize import (block_to_dict, formula_from_dict,
                                       formula_to_dict, source_file_to_dict,
                                       source_file_from_dict)

STAMP_C = """\
#include <linux/kernel.h>

#if defined(CONFIG_MTD_PARTITIONS) || defined(CONFIG_MTD_PARTITIONS_MODULE)
static struct mtd_partition stamp_partitions[] = {
#ifdef CONFIG_MTD_CMDLINE_PARTS
\t{ .name = "cmdline" },
#endif
};
#endif

#ifndef CONFIG_BFIN_MAC
static int no_mac;
#endif
"""

# verified by hand, in the stored comparison format
STAMP_C_EXPECTED = {
    "path": "stamp.c",
    "blocks": [
        {
            "start_line": 3,
            "end_line": 9,
            "condition": {
                "kind": "or",
                "left": {"kind": "defined", "name": "CONFIG_MTD_PARTITIONS"},
                "right": {"kind": "defined",
                          "name": "CONFIG_MTD_PARTITIONS_MODULE"},
            },
            "presence_condition": {
                "kind": "or",
                "left": {"kind": "defined", "name": "CONFIG_MTD_PARTITIONS"},
                "right": {"kind": "defined",
                          "name": "CONFIG_MTD_PARTITIONS_MODULE"},
            },
            "children": [
                {
                    "start_line": 5,
                    "end_line": 7,
                    "condition": {"kind": "defined",
                                  "name": "CONFIG_MTD_CMDLINE_PARTS"},
                    "presence_condition": {
                        "kind": "and",
                        "left": {
                            "kind": "or",
                            "left": {"kind": "defined",
                                     "name": "CONFIG_MTD_PARTITIONS"},
                            "right": {"kind": "defined",
                                      "name": "CONFIG_MTD_PARTITIONS_MODULE"},
                        },
                        "right": {"kind": "defined",
                                  "name": "CONFIG_MTD_CMDLINE_PARTS"},
                    },
                    "children": [],
                },
            ],
        },
        {
            "start_line": 11,
            "end_line": 13,
            "condition": {
                "kind": "not",
                "operand": {"kind": "defined", "name": "CONFIG_BFIN_MAC"},
            },
            "presence_condition": {
                "kind": "not",
                "operand": {"kind": "defined", "name": "CONFIG_BFIN_MAC"},
            },
            "children": [],
        },
    ],
}


@pytest.fixture
def stamp_c(tmp_path):
    path = tmp_path / "stamp.c"
    path.write_text(STAMP_C)
    return path


def test_extract_file(stamp_c):
    result = extract_file(stamp_c)
    assert isinstance(result, SourceFile)
    assert result.path == str(stamp_c)
    assert len(result) == 2
    assert [b.start_line for b in result] == [3, 11]
    assert result[1].condition == Not(Defined("CONFIG_BFIN_MAC"))
    assert all(b.source_path == str(stamp_c) for b in result)


def test_extract_file_matches_verified_tree(stamp_c):
    result = extract_file(stamp_c)
    expected = source_file_from_dict(
        dict(STAMP_C_EXPECTED, path=str(stamp_c))
    )
    assert result.path == expected.path
    for actual_block, expected_block in zip(result, expected):
        assert block_to_dict(actual_block) == block_to_dict(expected_block)
        assert actual_block == expected_block
    assert len(result) == len(expected)


def test_stored_tree_survives_json(stamp_c):
    result = extract_file(stamp_c)
    stored = json.loads(json.dumps(source_file_to_dict(result)))
    assert source_file_from_dict(stored) == result


def test_extract_missing_file(tmp_path):
    with pytest.raises(OSError):
        extract_file(tmp_path / "missing.c")


def test_extract_file_closes_on_failure(tmp_path):
    path = tmp_path / "broken.c"
    path.write_text("#ifdef A\n")
    handle = mock.MagicMock()
    handle.__enter__.return_value = iter(["#ifdef A\n"])
    handle.__exit__.return_value = False
    with mock.patch("cblockextractor.open_source",
                    return_value=handle) as mock_open:
        with pytest.raises(UnclosedBlock):
            extract_file(path)
    mock_open.assert_called_once_with(str(path), "utf-8")
    assert handle.__exit__.called


def test_extract_file_encoding_error(tmp_path):
    path = tmp_path / "latin1.c"
    path.write_bytes(b"#ifdef A\n/* \xe9 */\n#endif\n")
    with pytest.raises(UnicodeDecodeError):
        extract_file(path)
    result = extract_file(path, encoding="latin-1")
    assert result[0].condition == Defined("A")


@pytest.mark.parametrize("formula", [
    TRUE,
    FALSE,
    Variable("A"),
    Not(Or(Defined("A"), Variable("B"))),
])
def test_formula_dict_form(formula):
    assert formula_from_dict(formula_to_dict(formula)) == formula


def test_unknown_formula_kind():
    with pytest.raises(ValueError):
        formula_from_dict({"kind": "xor"})
    with pytest.raises(ValueError):
        formula_to_dict("A")


def test_debug_logging(source, caplog):
    caplog.set_level(logging.DEBUG, logger="cblockextractor.core")
    read_blocks(source("#ifdef A", "#endif"))
    messages = [record.getMessage() for record in caplog.records]
    assert "Line 1: opening block with defined(A)" in messages
    assert "Line 2: closing block opened at 1" in messages
