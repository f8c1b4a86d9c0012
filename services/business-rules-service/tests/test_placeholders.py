# services/business-rules-service/tests/test_placeholders.py
import pytest

from app.core.placeholders import substitute, substitute_positional, unresolved_markers
from app.core.siddhi_text import app_name, rename_app, stream_name, strip_app_name
from app.errors import CompositionError, SubstitutionError


def test_substitute_replaces_every_occurrence():
    text = "from ${in}[v > ${min}] select v insert into ${out}; -- ${min}"
    out = substitute(text, {"in": "S", "min": "5", "out": "T"})
    assert out == "from S[v > 5] select v insert into T; -- 5"


def test_substitute_leaves_unknown_markers_in_place():
    out = substitute("insert into ${out} from ${in}", {"in": "S"})
    assert out == "insert into ${out} from S"
    assert unresolved_markers(out) == ["out"]


def test_substitute_is_idempotent_for_covering_mapping():
    values = {"a": "x", "b": "y"}
    once = substitute("${a}-${b}-${a}", values)
    assert substitute(once, values) == once == "x-y-x"


def test_substitute_does_not_rescan_inserted_values():
    assert substitute("${a}", {"a": "${b}", "b": "nope"}) == "${b}"


def test_strict_substitution_names_missing_markers():
    with pytest.raises(SubstitutionError) as exc:
        substitute("${a} ${b} ${c} ${b}", {"a": "1"}, strict=True)
    assert exc.value.markers == ["b", "c"]


def test_substitute_treats_none_as_empty():
    assert substitute(None, {"a": "1"}) == ""


def test_positional_substitution_is_one_based():
    assert substitute_positional("${1} and ${2}", ["price>100", "qty<5"]) == "price>100 and qty<5"
    assert substitute_positional("(${2} or ${1}) and ${3}", ["a", "b"]) == "(b or a) and ${3}"


def test_rename_app_rewrites_existing_annotation():
    content = "@App:name(\"Old\")\n@App:description('d')\ndefine stream S (a int);"
    renamed = rename_app(content, "rule_0")
    assert app_name(renamed) == "rule_0"
    assert "Old" not in renamed
    assert renamed.endswith("@App:description('d')\ndefine stream S (a int);")


def test_rename_app_prepends_missing_annotation():
    assert rename_app("select a insert into B", "r_0") == "@App:name('r_0')\nselect a insert into B"


@pytest.mark.parametrize("bad", ["", "it's"])
def test_rename_app_rejects_unusable_names(bad):
    with pytest.raises(SubstitutionError):
        rename_app("@App:name('x')", bad)


def test_strip_app_name_removes_first_annotation_only():
    assert strip_app_name("@App:name('In')\n@source(type='http')\ndefine stream S (a int);") == (
        "@source(type='http')\ndefine stream S (a int);"
    )


@pytest.mark.parametrize(
    "definition, expected",
    [
        ("define stream StockStream (symbol string, price double);", "StockStream"),
        ("define stream StockStream(symbol string);", "StockStream"),
        ("@sink(type='log')\ndefine stream  Out  (a int);", "Out"),
    ],
)
def test_stream_name(definition, expected):
    assert stream_name(definition) == expected


def test_stream_name_without_definition_fails():
    with pytest.raises(CompositionError):
        stream_name(None)
