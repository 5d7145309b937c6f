import pytest

from entity_import.domain.imports.processors.csv_processor import (
    extract_csv_headers,
    label_headers,
    process_csv,
)
from entity_import.domain.imports.processors.json_processor import (
    process_entities_json,
    process_templates_json,
)


def test_blank_headers_get_placeholder_labels():
    assert label_headers(["Name", "", "Width", "  "]) == ["Name", "__EMPTY", "Width", "__EMPTY_1"]


def test_duplicate_headers_are_suffixed():
    assert label_headers(["Name", "Name", "Name"]) == ["Name", "Name_1", "Name_2"]
    assert label_headers(["Name_1", "Name", "Name"]) == ["Name_1", "Name", "Name_2"]
    assert label_headers(["__EMPTY", ""]) == ["__EMPTY", "__EMPTY_1"]


def test_suffixed_labels_keep_every_column():
    rows = process_csv(b"Name_1,Name,Name\na,b,c\n")

    assert rows == [{"Name_1": "a", "Name": "b", "Name_2": "c"}]


def test_extract_headers_strips_byte_order_mark():
    content = "\ufeffName,Description,\nSample A,first,\n".encode("utf-8")

    assert extract_csv_headers(content) == ["Name", "Description", "__EMPTY"]


def test_extract_headers_of_header_only_file():
    assert extract_csv_headers(b"Name,Width\n") == ["Name", "Width"]


@pytest.mark.parametrize("content", [b"", b"\n\n"])
def test_empty_csv_is_rejected(content):
    with pytest.raises(ValueError):
        extract_csv_headers(content)


def test_process_csv_keys_rows_by_label():
    content = b"Name,,Width\nSample A,x, 3 \n,,\nSample B,,4\n"

    rows = process_csv(content)

    assert rows == [
        {"Name": "Sample A", "__EMPTY": "x", "Width": "3"},
        {"Name": "Sample B", "__EMPTY": "", "Width": "4"},
    ]


def test_process_csv_keeps_values_as_strings():
    rows = process_csv(b"Name,Code\n001,NA\n")

    assert rows == [{"Name": "001", "Code": "NA"}]


def test_entities_json_accepts_single_object():
    assert process_entities_json(b'{"name": "Sample A"}') == [{"name": "Sample A"}]


@pytest.mark.parametrize(
    "content",
    [b"not json", b'"text"', b'[{"description": "no name"}]', b'[{"name": "  "}]', b"[1, 2]"],
)
def test_invalid_entity_json_is_rejected(content):
    with pytest.raises(ValueError):
        process_entities_json(content)


def test_templates_json_requires_names():
    with pytest.raises(ValueError, match="missing a name"):
        process_templates_json(b'[{"name": "Size"}, {"values": []}]')
