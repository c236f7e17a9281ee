import pytest

from inkwell.errors import FrontMatterError
from inkwell.frontmatter import split_front_matter


def test_split_with_front_matter():
    split = split_front_matter("---\ntitle: A\ndate: '2020-01-01'\n---\nHello")
    assert split.present
    assert split.metadata == {"title": "A", "date": "2020-01-01"}
    assert split.body == "Hello"


def test_split_without_front_matter():
    split = split_front_matter("Hello\n---\nnot a block")
    assert not split.present
    assert split.metadata is None
    assert split.body == "Hello\n---\nnot a block"


def test_empty_block_is_present_but_empty():
    split = split_front_matter("---\n---\nBody")
    assert split.present
    assert split.metadata == {}
    assert split.body == "Body"


def test_crlf_and_bom_are_accepted():
    split = split_front_matter("\ufeff---\r\ntitle: A\r\n---\r\nBody")
    assert split.metadata == {"title": "A"}
    assert split.body == "Body"


def test_invalid_yaml_raises():
    with pytest.raises(FrontMatterError):
        split_front_matter("---\ntitle: [unclosed\n---\nBody")


def test_non_mapping_raises():
    with pytest.raises(FrontMatterError) as excinfo:
        split_front_matter("---\n- a\n- b\n---\nBody")
    assert "mapping" in str(excinfo.value)
