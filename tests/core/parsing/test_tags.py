"""Tests for sentinel tag extraction and stripping."""

from streamagent.core.parsing.tags import META_TAG, extract_tagged, strip_tagged


class TestExtractTagged:
    def test_no_tag_returns_none(self) -> None:
        assert extract_tagged("plain text", "meta") is None

    def test_closed_tag(self) -> None:
        result = extract_tagged('Before text <meta>{"a": 1}</meta> after', "meta")
        assert result is not None
        assert result.text_before == "Before text"
        assert result.body == '{"a": 1}'
        assert result.closed is True

    def test_body_never_includes_text_after_closing_tag(self) -> None:
        result = extract_tagged("<meta>x</meta> trailing {\"b\": 2}", "meta")
        assert result is not None
        assert result.body == "x"

    def test_unclosed_tag_runs_to_end(self) -> None:
        result = extract_tagged('Thinking...\n<meta>{"a": 1,', "meta")
        assert result is not None
        assert result.text_before == "Thinking..."
        assert result.body == '{"a": 1,'
        assert result.closed is False

    def test_empty_body(self) -> None:
        result = extract_tagged("<meta>   </meta>", "meta")
        assert result is not None
        assert result.body == ""

    def test_first_tag_wins(self) -> None:
        result = extract_tagged("<meta>one</meta><meta>two</meta>", "meta")
        assert result is not None
        assert result.body == "one"

    def test_default_tag(self) -> None:
        result = extract_tagged(f"<{META_TAG}>{{}}</{META_TAG}>")
        assert result is not None
        assert result.body == "{}"


class TestStripTagged:
    def test_removes_complete_region(self) -> None:
        assert strip_tagged('The answer is 42<meta>{"x": 1}</meta>', "meta") == "The answer is 42"

    def test_removes_every_complete_region(self) -> None:
        text = "a<meta>1</meta> b <meta>2</meta>c"
        assert strip_tagged(text, "meta") == "a b c"

    def test_removes_dangling_region(self) -> None:
        assert strip_tagged('Answer\n<meta>{"shouldCont', "meta") == "Answer"

    def test_multiline_body(self) -> None:
        text = "Answer\n<meta>\n{\n  \"a\": 1\n}\n</meta>\n"
        assert strip_tagged(text, "meta") == "Answer"

    def test_only_tag_leaves_empty(self) -> None:
        assert strip_tagged("<meta>{}</meta>", "meta") == ""

    def test_tag_name_is_escaped(self) -> None:
        assert strip_tagged("x<a.b>y</a.b>", "a.b") == "x"
        assert strip_tagged("x<aXb>y</aXb>", "a.b") == "x<aXb>y</aXb>"

    def test_no_tag_only_trims(self) -> None:
        assert strip_tagged("  hello  ", "meta") == "hello"
