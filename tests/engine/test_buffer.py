"""
Tests for the indented output buffer.
"""

import pytest

from mab2erb.engine import OutputBuffer, OutputLine


class TestOutputBuffer:

    def test_lines_keep_their_depth(self):
        buf = OutputBuffer()
        buf.append("<div>")
        with buf.indented():
            buf.append("<p>x</p>")
        buf.append("</div>")

        assert buf.lines == [OutputLine(0, "<div>"), OutputLine(1, "<p>x</p>"), OutputLine(0, "</div>")]
        assert buf.render() == "<div>\n  <p>x</p>\n</div>"

    def test_depth_restored_after_exception(self):
        buf = OutputBuffer()
        with pytest.raises(RuntimeError):
            with buf.indented():
                with buf.indented():
                    raise RuntimeError("boom")
        assert buf.depth == 0

    def test_with_indent_returns_body_result(self):
        buf = OutputBuffer()
        result = buf.with_indent(lambda: buf.depth)
        assert result == 1
        assert buf.depth == 0

    def test_empty_lines_are_not_indented(self):
        buf = OutputBuffer()
        with buf.indented():
            buf.append("a")
            buf.append("")
            buf.append("b")
        assert buf.render() == "  a\n\n  b"

    def test_append_lines_splits_text(self):
        buf = OutputBuffer()
        with buf.indented():
            buf.append_lines("one\ntwo")
        assert buf.line_count == 2
        assert buf.render() == "  one\n  two"

    def test_empty_buffer_renders_empty_string(self):
        assert OutputBuffer().render() == ""
