import io

import pytest

from beadwork.writer import Style, Writer, color_writer, plain_writer, priority_style


def test_plain_writer_style():
    w = plain_writer(io.StringIO())
    assert w.style("hello", Style.BOLD, Style.RED) == "hello"


def test_plain_writer_style_no_args():
    w = plain_writer(io.StringIO())
    assert w.style("hello") == "hello"


def test_color_writer_style():
    w = color_writer(io.StringIO(), 0)
    assert w.style("hello", Style.RED) == "\033[31mhello\033[0m"


def test_color_writer_style_multiple():
    w = color_writer(io.StringIO(), 0)
    got = w.style("hello", Style.BOLD, Style.RED)
    assert got.startswith("\033[1m\033[31m")
    assert got.endswith("\033[0m")
    assert "hello" in got


def test_color_writer_style_no_args():
    w = color_writer(io.StringIO(), 0)
    assert w.style("hello") == "hello"


@pytest.mark.parametrize(
    "priority, expected",
    [
        (0, Style.BRIGHT_RED),
        (1, Style.RED),
        (2, Style.YELLOW),
        (3, Style.CYAN),
        (4, Style.DIM),
        (99, Style.DIM),
    ],
)
def test_priority_style(priority, expected):
    assert priority_style(priority) is expected


def test_plain_writer_width():
    assert plain_writer(io.StringIO()).width() == 0


def test_color_writer_width():
    assert color_writer(io.StringIO(), 80).width() == 80


def test_push_pop_basic():
    buf = io.StringIO()
    w = plain_writer(buf)
    print("no indent", file=w)
    w.push(2)
    print("indented", file=w)
    w.pop()
    print("no indent again", file=w)
    assert buf.getvalue() == "no indent\n  indented\nno indent again\n"


def test_push_pop_nested():
    buf = io.StringIO()
    w = plain_writer(buf)
    w.push(2)
    print("level 1", file=w)
    w.push(2)
    print("level 2", file=w)
    w.pop()
    print("back to 1", file=w)
    w.pop()
    print("back to 0", file=w)
    assert buf.getvalue() == "  level 1\n    level 2\n  back to 1\nback to 0\n"


def test_push_pop_multiline():
    buf = io.StringIO()
    w = plain_writer(buf)
    w.push(2)
    w.write("line1\nline2\n")
    w.pop()
    assert buf.getvalue() == "  line1\n  line2\n"


def test_push_pop_partial_write():
    buf = io.StringIO()
    w = plain_writer(buf)
    w.push(2)
    w.write("hello ")
    print("world", file=w)
    w.pop()
    assert buf.getvalue() == "  hello world\n"


def test_indented_context_manager():
    buf = io.StringIO()
    w = plain_writer(buf)
    with w.indented(4):
        print("inside", file=w)
    print("outside", file=w)
    assert buf.getvalue() == "    inside\noutside\n"


def test_write_returns_length():
    w = plain_writer(io.StringIO())
    w.push(2)
    assert w.write("abc\ndef") == 7


def test_width_with_indent():
    w = color_writer(io.StringIO(), 80)
    assert w.width() == 80
    w.push(4)
    assert w.width() == 76
    w.push(2)
    assert w.width() == 74
    w.pop()
    assert w.width() == 76
    w.pop()
    assert w.width() == 80


def test_width_clamp_to_one():
    w = color_writer(io.StringIO(), 3)
    w.push(10)
    assert w.width() == 1


def test_width_zero_parent_unchanged():
    w = plain_writer(io.StringIO())
    w.push(4)
    assert w.width() == 0


def test_pop_on_empty_stack():
    buf = io.StringIO()
    w = plain_writer(buf)
    w.pop()
    print("ok", file=w)
    assert buf.getvalue() == "ok\n"


def test_clear_line():
    assert plain_writer(io.StringIO()).clear_line() == "\r"
    assert color_writer(io.StringIO(), 80).clear_line() == "\r\033[K"


def test_writer_constructor_defaults():
    w = Writer(io.StringIO())
    assert w.width() == 0
    assert w.style("x", Style.GREEN) == "x"