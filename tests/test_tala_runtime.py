import io

import pytest

from tala.tala_datatypes import NULL, NumberValue, StringValue
from tala.tala_errors import Diagnostics
from tala.tala_runtime import ExecutionResult, ScriptRunner, StdLib


def make_runner(stdin_text=""):
    out = io.StringIO()
    runner = ScriptRunner(stdout=out, stdin=io.StringIO(stdin_text), diagnostics=Diagnostics(io.StringIO()))
    return runner, out


def test_print_joins_arguments_with_spaces():
    runner, out = make_runner()
    res = runner.handle_script('print("a", 1, true, null, [1, 2]);')
    assert res.status == 'success'
    assert res.value == NULL
    assert out.getvalue() == "a 1 true null [1, 2]\n"


def test_print_with_no_arguments_prints_an_empty_line():
    runner, out = make_runner()
    runner.handle_script("print();")
    assert out.getvalue() == "\n"


def test_print_uses_process_stdout_by_default(capsys):
    runner = ScriptRunner()
    runner.handle_script('print("hello");')
    assert capsys.readouterr().out == "hello\n"


def test_str_and_int_conversions():
    runner, _ = make_runner()
    assert runner.handle_script("str(12);").value == StringValue("12")
    assert runner.handle_script('str({ a: 1 });').value == StringValue("{\n    a: 1\n}")
    assert runner.handle_script('int(" 42 ");').value == NumberValue(42)
    assert runner.handle_script('int("2.5");').value == NumberValue(2.5)
    assert runner.handle_script("int(7);").value == NumberValue(7)


@pytest.mark.parametrize("src, message", [
    ('int("abc");', "Cannot convert"),
    ("int(null);", "int expects a string or a number"),
    ("str();", "str expects 1 argument(s), got 0"),
    ('sleep("1");', "sleep expects a number"),
    ("sleep(1, 2);", "sleep expects 1 argument(s)"),
    ("sleep(-1);", "non-negative"),
    ("input(5);", "input expects a string prompt"),
])
def test_builtin_argument_errors(src, message):
    runner, _ = make_runner()
    res = runner.handle_script(src)
    assert res.status == 'error'
    assert message in res.error_message


def test_time_returns_seconds(monkeypatch):
    monkeypatch.setattr("tala.tala_runtime.time.time", lambda: 1234.5)
    runner, _ = make_runner()
    assert runner.handle_script("time();").value == NumberValue(1234.5)


def test_sleep_blocks_for_the_given_duration(monkeypatch):
    slept = []
    monkeypatch.setattr("tala.tala_runtime.time.sleep", lambda secs: slept.append(secs))
    runner, _ = make_runner()
    res = runner.handle_script("sleep(0.25);")
    assert res.status == 'success'
    assert slept == [0.25]


def test_input_reads_a_line_and_writes_the_prompt():
    runner, out = make_runner("bob\r\nignored\n")
    res = runner.handle_script('var name = input("name? "); "hi " + name;')
    assert res.value == StringValue("hi bob")
    assert out.getvalue() == "name? "


def test_input_at_end_of_stream_is_empty_string():
    runner, _ = make_runner("")
    assert runner.handle_script("input();").value == StringValue("")


def test_exit_stops_the_program():
    runner, out = make_runner()
    res = runner.handle_script('print("before"); exit(3); print("after");')
    assert res.status == 'exit'
    assert res.exit_code == 3
    assert out.getvalue() == "before\n"


def test_exit_defaults_to_zero():
    runner, _ = make_runner()
    res = runner.handle_script("exit();")
    assert res.status == 'exit'
    assert res.exit_code == 0


def test_builtins_are_constant():
    runner, _ = make_runner()
    res = runner.handle_script("print = 1;")
    assert res.status == 'error'
    assert "constant" in res.error_message


def test_stdlib_builds_from_streams_alone():
    out = io.StringIO()
    table = StdLib(stdout=out).builtins()
    assert sorted(table) == ["exit", "input", "int", "print", "sleep", "str", "time"]
    table["print"].func([StringValue("direct")], None)
    assert out.getvalue() == "direct\n"


def test_builtins_are_first_class():
    runner, out = make_runner()
    res = runner.handle_script('var p = print; p("via alias"); p;')
    assert out.getvalue() == "via alias\n"
    assert res.value.to_string() == "NativeFn"


def test_root_scope_persists_between_scripts():
    runner, _ = make_runner()
    runner.handle_script("var counter = 1;")
    runner.handle_script("counter = counter + 1;")
    assert runner.handle_script("counter;").value == NumberValue(2)


def test_reset_discards_bindings():
    runner, _ = make_runner()
    runner.handle_script("var x = 1;")
    runner.reset()
    res = runner.handle_script("x;")
    assert res.status == 'error'
    assert "Cannot resolve x" in res.error_message


def test_state_survives_a_failed_script():
    runner, _ = make_runner()
    runner.handle_script("var x = 1;")
    assert runner.handle_script("x = 2; missing;").status == 'error'
    assert runner.handle_script("x;").value == NumberValue(2)


def test_reported_errors_are_collected_per_script():
    diag_stream = io.StringIO()
    runner = ScriptRunner(stdout=io.StringIO(), diagnostics=Diagnostics(diag_stream))
    res = runner.handle_script('"a" - "b";')
    assert res.status == 'success'
    assert len(res.reported) == 1
    assert diag_stream.getvalue().startswith("ERROR: Cannot use operator '-' between two strings.")
    assert runner.handle_script("1;").reported == []


def test_reported_errors_go_to_stderr_by_default(capsys):
    ScriptRunner(stdout=io.StringIO()).handle_script('"a" * "b";')
    assert capsys.readouterr().err.startswith("ERROR: ")


def test_parse_errors_become_error_results():
    runner, _ = make_runner()
    res = runner.handle_script("var = 3;")
    assert res.status == 'error'
    assert res.error_message.startswith("Parser Error:")
    assert res.error_token == {'line': 1, 'col': 5}


def test_format_error_includes_source_context():
    runner, _ = make_runner()
    res = runner.handle_script("var a = 1;\nvar b = a +;\nvar c = 3;")
    text = res.format_error()
    lines = text.splitlines()
    assert lines[0].startswith("FATAL ERROR: Unexpected token found during parsing")
    assert "(line 2, col 12)" in text
    marked = lines.index("> 2 | var b = a +;")
    assert lines[marked + 1] == "    | " + " " * 11 + "^"
    assert lines[-1] == "  3 | var c = 3;"


def test_format_error_without_position():
    res = ExecutionResult('error', error_message="boom")
    assert res.format_error() == "FATAL ERROR: boom"
    assert ExecutionResult('success').format_error() == ""


def test_source_excerpt_window():
    src = "one\ntwo\nthree\nfour\nfive\nsix"
    result = ExecutionResult('error', error_message="x", error_token={'line': 4, 'col': 2}, source=src)
    assert result.source_excerpt(radius=1).splitlines() == [
        "  3 | three",
        "> 4 | four",
        "    |  ^",
        "  5 | five",
    ]
    beyond = ExecutionResult('error', error_message="x", error_token={'line': 99, 'col': 1}, source=src)
    assert beyond.source_excerpt() == ""
