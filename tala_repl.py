import sys
from argparse import ArgumentParser
from pathlib import Path

from tala.tala_datatypes import NullValue
from tala.tala_errors import FatalError
from tala.tala_printer import Printer
from tala.tala_runtime import ExecutionResult, ScriptRunner
from tala.tala_serialize import FORMATS, serialize


# A basic input prompt.
def read_line(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def report_result(result: ExecutionResult, echo_value: bool = True) -> int:
    """Print a result the way the front end shows it; returns the exit status."""
    if result.status == 'exit':
        return result.exit_code or 0
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return 1
    if echo_value and not isinstance(result.value, NullValue):
        print(result.value.to_string())
    return 0


def run_script_file(file_path: str, dump_ast: str = None, pretty_print: bool = False) -> int:
    """Run a Tala script file non-interactively and return the exit status."""
    runner = ScriptRunner()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1

    if dump_ast or pretty_print:
        try:
            program = runner.parse(source)
        except FatalError as e:
            print(ExecutionResult('error', error_message=e.message, error_token=e.loc,
                                  source=source).format_error(), file=sys.stderr)
            return 1
        if dump_ast:
            print(serialize(program, fmt=dump_ast), end="")
        if pretty_print:
            print(Printer().pformat(program))
        return 0

    return report_result(runner.handle_script(source), echo_value=False)


def repl(runner: ScriptRunner = None) -> int:
    """Interactive loop; returns the process exit status."""
    print("Tala REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = runner if runner is not None else ScriptRunner()
    debug = False

    while True:
        try:
            raw = read_line("> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                return 0
            if line == "debug":
                debug = not debug
                print(f"AST dumps {'on' if debug else 'off'}.")
                continue
            if line.startswith("file "):
                path = Path(line[len("file "):].strip())
                try:
                    source = path.read_text(encoding="utf-8")
                except OSError as e:
                    print(f"Error: cannot read {path}: {e}", file=sys.stderr)
                    continue
                runner.reset()
                line = source

            if debug:
                try:
                    print(serialize(runner.parse(line), fmt="yaml"), end="")
                except FatalError:
                    # Reported by handle_script below.
                    pass

            result = runner.handle_script(line)
            if result.status == 'exit':
                return result.exit_code or 0
            status = report_result(result)
            if status:
                # A fatal error ends the session.
                return status

        except EOFError:
            print("\nExiting.")
            return 0


def main(argv=None) -> None:
    """Run a script file when provided, otherwise start the interactive REPL."""
    description = "The Tala Programming Language"
    parser = ArgumentParser(description=description)
    parser.add_argument("file", type=str, nargs="?", default=None)
    parser.add_argument("--dump-ast", choices=FORMATS, default=None,
                        help="print the parsed AST instead of running the file")
    parser.add_argument("--print", dest="pretty_print", action="store_true",
                        help="print the parsed program back as formatted source")
    args = parser.parse_args(argv)

    if args.file is not None:
        raise SystemExit(run_script_file(args.file, args.dump_ast, args.pretty_print))
    raise SystemExit(repl())


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
