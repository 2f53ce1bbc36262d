## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# tinyfl — A tiny strict first-order functional language, with closures as explicit partial applications.
#

import re
import sys
import time
import traceback
from dataclasses import dataclass

import click

from .errors import TinyError, TinyParseError, TinyIncompleteParse, TinyCheckError, TinyFault, TinyResourceError
from .module import Module
from .memory import HEAP_SIZE, STACK_SIZE
from .parser import parse_definitions, format_parse_error_context, format_source_lines, print_source_lines
from .formatting import write_without_ansi, format_value, format_module
from .runtime import Runtime


@dataclass(frozen=True)
class RuntimeConfig:
    verbose: int
    ignore: bool
    stats: bool
    plain: bool
    heap_size: int
    stack_size: int


@dataclass
class ExecutionItem:
    source: str
    filename: str


_DEFINITION_RE = re.compile(r"\s*fn[\s(]")


class TinyRunner:
    def __init__(self, config: RuntimeConfig):
        self.verbose = config.verbose
        self.ignore = config.ignore
        self.stats_enabled = config.stats
        self.plain = config.plain

        if self.plain:
            writer = write_without_ansi(sys.stdout.write)
            sys.stdout.write, sys.stderr.write = writer, writer

        self.runtime = Runtime(heap_size=config.heap_size, stack_size=config.stack_size)
        self.total_stats = {'steps': 0, 'start': time.time()} if self.stats_enabled else None
        self.failure = False
        self.executed_items = 0
        self.session = Module()
        self._current_module = Module()

    def _maybe_fatal_error(self, message: str, detail: str, exc_type: str = None, context: str = '', is_repl: bool = False) -> None:
        header = detail if not exc_type else f"{detail} (Exception: \033[33m{exc_type}\033[0m)"
        print(f'\033[30;43m {message} \033[0m {header}\n{context}', file=sys.stderr)
        self._fail(is_repl)

    def _fail(self, is_repl: bool) -> None:
        if is_repl: return
        self.failure = True
        if not self.ignore: sys.exit(1)

    def _handle_exception(self, exc, filename: str, source: str, is_repl: bool = False) -> bool:
        if isinstance(exc, TinyParseError):
            if is_repl and isinstance(exc, TinyIncompleteParse): return True
            context = format_parse_error_context(filename, exc.line, exc.column, exc.token or '', source=source)
            context += f"\n\033[90m{str(exc).replace(chr(10), ' ').replace(chr(9), ' ')}\033[0m\n"
            self._maybe_fatal_error("SYNTAX ERROR.", f"Parsing `\033[97m{filename}\033[0m` caused a problem!", type(exc).__name__, context, is_repl)
        elif isinstance(exc, TinyCheckError):
            detail = f"Function `\033[1;97m{exc.function}\033[0m` from `\033[97m{filename}\033[0m` is not well-formed!"
            context = f"\n\033[90m{exc}\033[0m\n"
            if exc.tiny_meta and exc.tiny_meta.get('start') is not None:
                context += '\n' + format_source_lines(exc.tiny_meta, str(exc.tiny_token))
            self._maybe_fatal_error("CHECK ERROR.", detail, type(exc).__name__, context, is_repl)
        elif isinstance(exc, TinyResourceError):
            detail = f"The {exc.resource} limit of \033[1;97m{exc.capacity:,}\033[0m was reached in `\033[1;97m{exc.tiny_function}\033[0m`."
            context = f"\n\033[90m{exc}  Increase it with --{'heap' if exc.resource == 'arena' else 'stack'}-size.\033[0m\n"
            self._maybe_fatal_error("RESOURCE EXHAUSTED.", detail, type(exc).__name__, context, is_repl)
        elif isinstance(exc, TinyFault):
            print(f'\033[30;43m RUNTIME FAULT. \033[0m Function \033[1;97m`{exc.tiny_function}`\033[0m failed at depth {exc.tiny_depth}! '
                  f'(Fault: \033[33m{exc.kind}\033[0m, Exception: \033[33m{type(exc).__name__}\033[0m)', file=sys.stderr)
            print(f'\033[90m{exc}\033[0m\n', file=sys.stderr)
            if (definition := self._current_module.get(exc.tiny_function)) is not None:
                print_source_lines(definition.meta, exc.tiny_function, file=sys.stderr)
            self._fail(is_repl)
        elif isinstance(exc, Exception):
            print(f'\033[30;43m INTERNAL ERROR. \033[0m Running `{filename}` caused an error! (Exception: \033[33m{type(exc).__name__}\033[0m)', file=sys.stderr)
            traceback.print_exc()
            self._fail(is_repl)
        return False

    def execute_items(self, items: list[ExecutionItem]) -> None:
        for item in items:
            self._execute_script(item.source, item.filename)

    def _execute_script(self, source: str, filename: str) -> None:
        try:
            self._current_module = self.runtime.load(source, filename=filename)
            result = self.runtime.run(self._current_module, verbosity=self.verbose, stats=self.total_stats)
            print(format_value(result))
        except (TinyError, Exception) as exc:
            self._handle_exception(exc, filename, source, is_repl=False)
        else:
            self.executed_items += 1

    def print_items(self, items: list[ExecutionItem]) -> None:
        for item in items:
            try:
                print(format_module(self.runtime.load(item.source, filename=item.filename)), end='')
            except (TinyError, Exception) as exc:
                self._handle_exception(exc, item.filename, item.source, is_repl=False)

    def _repl_input(self, source: str) -> None:
        if _DEFINITION_RE.match(source):
            definitions = parse_definitions(source, filename='<REPL>')
            self.session = self.session.extended(definitions)
            print("\033[90m>>>\033[0m", ' '.join(d.name for d in definitions))
            return
        self._current_module = self.session
        result = self.runtime.evaluate(self.session, source, filename='<REPL>', verbosity=self.verbose, stats=self.total_stats)
        print("\033[90m>>>\033[0m", format_value(result))
        self.executed_items += 1

    def repl(self) -> None:
        if sys.platform != "win32": import readline

        print('tinyfl - Functional language REPL; enter definitions or expressions, type Ctrl+C to exit.')
        source = ""

        while True:
            try:
                prompt = "\033[36m<<< \033[0m" if not source.strip() else "\033[36m... \033[0m"
                line = input(prompt)
                if len(line.strip()) == 0: continue
                if line.strip() in ('quit', 'exit'): break
                source += line + "\n"

                try:
                    self._repl_input(source)
                    source = ""
                except (TinyError, Exception) as exc:
                    if not self._handle_exception(exc, '<REPL>', source, is_repl=True):
                        source = ""

            except (KeyboardInterrupt, EOFError):
                print(""); break

    def finalize(self) -> int:
        if self.total_stats and self.executed_items > 0:
            elapsed_time = time.time() - self.total_stats['start']
            print(f"\n\033[97m\033[48;5;30m STATISTICS. \033[0m")
            print(f"step\t\033[97m{self.total_stats['steps']:,}\033[0m")
            print(f"call\t\033[97m{self.total_stats.get('calls', 0):,}\033[0m")
            print(f"papp\t\033[97m{self.total_stats.get('closures', 0):,}\033[0m")
            print(f"depth\t\033[97m{self.total_stats.get('max_depth', 0):,}\033[0m")
            print(f"time\t\033[97m{elapsed_time:.3f}s\033[0m")
        return 1 if self.failure else 0


def _read_item(script) -> ExecutionItem:
    return ExecutionItem(script.read(), script.name if script.name not in (None, '-', '<stdin>') else '<STDIN>')


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', default=0, count=True, help='Trace function calls (-v) or every evaluation step (-vv).')
@click.option('--ignore', '-i', is_flag=True, help='Ignore errors and continue executing.')
@click.option('--stats', is_flag=True, help='Display execution statistics (e.g., number of steps).')
@click.option('--plain', '-p', is_flag=True, help='Strip ANSI color codes and redirect stderr to stdout.')
@click.option('--heap-size', type=click.IntRange(min=0), default=HEAP_SIZE, show_default=True,
              envvar='TINYFL_HEAP_SIZE', help='Capacity of the closure arena, in records.')
@click.option('--stack-size', type=click.IntRange(min=0), default=STACK_SIZE, show_default=True,
              envvar='TINYFL_STACK_SIZE', help='Capacity of the call stack, in frames.')
@click.pass_context
def cli(ctx: click.Context, verbose: int, ignore: bool, stats: bool, plain: bool, heap_size: int, stack_size: int) -> None:
    ctx.ensure_object(dict)
    ctx.obj['config'] = RuntimeConfig(verbose=verbose, ignore=ignore, stats=stats, plain=plain,
                                      heap_size=heap_size, stack_size=stack_size)


@cli.command('run-file')
@click.argument('scripts', type=click.File('r', encoding='utf-8'), nargs=-1, required=True)
@click.pass_context
def run_file(ctx: click.Context, scripts) -> None:
    runner = TinyRunner(ctx.obj['config'])
    runner.execute_items([_read_item(s) for s in scripts])
    ctx.exit(runner.finalize())


@cli.command('print-file')
@click.argument('scripts', type=click.File('r', encoding='utf-8'), nargs=-1, required=True)
@click.pass_context
def print_file(ctx: click.Context, scripts) -> None:
    runner = TinyRunner(ctx.obj['config'])
    runner.print_items([_read_item(s) for s in scripts])
    ctx.exit(runner.finalize())


@cli.command('run-repl')
@click.pass_context
def run_repl(ctx: click.Context) -> None:
    runner = TinyRunner(ctx.obj['config'])
    runner.repl()
    ctx.exit(runner.finalize())


_FLAG_OPTIONS = ('--ignore', '--stats', '--plain', '--verbose', '-i', '-p')
_VALUE_OPTIONS = ('--heap-size', '--stack-size')


def _is_global_flag(t: str) -> bool:
    return t in _FLAG_OPTIONS or (t.startswith('-v') and set(t[1:]) == {'v'}) \
        or t.startswith(tuple(f"{o}=" for o in _VALUE_OPTIONS))


def main(argv: list[str] | None = None) -> None:
    a = list(sys.argv[1:] if argv is None else argv)

    # Global options may appear anywhere; they are moved in front of the command.
    g, r, i = [], [], 0
    while i < len(a):
        if a[i] in _VALUE_OPTIONS and i + 1 < len(a):
            g += a[i:i+2]; i += 2
            continue
        (g if _is_global_flag(a[i]) else r).append(a[i])
        i += 1

    if any(t in cli.commands for t in r) or '--help' in r:
        args = [*g, *r]
    elif r:
        args = [*g, 'run-file', *r]
    else:
        # No script: if stdin has data, treat as file '-', else REPL
        args = [*g, 'run-file', '-'] if not sys.stdin.isatty() else [*g, 'run-repl']
    cli.main(args=args, prog_name='tinyfl')


if __name__ == "__main__":
    main()
