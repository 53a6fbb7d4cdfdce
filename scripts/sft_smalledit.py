#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.11"
# dependencies = ["fastmcp"]
# ///
"""Small, targeted file edits: substitute, line edit, search, backup/restore.

Every destructive edit is computed in memory, backed up to <file>.bak and
written with a single atomic replace. Every edit can be previewed as a
unified diff against a scratch copy first.

Workflow:
    1. search        : locate the lines to change (with context)
    2. diff-preview  : see the diff an edit would produce
    3. edit          : pattern-substitute / literal-replace / line-edit
    4. restore       : roll back from <file>.bak if the edit was wrong

Usage:
    sft_smalledit.py pattern-substitute <file> <expression> [--no-backup] [--preview] [--multiline]
    sft_smalledit.py pattern-substitute-multi <expression> <file_pattern> [--directory DIR]
    sft_smalledit.py literal-replace <file> <find> <replace> [--first]
    sft_smalledit.py line-edit <file> <action> (--line N | --range SPEC) [--content TEXT]
    sft_smalledit.py column-process <file> <awk_script> [--output FILE]
    sft_smalledit.py restore <file> [--delete-backup]
    sft_smalledit.py list-backups [directory] [--pattern GLOB]
    sft_smalledit.py read <file> [--lines SPEC] [--search REGEX] [--context N]
    sft_smalledit.py search <file> <regex> [--context N] [--ignore-case]
    sft_smalledit.py show-context <file> <line> [--context N]
    sft_smalledit.py diff-preview <file> <command> [--tool perl|sed|awk]
    sft_smalledit.py mcp-stdio

Edit expressions:
    [address]s/regex/replacement/[gimsx]    substitute (g = every match on the line)
    [address]d                              delete lines
    address: N | $ | N,M | N,$ | /regex/
"""

import difflib
import fnmatch
import os
import re
import shutil
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable


# =============================================================================
# LOGGING
# =============================================================================
_LEVELS = {"TRACE": 5, "DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40, "FATAL": 50}
_THRESHOLD = _LEVELS.get(os.environ.get("SFB_LOG_LEVEL", "INFO"), 20)
_LOG_DIR = os.environ.get("SFB_LOG_DIR", "")
_SCRIPT = Path(__file__).stem
_LOG = (
    Path(_LOG_DIR) / f"{_SCRIPT}_log.tsv"
    if _LOG_DIR
    else Path(__file__).parent / f"{_SCRIPT}_log.tsv"
)
_HEADER = "#timestamp\tscript\tlevel\tevent\tmessage\tdetail\tmetrics\ttrace\n"


def _log(
    level: str,
    event: str,
    msg: str,
    *,
    detail: str = "",
    metrics: str = "",
    trace: str = "",
):
    """Append TSV log line. Logging never crashes the main flow."""
    if _LEVELS.get(level, 20) < _THRESHOLD:
        return
    try:
        ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
        write_header = not _LOG.exists()
        with open(_LOG, "a") as f:
            if write_header:
                f.write(_HEADER)
            f.write(f"{ts}\t{_SCRIPT}\t{level}\t{event}\t{msg}\t{detail}\t{metrics}\t{trace}\n")
    except Exception:
        pass


# =============================================================================
# CONFIGURATION
# =============================================================================
EXPOSED = [
    "pattern_substitute",
    "pattern_substitute_multi",
    "literal_replace",
    "line_edit",
    "column_process",
    "restore",
    "list_backups",
    "read",
    "search",
    "show_context",
    "diff_preview",
]

CONFIG = {
    "backup_suffix": os.environ.get("SFB_BACKUP_SUFFIX") or ".bak",
    # Probed on restore for diagnostics only, never restored from implicitly
    "alternate_suffixes": ["~", ".backup", ".orig"],
    "before_restore_suffix": ".before-restore",
    "search_context": 3,
    "show_context": 5,
    "preview_max_lines": 50,
    "external_timeout": 30,
}

LINE_ACTIONS = ("replace", "delete", "insert_after", "insert_before")
PREVIEW_TOOLS = ("perl", "sed", "awk")
SUBSTITUTE_FLAGS = "gimsx"

EXCLUDE_DIRS = {
    ".git", "__pycache__", "node_modules", "venv", ".venv", "env",
    "build", "dist", ".mypy_cache", ".pytest_cache",
}


# =============================================================================
# CORE FUNCTIONS
# =============================================================================


# --- Errors ---


class EditError(Exception):
    """Base class for request-scoped edit failures."""


class InvalidArgumentError(EditError, ValueError):
    """A request field is missing or malformed."""


class InvalidRangeError(EditError, ValueError):
    """Line specifier is malformed, starts below 1, or runs backwards."""


class OutOfRangeError(EditError, IndexError):
    """Line specifier points past the end of the file."""


class PatternSyntaxError(EditError, ValueError):
    """Regex, replacement template or edit expression does not parse."""


class NoBackupFoundError(EditError):
    """The expected backup file is missing."""


class UnknownActionError(EditError, ValueError):
    """Unsupported line action or preview tool."""


class ExternalToolError(EditError):
    """awk is missing, timed out or exited non-zero."""


# --- Path helpers ---


def _normalize_path(path_str: str) -> Path:
    """Normalize a path string to a resolved Path object."""
    if not path_str:
        return Path.cwd()
    return Path(path_str).expanduser().resolve()


def _require_file(file_path: str) -> Path:
    path = _normalize_path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")
    return path


def _require_dir(directory: str) -> Path:
    path = _normalize_path(directory)
    if not path.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")
    return path


def _get_tool_path(tool_name: str, env_var: str) -> str | None:
    """Get path to external tool, checking env override first."""
    override = os.environ.get(env_var)
    if override and os.path.exists(override):
        return override
    return shutil.which(tool_name)


def _with_suffix(path: Path, suffix: str) -> Path:
    """Append suffix to the full file name (file.txt -> file.txt.bak)."""
    return path.with_name(path.name + suffix)


# --- File snapshot ---


def _read_text(path: Path) -> str:
    # surrogateescape keeps undecodable bytes intact through a rewrite
    with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
        return f.read()


def _display(text: str) -> str:
    """Make text safe to print or send as JSON; undecodable bytes show as U+FFFD."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _split_lines(content: str) -> list[str]:
    """Split on physical line breaks, keeping each line's terminator."""
    parts = content.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _strip_terminator(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def _terminator(line: str) -> str:
    return line[len(_strip_terminator(line)):]


@dataclass
class FileSnapshot:
    """A file's lines, read fresh for one request.

    Lines keep their own terminators so lines an edit does not touch are
    written back byte-for-byte.
    """

    path: Path
    lines: list[str]
    newline: str = "\n"

    @classmethod
    def read(cls, path: Path) -> "FileSnapshot":
        lines = _split_lines(_read_text(path))
        newline = "\r\n" if lines and lines[0].endswith("\r\n") else "\n"
        return cls(path, lines, newline)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def content(self) -> str:
        return "".join(self.lines)

    @property
    def ends_with_newline(self) -> bool:
        return bool(self.lines) and self.lines[-1].endswith("\n")

    def text(self, number: int) -> str:
        """Line `number` (1-based) without its terminator."""
        return _strip_terminator(self.lines[number - 1])


# --- Line addressing ---


LAST_LINE = "$"
_LINE_TOKEN = re.compile(r"[0-9]+|\$")


@dataclass(frozen=True)
class LineRange:
    """Resolved 1-based inclusive line interval."""

    start: int
    end: int

    @property
    def count(self) -> int:
        return self.end - self.start + 1

    def label(self) -> str:
        return str(self.start) if self.start == self.end else f"{self.start}-{self.end}"


def _parse_line_token(token: str, spec: str) -> int | None:
    if not _LINE_TOKEN.fullmatch(token):
        raise InvalidRangeError(
            f"Invalid line range '{spec}': expected N, $, N,M or N,$"
        )
    return None if token == LAST_LINE else int(token)


def parse_range(spec: str | int, line_count: int) -> LineRange:
    """Resolve "N", "$", "A,B" or "A,$" against a file of `line_count` lines.

    Explicit addresses never clamp. Anything past the last line raises
    OutOfRangeError instead of silently editing a different line.
    """
    text = str(spec).strip()
    parts = [part.strip() for part in text.split(",")]
    if len(parts) == 1:
        parts = [parts[0], parts[0]]
    if len(parts) != 2:
        raise InvalidRangeError(f"Invalid line range '{spec}': expected N, $, N,M or N,$")

    start = _parse_line_token(parts[0], text)
    end = _parse_line_token(parts[1], text)
    if (start is not None and start < 1) or (end is not None and end < 1):
        raise InvalidRangeError(f"Invalid line range '{spec}': line numbers start at 1")
    if start is not None and end is not None and start > end:
        raise InvalidRangeError(f"Invalid line range '{spec}': start {start} is after end {end}")

    if line_count == 0:
        raise OutOfRangeError(f"Line range '{spec}' is out of range: file is empty")
    start = line_count if start is None else start
    end = line_count if end is None else end
    if start > line_count or end > line_count:
        raise OutOfRangeError(
            f"Line range '{spec}' is out of range (file has {line_count} lines)"
        )
    if start > end:
        raise InvalidRangeError(f"Invalid line range '{spec}': start {start} is after end {end}")
    return LineRange(start, end)


# --- Pattern matching ---


@dataclass(frozen=True)
class MatchRecord:
    line_index: int
    matched_text: str
    context_start: int
    context_end: int


def compile_pattern(pattern: str, ignore_case: bool = False, flags: int = 0) -> re.Pattern:
    """Compile a regex, reporting bad syntax as PatternSyntaxError."""
    if ignore_case:
        flags |= re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise PatternSyntaxError(f"Invalid pattern '{pattern}': {e}") from e


def find_matches(
    snapshot: FileSnapshot,
    regex: re.Pattern,
    context: int = 0,
    within: LineRange | None = None,
) -> list[MatchRecord]:
    """Match `regex` line by line (never across lines), one record per matching line."""
    first, last = (within.start, within.end) if within else (1, snapshot.line_count)
    records: list[MatchRecord] = []
    for number in range(first, last + 1):
        m = regex.search(snapshot.text(number))
        if m:
            start, end = context_window(number, context, snapshot.line_count)
            records.append(MatchRecord(number, m.group(0), start, end))
    return records


# --- Context windows ---


def _require_radius(context: int) -> int:
    if context < 0:
        raise InvalidArgumentError(f"Context must be zero or positive (got {context})")
    return context


def context_window(center: int, radius: int, line_count: int) -> tuple[int, int]:
    """Inclusive display range around `center`, clamped into [1, line_count]."""
    _require_radius(radius)
    return max(1, center - radius), min(line_count, center + radius)


def render_window(snapshot: FileSnapshot, center: int, start: int, end: int) -> list[str]:
    out = []
    for i in range(start, end + 1):
        marker = ">>>" if i == center else "   "
        out.append(f"{marker} {i:>4}|{_display(snapshot.text(i))}")
    return out


def _render_matches(snapshot: FileSnapshot, matches: list[MatchRecord]) -> list[str]:
    # Overlapping windows are kept apart so every match shows its own block
    out: list[str] = []
    for n, match in enumerate(matches):
        if n:
            out.append("--")
        out.append(f"Match at line {match.line_index}: {_display(match.matched_text)}")
        out.extend(render_window(snapshot, match.line_index, match.context_start, match.context_end))
    return out


# --- Edit expressions ---


@dataclass(frozen=True)
class EditExpression:
    """Parsed `[address]s/regex/replacement/flags` or `[address]d`."""

    source: str
    command: str
    address: str | None = None
    address_regex: re.Pattern | None = None
    regex: re.Pattern | None = None
    replacement: str = ""
    replace_all: bool = False


_ADDRESS = re.compile(r"([0-9]+|\$)(?:\s*,\s*([0-9]+|\$))?")
_PERL_REFS = re.compile(r"\\\\|\\\$|\$\{(\d+)\}|\$(\d+)|\$&")


def _split_delimited(text: str, delim: str, source: str) -> tuple[str, str]:
    """Read up to the next unescaped `delim`; returns (body, rest after delim)."""
    body: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            body.append(nxt if nxt == delim else ch + nxt)
            i += 2
            continue
        if ch == delim:
            return "".join(body), text[i + 1:]
        body.append(ch)
        i += 1
    raise PatternSyntaxError(f"Unterminated expression '{source}': missing closing '{delim}'")


def _translate_replacement(replacement: str) -> str:
    """Turn perl-style group references ($1, ${1}, $&) into re.sub template syntax."""

    def convert(m: re.Match) -> str:
        token = m.group(0)
        if token == "\\\\":
            return token
        if token == "\\$":
            return "$"
        if token == "$&":
            return r"\g<0>"
        return rf"\g<{m.group(1) or m.group(2)}>"

    return _PERL_REFS.sub(convert, replacement)


def parse_expression(expression: str, multiline: bool = False) -> EditExpression:
    """Parse an edit expression into an EditExpression.

    Grammar:
        [address]s<d>regex<d>replacement<d>[gimsx]
        [address]d
        address := N | $ | N,M | N,$ | /regex/

    `<d>` is any punctuation character. Multiline (slurp) mode only accepts an
    unaddressed substitution, applied to the whole file text.
    """
    text = expression.strip()
    if not text:
        raise InvalidArgumentError("Edit expression must not be empty")

    address: str | None = None
    address_regex: re.Pattern | None = None
    rest = text
    if rest.startswith("/"):
        address_src, rest = _split_delimited(rest[1:], "/", expression)
        address_regex = compile_pattern(address_src)
    else:
        m = _ADDRESS.match(rest)
        if m:
            address = m.group(0)
            rest = rest[m.end():]
    rest = rest.lstrip()

    if rest == "d":
        if multiline:
            raise InvalidArgumentError("Multiline mode only supports s/regex/replacement/ expressions")
        return EditExpression(text, "d", address=address, address_regex=address_regex)

    if len(rest) < 2 or rest[0] != "s":
        raise PatternSyntaxError(
            f"Unsupported edit expression '{expression}': expected s/regex/replacement/[flags] or d"
        )
    delim = rest[1]
    if delim.isalnum() or delim.isspace() or delim == "\\":
        raise PatternSyntaxError(f"Invalid delimiter '{delim}' in '{expression}'")
    pattern_src, rest = _split_delimited(rest[2:], delim, expression)
    replacement_src, flag_text = _split_delimited(rest, delim, expression)
    flag_text = flag_text.strip()
    unknown = [c for c in flag_text if c not in SUBSTITUTE_FLAGS]
    if unknown:
        raise PatternSyntaxError(
            f"Unknown substitution flag(s) {''.join(unknown)!r} in '{expression}' (use {SUBSTITUTE_FLAGS})"
        )
    if multiline and (address is not None or address_regex is not None):
        raise InvalidArgumentError("Multiline mode does not accept a line address")

    flags = 0
    if "i" in flag_text:
        flags |= re.IGNORECASE
    if "m" in flag_text:
        flags |= re.MULTILINE
    if "s" in flag_text:
        flags |= re.DOTALL
    if "x" in flag_text:
        flags |= re.VERBOSE
    return EditExpression(
        source=text,
        command="s",
        address=address,
        address_regex=address_regex,
        regex=compile_pattern(pattern_src, flags=flags),
        replacement=_translate_replacement(replacement_src),
        replace_all="g" in flag_text,
    )


# --- Mutation engine ---


def _subn(expr: EditExpression, text: str) -> tuple[str, int]:
    try:
        return expr.regex.subn(expr.replacement, text, count=0 if expr.replace_all else 1)
    except (re.error, IndexError) as e:
        raise PatternSyntaxError(f"Invalid replacement in '{expr.source}': {e}") from e


def _expression_lines(snapshot: FileSnapshot, expr: EditExpression) -> list[int]:
    if expr.address is not None:
        rng = parse_range(expr.address, snapshot.line_count)
        return list(range(rng.start, rng.end + 1))
    if expr.address_regex is not None:
        return [
            n for n in range(1, snapshot.line_count + 1)
            if expr.address_regex.search(snapshot.text(n))
        ]
    return list(range(1, snapshot.line_count + 1))


def apply_expression(
    snapshot: FileSnapshot, expr: EditExpression, multiline: bool = False
) -> tuple[str, int]:
    """Compute new content for an edit expression. Returns (content, changes)."""
    if multiline:
        return _subn(expr, snapshot.content)

    targets = _expression_lines(snapshot, expr)
    if expr.command == "d":
        drop = set(targets)
        kept = [line for n, line in enumerate(snapshot.lines, 1) if n not in drop]
        return "".join(kept), len(drop)

    lines = list(snapshot.lines)
    total = 0
    for n in targets:
        new_text, count = _subn(expr, snapshot.text(n))
        if count:
            lines[n - 1] = new_text + _terminator(snapshot.lines[n - 1])
            total += count
    return "".join(lines), total


def replace_literal(content: str, find: str, replace: str, replace_all: bool = True) -> tuple[str, int]:
    """Plain substring replacement; no regex is involved at any point."""
    occurrences = content.count(find)
    if not occurrences:
        return content, 0
    if replace_all:
        return content.replace(find, replace), occurrences
    return content.replace(find, replace, 1), 1


def _content_lines(content: str, newline: str, terminate_last: bool = True) -> list[str]:
    text = content.replace("\r\n", "\n")
    if text.endswith("\n"):
        text = text[:-1]
    pieces = text.split("\n")
    block = [piece + newline for piece in pieces]
    if not terminate_last:
        block[-1] = pieces[-1]
    return block


def apply_line_action(
    snapshot: FileSnapshot,
    action: str,
    line_range: LineRange,
    content: str | None = None,
) -> list[str]:
    """Return the new line list after one line action.

    insert_before targets the range's first line, insert_after its last line.
    A file without a trailing newline keeps that style after an append.
    """
    lines = list(snapshot.lines)
    lo, hi = line_range.start - 1, line_range.end
    at_eof = line_range.end == snapshot.line_count
    keep_final_newline = not at_eof or snapshot.ends_with_newline

    if action == "delete":
        del lines[lo:hi]
    elif action == "replace":
        lines[lo:hi] = _content_lines(content, snapshot.newline, keep_final_newline)
    elif action == "insert_before":
        lines[lo:lo] = _content_lines(content, snapshot.newline)
    elif action == "insert_after":
        if not keep_final_newline:
            lines[-1] += snapshot.newline
        lines[hi:hi] = _content_lines(content, snapshot.newline, keep_final_newline)
    else:
        raise UnknownActionError(f"Unknown action: {action}. Use: {', '.join(LINE_ACTIONS)}")
    return lines


def _atomic_write(path: Path, content: str) -> None:
    """Replace file content in one step: temp file in the same dir, then os.replace."""
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp)
        else:
            # mkstemp creates 0600; new files get the usual umask-derived mode
            umask = os.umask(0)
            os.umask(umask)
            os.chmod(tmp, 0o666 & ~umask)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)


# --- Backups ---


def _backup_path(path: Path) -> Path:
    if not CONFIG["backup_suffix"]:
        raise InvalidArgumentError("Backup suffix must not be empty (check SFB_BACKUP_SUFFIX)")
    return _with_suffix(path, CONFIG["backup_suffix"])


def _known_suffixes() -> list[str]:
    suffixes = [CONFIG["before_restore_suffix"], CONFIG["backup_suffix"], *CONFIG["alternate_suffixes"]]
    return sorted({s for s in suffixes if s}, key=len, reverse=True)


def _is_backup_artifact(name: str) -> bool:
    return any(name.endswith(suffix) for suffix in _known_suffixes())


def create_backup(path: Path) -> Path:
    """Copy `path` to `path + backup_suffix`, replacing any previous backup."""
    backup = _backup_path(path)
    shutil.copy2(path, backup)
    _log("DEBUG", "backup", f"{path} -> {backup.name}")
    return backup


def _rewrite(path: Path, new_content: str, backup: bool = True) -> Path | None:
    """Back up (unless disabled), then atomically replace the file's content."""
    backup_path = create_backup(path) if backup else None
    _atomic_write(path, new_content)
    return backup_path


def _backup_line(backup_path: Path | None) -> str:
    return f"\n     Backup: {backup_path}" if backup_path else ""


# --- Preview ---


def _diff_lines(original: str, updated: str, label: str) -> list[str]:
    return list(
        difflib.unified_diff(
            [_display(_strip_terminator(line)) for line in _split_lines(original)],
            [_display(_strip_terminator(line)) for line in _split_lines(updated)],
            fromfile=label,
            tofile=f"{label} (preview)",
            lineterm="",
        )
    )


def preview_mutation(
    path: Path,
    mutate: Callable[[Path], Any],
    max_lines: int | None = None,
) -> str:
    """Run `mutate` against a scratch copy of `path` and diff it with the original.

    The scratch directory is removed whether or not `mutate` succeeds; the
    original file and its backups are only ever read.
    """
    scratch_dir = Path(tempfile.mkdtemp(prefix="smalledit-preview-"))
    try:
        scratch = scratch_dir / path.name
        shutil.copy2(path, scratch)
        mutate(scratch)
        original = _read_text(path)
        updated = _read_text(scratch)
    finally:
        shutil.rmtree(scratch_dir, ignore_errors=True)

    diff = _diff_lines(original, updated, str(path))
    if not diff:
        return "No changes would be made"
    if max_lines and len(diff) > max_lines:
        hidden = len(diff) - max_lines
        diff = diff[:max_lines] + [f"... ({hidden} more diff lines)"]
    return "Preview of changes:\n" + "\n".join(diff)


# --- External processing (awk) ---


def _run_awk(script: str, input_path: Path) -> str:
    """Run an awk program over a file as an argv list (no shell involved)."""
    awk = _get_tool_path("awk", "SFB_AWK_PATH")
    if not awk:
        raise ExternalToolError("awk not found on PATH (set SFB_AWK_PATH)")
    timeout = CONFIG["external_timeout"]
    try:
        result = subprocess.run(
            [awk, "--", script, str(input_path)],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(f"awk timed out after {timeout}s") from e
    except OSError as e:
        raise ExternalToolError(f"awk could not be started: {e}") from e
    if result.returncode != 0:
        stderr = result.stderr.strip() or "no error output"
        raise ExternalToolError(f"awk exited with status {result.returncode}: {stderr}")
    if result.stderr.strip():
        _log("WARN", "awk", str(input_path), detail=result.stderr.strip())
    return result.stdout


# --- Core impl functions ---


def _apply_expression_to(
    path: Path, expr: EditExpression, backup: bool = True, multiline: bool = False
) -> tuple[int, Path | None]:
    snapshot = FileSnapshot.read(path)
    new_content, changes = apply_expression(snapshot, expr, multiline=multiline)
    if new_content == snapshot.content:
        return 0, None
    return changes, _rewrite(path, new_content, backup)


def _pattern_substitute_impl(
    file_path: str,
    pattern: str,
    backup: bool = True,
    preview: bool = False,
    multiline: bool = False,
) -> str:
    """Apply an edit expression to one file, or preview it as a diff."""
    start_ms = time.time() * 1000
    path = _require_file(file_path)
    expr = parse_expression(pattern, multiline=multiline)

    if preview:
        result = preview_mutation(
            path,
            lambda scratch: _apply_expression_to(scratch, expr, backup=False, multiline=multiline),
            max_lines=CONFIG["preview_max_lines"],
        )
        latency_ms = round(time.time() * 1000 - start_ms, 2)
        _log("INFO", "pattern_substitute", f"{path} preview",
             metrics=f"latency_ms={latency_ms} status=success")
        return result

    changes, backup_path = _apply_expression_to(path, expr, backup=backup, multiline=multiline)
    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "pattern_substitute", str(path),
         metrics=f"latency_ms={latency_ms} status=success changes={changes}")
    if not changes:
        return f"No changes from '{pattern}' in {file_path}; file unchanged"
    return f"[OK] Edited {path}: {changes} change(s){_backup_line(backup_path)}"


def _find_files(root: Path, file_pattern: str) -> list[Path]:
    """Files under root whose name matches file_pattern (or whose path does, if it has a '/')."""
    if Path(file_pattern).is_absolute():
        raise InvalidArgumentError(f"File pattern must be relative to the directory: {file_pattern}")
    if "/" in file_pattern:
        candidates = (p.resolve() for p in root.glob(file_pattern) if p.is_file())
        found = [
            p for p in candidates
            if p.is_relative_to(root) and not EXCLUDE_DIRS.intersection(p.relative_to(root).parts[:-1])
        ]
    else:
        found = []
        for dirpath, dirs, files in os.walk(root):
            dirs[:] = [d for d in dirs if d not in EXCLUDE_DIRS]
            for filename in files:
                if fnmatch.fnmatch(filename, file_pattern):
                    found.append(Path(dirpath) / filename)
    return sorted(p for p in found if not _is_backup_artifact(p.name))


def _pattern_substitute_multi_impl(
    pattern: str,
    file_pattern: str,
    directory: str = ".",
    backup: bool = True,
) -> str:
    """Apply one edit expression to every matching file under directory.

    All files are read and all new contents computed before the first write,
    so a bad expression or an unreadable file leaves every file untouched.
    """
    start_ms = time.time() * 1000
    root = _require_dir(directory)
    expr = parse_expression(pattern)
    files = _find_files(root, file_pattern)
    if not files:
        return f"No files found matching pattern: {file_pattern}"

    plans: list[tuple[Path, str, str, int]] = []
    for file_path in files:
        snapshot = FileSnapshot.read(file_path)
        new_content, changes = apply_expression(snapshot, expr)
        plans.append((file_path, snapshot.content, new_content, changes))

    results: list[str] = []
    edited = 0
    for file_path, old_content, new_content, changes in plans:
        rel = file_path.relative_to(root)
        if new_content == old_content:
            results.append(f"[SKIP] {rel}: no matches")
            continue
        _rewrite(file_path, new_content, backup)
        edited += 1
        results.append(f"[OK] {rel}: {changes} change(s)")

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "pattern_substitute_multi", f"{root} {file_pattern}",
         metrics=f"latency_ms={latency_ms} status=success files={len(files)} edited={edited}")
    header = f"Processed {len(files)} files ({edited} edited)"
    if backup and edited:
        header += f", backups saved as *{CONFIG['backup_suffix']}"
    return header + ":\n" + "\n".join(results)


def _literal_replace_to(
    path: Path, find: str, replace: str, replace_all: bool, backup: bool
) -> tuple[int, Path | None]:
    content = _read_text(path)
    new_content, count = replace_literal(content, find, replace, replace_all)
    if not count:
        return 0, None
    return count, _rewrite(path, new_content, backup)


def _literal_replace_impl(
    file_path: str,
    find: str,
    replace: str,
    replace_all: bool = True,
    backup: bool = True,
    preview: bool = False,
) -> str:
    """Find/replace plain text (no regex)."""
    start_ms = time.time() * 1000
    if not find:
        raise InvalidArgumentError("find text must not be empty")
    path = _require_file(file_path)

    if preview:
        result = preview_mutation(
            path, lambda scratch: _literal_replace_to(scratch, find, replace, replace_all, False)
        )
        latency_ms = round(time.time() * 1000 - start_ms, 2)
        _log("INFO", "literal_replace", f"{path} preview",
             metrics=f"latency_ms={latency_ms} status=success")
        return result

    count, backup_path = _literal_replace_to(path, find, replace, replace_all, backup)
    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "literal_replace", str(path),
         metrics=f"latency_ms={latency_ms} status=success replacements={count}")
    if not count:
        return f"No occurrences of \"{find}\" in {file_path}; file unchanged"
    return (
        f"[OK] Replaced \"{find}\" with \"{replace}\" in {path} "
        f"({count} occurrence(s)){_backup_line(backup_path)}"
    )


def _line_edit_to(
    path: Path, action: str, spec: str, content: str | None, backup: bool
) -> tuple[LineRange, int, Path | None]:
    snapshot = FileSnapshot.read(path)
    rng = parse_range(spec, snapshot.line_count)
    new_lines = apply_line_action(snapshot, action, rng, content)
    backup_path = _rewrite(path, "".join(new_lines), backup)
    return rng, len(new_lines), backup_path


def _line_edit_impl(
    file_path: str,
    action: str,
    line_number: int | None = None,
    line_range: str | None = None,
    content: str | None = None,
    backup: bool = True,
    preview: bool = False,
) -> str:
    """Replace, delete or insert around an addressed line or range.

    `line_range` wins over `line_number` when both are given.
    """
    start_ms = time.time() * 1000
    if action not in LINE_ACTIONS:
        raise UnknownActionError(f"Unknown action: {action}. Use: {', '.join(LINE_ACTIONS)}")
    path = _require_file(file_path)
    if line_range:
        spec = line_range
    elif line_number is not None:
        spec = str(line_number)
    else:
        raise InvalidArgumentError("line_edit requires lineNumber or lineRange")
    if action != "delete" and content is None:
        raise InvalidArgumentError(f"{action} requires content")

    if preview:
        result = preview_mutation(
            path, lambda scratch: _line_edit_to(scratch, action, spec, content, False)
        )
        latency_ms = round(time.time() * 1000 - start_ms, 2)
        _log("INFO", "line_edit", f"{path}:{spec} {action} preview",
             metrics=f"latency_ms={latency_ms} status=success")
        return result

    rng, total, backup_path = _line_edit_to(path, action, spec, content, backup)
    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "line_edit", f"{path}:{rng.label()} {action}",
         metrics=f"latency_ms={latency_ms} status=success lines={total}")
    return (
        f"[OK] {action} on line(s) {rng.label()} in {path}\n"
        f"     File now has {total} lines{_backup_line(backup_path)}"
    )


def _column_process_impl(file_path: str, script: str, output_file: str | None = None) -> str:
    """Run an awk program over a file; print its output or write it to output_file."""
    start_ms = time.time() * 1000
    path = _require_file(file_path)
    output = _run_awk(script, path)

    backup_path = None
    if output_file:
        out_path = _normalize_path(output_file)
        if not out_path.parent.is_dir():
            raise FileNotFoundError(f"Output directory not found: {out_path.parent}")
        if out_path.is_file():
            backup_path = create_backup(out_path)
        _atomic_write(out_path, output)

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "column_process", str(path),
         metrics=f"latency_ms={latency_ms} status=success bytes={len(output)}")
    if output_file:
        return f"[OK] Processed {file_path} -> {output_file}{_backup_line(backup_path)}"
    return output or "AWK processing complete"


def _restore_impl(file_path: str, keep_backup: bool = True) -> str:
    """Restore a file from <file>.bak, saving the current content to <file>.before-restore first.

    A missing .bak is an error even when an alternate backup (~, .backup,
    .orig) exists; alternates are named in the message but never used.
    """
    start_ms = time.time() * 1000
    path = _normalize_path(file_path)
    backup = _backup_path(path)

    if not backup.is_file():
        alternates = [
            _with_suffix(path, suffix).name
            for suffix in CONFIG["alternate_suffixes"]
            if suffix != CONFIG["backup_suffix"] and _with_suffix(path, suffix).is_file()
        ]
        msg = f"No backup found for {file_path} (expected {backup.name})"
        if alternates:
            msg += f". Alternate backup(s) present but not restored automatically: {', '.join(alternates)}"
        _log("WARN", "restore", str(path), detail=msg)
        raise NoBackupFoundError(msg)

    safety = None
    if path.exists():
        safety = _with_suffix(path, CONFIG["before_restore_suffix"])
        shutil.copy2(path, safety)
    _atomic_write(path, _read_text(backup))
    if not keep_backup:
        backup.unlink()

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "restore", str(path),
         metrics=f"latency_ms={latency_ms} status=success kept_backup={keep_backup}")
    out = [f"[OK] Restored {path} from {backup.name}"]
    if safety:
        out.append(f"     Previous content saved to: {safety.name}")
    out.append("     Backup kept" if keep_backup else "     Backup removed")
    return "\n".join(out)


def _original_name(name: str, pattern: str) -> str:
    candidates = _known_suffixes()
    if pattern.startswith("*") and not any(c in pattern[1:] for c in "*?["):
        candidates.insert(0, pattern[1:])
    for suffix in candidates:
        if suffix and name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


def _list_backups_impl(directory: str = ".", pattern: str = "*.bak") -> str:
    """List backup files under directory with size, mtime and original file name."""
    start_ms = time.time() * 1000
    root = _require_dir(directory)
    found = sorted(
        p for p in root.rglob(pattern)
        if p.is_file() and not EXCLUDE_DIRS.intersection(p.relative_to(root).parts[:-1])
    )

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "list_backups", f"{root} {pattern}",
         metrics=f"latency_ms={latency_ms} status=success found={len(found)}")
    if not found:
        return f"No backups matching '{pattern}' under {root}"

    out = [f"Backups: {len(found)} matching '{pattern}' under {root}", ""]
    for p in found:
        st = p.stat()
        mtime = datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
        rel = p.relative_to(root)
        original = rel.with_name(_original_name(p.name, pattern))
        out.append(f"  {rel} ({st.st_size:,} bytes, modified {mtime}) -> {original}")
    return "\n".join(out)


def _read_impl(
    file_path: str,
    lines: str | None = None,
    search: str | None = None,
    context: int = CONFIG["search_context"],
) -> str:
    """Read a file (or a line range of it), or search it when `search` is set."""
    start_ms = time.time() * 1000
    path = _require_file(file_path)
    _require_radius(context)
    snapshot = FileSnapshot.read(path)
    rng = parse_range(lines, snapshot.line_count) if lines else None

    if search:
        regex = compile_pattern(search)
        matches = find_matches(snapshot, regex, context, within=rng)
        latency_ms = round(time.time() * 1000 - start_ms, 2)
        _log("INFO", "read", f"{path} search={search}",
             metrics=f"latency_ms={latency_ms} status=success matches={len(matches)}")
        if not matches:
            return f"No matches for '{search}' in {file_path}"
        return "\n".join([f"{path}: {len(matches)} match(es)", ""] + _render_matches(snapshot, matches))

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "read", str(path), metrics=f"latency_ms={latency_ms} status=success")
    if snapshot.line_count == 0:
        return f"{path}: empty file"
    if rng is None:
        rng = LineRange(1, snapshot.line_count)
    out = [f"{path}:{rng.label()} ({snapshot.line_count} lines)", ""]
    for i in range(rng.start, rng.end + 1):
        out.append(f"    {i:>4}|{_display(snapshot.text(i))}")
    return "\n".join(out)


def _search_impl(
    file_path: str,
    pattern: str,
    context: int = CONFIG["search_context"],
    case_insensitive: bool = False,
) -> str:
    """Regex search, one independent context block per matching line."""
    start_ms = time.time() * 1000
    path = _require_file(file_path)
    _require_radius(context)
    regex = compile_pattern(pattern, ignore_case=case_insensitive)
    snapshot = FileSnapshot.read(path)
    matches = find_matches(snapshot, regex, context)

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "search", f"{path} pattern={pattern}",
         metrics=f"latency_ms={latency_ms} status=success matches={len(matches)}")
    if not matches:
        return f"No matches for '{pattern}' in {file_path}"
    return "\n".join([f"{path}: {len(matches)} match(es) for '{pattern}'", ""] + _render_matches(snapshot, matches))


def _show_context_impl(file_path: str, line_number: int, context: int = CONFIG["show_context"]) -> str:
    start_ms = time.time() * 1000
    path = _require_file(file_path)
    snapshot = FileSnapshot.read(path)
    target = parse_range(str(line_number), snapshot.line_count).start
    start, end = context_window(target, context, snapshot.line_count)

    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "show_context", f"{path}:{target}", metrics=f"latency_ms={latency_ms} status=success")
    return "\n".join([f"{path}:{target} (lines {start}-{end} of {snapshot.line_count})", ""]
                     + render_window(snapshot, target, start, end))


def _diff_preview_impl(file_path: str, command: str, tool: str = "perl") -> str:
    """Preview an edit expression (perl/sed) or awk program as a unified diff."""
    start_ms = time.time() * 1000
    if tool not in PREVIEW_TOOLS:
        raise UnknownActionError(f"Unknown preview tool: {tool}. Use: {', '.join(PREVIEW_TOOLS)}")
    path = _require_file(file_path)

    if tool == "awk":
        def mutate(scratch: Path) -> None:
            _atomic_write(scratch, _run_awk(command, scratch))
    else:
        expr = parse_expression(command)

        def mutate(scratch: Path) -> None:
            _apply_expression_to(scratch, expr, backup=False)

    result = preview_mutation(path, mutate)
    latency_ms = round(time.time() * 1000 - start_ms, 2)
    _log("INFO", "diff_preview", f"{path} tool={tool}", metrics=f"latency_ms={latency_ms} status=success")
    return result


# =============================================================================
# CLI INTERFACE
# =============================================================================
def main():
    import argparse

    parser = argparse.ArgumentParser(
        description="Small, targeted file edits with previews and .bak backups"
    )
    parser.add_argument("-V", "--version", action="version", version="0.1.0")
    sub = parser.add_subparsers(dest="command", help="Commands")

    # --- mcp-stdio ---
    sub.add_parser("mcp-stdio", help="Run as MCP server")

    # --- Edit: pattern-substitute ---
    p_sub = sub.add_parser("pattern-substitute", help="Apply s/regex/repl/ or d expression to a file")
    p_sub.add_argument("file")
    p_sub.add_argument("pattern")
    p_sub.add_argument("-n", "--no-backup", action="store_false", dest="backup")
    p_sub.add_argument("-p", "--preview", action="store_true")
    p_sub.add_argument("-m", "--multiline", action="store_true", help="Substitute across the whole file text")

    # --- Edit: pattern-substitute-multi ---
    p_multi = sub.add_parser("pattern-substitute-multi", help="Apply expression to every matching file")
    p_multi.add_argument("pattern")
    p_multi.add_argument("file_pattern", help='File glob, e.g. "*.py" or "src/**/*.js"')
    p_multi.add_argument("-d", "--directory", default=".")
    p_multi.add_argument("-n", "--no-backup", action="store_false", dest="backup")

    # --- Edit: literal-replace ---
    p_lit = sub.add_parser("literal-replace", help="Plain find/replace (no regex)")
    p_lit.add_argument("file")
    p_lit.add_argument("find")
    p_lit.add_argument("replace")
    p_lit.add_argument("-f", "--first", action="store_false", dest="all", help="Only the first occurrence")
    p_lit.add_argument("-n", "--no-backup", action="store_false", dest="backup")
    p_lit.add_argument("-p", "--preview", action="store_true")

    # --- Edit: line-edit ---
    p_line = sub.add_parser("line-edit", help="Replace/delete/insert at line numbers")
    p_line.add_argument("file")
    p_line.add_argument("action", choices=LINE_ACTIONS)
    p_line.add_argument("-l", "--line", type=int, default=None, dest="line_number")
    p_line.add_argument("-r", "--range", default=None, dest="line_range", help='e.g. "10,20", "5,$", "$"')
    p_line.add_argument("-c", "--content", default=None, help='New content ("-" reads stdin)')
    p_line.add_argument("-n", "--no-backup", action="store_false", dest="backup")
    p_line.add_argument("-p", "--preview", action="store_true")

    # --- Edit: column-process ---
    p_awk = sub.add_parser("column-process", help="Run an awk program over a file")
    p_awk.add_argument("file")
    p_awk.add_argument("script")
    p_awk.add_argument("-o", "--output", default=None, dest="output_file")

    # --- Backups ---
    p_restore = sub.add_parser("restore", help="Restore file from its .bak backup")
    p_restore.add_argument("file")
    p_restore.add_argument("-d", "--delete-backup", action="store_false", dest="keep_backup")

    p_list = sub.add_parser("list-backups", help="List backup files")
    p_list.add_argument("directory", nargs="?", default=".")
    p_list.add_argument("-p", "--pattern", default="*.bak")

    # --- Recon ---
    p_read = sub.add_parser("read", help="Read file, a line range, or search within it")
    p_read.add_argument("file")
    p_read.add_argument("-l", "--lines", default=None)
    p_read.add_argument("-s", "--search", default=None)
    p_read.add_argument("-C", "--context", type=int, default=CONFIG["search_context"])

    p_search = sub.add_parser("search", help="Regex search with context")
    p_search.add_argument("file")
    p_search.add_argument("pattern")
    p_search.add_argument("-C", "--context", type=int, default=CONFIG["search_context"])
    p_search.add_argument("-i", "--ignore-case", action="store_true")

    p_ctx = sub.add_parser("show-context", help="Show lines around a line number")
    p_ctx.add_argument("file")
    p_ctx.add_argument("line_number", type=int)
    p_ctx.add_argument("-C", "--context", type=int, default=CONFIG["show_context"])

    p_diff = sub.add_parser("diff-preview", help="Preview an edit as a unified diff")
    p_diff.add_argument("file")
    p_diff.add_argument("edit_command", metavar="command")
    p_diff.add_argument("-t", "--tool", choices=PREVIEW_TOOLS, default="perl")

    args = parser.parse_args()

    try:
        if args.command == "mcp-stdio":
            _run_mcp()
        elif args.command == "pattern-substitute":
            print(_pattern_substitute_impl(
                args.file, args.pattern, backup=args.backup, preview=args.preview, multiline=args.multiline
            ))
        elif args.command == "pattern-substitute-multi":
            print(_pattern_substitute_multi_impl(args.pattern, args.file_pattern, args.directory, args.backup))
        elif args.command == "literal-replace":
            print(_literal_replace_impl(
                args.file, args.find, args.replace, replace_all=args.all, backup=args.backup, preview=args.preview
            ))
        elif args.command == "line-edit":
            content = args.content
            if content == "-":
                content = sys.stdin.read()
            elif content is None and args.action != "delete" and not sys.stdin.isatty():
                content = sys.stdin.read()
            print(_line_edit_impl(
                args.file,
                args.action,
                line_number=args.line_number,
                line_range=args.line_range,
                content=content,
                backup=args.backup,
                preview=args.preview,
            ))
        elif args.command == "column-process":
            print(_column_process_impl(args.file, args.script, args.output_file))
        elif args.command == "restore":
            print(_restore_impl(args.file, keep_backup=args.keep_backup))
        elif args.command == "list-backups":
            print(_list_backups_impl(args.directory, args.pattern))
        elif args.command == "read":
            print(_read_impl(args.file, lines=args.lines, search=args.search, context=args.context))
        elif args.command == "search":
            print(_search_impl(args.file, args.pattern, context=args.context, case_insensitive=args.ignore_case))
        elif args.command == "show-context":
            print(_show_context_impl(args.file, args.line_number, context=args.context))
        elif args.command == "diff-preview":
            print(_diff_preview_impl(args.file, args.edit_command, tool=args.tool))
        else:
            parser.print_help()
    except Exception as e:
        _log("ERROR", args.command or "unknown", str(e), detail=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


# =============================================================================
# FASTMCP SERVER
# =============================================================================
def _guarded(event: str, fn: Callable[..., str], *args: Any, **kwargs: Any) -> str:
    """Run an impl for an MCP tool; any failure reaches the client as one ToolError message."""
    from fastmcp.exceptions import ToolError

    try:
        return fn(*args, **kwargs)
    except Exception as e:
        _log("ERROR", event, str(e), detail=type(e).__name__)
        raise ToolError(str(e)) from e


def _build_mcp():
    from fastmcp import FastMCP

    mcp = FastMCP("smalledit")

    # --- Edit: destructive, .bak backup first ---

    @mcp.tool()
    def pattern_substitute(
        file: str, pattern: str, backup: bool = True, preview: bool = False, multiline: bool = False
    ) -> str:
        """Edit a file with an edit expression.

        Expressions: "s/old/new/g" (substitute, g = all per line), "/regex/d" or
        "10,20d" (delete lines), "5,$s/a/b/" (address-limited). Replacement may use
        $1 / ${1} / $& / \\1.

        Args:
            file: File to edit
            pattern: Edit expression
            backup: Save <file>.bak before writing (default: true)
            preview: Show a unified diff instead of writing (default: false)
            multiline: Substitute across the whole file text instead of per line
        """
        return _guarded(
            "pattern_substitute", _pattern_substitute_impl,
            file, pattern, backup=backup, preview=preview, multiline=multiline,
        )

    @mcp.tool()
    def pattern_substitute_multi(
        pattern: str, filePattern: str, directory: str = ".", backup: bool = True
    ) -> str:
        """Apply one edit expression to every file matching a glob.

        Args:
            pattern: Edit expression (e.g. "s/var /let /g")
            filePattern: File glob (e.g. "*.ts" or "src/**/*.js")
            directory: Starting directory (default: current directory)
            backup: Save <file>.bak for each edited file (default: true)
        """
        return _guarded(
            "pattern_substitute_multi", _pattern_substitute_multi_impl,
            pattern, filePattern, directory, backup,
        )

    @mcp.tool()
    def literal_replace(
        file: str, find: str, replace: str, all: bool = True, backup: bool = True, preview: bool = False
    ) -> str:
        """Plain text find and replace. No regex: special characters match literally.

        Args:
            file: File to edit
            find: Text to find
            replace: Replacement text
            all: Replace every occurrence (false = first only)
            backup: Save <file>.bak before writing (default: true)
            preview: Show a unified diff instead of writing
        """
        return _guarded(
            "literal_replace", _literal_replace_impl,
            file, find, replace, replace_all=all, backup=backup, preview=preview,
        )

    @mcp.tool()
    def line_edit(
        file: str,
        action: str,
        lineNumber: int | None = None,
        lineRange: str | None = None,
        content: str | None = None,
        backup: bool = True,
        preview: bool = False,
    ) -> str:
        """Edit specific lines by number or range.

        Ranges: "10,20", "5,$" (to end), "$" (last line). Out-of-range addresses fail.

        Args:
            file: File to edit
            action: replace, delete, insert_after or insert_before
            lineNumber: Line number (1-based)
            lineRange: Line range (takes precedence over lineNumber)
            content: New content for replace/insert (may span lines)
            backup: Save <file>.bak before writing (default: true)
            preview: Show a unified diff instead of writing
        """
        return _guarded(
            "line_edit", _line_edit_impl,
            file, action, line_number=lineNumber, line_range=lineRange,
            content=content, backup=backup, preview=preview,
        )

    @mcp.tool()
    def column_process(file: str, script: str, outputFile: str | None = None) -> str:
        """Run an AWK program over a file (columns, sums, filters).

        Args:
            file: Input file
            script: AWK program, e.g. "{sum += $2} END {print sum}"
            outputFile: Write output here instead of returning it
        """
        return _guarded("column_process", _column_process_impl, file, script, outputFile)

    # --- Backups ---

    @mcp.tool()
    def restore(file: str, keepBackup: bool = True) -> str:
        """Restore a file from <file>.bak. Current content is saved to <file>.before-restore.

        Args:
            file: File to restore
            keepBackup: Keep the .bak after restoring (default: true)
        """
        return _guarded("restore", _restore_impl, file, keep_backup=keepBackup)

    @mcp.tool()
    def list_backups(directory: str = ".", pattern: str = "*.bak") -> str:
        """List backup files with size, modification time and original file name.

        Args:
            directory: Directory to search recursively (default: current directory)
            pattern: Backup glob (default: "*.bak")
        """
        return _guarded("list_backups", _list_backups_impl, directory, pattern)

    # --- Recon: non-destructive ---

    @mcp.tool()
    def read(file: str, lines: str | None = None, search: str | None = None, context: int = 3) -> str:
        """Read a file with line numbers, a line range of it, or search it.

        Args:
            file: File to read
            lines: Line range, e.g. "10,20" or "5,$"
            search: Regex; show matching lines with context instead
            context: Context lines around each search match (default: 3)
        """
        return _guarded("read", _read_impl, file, lines=lines, search=search, context=context)

    @mcp.tool()
    def search(file: str, pattern: str, context: int = 3, caseInsensitive: bool = False) -> str:
        """Regex search within a file; every match gets its own context block.

        Args:
            file: File to search
            pattern: Regex pattern (matched per line)
            context: Lines of context around each match (default: 3)
            caseInsensitive: Ignore case
        """
        return _guarded(
            "search", _search_impl, file, pattern, context=context, case_insensitive=caseInsensitive
        )

    @mcp.tool()
    def show_context(file: str, lineNumber: int, context: int = 5) -> str:
        """Show the lines around one line number, target line marked with >>>.

        Args:
            file: File to show
            lineNumber: Target line (1-based)
            context: Lines before and after (default: 5)
        """
        return _guarded("show_context", _show_context_impl, file, lineNumber, context=context)

    @mcp.tool()
    def diff_preview(file: str, command: str, tool: str = "perl") -> str:
        """Preview what an edit would change, as a unified diff. The file is not modified.

        Args:
            file: File to preview changes for
            command: Edit expression (perl/sed) or AWK program (awk)
            tool: perl, sed or awk (default: perl)
        """
        return _guarded("diff_preview", _diff_preview_impl, file, command, tool=tool)

    return mcp


def _run_mcp():
    mcp = _build_mcp()
    print("smalledit MCP server starting...", file=sys.stderr)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
