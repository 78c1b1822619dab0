"""Rotation policy file parser.

Parses logrotate-style configuration text into :class:`ConfigSection`
objects, each pairing the path patterns of one section with the frozen
:class:`~pylogrotate.policies.policy.PolicyRecord` that applies to them.

The grammar is line oriented::

    # global defaults seed every later section
    compress
    rotate 4

    /var/log/app/*.log "/var/log/with space.log" {
        daily
        missingok
        postrotate
            systemctl reload app
        endscript
    }

    /var/log/short.log { rotate 1 create }

    include /etc/logrotate.d

Example
-------
>>> parser = ConfigParser()
>>> config = parser.parse_string("/tmp/a.log { rotate 2 }")
>>> config.sections[0].policy.rotate
2
"""
from __future__ import annotations

import fnmatch
import logging
import shlex
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from pylogrotate.errors import ConfigError
from pylogrotate.policies.policy import Disposition, PolicyRecord, Schedule, parse_size

logger = logging.getLogger(__name__)

SCRIPT_DIRECTIVES: frozenset[str] = frozenset(
    {"prerotate", "postrotate", "preremove", "firstaction", "lastaction"}
)

# keyword -> (PolicyRecord field, value)
_FLAG_DIRECTIVES: dict[str, tuple[str, bool]] = {
    "compress": ("compress", True),
    "nocompress": ("compress", False),
    "create": ("create", True),
    "nocreate": ("create", False),
    "delaycompress": ("delaycompress", True),
    "nodelaycompress": ("delaycompress", False),
    "ifempty": ("ifempty", True),
    "notifempty": ("ifempty", False),
    "missingok": ("missingok", True),
    "nomissingok": ("missingok", False),
    "sharedscripts": ("sharedscripts", True),
    "nosharedscripts": ("sharedscripts", False),
    "dateext": ("dateext", True),
    "nodateext": ("dateext", False),
    "dateyesterday": ("dateyesterday", True),
    "nodateyesterday": ("dateyesterday", False),
    "datehourago": ("datehourago", True),
    "nodatehourago": ("datehourago", False),
    "shred": ("shred", True),
    "noshred": ("shred", False),
    "createolddir": ("createolddir", True),
    "nocreateolddir": ("createolddir", False),
    "smtpssl": ("smtpssl", True),
    "nosmtpssl": ("smtpssl", False),
    "maillast": ("maillast", True),
    "mailfirst": ("maillast", False),
    "ignoreduplicates": ("ignoreduplicates", True),
}

_DISPOSITION_DIRECTIVES: frozenset[str] = frozenset(
    {"copy", "copytruncate", "renamecopy", "nocopy", "nocopytruncate", "norenamecopy"}
)
_INT_DIRECTIVES: frozenset[str] = frozenset(
    {"rotate", "start", "maxage", "minage", "shredcycles", "smtpport"}
)
_SIZE_DIRECTIVES: frozenset[str] = frozenset({"size", "minsize", "maxsize"})
_STRING_DIRECTIVES: frozenset[str] = frozenset(
    {
        "dateformat",
        "extension",
        "addextension",
        "compressext",
        "compresscmd",
        "olddir",
        "mail",
        "smtpserver",
        "smtpuser",
        "smtpuserpwd",
        "smtpfrom",
    }
)
_CLEAR_DIRECTIVES: dict[str, str] = {"noolddir": "olddir", "nomail": "mail"}
_OTHER_DIRECTIVES: frozenset[str] = frozenset(
    {
        "hourly",
        "daily",
        "weekly",
        "monthly",
        "yearly",
        "minutes",
        "compressoptions",
        "tabooext",
        "taboopat",
        "include",
    }
)

KNOWN_DIRECTIVES: frozenset[str] = (
    frozenset(_FLAG_DIRECTIVES)
    | _DISPOSITION_DIRECTIVES
    | _INT_DIRECTIVES
    | _SIZE_DIRECTIVES
    | _STRING_DIRECTIVES
    | frozenset(_CLEAR_DIRECTIVES)
    | _OTHER_DIRECTIVES
    | SCRIPT_DIRECTIVES
)


@dataclass(frozen=True)
class ConfigSection:
    """One ``patterns { ... }`` block and the policy that governs it."""

    patterns: tuple[str, ...]
    policy: PolicyRecord
    source: str
    line_number: int


@dataclass
class ParsedConfig:
    """Everything read from one or more policy files."""

    sections: list[ConfigSection]
    defaults: PolicyRecord
    tabooext: list[str]
    taboopat: list[str]
    sources: list[str]


@dataclass
class _ParseState:
    global_values: dict[str, object] = field(default_factory=dict)
    section_values: dict[str, object] | None = None
    section_patterns: tuple[str, ...] = ()
    section_line: int = 0
    script_name: str | None = None
    script_lines: list[str] = field(default_factory=list)
    script_line: int = 0
    tabooext: list[str] = field(default_factory=list)
    taboopat: list[str] = field(default_factory=list)
    sections: list[ConfigSection] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)

    @property
    def values(self) -> dict[str, object]:
        if self.section_values is not None:
            return self.section_values
        return self.global_values


class ConfigParser:
    """Parses rotation policy files into :class:`ParsedConfig` objects.

    Directives are applied left to right; for every on/off pair the last
    directive seen wins.  A section starts as a copy of the global
    directives accumulated so far and is frozen when its ``}`` is read.
    """

    DEFAULT_TABOOEXT: tuple[str, ...] = (".swp",)

    def parse(self, config_path: str | Path) -> ParsedConfig:
        """Parse a single policy file or a directory of policy files.

        Parameters
        ----------
        config_path:
            File to parse, or a directory whose files are parsed as if
            named by an ``include`` directive.

        Returns
        -------
        ParsedConfig
            Sections in the order they were read.

        Raises
        ------
        ConfigError
            If the path does not exist or any file in it is malformed.
        """
        return self.parse_all([config_path])

    def parse_all(self, config_paths: Iterable[str | Path]) -> ParsedConfig:
        """Parse several policy paths in order, sharing global directives."""
        state = _ParseState(tabooext=list(self.DEFAULT_TABOOEXT))
        for config_path in config_paths:
            path = Path(config_path)
            if not path.exists():
                raise ConfigError("configuration path does not exist", str(path))
            self._include(state, path, str(path), 0)
        return self._finish(state)

    def parse_string(self, text: str, source: str = "<string>") -> ParsedConfig:
        """Parse policy text directly (useful for testing).

        Parameters
        ----------
        text:
            Raw configuration text.
        source:
            Name used in error messages.
        """
        state = _ParseState(tabooext=list(self.DEFAULT_TABOOEXT))
        state.sources.append(source)
        self._parse_text(state, text, source)
        return self._finish(state)

    # ------------------------------------------------------------------
    # Files and includes
    # ------------------------------------------------------------------

    def _include(self, state: _ParseState, path: Path, source: str, line_number: int) -> None:
        if path.is_dir():
            for child in sorted(path.iterdir(), key=lambda p: p.name, reverse=True):
                if not child.is_file():
                    continue
                if self._is_taboo(state, child.name):
                    logger.debug("Skipping taboo file %s", child)
                    continue
                self._parse_file(state, child)
        elif path.is_file():
            self._parse_file(state, path)
        else:
            raise ConfigError(f"include target not found: {path}", source, line_number)

    def _parse_file(self, state: _ParseState, path: Path) -> None:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot read configuration: {exc}", str(path)) from exc
        logger.debug("Parsing configuration file %s", path)
        state.sources.append(str(path))
        self._parse_text(state, text, str(path))

    @staticmethod
    def _is_taboo(state: _ParseState, name: str) -> bool:
        if any(name.endswith(ext) for ext in state.tabooext):
            return True
        return any(fnmatch.fnmatch(name, pattern) for pattern in state.taboopat)

    # ------------------------------------------------------------------
    # Lines and tokens
    # ------------------------------------------------------------------

    def _parse_text(self, state: _ParseState, text: str, source: str) -> None:
        for line_number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if state.script_name is not None:
                self._collect_script_line(state, line)
                continue
            if not line or line.startswith("#"):
                continue
            tokens = self._tokenize(line, source, line_number)
            if tokens:
                self._consume(state, tokens, source, line_number)

        if state.script_name is not None:
            raise ConfigError(
                f"'{state.script_name}' block has no matching endscript",
                source,
                state.script_line,
            )
        if state.section_values is not None:
            raise ConfigError("section is missing its closing '}'", source, state.section_line)

    @staticmethod
    def _tokenize(line: str, source: str, line_number: int) -> list[str]:
        lexer = shlex.shlex(line.replace("{", " { ").replace("}", " } "), posix=True)
        lexer.whitespace_split = True
        lexer.escape = ""
        lexer.commenters = "#"
        try:
            return list(lexer)
        except ValueError as exc:
            raise ConfigError(f"cannot tokenize line: {exc}", source, line_number) from exc

    def _consume(self, state: _ParseState, tokens: list[str], source: str, line_number: int) -> None:
        if "{" not in tokens and "}" not in tokens:
            self._apply(state, tokens[0], tokens[1:], source, line_number)
            return

        pending = tokens
        if "{" in pending:
            brace = pending.index("{")
            self._open_section(state, tuple(pending[:brace]), source, line_number)
            pending = pending[brace + 1 :]
            if "{" in pending:
                raise ConfigError("nested sections are not allowed", source, line_number)

        for directive in self._split_directives(pending):
            if state.script_name is not None:
                raise ConfigError(
                    f"'{state.script_name}' must be the last directive on its line",
                    source,
                    line_number,
                )
            if directive == ["}"]:
                self._close_section(state, source, line_number)
            else:
                self._apply(state, directive[0], directive[1:], source, line_number)

    @staticmethod
    def _split_directives(tokens: list[str]) -> list[list[str]]:
        """Group inline tokens into directives, starting a new one at each keyword."""
        groups: list[list[str]] = []
        for token in tokens:
            if token == "}" or not groups or groups[-1] == ["}"] or token in KNOWN_DIRECTIVES:
                groups.append([token])
            else:
                groups[-1].append(token)
        return groups

    @staticmethod
    def _collect_script_line(state: _ParseState, line: str) -> None:
        if line == "endscript":
            state.values[state.script_name] = tuple(state.script_lines)  # type: ignore[index]
            state.script_name = None
            state.script_lines = []
        elif line:
            state.script_lines.append(line)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _open_section(
        self,
        state: _ParseState,
        patterns: tuple[str, ...],
        source: str,
        line_number: int,
    ) -> None:
        if state.section_values is not None:
            raise ConfigError("nested sections are not allowed", source, line_number)
        if not patterns:
            raise ConfigError("section has no log file patterns", source, line_number)
        state.section_values = dict(state.global_values)
        state.section_patterns = patterns
        state.section_line = line_number

    def _close_section(self, state: _ParseState, source: str, line_number: int) -> None:
        if state.section_values is None:
            raise ConfigError("unexpected '}' outside a section", source, line_number)
        policy = self._build_policy(state.section_values, source, state.section_line)
        state.sections.append(
            ConfigSection(
                patterns=state.section_patterns,
                policy=policy,
                source=source,
                line_number=state.section_line,
            )
        )
        logger.debug(
            "Section %s at %s:%d closed", " ".join(state.section_patterns), source, line_number
        )
        state.section_values = None
        state.section_patterns = ()

    @staticmethod
    def _build_policy(values: dict[str, object], source: str, line_number: int) -> PolicyRecord:
        try:
            return PolicyRecord.model_validate(values)
        except ValidationError as exc:
            error = exc.errors()[0]
            location = ".".join(str(part) for part in error["loc"]) or "policy"
            raise ConfigError(
                f"invalid value for '{location}': {error['msg']}", source, line_number
            ) from exc

    def _finish(self, state: _ParseState) -> ParsedConfig:
        defaults = self._build_policy(state.global_values, "<globals>", 0)
        return ParsedConfig(
            sections=list(state.sections),
            defaults=defaults,
            tabooext=list(state.tabooext),
            taboopat=list(state.taboopat),
            sources=list(state.sources),
        )

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    def _apply(
        self,
        state: _ParseState,
        keyword: str,
        args: list[str],
        source: str,
        line_number: int,
    ) -> None:
        values = state.values
        match keyword:
            case _ if keyword in _FLAG_DIRECTIVES:
                field_name, flag = _FLAG_DIRECTIVES[keyword]
                values[field_name] = flag
            case "copy" | "copytruncate" | "renamecopy":
                values["disposition"] = Disposition(keyword)
            case "nocopy" | "nocopytruncate" | "norenamecopy":
                if values.get("disposition") == Disposition(keyword[2:]):
                    values["disposition"] = Disposition.RENAME
            case "hourly" | "daily" | "yearly":
                values["schedule"] = Schedule(keyword)
            case "weekly":
                values["schedule"] = Schedule.WEEKLY
                values["weekday"] = self._int_arg(keyword, args, source, line_number) if args else None
            case "monthly":
                values["schedule"] = Schedule.MONTHLY
                values["monthday"] = self._int_arg(keyword, args, source, line_number) if args else None
            case "minutes":
                values["schedule"] = Schedule.MINUTES
                values["minutes"] = self._int_arg(keyword, args, source, line_number)
            case _ if keyword in _INT_DIRECTIVES:
                values[keyword] = self._int_arg(keyword, args, source, line_number)
            case _ if keyword in _SIZE_DIRECTIVES:
                value = self._single_arg(keyword, args, source, line_number)
                try:
                    values[keyword] = parse_size(value)
                except ValueError as exc:
                    raise ConfigError(str(exc), source, line_number) from exc
            case _ if keyword in _STRING_DIRECTIVES:
                values[keyword] = self._single_arg(keyword, args, source, line_number)
            case "compressoptions":
                values["compressoptions"] = tuple(args)
            case _ if keyword in _CLEAR_DIRECTIVES:
                values[_CLEAR_DIRECTIVES[keyword]] = None
            case "tabooext" | "taboopat":
                self._update_taboo(state, keyword, args)
            case "include":
                if state.section_values is not None:
                    raise ConfigError("include is not allowed inside a section", source, line_number)
                target = Path(self._single_arg(keyword, args, source, line_number))
                if not target.is_absolute() and Path(source).is_file():
                    relative = Path(source).parent / target
                    if relative.exists():
                        target = relative
                self._include(state, target, source, line_number)
            case _ if keyword in SCRIPT_DIRECTIVES:
                state.script_name = keyword
                state.script_lines = []
                state.script_line = line_number
            case _:
                raise ConfigError(f"unknown directive '{keyword}'", source, line_number)

    @staticmethod
    def _update_taboo(state: _ParseState, keyword: str, args: list[str]) -> None:
        items = [item.strip() for arg in args for item in arg.split(",") if item.strip()]
        append = bool(items) and items[0] == "+"
        if append:
            items = items[1:]
        target = state.tabooext if keyword == "tabooext" else state.taboopat
        if not append:
            target.clear()
        target.extend(items)

    @staticmethod
    def _single_arg(keyword: str, args: list[str], source: str, line_number: int) -> str:
        if not args:
            raise ConfigError(f"'{keyword}' requires a value", source, line_number)
        if len(args) > 1:
            logger.warning(
                "%s:%d: ignoring extra arguments to '%s': %s",
                source,
                line_number,
                keyword,
                " ".join(args[1:]),
            )
        return args[0]

    @classmethod
    def _int_arg(cls, keyword: str, args: list[str], source: str, line_number: int) -> int:
        value = cls._single_arg(keyword, args, source, line_number)
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigError(
                f"'{keyword}' expects an integer, got '{value}'", source, line_number
            ) from exc
