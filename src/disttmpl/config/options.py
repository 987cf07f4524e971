"""Plugin and template engine options.

Options arrive either as keyword arguments or as a flat section mapping read
from a config file. Plugin options are a fixed set of lower-case names; every
other key must be one of the declared ALL-CAPS engine options.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError

DEFAULT_OUTPUT_REGEX = r"/\.tt$//"

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

_BACKREF = re.compile(r"\$(?:\{(\d+)\}|(\d+)|&)")


class RenameRule(BaseModel):
    """Search/replace rule applied to a template name to get the output name."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    replacement: str = ""
    count: int = 1  # 0 replaces every match
    flags: int = 0

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ConfigurationError(f"Invalid output_regex pattern {value!r}: {e}")
        return value

    def apply(self, name: str) -> str:
        try:
            return re.sub(
                self.pattern, self.replacement, name, count=self.count, flags=self.flags
            )
        except (re.error, IndexError) as e:
            raise ConfigurationError(
                f"Invalid output_regex replacement {self.replacement!r}: {e}"
            )


def _split_substitution(body: str, delimiter: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            # an escaped delimiter is just the literal character
            current.append(nxt if nxt == delimiter else ch + nxt)
            i += 2
            continue
        if ch == delimiter:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    parts.append("".join(current))
    return parts


def _convert_replacement(replacement: str) -> str:
    def sub(match: re.Match[str]) -> str:
        group = match.group(1) or match.group(2) or "0"
        return f"\\g<{group}>"

    return _BACKREF.sub(sub, replacement)


_BRACKETS = {"{": "}", "(": ")", "[": "]", "<": ">"}


def _check_delimiter(text: str, delimiter: str) -> None:
    if delimiter.isalnum() or delimiter.isspace() or delimiter == "\\":
        raise ConfigurationError(
            f"Malformed output_regex {text!r}: invalid delimiter {delimiter!r}"
        )


def _read_bracketed(body: str, start: int, opener: str) -> Tuple[str, int]:
    """Read up to the bracket closing ``opener``; nested pairs are kept."""
    closer = _BRACKETS[opener]
    depth = 1
    current: List[str] = []
    i = start
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            current.append(body[i : i + 2])
            i += 2
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return "".join(current), i + 1
        current.append(ch)
        i += 1
    raise ConfigurationError(
        f"Malformed output_regex {body!r}: unbalanced {opener}{closer}"
    )


def _split_bracketed(text: str) -> List[str]:
    pattern, end = _read_bracketed(text, 1, text[0])
    rest = text[end:].lstrip()
    if not rest:
        raise ConfigurationError(
            f"Malformed output_regex {text!r}: missing replacement"
        )
    opener = rest[0]
    _check_delimiter(text, opener)
    if opener in _BRACKETS:
        replacement, end = _read_bracketed(rest, 1, opener)
        for bracket in (opener, _BRACKETS[opener]):
            replacement = replacement.replace("\\" + bracket, bracket)
        return [pattern, replacement, rest[end:]]
    return [pattern, *_split_substitution(rest[1:], opener)]


def parse_output_regex(text: str) -> RenameRule:
    """Parse a substitution string like ``/\\.tt$//`` into a RenameRule.

    The first character is the delimiter. The string must hold exactly a
    pattern, a replacement and (possibly empty) flags. Bracketing delimiters
    enclose each part instead, as in ``{\\.tt$}{}`` or ``{\\.tt$}//``.
    ``$1`` and ``${1}`` in the replacement refer to capture groups.
    """
    text = text.strip()
    if len(text) < 3:
        raise ConfigurationError(f"Malformed output_regex: {text!r}")
    delimiter = text[0]
    _check_delimiter(text, delimiter)

    if delimiter in _BRACKETS:
        parts = _split_bracketed(text)
    else:
        parts = _split_substitution(text[1:], delimiter)
    if len(parts) != 3:
        raise ConfigurationError(
            f"Malformed output_regex {text!r}: expected {delimiter}pattern"
            f"{delimiter}replacement{delimiter}flags"
        )
    pattern, replacement, flag_chars = parts

    count = 1
    flags = 0
    for flag in flag_chars:
        if flag == "g":
            count = 0
        elif flag in _REGEX_FLAGS:
            flags |= _REGEX_FLAGS[flag]
        else:
            raise ConfigurationError(
                f"Malformed output_regex {text!r}: unsupported flag {flag!r}"
            )

    return RenameRule(
        pattern=pattern,
        replacement=_convert_replacement(replacement),
        count=count,
        flags=flags,
    )


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        return [value]
    return value


class EngineOptions(BaseModel):
    """Options handed to the template engine when it is constructed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    START_TAG: str = "[%"
    END_TAG: str = "%]"
    BLOCK_START_TAG: str = "{%"
    BLOCK_END_TAG: str = "%}"
    COMMENT_START_TAG: str = "{#"
    COMMENT_END_TAG: str = "#}"
    TRIM: bool = False
    PRE_CHOMP: bool = False
    POST_CHOMP: bool = False
    STRICT: bool = False
    INCLUDE_PATH: List[str] = Field(default_factory=list)
    PRE_PROCESS: List[str] = Field(default_factory=list)
    POST_PROCESS: List[str] = Field(default_factory=list)

    @field_validator("INCLUDE_PATH", "PRE_PROCESS", "POST_PROCESS", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: Any) -> Any:
        return _as_list(value)


ENGINE_OPTION_NAMES = frozenset(EngineOptions.model_fields)
PLUGIN_OPTION_NAMES = frozenset(
    {"finder", "output_regex", "var", "replace", "prune", "trim"}
)


class PluginConfig(BaseModel):
    """Configuration of a TemplateProcessor, fixed at construction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # name of a finder registered with the file collection
    finder: Optional[str] = None
    output_regex: RenameRule = Field(
        default_factory=lambda: parse_output_regex(DEFAULT_OUTPUT_REGEX)
    )
    # name=value strings, applied in order
    var: List[str] = Field(default_factory=list)
    replace: bool = False
    prune: bool = False
    # alias for engine.TRIM
    trim: Optional[bool] = None
    engine: EngineOptions = Field(default_factory=EngineOptions)

    @field_validator("finder")
    @classmethod
    def _check_finder(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ConfigurationError("finder must be a non-empty name")
        return value

    @field_validator("output_regex", mode="before")
    @classmethod
    def _parse_output_regex(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_output_regex(value)
        return value

    @field_validator("var", mode="before")
    @classmethod
    def _wrap_var(cls, value: Any) -> Any:
        return _as_list(value)

    def effective_engine_options(self) -> EngineOptions:
        """Engine options with the ``trim`` alias applied.

        The alias only counts when ``TRIM`` was not given explicitly.
        """
        if self.trim is None or "TRIM" in self.engine.model_fields_set:
            return self.engine
        return self.engine.model_copy(update={"TRIM": self.trim})

    @classmethod
    def from_section(cls, section: Mapping[str, Any]) -> "PluginConfig":
        """Build a config from a flat option mapping, as found in a config file."""
        plugin_opts: Dict[str, Any] = {}
        engine_opts: Dict[str, Any] = {}
        for key, value in section.items():
            if key in PLUGIN_OPTION_NAMES:
                plugin_opts[key] = value
            elif key in ENGINE_OPTION_NAMES:
                engine_opts[key] = value
            else:
                raise ConfigurationError(f"Unknown template option: {key}")
        try:
            return cls(engine=EngineOptions(**engine_opts), **plugin_opts)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid template options: {e}") from e
