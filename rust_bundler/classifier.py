"""Line classification.

Each source line is matched against an ordered list of patterns; the first
pattern that applies decides the line's kind. This is a heuristic, not a
parser: a ``//`` or ``#![warn(...)]`` line inside a multi-line string
literal is still treated as a comment or lint attribute and dropped.
"""

from dataclasses import dataclass
import enum
import re


class LineKind(enum.Enum):
    """Classification of a single source line."""

    COMMENT = "comment"
    LINT_ATTRIBUTE = "lint_attribute"
    CRATE_IMPORT = "crate_import"
    PLAIN_USE_OF_CRATE = "plain_use_of_crate"
    MODULE_DECLARATION = "module_declaration"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    """A source line together with its kind.

    :ivar kind: The line's classification.
    :ivar line: The original line, trailing whitespace stripped.
    :ivar value: Module name (MODULE_DECLARATION) or import path
        (PLAIN_USE_OF_CRATE); ``None`` for every other kind.
    """

    kind: LineKind
    line: str
    value: str | None = None


_COMMENT_RE: re.Pattern[str] = re.compile(r"^\s*//")
_LINT_ATTRIBUTE_RE: re.Pattern[str] = re.compile(r"^\s*#!\[(?:warn|allow|deny|forbid)\(")
_MODULE_DECLARATION_RE: re.Pattern[str] = re.compile(r"^\s*pub\s+mod\s+(?P<name>[^\s;{]+)\s*;$")


class LineClassifier:
    """Classify lines of a crate's sources against a configured crate name.

    :param crate_name: Name the entry file uses to refer to the library crate
        (``extern crate <name>;`` / ``use <name>::...;``).
    """

    def __init__(self, crate_name: str) -> None:
        if crate_name == "":
            raise ValueError("crate_name must not be empty")

        self.crate_name: str = crate_name
        escaped: str = re.escape(crate_name)
        self._crate_import_re: re.Pattern[str] = re.compile(rf"^\s*extern\s+crate\s+{escaped}\s*;$")
        self._use_of_crate_re: re.Pattern[str] = re.compile(
            rf"^\s*use\s+{escaped}::(?P<path>.+?)\s*;$"
        )

    def classify(self, line: str) -> ClassifiedLine:
        """Classify one line of source text.

        :param line: Raw line; trailing whitespace (including the newline) is
            stripped before matching.
        :returns: The line's classification.
        """

        line = line.rstrip()

        if _COMMENT_RE.match(line) is not None:
            return ClassifiedLine(kind=LineKind.COMMENT, line=line)
        if _LINT_ATTRIBUTE_RE.match(line) is not None:
            return ClassifiedLine(kind=LineKind.LINT_ATTRIBUTE, line=line)
        if self._crate_import_re.match(line) is not None:
            return ClassifiedLine(kind=LineKind.CRATE_IMPORT, line=line)

        m = self._use_of_crate_re.match(line)
        if m is not None:
            return ClassifiedLine(kind=LineKind.PLAIN_USE_OF_CRATE, line=line, value=m.group("path"))

        m = _MODULE_DECLARATION_RE.match(line)
        if m is not None:
            return ClassifiedLine(kind=LineKind.MODULE_DECLARATION, line=line, value=m.group("name"))

        return ClassifiedLine(kind=LineKind.PASSTHROUGH, line=line)
