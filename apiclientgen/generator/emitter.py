"""Line-oriented builder for generated Go files."""

import re
from dataclasses import dataclass
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin
from jinja2 import Environment, PackageLoader

from .config import PLUGIN_NAME
from .imports import ImportResolver
from .types import GoIdent

env = Environment(
    loader=PackageLoader("apiclientgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

header_template = env.get_template("header.go.j2")

INDENT = "\t"

_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"|`[^`]*`')
_OPENERS = "({["
_CLOSERS = ")}]"


class ArtifactKind(StrEnum):
    UNIT = "unit"
    FILE = "file"


@dataclass(frozen=True)
class Artifact(DataClassJsonMixin):
    """A finished generated file."""

    name: str
    kind: ArtifactKind
    content: str


def format_comments(comments: str | None) -> list[str]:
    """Render leading comments as ``//`` lines, keeping the text verbatim."""
    if not comments:
        return []
    return ["//" + line for line in comments.removesuffix("\n").split("\n")]


def indent_lines(lines: list[str], indent: str = INDENT) -> list[str]:
    """Indent Go source lines by bracket depth.

    A line starting with closing brackets is printed at the depth those
    brackets return to. Brackets inside string literals and comments
    are ignored.
    """
    out: list[str] = []
    depth = 0
    for line in lines:
        stripped = line.strip()
        if not stripped:
            out.append("")
            continue
        if stripped.startswith("//"):
            out.append(indent * depth + stripped)
            continue

        code = _STRING_LITERAL.sub('""', stripped)
        code = code.split("//", 1)[0]
        leading = len(code) - len(code.lstrip(_CLOSERS))
        out.append(indent * max(depth - leading, 0) + stripped)

        opens = sum(code.count(c) for c in _OPENERS)
        closes = sum(code.count(c) for c in _CLOSERS)
        depth = max(depth + opens - closes, 0)
    return out


class GeneratedFile:
    """Accumulates the body of one generated Go file.

    Type references go through ``qualified`` so that the import block
    only lists what the body uses.
    """

    def __init__(
        self,
        name: str,
        kind: ArtifactKind,
        go_import_path: str,
        go_package_name: str,
        *,
        source: str | None = None,
        plugin_name: str = PLUGIN_NAME,
    ):
        self.name = name
        self.kind = kind
        self.source = source
        self.plugin_name = plugin_name
        self.resolver = ImportResolver(go_import_path, go_package_name)
        self._lines: list[str] = []

    def p(self, *parts: object) -> None:
        """Append one line built from ``parts``; embedded newlines split lines."""
        self._lines.extend("".join(str(part) for part in parts).split("\n"))

    def qualified(self, ident: GoIdent) -> str:
        return self.resolver.qualified(ident)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def content(self) -> str:
        header = header_template.render(
            plugin_name=self.plugin_name,
            source=self.source,
            package_name=self.resolver.go_package_name,
            imports=self.resolver.imports,
            indent=INDENT,
        )
        body = indent_lines(self._lines)
        while body and not body[-1]:
            body.pop()
        return header + "\n" + "\n".join(body) + "\n"

    def artifact(self) -> Artifact:
        return Artifact(name=self.name, kind=self.kind, content=self.content())
