"""Go naming rules shared by the loaders and the emitters."""

import posixpath

GO_KEYWORDS = frozenset(
    [
        "break",
        "case",
        "chan",
        "const",
        "continue",
        "default",
        "defer",
        "else",
        "fallthrough",
        "for",
        "func",
        "go",
        "goto",
        "if",
        "import",
        "interface",
        "map",
        "package",
        "range",
        "return",
        "select",
        "struct",
        "switch",
        "type",
        "var",
    ]
)

# Identifiers of Go's universe block; an import alias must not shadow them.
GO_PREDECLARED = frozenset(
    [
        "any",
        "append",
        "bool",
        "byte",
        "cap",
        "clear",
        "close",
        "comparable",
        "complex",
        "complex128",
        "complex64",
        "copy",
        "delete",
        "error",
        "false",
        "float32",
        "float64",
        "imag",
        "int",
        "int16",
        "int32",
        "int64",
        "int8",
        "iota",
        "len",
        "make",
        "max",
        "min",
        "new",
        "nil",
        "panic",
        "print",
        "println",
        "real",
        "recover",
        "rune",
        "string",
        "true",
        "uint",
        "uint16",
        "uint32",
        "uint64",
        "uint8",
        "uintptr",
    ]
)


def go_camel_case(name: str) -> str:
    """Convert a protobuf name to a Go identifier the way protoc-gen-go does.

    foo_bar -> FooBar, foo.bar -> FooBar, _foo -> XFoo, foo_1 -> Foo_1.
    """
    out: list[str] = []
    i = 0
    while i < len(name):
        c = name[i]
        nxt = name[i + 1] if i + 1 < len(name) else ""
        if c == "." and nxt.isascii() and nxt.islower():
            pass
        elif c == ".":
            out.append("_")
        elif c == "_" and (i == 0 or name[i - 1] == "."):
            out.append("X")
        elif c == "_" and nxt.isascii() and nxt.islower():
            pass
        elif c.isascii() and c.isdigit():
            out.append(c)
        else:
            out.append(c.upper() if c.isascii() and c.islower() else c)
            while i + 1 < len(name) and name[i + 1].isascii() and name[i + 1].islower():
                i += 1
                out.append(name[i])
        i += 1
    return "".join(out)


def unexport(go_name: str) -> str:
    """Lower the first letter of a Go name."""
    if not go_name:
        return go_name
    return go_name[0].lower() + go_name[1:]


def go_sanitized(name: str) -> str:
    """Turn an arbitrary string into a valid Go identifier."""
    sanitized = "".join(c if c.isalnum() else "_" for c in name)
    if not sanitized or sanitized in GO_KEYWORDS or not sanitized[0].isalpha():
        return "_" + sanitized
    return sanitized


def clean_package_name(name: str) -> str:
    """Derive a Go package name from an arbitrary string."""
    return go_sanitized(name)


def base_package_name(go_import_path: str) -> str:
    """Derive the default package name of an import path."""
    return clean_package_name(posixpath.basename(go_import_path))


def parse_go_package(option: str) -> tuple[str, str]:
    """Split a go_package option into (import path, package name).

    Accepts "path;name" and plain "path".
    """
    path, sep, name = option.partition(";")
    path = path.strip()
    if sep and name.strip():
        return path, clean_package_name(name.strip())
    return path, base_package_name(path)
