"""Per-file resolution of Go identifiers to qualified references."""

from .errors import ResolutionConflict
from .naming import GO_PREDECLARED, base_package_name, clean_package_name
from .types import GoIdent


class ImportResolver:
    """Hand out collision-free package aliases for one generated file.

    The first import path seen under a given base name keeps it; later
    ones get a numeric suffix (v1, v11, v12, ...). The same import path
    always resolves to the same alias.
    """

    def __init__(self, go_import_path: str, go_package_name: str):
        self.go_import_path = go_import_path
        self.go_package_name = go_package_name
        self._aliases: dict[str, str] = {}
        self._used: set[str] = set(GO_PREDECLARED)
        self._used.add(go_package_name)
        self._reserved: set[str] = set()

    def reserve(self, name: str) -> None:
        """Mark a declaration of the generated package as taken."""
        if name in self._aliases.values():
            raise ResolutionConflict(f"declaration {name} collides with an import alias")
        self._reserved.add(name)
        self._used.add(name)

    def package_alias(self, go_import_path: str, preferred: str | None = None) -> str:
        """Return the alias used to refer to ``go_import_path`` in this file."""
        if not go_import_path:
            raise ResolutionConflict("cannot import a package with an empty import path")
        if go_import_path == self.go_import_path:
            raise ResolutionConflict(f"{go_import_path} cannot import itself")
        if go_import_path in self._aliases:
            return self._aliases[go_import_path]

        name = clean_package_name(preferred) if preferred else base_package_name(go_import_path)
        alias = name
        suffix = 1
        while alias in self._used:
            alias = f"{name}{suffix}"
            suffix += 1

        self._aliases[go_import_path] = alias
        self._used.add(alias)
        return alias

    def qualified(self, ident: GoIdent) -> str:
        """Return the textual reference to ``ident`` from this file."""
        if not ident.go_name:
            raise ResolutionConflict(f"cannot reference an unnamed symbol from {ident.go_import_path}")
        if ident.go_import_path == self.go_import_path:
            return ident.go_name
        return f"{self.package_alias(ident.go_import_path)}.{ident.go_name}"

    @property
    def imports(self) -> list[tuple[str, str]]:
        """Bound (alias, import path) pairs sorted by import path."""
        return sorted(((alias, path) for path, alias in self._aliases.items()), key=lambda i: i[1])
