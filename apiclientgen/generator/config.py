"""Generator options and the named-package layout derived from them."""

import posixpath
from dataclasses import dataclass, field, fields, replace

from dataclasses_json import DataClassJsonMixin

from .errors import ConfigError, ResolutionConflict
from .types import GenerationUnit

PLUGIN_NAME = "apiclienttwirp"

# Named packages the generated code refers to besides its own.
API_PACKAGE = "api"
APICLIENT_PACKAGE = "apiclient"


@dataclass(frozen=True)
class GeneratorConfig(DataClassJsonMixin):
    """Options for a generation run.

    named_go_packages maps a named package suffix (api, apiclient,
    apiclienttwirp) to the import path base its packages live under.
    Paths of units are made relative to go_import_path_base before
    being joined onto those bases.
    """

    plugin_name: str = PLUGIN_NAME
    go_import_path_base: str | None = None
    named_go_packages: dict[str, str] = field(default_factory=dict)
    context_import_path: str = "context"
    httpclient_import_path: str = "github.com/bufbuild/buf/internal/pkg/transport/http/httpclient"
    twirpclient_import_path: str = (
        "github.com/bufbuild/buf/internal/pkg/transport/twirp/twirpclient"
    )
    zap_import_path: str = "go.uber.org/zap"

    @classmethod
    def from_parameter(
        cls, parameter: str, base: "GeneratorConfig | None" = None
    ) -> "GeneratorConfig":
        """Parse a protoc parameter string such as ``a=b,named_go_package=api=x/y``."""
        config = base or cls()
        changes: dict[str, object] = {}
        named = dict(config.named_go_packages)
        simple = {f.name for f in fields(cls)} - {"named_go_packages"}

        for chunk in parameter.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            key, sep, value = chunk.partition("=")
            key, value = key.strip(), value.strip()
            if not sep or not value:
                raise ConfigError(f"invalid parameter {chunk!r}, expected key=value")
            if key == "named_go_package":
                name, sep, path = value.partition("=")
                if not sep or not name.strip() or not path.strip():
                    raise ConfigError(
                        f"invalid named_go_package {value!r}, expected NAME=IMPORT_PATH_BASE"
                    )
                named[name.strip()] = path.strip().rstrip("/")
            elif key in simple:
                changes[key] = value.rstrip("/") if key == "go_import_path_base" else value
            else:
                raise ConfigError(f"unknown parameter {key!r}")

        return replace(config, named_go_packages=named, **changes)

    def with_parameters(self, parameters: list[str]) -> "GeneratorConfig":
        """Layer key=value overrides on top of this config."""
        return GeneratorConfig.from_parameter(",".join(parameters), base=self)


class NamedPackages:
    """Compute import paths, package names and output paths for a unit."""

    def __init__(self, config: GeneratorConfig):
        self.config = config

    def package_name(self, unit: GenerationUnit, name: str) -> str:
        return unit.go_package_name + name

    def import_path(self, unit: GenerationUnit, name: str) -> str:
        """Import path of the package named ``name`` derived from ``unit``."""
        package_name = self.package_name(unit, name)
        base = self.config.named_go_packages.get(name)
        if base is None:
            return posixpath.join(unit.go_import_path, package_name)
        return posixpath.join(base, self.relative_path(unit), package_name)

    def relative_path(self, unit: GenerationUnit) -> str:
        """Return the unit import path relative to go_import_path_base."""
        path_base = self.config.go_import_path_base
        if path_base is None:
            raise ConfigError("named_go_package requires go_import_path_base to be set")
        if unit.go_import_path == path_base:
            return ""
        if not unit.go_import_path.startswith(path_base + "/"):
            raise ResolutionConflict(
                f"{unit.go_import_path} is not contained in go_import_path_base {path_base}"
            )
        return unit.go_import_path[len(path_base) + 1 :]

    def output_dir(self, unit: GenerationUnit) -> str:
        package_name = self.package_name(unit, self.config.plugin_name)
        if self.config.go_import_path_base is None:
            return posixpath.join(unit.go_import_path, package_name)
        return posixpath.join(self.relative_path(unit), package_name)

    def unit_file_name(self, unit: GenerationUnit) -> str:
        package_name = self.package_name(unit, self.config.plugin_name)
        return posixpath.join(self.output_dir(unit), f"{package_name}.go")

    def source_file_name(self, unit: GenerationUnit, proto_name: str) -> str:
        stem = posixpath.basename(proto_name).removesuffix(".proto")
        return posixpath.join(self.output_dir(unit), f"{stem}.{self.config.plugin_name}.go")
