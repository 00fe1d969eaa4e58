"""Go API client generator over Twirp protobuf clients.

For every Go package with services this emits one provider file,
constructing per-service clients, and one file per proto file that
declares services, holding the wrapper types whose methods take and
return plain field values instead of request/response messages.
"""

from collections.abc import Iterable

from ..log import get_logger
from .config import API_PACKAGE, APICLIENT_PACKAGE, GeneratorConfig, NamedPackages
from .emitter import Artifact, ArtifactKind, GeneratedFile, format_comments
from .errors import GenerationError, GroupingConflict, ResolutionConflict
from .grouping import group_files
from .naming import GO_KEYWORDS, GO_PREDECLARED, unexport
from .params import ParameterFlattener
from .types import File, GenerationUnit, GoIdent, Service
from .validate import UnaryMethod, validate_method

logger = get_logger(__name__)

PROVIDER_FUNC = "NewProvider"
PROVIDER_STRUCT = "provider"


def generate(files: Iterable[File], config: GeneratorConfig | None = None) -> list[Artifact]:
    """Generate every artifact for ``files``, or raise without returning any."""
    config = config or GeneratorConfig()
    artifacts: list[Artifact] = []
    for unit in group_files(files):
        try:
            artifacts.extend(generate_unit(unit, config))
        except GenerationError as err:
            if err.unit is None:
                err.unit = unit.go_import_path
            raise

    seen: set[str] = set()
    for artifact in artifacts:
        if artifact.name in seen:
            raise GroupingConflict(f"more than one generated file is named {artifact.name}")
        seen.add(artifact.name)
    return artifacts


def generate_unit(unit: GenerationUnit, config: GeneratorConfig) -> list[Artifact]:
    """Generate the provider file and the service files of one unit."""
    generator = _UnitGenerator(unit, config)
    artifacts = [generator.provider_file()]
    for f in unit.files:
        if f.services:
            artifacts.append(generator.service_file(f))
    logger.debug("generated %d files for %s", len(artifacts), unit.go_import_path)
    return artifacts


def wrapper_name(service: Service) -> str:
    """Name of the unexported type wrapping ``service``'s client."""
    name = unexport(service.go_name)
    # the type is package-level, so it must not shadow builtins either
    if name in GO_KEYWORDS or name in GO_PREDECLARED:
        return name + "_"
    return name


class _UnitGenerator:
    def __init__(self, unit: GenerationUnit, config: GeneratorConfig):
        self.unit = unit
        self.config = config
        self.named = NamedPackages(config)
        self.go_import_path = self.named.import_path(unit, config.plugin_name)
        self.go_package_name = self.named.package_name(unit, config.plugin_name)
        self.declarations = self._declarations()

    def _declarations(self) -> list[str]:
        """Package-level names declared across the unit's generated files."""
        names = [PROVIDER_FUNC, PROVIDER_STRUCT]
        for service in self.unit.services:
            struct_name = wrapper_name(service)
            if struct_name in names:
                raise ResolutionConflict(
                    f"service {service.full_name} generates type {struct_name}, "
                    "which is already declared"
                )
            names.append(struct_name)
        return names

    def _new_file(self, name: str, kind: ArtifactKind, source: str | None = None) -> GeneratedFile:
        g = GeneratedFile(
            name,
            kind,
            self.go_import_path,
            self.go_package_name,
            source=source,
            plugin_name=self.config.plugin_name,
        )
        for declaration in self.declarations:
            g.resolver.reserve(declaration)
        return g

    def _ident(self, import_path: str, name: str) -> GoIdent:
        return GoIdent(go_name=name, go_import_path=import_path)

    def provider_file(self) -> Artifact:
        unit = self.unit
        config = self.config
        g = self._new_file(self.named.unit_file_name(unit), ArtifactKind.UNIT)

        http_client = g.qualified(self._ident(config.httpclient_import_path, "Client"))
        new_client_options = g.qualified(
            self._ident(config.twirpclient_import_path, "NewClientOptions")
        )
        zap_logger = g.qualified(self._ident(config.zap_import_path, "Logger"))
        provider = g.qualified(
            self._ident(self.named.import_path(unit, APICLIENT_PACKAGE), "Provider")
        )

        g.p("// NewProvider returns a new Provider.")
        g.p("func ", PROVIDER_FUNC, "(")
        g.p("logger *", zap_logger, ",")
        g.p("httpClient ", http_client, ",")
        g.p(") ", provider, " {")
        g.p("return &", PROVIDER_STRUCT, "{")
        g.p("logger: logger,")
        g.p("httpClient: httpClient,")
        g.p("}")
        g.p("}")
        g.p()
        g.p("type ", PROVIDER_STRUCT, " struct {")
        g.p("logger *", zap_logger)
        g.p("httpClient ", http_client)
        g.p("}")
        g.p()

        context = g.qualified(self._ident(config.context_import_path, "Context"))
        api_import_path = self.named.import_path(unit, API_PACKAGE)

        for service in unit.services:
            interface_name = service.go_name
            interface = g.qualified(self._ident(api_import_path, interface_name))
            new_protobuf_client = g.qualified(
                self._ident(unit.go_import_path, f"New{interface_name}ProtobufClient")
            )

            g.p(
                "func (p *",
                PROVIDER_STRUCT,
                ") New",
                interface_name,
                "(ctx ",
                context,
                ", address string) (",
                interface,
                ", error) {",
            )
            g.p("return &", wrapper_name(service), "{")
            g.p("logger: p.logger,")
            g.p("client: ", new_protobuf_client, "(")
            g.p("p.httpClient.ParseAddress(address),")
            g.p("p.httpClient,")
            g.p(new_client_options, "()...,")
            g.p("),")
            g.p("}, nil")
            g.p("}")
            g.p()
        return g.artifact()

    def service_file(self, f: File) -> Artifact:
        g = self._new_file(self.named.source_file_name(self.unit, f.name), ArtifactKind.FILE, f.name)
        context = g.qualified(self._ident(self.config.context_import_path, "Context"))
        zap_logger = g.qualified(self._ident(self.config.zap_import_path, "Logger"))

        for service in f.services:
            self._service(g, service, context, zap_logger)
            g.p()
        return g.artifact()

    def _service(self, g: GeneratedFile, service: Service, context: str, zap_logger: str) -> None:
        struct_name = wrapper_name(service)
        # the twirp interface does not include "Client" at the end
        client = g.qualified(self._ident(self.unit.go_import_path, service.go_name))

        g.p("type ", struct_name, " struct {")
        g.p("logger *", zap_logger)
        g.p("client ", client)
        g.p("}")
        g.p()

        for method in service.methods:
            self._method(g, struct_name, validate_method(method), context)

    def _method(self, g: GeneratedFile, struct_name: str, unary: UnaryMethod, context: str) -> None:
        method = unary.method
        flattener = ParameterFlattener(g.resolver)
        request = g.qualified(method.input.ident)
        # parameters are in scope in the body, where the request alias is used
        request_alias, _, _ = request.rpartition(".")
        reserved = {request_alias} - {""}
        params = flattener.parameters(method.input, taken=reserved)
        results = flattener.returns(
            method.output, taken={p.name for p in params} | {"ctx"} | reserved
        )

        func_params = [f"ctx {context}"] + [str(p) for p in params]
        func_returns = [str(r) for r in results] + ["_ error"]
        func_name = method.go_name

        for line in format_comments(method.comments):
            g.p(line)
        if len(func_params) > 2 or len(func_returns) > 2:
            g.p("func (s *", struct_name, ") ", func_name, "(")
            for param in func_params:
                g.p(param, ",")
            g.p(") (", ", ".join(func_returns), ") {")
        else:
            g.p(
                "func (s *",
                struct_name,
                ") ",
                func_name,
                "(",
                ", ".join(func_params),
                ") (",
                ", ".join(func_returns),
                ") {",
            )

        if results:
            g.p("response, err := s.client.", func_name, "(")
        else:
            g.p("_, err := s.client.", func_name, "(")
        g.p("ctx,")
        g.p("&", request, "{")
        for param in params:
            g.p(param.field.go_name, ": ", param.name, ",")
        g.p("},")
        g.p(")")
        g.p("if err != nil {")
        g.p(flattener.error_return(method.output, "err"))
        g.p("}")
        values = [f"response.{r.field.go_name}" for r in results] + ["nil"]
        g.p("return ", ", ".join(values))
        g.p("}")
        g.p()
