"""Tests for per-file import resolution."""

import pytest

from apiclientgen.generator.errors import ResolutionConflict
from apiclientgen.generator.imports import ImportResolver
from apiclientgen.generator.types import GoIdent

OWN_PATH = "github.com/acme/pet/gen/petv1/petv1apiclienttwirp"


def _resolver():
    return ImportResolver(OWN_PATH, "petv1apiclienttwirp")


def describe_package_alias():
    def uses_last_path_element(expect):
        expect(_resolver().package_alias("go.uber.org/zap")) == "zap"

    def returns_the_same_alias_for_the_same_path(expect):
        resolver = _resolver()
        first = resolver.package_alias("github.com/acme/pet/gen/petv1")
        expect(resolver.package_alias("github.com/acme/pet/gen/petv1")) == first

    def suffixes_colliding_aliases(expect):
        resolver = _resolver()
        expect(resolver.package_alias("example.com/a/v1")) == "v1"
        expect(resolver.package_alias("example.com/b/v1")) == "v11"
        expect(resolver.package_alias("example.com/c/v1")) == "v12"

    def never_shadows_predeclared_identifiers(expect):
        expect(_resolver().package_alias("example.com/string")) == "string1"

    def never_shadows_the_package_name(expect):
        alias = _resolver().package_alias("example.com/other/petv1apiclienttwirp")
        expect(alias) == "petv1apiclienttwirp1"

    def avoids_reserved_declarations(expect):
        resolver = _resolver()
        resolver.reserve("greeter")
        expect(resolver.package_alias("example.com/greeter")) == "greeter1"

    def rejects_self_imports(expect):
        with pytest.raises(ResolutionConflict):
            _resolver().package_alias(OWN_PATH)

    def rejects_empty_paths(expect):
        with pytest.raises(ResolutionConflict):
            _resolver().package_alias("")


def describe_reserve():
    def rejects_names_already_used_as_aliases(expect):
        resolver = _resolver()
        resolver.package_alias("example.com/greeter")
        with pytest.raises(ResolutionConflict):
            resolver.reserve("greeter")


def describe_qualified():
    def qualifies_foreign_identifiers(expect):
        resolver = _resolver()
        ident = GoIdent("Greeter", "github.com/acme/pet/gen/petv1")
        expect(resolver.qualified(ident)) == "petv1.Greeter"

    def leaves_local_identifiers_bare(expect):
        expect(_resolver().qualified(GoIdent("provider", OWN_PATH))) == "provider"

    def resolves_same_name_from_two_packages_distinctly(expect):
        resolver = _resolver()
        a = resolver.qualified(GoIdent("Options", "github.com/acme/gen/a/v1"))
        b = resolver.qualified(GoIdent("Options", "github.com/acme/gen/b/v1"))
        expect(a) == "v1.Options"
        expect(b) == "v11.Options"

    def rejects_unnamed_identifiers(expect):
        with pytest.raises(ResolutionConflict):
            _resolver().qualified(GoIdent("", "example.com/a"))


def describe_imports():
    def lists_bound_imports_sorted_by_path(expect):
        resolver = _resolver()
        resolver.qualified(GoIdent("Logger", "go.uber.org/zap"))
        resolver.qualified(GoIdent("Context", "context"))
        resolver.qualified(GoIdent("Greeter", "github.com/acme/pet/gen/petv1"))
        expect(resolver.imports) == [
            ("context", "context"),
            ("petv1", "github.com/acme/pet/gen/petv1"),
            ("zap", "go.uber.org/zap"),
        ]

    def is_empty_for_local_references(expect):
        resolver = _resolver()
        resolver.qualified(GoIdent("provider", OWN_PATH))
        expect(resolver.imports) == []
