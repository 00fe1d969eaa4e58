"""Tests for the Go API client generator."""

import os

import pytest
from google.protobuf import empty_pb2, timestamp_pb2
from google.protobuf.descriptor_pb2 import FileDescriptorProto

from apiclientgen.generator import DescriptorLoader, GeneratorConfig, generate, parse
from apiclientgen.generator.emitter import ArtifactKind
from apiclientgen.generator.errors import (
    GroupingConflict,
    ResolutionConflict,
    ShapeError,
    UnsupportedFieldError,
)

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

OUT_DIR = "github.com/acme/pet/gen/petv1/petv1apiclienttwirp"

PETS = """
syntax = "proto3";

package acme.pet.v1;

option go_package = "github.com/acme/pet/gen/petv1";

import "google/protobuf/timestamp.proto";

enum PetType {
  PET_TYPE_UNSPECIFIED = 0;
  PET_TYPE_CAT = 1;
}

message Pet {
  string pet_id = 1;
  PetType pet_type = 2;
  string name = 3;
}

service PetStoreService {
  rpc GetPet(GetPetRequest) returns (GetPetResponse);
  rpc PutPet(PutPetRequest) returns (PutPetResponse);
  rpc DeletePet(DeletePetRequest) returns (DeletePetResponse);
  rpc ListPets(ListPetsRequest) returns (ListPetsResponse);
}

message GetPetRequest { string pet_id = 1; }
message GetPetResponse { Pet pet = 1; }

message PutPetRequest {
  PetType pet_type = 1;
  string name = 2;
  map<string, string> labels = 3;
  optional int32 age = 4;
}
message PutPetResponse { Pet pet = 1; }

message DeletePetRequest { string pet_id = 1; }
message DeletePetResponse {}

message ListPetsRequest {
  int32 page_size = 1;
  string page_token = 2;
  google.protobuf.Timestamp created_after = 3;
}
message ListPetsResponse {
  repeated Pet pets = 1;
  string next_page_token = 2;
  bytes raw = 3;
}
"""


def _well_known(module):
    proto = FileDescriptorProto()
    module.DESCRIPTOR.CopyToProto(proto)
    return proto


def _load(*sources, deps=()):
    protos = [parse(text, name) for name, text in sources]
    protos.extend(_well_known(module) for module in deps)
    return DescriptorLoader(protos, [name for name, _ in sources]).load()


def _greeter():
    with open(f"{FILE_DIR}/greeter.proto") as f:
        return _load(("greeter.proto", f.read()))


def _by_name(artifacts):
    return {artifact.name: artifact for artifact in artifacts}


def describe_greeter():
    def generates_a_provider_and_a_service_file(expect):
        artifacts = generate(_greeter())
        expect([a.name for a in artifacts]) == [
            f"{OUT_DIR}/petv1apiclienttwirp.go",
            f"{OUT_DIR}/greeter.apiclienttwirp.go",
        ]
        expect([a.kind for a in artifacts]) == [ArtifactKind.UNIT, ArtifactKind.FILE]

    def generates_the_provider(expect):
        provider = generate(_greeter())[0]
        expect(provider.content) == (
            "// Code generated by protoc-gen-go-apiclienttwirp. DO NOT EDIT.\n"
            "\n"
            "package petv1apiclienttwirp\n"
            "\n"
            "import (\n"
            '\tcontext "context"\n'
            '\tpetv1 "github.com/acme/pet/gen/petv1"\n'
            '\tpetv1api "github.com/acme/pet/gen/petv1/petv1api"\n'
            '\tpetv1apiclient "github.com/acme/pet/gen/petv1/petv1apiclient"\n'
            '\thttpclient "github.com/bufbuild/buf/internal/pkg/transport/http/httpclient"\n'
            '\ttwirpclient "github.com/bufbuild/buf/internal/pkg/transport/twirp/twirpclient"\n'
            '\tzap "go.uber.org/zap"\n'
            ")\n"
            "\n"
            "// NewProvider returns a new Provider.\n"
            "func NewProvider(\n"
            "\tlogger *zap.Logger,\n"
            "\thttpClient httpclient.Client,\n"
            ") petv1apiclient.Provider {\n"
            "\treturn &provider{\n"
            "\t\tlogger: logger,\n"
            "\t\thttpClient: httpClient,\n"
            "\t}\n"
            "}\n"
            "\n"
            "type provider struct {\n"
            "\tlogger *zap.Logger\n"
            "\thttpClient httpclient.Client\n"
            "}\n"
            "\n"
            "func (p *provider) NewGreeter(ctx context.Context, address string) "
            "(petv1api.Greeter, error) {\n"
            "\treturn &greeter{\n"
            "\t\tlogger: p.logger,\n"
            "\t\tclient: petv1.NewGreeterProtobufClient(\n"
            "\t\t\tp.httpClient.ParseAddress(address),\n"
            "\t\t\tp.httpClient,\n"
            "\t\t\ttwirpclient.NewClientOptions()...,\n"
            "\t\t),\n"
            "\t}, nil\n"
            "}\n"
        )

    def generates_the_service_wrapper(expect):
        service = generate(_greeter())[1]
        expect(service.content) == (
            "// Code generated by protoc-gen-go-apiclienttwirp. DO NOT EDIT.\n"
            "// source: greeter.proto\n"
            "\n"
            "package petv1apiclienttwirp\n"
            "\n"
            "import (\n"
            '\tcontext "context"\n'
            '\tpetv1 "github.com/acme/pet/gen/petv1"\n'
            '\tzap "go.uber.org/zap"\n'
            ")\n"
            "\n"
            "type greeter struct {\n"
            "\tlogger *zap.Logger\n"
            "\tclient petv1.Greeter\n"
            "}\n"
            "\n"
            "// SayHello says hello.\n"
            "func (s *greeter) SayHello(ctx context.Context, name string) "
            "(greeting string, _ error) {\n"
            "\tresponse, err := s.client.SayHello(\n"
            "\t\tctx,\n"
            "\t\t&petv1.SayHelloRequest{\n"
            "\t\t\tName: name,\n"
            "\t\t},\n"
            "\t)\n"
            "\tif err != nil {\n"
            '\t\treturn "", err\n'
            "\t}\n"
            "\treturn response.Greeting, nil\n"
            "}\n"
        )

    def is_deterministic(expect):
        expect(generate(_greeter())) == generate(_greeter())

    def rejects_server_streaming_methods(expect):
        source = """
            syntax = "proto3";
            package acme.pet.v1;
            option go_package = "github.com/acme/pet/gen/petv1";
            service Greeter {
              rpc SayHello(SayHelloRequest) returns (SayHelloResponse);
              rpc Watch(SayHelloRequest) returns (stream SayHelloResponse);
            }
            message SayHelloRequest { string name = 1; }
            message SayHelloResponse { string greeting = 1; }
        """
        with pytest.raises(ShapeError) as excinfo:
            generate(_load(("greeter.proto", source)))
        expect(excinfo.value.unit) == "github.com/acme/pet/gen/petv1"
        expect(str(excinfo.value)) == (
            "github.com/acme/pet/gen/petv1: method acme.pet.v1.Greeter.Watch is "
            "server-streaming, only unary methods are supported"
        )


def describe_methods():
    def _content():
        artifacts = generate(_load(("acme/pet/v1/pets.proto", PETS), deps=[timestamp_pb2]))
        return _by_name(artifacts)[f"{OUT_DIR}/pets.apiclienttwirp.go"].content

    def emits_one_method_per_rpc(expect):
        expect(_content().count("func (s *petStoreService) ")) == 4

    def uses_a_single_line_signature_for_short_lists(expect):
        expect(
            "func (s *petStoreService) GetPet(ctx context.Context, petId string) "
            "(pet *petv1.Pet, _ error) {\n" in _content()
        ) == True

    def uses_a_multi_line_signature_for_long_lists(expect):
        expect(
            "func (s *petStoreService) PutPet(\n"
            "\tctx context.Context,\n"
            "\tpetType petv1.PetType,\n"
            "\tname string,\n"
            "\tlabels map[string]string,\n"
            "\tage *int32,\n"
            ") (pet *petv1.Pet, _ error) {\n"
            "\tresponse, err := s.client.PutPet(\n"
            "\t\tctx,\n"
            "\t\t&petv1.PutPetRequest{\n"
            "\t\t\tPetType: petType,\n"
            "\t\t\tName: name,\n"
            "\t\t\tLabels: labels,\n"
            "\t\t\tAge: age,\n"
            "\t\t},\n"
            "\t)\n"
            "\tif err != nil {\n"
            "\t\treturn nil, err\n"
            "\t}\n"
            "\treturn response.Pet, nil\n"
            "}\n" in _content()
        ) == True

    def returns_one_value_per_output_field(expect):
        content = _content()
        expect(
            ") (pets []*petv1.Pet, nextPageToken string, raw []byte, _ error) {\n" in content
        ) == True
        expect('\t\treturn nil, "", nil, err\n' in content) == True
        expect("\treturn response.Pets, response.NextPageToken, response.Raw, nil\n" in content) == True

    def returns_only_the_error_without_output_fields(expect):
        expect(
            "func (s *petStoreService) DeletePet(ctx context.Context, petId string) (_ error) {\n"
            "\t_, err := s.client.DeletePet(\n"
            "\t\tctx,\n"
            "\t\t&petv1.DeletePetRequest{\n"
            "\t\t\tPetId: petId,\n"
            "\t\t},\n"
            "\t)\n"
            "\tif err != nil {\n"
            "\t\treturn err\n"
            "\t}\n"
            "\treturn nil\n"
            "}\n" in _content()
        ) == True

    def imports_well_known_types(expect):
        content = _content()
        expect('\ttimestamppb "google.golang.org/protobuf/types/known/timestamppb"\n' in content) == True
        expect("\tcreatedAfter *timestamppb.Timestamp,\n" in content) == True

    def takes_only_the_context_without_input_fields(expect):
        source = """
            syntax = "proto3";
            package acme.health.v1;
            option go_package = "github.com/acme/health/gen/healthv1";
            import "google/protobuf/empty.proto";
            service HealthService {
              rpc Check(google.protobuf.Empty) returns (google.protobuf.Empty);
            }
        """
        artifacts = generate(_load(("health.proto", source), deps=[empty_pb2]))
        expect(
            "func (s *healthService) Check(ctx context.Context) (_ error) {\n"
            "\t_, err := s.client.Check(\n"
            "\t\tctx,\n"
            "\t\t&emptypb.Empty{\n"
            "\t\t},\n"
            "\t)\n" in artifacts[1].content
        ) == True

    def escapes_colliding_parameter_names(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1;acmev1";
            service Renamer {
              rpc Rename(RenameRequest) returns (RenameResponse);
            }
            message RenameRequest { string type = 1; string err = 2; string name = 3; }
            message RenameResponse { string name = 1; }
        """
        content = generate(_load(("renamer.proto", source)))[1].content
        expect("\ttype_ string,\n\terr_ string,\n\tname string,\n) (name_ string, _ error) {\n" in content) == True
        expect("\t\t\tType: type_,\n\t\t\tErr: err_,\n\t\t\tName: name,\n" in content) == True

    def keeps_parameters_from_shadowing_the_request_package(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1;acmev1";
            service Tagger {
              rpc Tag(TagRequest) returns (TagResponse);
            }
            message TagRequest { string v1 = 1; }
            message TagResponse {}
        """
        content = generate(_load(("tagger.proto", source)))[1].content
        expect(
            "func (s *tagger) Tag(ctx context.Context, v1_ string) (_ error) {\n" in content
        ) == True
        expect("\t\t&v1.TagRequest{\n\t\t\tV1: v1_,\n" in content) == True

    def keeps_results_from_shadowing_the_request_package(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1;acmev1";
            service Tagger {
              rpc Tag(TagRequest) returns (TagResponse);
            }
            message TagRequest {}
            message TagResponse { string v1 = 1; }
        """
        content = generate(_load(("tagger.proto", source)))[1].content
        expect(
            "func (s *tagger) Tag(ctx context.Context) (v1_ string, _ error) {\n" in content
        ) == True
        expect("\t\t&v1.TagRequest{\n" in content) == True
        expect("\treturn response.V1, nil\n" in content) == True

    def keeps_parameters_from_shadowing_nil(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1;acmev1";
            service Tagger {
              rpc Tag(TagRequest) returns (TagResponse);
            }
            message TagRequest { string nil = 1; }
            message TagResponse {}
        """
        content = generate(_load(("tagger.proto", source)))[1].content
        expect(
            "func (s *tagger) Tag(ctx context.Context, nil_ string) (_ error) {\n" in content
        ) == True
        expect("\t\t\tNil: nil_,\n" in content) == True
        expect("\treturn nil\n" in content) == True

    def rejects_oneof_fields(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1;acmev1";
            service Chooser {
              rpc Choose(ChooseRequest) returns (ChooseResponse);
            }
            message ChooseRequest {
              oneof choice {
                string name = 1;
                int32 id = 2;
              }
            }
            message ChooseResponse {}
        """
        with pytest.raises(UnsupportedFieldError):
            generate(_load(("chooser.proto", source)))


def describe_units():
    def emits_one_factory_per_service_across_files(expect):
        header = """
            syntax = "proto3";
            package acme.pet.v1;
            option go_package = "github.com/acme/pet/gen/petv1";
        """
        first = header + """
            service Greeter { rpc SayHello(Empty) returns (Empty); }
            service Farewell { rpc SayBye(Empty) returns (Empty); }
            message Empty {}
        """
        second = header + """
            service Counter { rpc Count(CountRequest) returns (CountResponse); }
            message CountRequest {}
            message CountResponse { int64 total = 1; }
        """
        artifacts = generate(_load(("first.proto", first), ("second.proto", second)))
        expect(len(artifacts)) == 3
        provider = artifacts[0].content
        expect(provider.count("func (p *provider) New")) == 3
        expect(provider.index("NewGreeter") < provider.index("NewFarewell")) == True
        expect(provider.index("NewFarewell") < provider.index("NewCounter")) == True
        expect([a.name for a in artifacts[1:]]) == [
            f"{OUT_DIR}/first.apiclienttwirp.go",
            f"{OUT_DIR}/second.apiclienttwirp.go",
        ]

    def resolves_same_named_types_from_two_packages(expect):
        a = """
            syntax = "proto3";
            package acme.a.v1;
            option go_package = "github.com/acme/gen/a/v1;av1";
            message Options { string name = 1; }
        """
        b = """
            syntax = "proto3";
            package acme.b.v1;
            option go_package = "github.com/acme/gen/b/v1;bv1";
            import "a.proto";
            message Options { bool dry_run = 1; }
            message ApplyRequest {
              acme.a.v1.Options remote = 1;
              Options local = 2;
            }
            message ApplyResponse {}
            service ApplyService {
              rpc Apply(ApplyRequest) returns (ApplyResponse);
            }
        """
        protos = [parse(a, "a.proto"), parse(b, "b.proto")]
        artifacts = generate(DescriptorLoader(protos, ["b.proto"]).load())
        expect([x.name for x in artifacts]) == [
            "github.com/acme/gen/b/v1/bv1apiclienttwirp/bv1apiclienttwirp.go",
            "github.com/acme/gen/b/v1/bv1apiclienttwirp/b.apiclienttwirp.go",
        ]
        content = artifacts[1].content
        expect('\tv11 "github.com/acme/gen/a/v1"\n' in content) == True
        expect('\tv1 "github.com/acme/gen/b/v1"\n' in content) == True
        expect("\tremote *v11.Options,\n\tlocal *v1.Options,\n" in content) == True

    def skips_packages_without_services(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1";
            message Thing {}
        """
        expect(generate(_load(("thing.proto", source)))) == []

    def escapes_service_types_named_after_keywords(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1;acmev1";
            service Type { rpc Tag(Empty) returns (Empty); }
            service String { rpc Tag(Empty) returns (Empty); }
            message Empty {}
        """
        provider, service = (a.content for a in generate(_load(("type.proto", source))))
        expect("\treturn &type_{\n" in provider) == True
        expect("\treturn &string_{\n" in provider) == True
        expect("type type_ struct {\n" in service) == True
        expect("func (s *type_) Tag(ctx context.Context) (_ error) {\n" in service) == True
        expect("type string_ struct {\n" in service) == True

    def rejects_services_clashing_with_provider_declarations(expect):
        source = """
            syntax = "proto3";
            package acme.v1;
            option go_package = "example.com/acme/v1";
            service Provider { rpc Get(Empty) returns (Empty); }
            message Empty {}
        """
        with pytest.raises(ResolutionConflict):
            generate(_load(("provider.proto", source)))

    def rejects_duplicate_output_files(expect):
        header = """
            syntax = "proto3";
            option go_package = "example.com/acme/v1";
            message Empty {}
        """
        first = 'package acme.v1.one;' + header + "service One { rpc Get(Empty) returns (Empty); }"
        second = 'package acme.v1.two;' + header + "service Two { rpc Get(Empty) returns (Empty); }"
        with pytest.raises(GroupingConflict):
            generate(_load(("one/api.proto", first), ("two/api.proto", second)))


def describe_config():
    def lays_out_files_under_the_import_path_base(expect):
        config = GeneratorConfig.from_parameter("go_import_path_base=github.com/acme/pet/gen")
        artifacts = generate(_greeter(), config)
        expect([a.name for a in artifacts]) == [
            "petv1/petv1apiclienttwirp/petv1apiclienttwirp.go",
            "petv1/petv1apiclienttwirp/greeter.apiclienttwirp.go",
        ]

    def imports_named_packages_from_their_bases(expect):
        config = GeneratorConfig.from_parameter(
            "go_import_path_base=github.com/acme/pet/gen,"
            "named_go_package=api=github.com/acme/pet/api,"
            "named_go_package=apiclient=github.com/acme/pet/apiclient"
        )
        provider = generate(_greeter(), config)[0].content
        expect('\tpetv1api "github.com/acme/pet/api/petv1/petv1api"\n' in provider) == True
        expect(
            '\tpetv1apiclient "github.com/acme/pet/apiclient/petv1/petv1apiclient"\n' in provider
        ) == True

    def uses_configured_transport_packages(expect):
        config = GeneratorConfig.from_parameter("zap_import_path=example.com/log/zap")
        service = generate(_greeter(), config)[1].content
        expect('\tzap "example.com/log/zap"\n' in service) == True
