"""protoc plugin entry point: CodeGeneratorRequest on stdin, response on stdout."""

import sys

from google.protobuf.compiler import plugin_pb2

from ..log import configure_logging, get_logger
from .apiclient import generate
from .config import GeneratorConfig
from .descriptors import DescriptorLoader
from .errors import GenerationError

logger = get_logger(__name__)


def generate_code(
    request: plugin_pb2.CodeGeneratorRequest, config: GeneratorConfig | None = None
) -> plugin_pb2.CodeGeneratorResponse:
    """Run the generator over a request.

    Generation errors are reported through ``response.error`` with no
    files, as protoc expects from a plugin.
    """
    response = plugin_pb2.CodeGeneratorResponse()
    response.supported_features = plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    try:
        config = GeneratorConfig.from_parameter(request.parameter, base=config)
        files = DescriptorLoader(request.proto_file, request.file_to_generate).load()
        artifacts = generate(files, config)
    except GenerationError as err:
        logger.debug("generation failed: %s", err)
        response.error = str(err)
        return response

    for artifact in artifacts:
        response.file.add(name=artifact.name, content=artifact.content)
    return response


def main() -> None:
    """Execute the protoc plugin workflow."""
    configure_logging()
    request = plugin_pb2.CodeGeneratorRequest()
    payload = sys.stdin.buffer.read()
    if payload:
        request.ParseFromString(payload)

    response = generate_code(request)
    sys.stdout.buffer.write(response.SerializeToString())
    sys.stdout.buffer.flush()


if __name__ == "__main__":
    main()
