"""Go API client code generator."""

from .apiclient import generate as generate
from .config import GeneratorConfig as GeneratorConfig
from .descriptors import DescriptorLoader as DescriptorLoader
from .emitter import Artifact as Artifact
from .emitter import ArtifactKind as ArtifactKind
from .errors import *
from .parser import parse as parse
from .parser import parse_files as parse_files
from .types import *
