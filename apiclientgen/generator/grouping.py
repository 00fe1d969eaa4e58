"""Partition input files into per-Go-package generation units."""

from collections.abc import Iterable

from ..log import get_logger
from .errors import GroupingConflict
from .types import File, GenerationUnit

logger = get_logger(__name__)


def group_files(files: Iterable[File]) -> list[GenerationUnit]:
    """Group files marked for generation by Go import path.

    Units keep the order in which their import path was first seen and
    list member files in input order. Units without services are dropped.
    """
    members: dict[str, list[File]] = {}
    package_names: dict[str, str] = {}

    for f in files:
        if not f.generate:
            continue
        known = package_names.setdefault(f.go_import_path, f.go_package_name)
        if known != f.go_package_name:
            raise GroupingConflict(
                f"{f.name} declares Go package {f.go_package_name} but {f.go_import_path} "
                f"is already declared as package {known}"
            )
        members.setdefault(f.go_import_path, []).append(f)

    units: list[GenerationUnit] = []
    for import_path, unit_files in members.items():
        unit = GenerationUnit(
            go_import_path=import_path,
            go_package_name=package_names[import_path],
            files=tuple(unit_files),
        )
        if not unit.services:
            logger.debug("skipping %s: no services", import_path)
            continue
        units.append(unit)
    return units
