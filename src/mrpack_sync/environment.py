from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from .manifest import FileEntry, Requirement


class Role(str, Enum):
    SERVER = "server"
    CLIENT = "client"


def is_applicable(entry: FileEntry, role: Role = Role.SERVER) -> bool:
    if entry.env is None:
        return True
    return entry.env.requirement_for(role.value) is not Requirement.UNSUPPORTED


def applicable_files(files: Iterable[FileEntry], role: Role = Role.SERVER) -> list[FileEntry]:
    return [entry for entry in files if is_applicable(entry, role)]
