from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Tuple
from packaging.version import Version, InvalidVersion


class PackageVersion(BaseModel):
    """a published version of a package; immutable once created."""
    model_config = ConfigDict(frozen=True)

    package_name: str
    version: str
    manifest_text: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.package_name, self.version)

    @property
    def parsed_version(self) -> Version:
        return Version(self.version)


class Manifest(BaseModel):
    """the fields of pubspec.yaml the registry relies on."""
    name: str
    version: str
    raw_text: str


class ArchiveBundle(BaseModel):
    """in-memory contents of an uploaded archive; never persisted directly."""
    data: bytes
    entries: Dict[str, bytes] = Field(default_factory=dict)

    def names(self):
        return list(self.entries.keys())


def version_sort_key(version: str):
    # unparseable versions sort first, lexicographically
    try:
        return (1, Version(version), version)
    except InvalidVersion:
        return (0, Version("0"), version)
