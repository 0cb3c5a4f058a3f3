import io
import logging
import tarfile
import zlib

from ..domain.errors import MalformedArchiveError, ManifestMissingError
from ..domain.models import ArchiveBundle

logger = logging.getLogger(__name__)

MANIFEST_NAME = "pubspec.yaml"


class ArchiveExtractor:
    """decodes uploaded .tar.gz archives fully in memory."""

    def __init__(self, max_size: int = 100 * 1024 * 1024):
        self.max_size = max_size

    def extract(self, data: bytes) -> ArchiveBundle:
        """
        decompress and un-tar an uploaded archive.

        args:
            data: gzip-compressed tar bytes

        returns:
            bundle of regular file entries keyed by normalized name

        raises:
            MalformedArchiveError: if the bytes are not a readable .tar.gz,
                or the archive is larger than max_size
        """
        if len(data) > self.max_size:
            raise MalformedArchiveError(
                f"Archive is {len(data)} bytes, larger than the {self.max_size} byte limit"
            )

        entries = {}
        unpacked = 0
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
                for member in tar:
                    if not member.isfile():
                        continue
                    unpacked += member.size
                    if unpacked > self.max_size:
                        raise MalformedArchiveError(
                            f"Archive unpacks to more than {self.max_size} bytes"
                        )
                    f = tar.extractfile(member)
                    if f is None:
                        continue
                    entries[_normalize(member.name)] = f.read()
        except (tarfile.TarError, EOFError, zlib.error, OSError) as e:
            raise MalformedArchiveError(f"Could not decode upload as a .tar.gz archive: {e}") from e

        logger.debug(f"extracted {len(entries)} entries from archive")
        return ArchiveBundle(data=data, entries=entries)

    def manifest_bytes(self, bundle: ArchiveBundle) -> bytes:
        """return the pubspec.yaml entry, raising ManifestMissingError if absent."""
        if MANIFEST_NAME not in bundle.entries:
            raise ManifestMissingError(
                f"Did not find any {MANIFEST_NAME} file in upload. Aborting."
            )
        return bundle.entries[MANIFEST_NAME]


def _normalize(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name
