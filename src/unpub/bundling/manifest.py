import re

import yaml

from ..domain.errors import ManifestInvalidError
from ..domain.models import Manifest

SAFE_SEGMENT = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.+-]*")


class ManifestParser:
    def parse(self, data: bytes) -> Manifest:
        """
        parse pubspec.yaml bytes.

        only checks that the document is a mapping with string `name` and
        `version` fields that are safe to use as a single path segment;
        anything else is left to the caller.

        raises:
            ManifestInvalidError: if the text is not valid yaml or the fields are wrong
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestInvalidError(f"pubspec.yaml is not valid UTF-8: {e}") from e

        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ManifestInvalidError(f"pubspec.yaml is not valid YAML: {e}") from e

        if not isinstance(document, dict):
            raise ManifestInvalidError("pubspec.yaml must be a mapping")

        for field in ("name", "version"):
            if field not in document:
                raise ManifestInvalidError(f"pubspec.yaml must include '{field}'")
            if not isinstance(document[field], str):
                raise ManifestInvalidError(
                    f"pubspec.yaml '{field}' must be a string, got {type(document[field]).__name__}"
                )

        # both end up as path segments in storage keys and download urls
        for field in ("name", "version"):
            if not SAFE_SEGMENT.fullmatch(document[field]):
                raise ManifestInvalidError(
                    f"pubspec.yaml '{field}' contains characters that are not allowed: {document[field]!r}"
                )

        return Manifest(name=document["name"], version=document["version"], raw_text=text)
