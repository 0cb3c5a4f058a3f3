from typing import Optional


class UnpubError(Exception):
    """base class for exceptions in unpub."""
    code = "error"
    status_code = 500
    retriable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnauthenticatedError(UnpubError):
    """raised when the credential is missing or identity verification rejected it."""
    code = "unauthenticated"
    status_code = 401


class UnauthorizedError(UnpubError):
    """raised when a verified identity is not an uploader of the package."""
    code = "unauthorized"
    status_code = 403

    def __init__(self, identity: str, package_name: str):
        self.identity = identity
        self.package_name = package_name
        super().__init__(f"{identity} is not an uploader of {package_name} package")


class MalformedArchiveError(UnpubError):
    """raised when an upload cannot be decompressed or un-tarred."""
    code = "malformed_archive"
    status_code = 400


class ManifestMissingError(UnpubError):
    """raised when an archive has no pubspec.yaml entry."""
    code = "manifest_missing"
    status_code = 400


class ManifestInvalidError(UnpubError):
    """raised when pubspec.yaml is unparseable or lacks a string name/version."""
    code = "manifest_invalid"
    status_code = 422


class ConflictError(UnpubError):
    """raised when a (package, version) pair has already been published."""
    code = "conflict"
    status_code = 409

    def __init__(self, package_name: str, version: str):
        self.package_name = package_name
        self.version = version
        super().__init__(f"`{package_name}` already exists at version `{version}`.")


class InvariantViolationError(UnpubError):
    """raised on self-add, self-remove or removal of the last uploader."""
    code = "invariant_violation"
    status_code = 422


class NotFoundError(UnpubError):
    """raised when a version is absent both locally and upstream."""
    code = "not_found"
    status_code = 404

    def __init__(self, package_name: str, version: Optional[str] = None):
        self.package_name = package_name
        self.version = version
        if version is None:
            super().__init__(f"Package '{package_name}' not found")
        else:
            super().__init__(f"Version {version} not found for package {package_name}")


class InfrastructureError(UnpubError):
    """
    raised when a collaborator (identity verifier, metadata store, blob store,
    upstream proxy) times out or is unreachable.

    the only error kind a caller should retry.
    """
    code = "infrastructure"
    status_code = 503
    retriable = True

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")
