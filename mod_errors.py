"""
Mod Manager Errors
Exception types raised by the registry, resolver and installer
"""


class ModManagerError(Exception):
    """Base class for every error the mod manager reports to its host."""


class InvalidReference(ModManagerError):
    """Repository URL could not be turned into an owner/name pair."""


class NetworkError(ModManagerError):
    """Transport failure or unexpected response from the hosting API."""


class NotFound(ModManagerError):
    """The hosting API has no such repository."""


class NoReleases(ModManagerError):
    """Repository exists but has no published release."""


class NoInstallableAsset(ModManagerError):
    """Latest release carries no .zip or .dll asset."""


class MalformedMetadata(ModManagerError):
    """A sidecar or manifest file could not be parsed."""


class InstallationFailed(ModManagerError):
    """Any step of download, extraction or placement failed."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class PersistFailed(ModManagerError):
    """Writing a config or metadata file failed."""
