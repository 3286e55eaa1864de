"""
Update Coordinator
Compares installed versions against the latest releases and updates plugins one by one
"""

from dataclasses import dataclass

from release_resolver import UNKNOWN_VERSION

UPDATED = 'updated'
UP_TO_DATE = 'up-to-date'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass
class UpdateNotice:
    artifact_id: str
    display_name: str
    local_version: str
    latest_version: str
    source_ref: str


@dataclass
class UpdateOutcome:
    artifact_id: str
    status: str
    local_version: str = None
    latest_version: str = None
    error: str = None


def versions_match(local_version, latest_version):
    """Tags are compared trimmed and case-insensitively ('V1.2' equals 'v1.2')."""
    return local_version.strip().lower() == latest_version.strip().lower()


def _discard(message):
    pass


class UpdateCoordinator:
    def __init__(self, resolver, installer, sidecars, log=None):
        """Initialize update coordinator.

        Args:
            resolver: ReleaseResolver - Latest release lookups
            installer: Installer - Reinstalls outdated plugins
            sidecars: SidecarStore - Version field rewritten after an update
            log: Optional callable - Log sink for free-text messages
        """
        self.resolver = resolver
        self.installer = installer
        self.sidecars = sidecars
        self.log = log or _discard

    def _repo_key(self, record):
        ref = self.resolver.parse_repo_ref(record.source_ref)
        return ref, (ref.owner.lower(), ref.name.lower())

    def _latest_tag(self, record, tags):
        """Latest release tag for the record's repository, resolved once per batch."""
        ref, key = self._repo_key(record)
        if key not in tags:
            tags[key] = self.resolver.fetch_latest_release(ref).tag
        return key, tags[key]

    def check_for_updates(self, records):
        """Report repositories whose latest release differs from the installed version.

        Artifacts without a source or a recorded version are skipped. Errors
        are logged per artifact and never stop the check. Plugins shipped by
        the same repository share one lookup and one notice.

        Args:
            records: iterable - ArtifactRecord snapshot

        Returns:
            list - UpdateNotice for each outdated repository
        """
        notices = []
        tags = {}
        reported = set()
        for record in records:
            if not record.source_ref or not record.installed_version:
                continue

            try:
                key, latest = self._latest_tag(record, tags)
            except Exception as e:
                self.log(f"CheckForUpdates error on '{record.id}': {e}")
                continue

            if latest == UNKNOWN_VERSION or versions_match(record.installed_version, latest):
                continue
            if key in reported:
                continue
            reported.add(key)

            self.log(f"Plugin '{record.id}' has an update! Local: {record.installed_version}, Latest: {latest}")
            notices.append(UpdateNotice(
                artifact_id=record.id,
                display_name=record.display_name,
                local_version=record.installed_version,
                latest_version=latest,
                source_ref=record.source_ref
            ))
        return notices

    def update_all(self, records, progress=None, report=None):
        """Reinstall every outdated artifact, strictly one at a time.

        A repository is downloaded once per batch; the other plugins it ships
        reuse that install result.

        Args:
            records: iterable - ArtifactRecord snapshot
            progress: Optional callable - progress(message, index, total) before each artifact
            report: Optional callable - report(outcome, index, total) after each artifact

        Returns:
            list - UpdateOutcome per artifact
        """
        records = list(records)
        total = len(records)
        tags = {}
        installs = {}
        outcomes = []
        for idx, record in enumerate(records):
            if progress:
                progress(f"Checking {record.display_name}...", idx, total)
            outcome = self._update_one(record, tags, installs)
            outcomes.append(outcome)
            if report:
                report(outcome, idx, total)
        self.log('Plugin update check complete.')
        return outcomes

    def _update_one(self, record, tags, installs):
        if not record.source_ref or not record.installed_version:
            return UpdateOutcome(record.id, SKIPPED, local_version=record.installed_version)

        try:
            key, latest = self._latest_tag(record, tags)
            if latest == UNKNOWN_VERSION or versions_match(record.installed_version, latest):
                return UpdateOutcome(record.id, UP_TO_DATE, record.installed_version, latest)

            if key not in installs:
                self.log(f"Updating '{record.id}' from {record.installed_version} to {latest} ({record.source_ref})")
                try:
                    installs[key] = self.installer.install(record.source_ref)
                except Exception as e:
                    installs[key] = e
                    raise
            result = installs[key]
            if isinstance(result, Exception):
                raise result

            self.sidecars.update_version(record.id, result['version'])
            self.log(f"Updated '{record.id}' to version {result['version']}.")
            return UpdateOutcome(record.id, UPDATED, record.installed_version, result['version'])
        except Exception as e:
            self.log(f"Error updating '{record.id}': {e}")
            return UpdateOutcome(record.id, FAILED, record.installed_version, error=str(e))
