"""
Workers
QThread workers that run installs and update checks off the UI thread
"""

from PyQt6.QtCore import QThread, pyqtSignal

from update_coordinator import UPDATED, UP_TO_DATE, SKIPPED, FAILED


class InstallWorker(QThread):
    """Thread worker for plugin installation from a repository URL.

    Signals:
        finished(success, message) - Installation complete
        progress(message) - Installation progress update
    """
    finished = pyqtSignal(bool, str)
    progress = pyqtSignal(str)

    def __init__(self, mod_manager, url):
        """Initialize installation worker.

        Args:
            mod_manager: ModManager - Manager instance
            url: str - Repository URL
        """
        super().__init__()
        self.mod_manager = mod_manager
        self.url = url

    def run(self):
        try:
            self.progress.emit(f"Downloading release from {self.url}...")
            result = self.mod_manager.install_plugin(self.url)
            if result is None:
                self.finished.emit(False, 'Installation canceled: No URL provided.')
            else:
                self.finished.emit(True, result['message'])
        except Exception as e:
            self.finished.emit(False, str(e))


class CheckUpdatesWorker(QThread):
    """Worker thread for the startup update check"""
    finished = pyqtSignal(list)
    log = pyqtSignal(str)

    def __init__(self, mod_manager):
        super().__init__()
        self.mod_manager = mod_manager

    def run(self):
        try:
            notices = self.mod_manager.check_for_updates()
        except Exception as e:
            self.log.emit(f"Update check failed: {e}")
            notices = []
        for notice in notices:
            self.log.emit(f"{notice.display_name}: {notice.local_version} -> {notice.latest_version}")
        self.finished.emit(notices)


class BatchUpdateWorker(QThread):
    """Worker thread for updating every plugin"""
    finished = pyqtSignal(int, int, int)  # updated, failed, skipped
    progress = pyqtSignal(str, int, int)  # message, current, total
    log = pyqtSignal(str)

    def __init__(self, mod_manager):
        """Initialize batch update worker.

        Args:
            mod_manager: ModManager - Manager instance
        """
        super().__init__()
        self.mod_manager = mod_manager
        self.updated = 0
        self.failed = 0
        self.skipped = 0

    def _on_progress(self, message, idx, total):
        self.progress.emit(message, idx, total)
        self.log.emit(f"[{idx + 1}/{total}] {message}")

    def _on_outcome(self, outcome, idx, total):
        name = outcome.artifact_id
        if outcome.status == UPDATED:
            self.updated += 1
            self.log.emit(f"{name} updated to {outcome.latest_version}")
        elif outcome.status == FAILED:
            self.failed += 1
            self.log.emit(f"{name} failed: {outcome.error or 'Unknown error'}")
        elif outcome.status == UP_TO_DATE:
            self.skipped += 1
            self.log.emit(f"{name} already up-to-date")
        elif outcome.status == SKIPPED:
            self.skipped += 1
            self.log.emit(f"{name} has no source or version. Skipping.")

    def run(self):
        """Update every plugin sequentially.

        Emits: progress(message, current, total) and log(message) per plugin,
        finished(updated, failed, skipped)
        """
        self.updated = 0
        self.failed = 0
        self.skipped = 0

        try:
            self.mod_manager.update_all(progress=self._on_progress, report=self._on_outcome)
        except Exception as e:
            self.log.emit(f"Batch update failed: {e}")
        self.finished.emit(self.updated, self.failed, self.skipped)
