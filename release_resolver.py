"""
Release Resolver
Looks up repository details and the latest release asset on GitHub
"""

import os
from dataclasses import dataclass

import requests

from mod_errors import InvalidReference, NetworkError, NotFound, NoReleases, NoInstallableAsset
from manager_settings import DEFAULT_USER_AGENT

DEFAULT_HOST_MARKER = 'github.com/'
DEFAULT_API_ROOT = 'https://api.github.com'
INSTALLABLE_EXTENSIONS = ('.zip', '.dll')
UNKNOWN_VERSION = 'UnknownVersion'


@dataclass
class RepositoryRef:
    owner: str
    name: str


@dataclass
class ReleaseInfo:
    tag: str
    asset_url: str
    asset_file_name: str


def parse_repo_ref(url, host_marker=DEFAULT_HOST_MARKER):
    """Convert a repository URL to owner and name.

    Anything after the first two path segments is ignored, so
    https://github.com/OWNER/REPO/releases resolves to OWNER/REPO.

    Args:
        url: str - Repository URL
        host_marker: str - Host prefix that precedes the owner segment

    Returns:
        RepositoryRef - Parsed owner and repository name

    Raises:
        InvalidReference - Marker missing or fewer than two segments after it
    """
    if not url:
        raise InvalidReference('Empty repository URL')

    trimmed = url.strip().rstrip('/')
    idx = trimmed.lower().find(host_marker.lower())
    if idx < 0:
        raise InvalidReference(f"Invalid repository URL: {url}")

    parts = trimmed[idx + len(host_marker):].split('/')
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise InvalidReference(f"Invalid repository URL: {url}")

    name = parts[1]
    if name.lower().endswith('.git'):
        name = name[:-4]
    return RepositoryRef(owner=parts[0], name=name)


def select_asset(assets):
    """Pick the first asset whose name ends in an installable extension.

    Args:
        assets: list - Release asset dicts with 'name' and 'browser_download_url'

    Returns:
        dict - Matching asset, or None
    """
    for asset in assets or []:
        name = asset.get('name') or ''
        if name.lower().endswith(INSTALLABLE_EXTENSIONS):
            return asset
    return None


class ReleaseResolver:
    def __init__(self, http=None, user_agent=DEFAULT_USER_AGENT, token=None,
                 timeout=10, api_root=DEFAULT_API_ROOT, host_marker=DEFAULT_HOST_MARKER):
        """Initialize release resolver.

        Args:
            http: Optional object - requests-compatible client (module or Session)
            user_agent: str - Client-identifying User-Agent header
            token: Optional str - GitHub token, falls back to $GITHUB_TOKEN
            timeout: float - Request timeout in seconds
            api_root: str - Base URL of the hosting API
            host_marker: str - Host prefix used to parse repository URLs
        """
        self.http = http or requests
        self.user_agent = user_agent
        self.token = token or os.environ.get('GITHUB_TOKEN')
        self.timeout = timeout
        self.api_root = api_root.rstrip('/')
        self.host_marker = host_marker

    def parse_repo_ref(self, url):
        return parse_repo_ref(url, self.host_marker)

    def _headers(self):
        headers = {
            'User-Agent': self.user_agent,
            'Accept': 'application/vnd.github+json'
        }
        if self.token:
            headers['Authorization'] = f'token {self.token}'
        return headers

    def _get_json(self, api_url, missing_error):
        """GET an API URL and decode the JSON body.

        Args:
            api_url: str - Full API URL
            missing_error: Exception - Raised when the API answers 404

        Returns:
            dict - Decoded response body
        """
        try:
            response = self.http.get(api_url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Request to {api_url} failed: {e}") from e

        if response.status_code == 404:
            raise missing_error

        if response.status_code == 403:
            try:
                message = response.json().get('message', '')
            except ValueError:
                message = ''
            if 'rate limit' in message.lower():
                raise NetworkError('GitHub API rate limit exceeded')

        if response.status_code != 200:
            raise NetworkError(f"{api_url} returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(f"{api_url} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise NetworkError(f"{api_url} returned unexpected JSON")
        return data

    def fetch_repo_info(self, ref):
        """Retrieve repository name, description and owner.

        Args:
            ref: RepositoryRef - Repository to query

        Returns:
            dict - Repository info with keys:
            - name: str - Repository name or 'Unknown'
            - description: str - Description or 'No description provided'
            - author: str - Owner login or 'Unknown'
        """
        api_url = f"{self.api_root}/repos/{ref.owner}/{ref.name}"
        data = self._get_json(api_url, NotFound(f"Repository {ref.owner}/{ref.name} not found"))

        owner = data.get('owner') or {}
        return {
            'name': data.get('name') or 'Unknown',
            'description': data.get('description') or 'No description provided',
            'author': owner.get('login') or 'Unknown'
        }

    def fetch_latest_release(self, ref):
        """Retrieve tag and installable asset of the latest release.

        Args:
            ref: RepositoryRef - Repository to query

        Returns:
            ReleaseInfo - Tag name and first .zip/.dll asset

        Raises:
            NoReleases - Repository has no published release
            NoInstallableAsset - No asset ends in .zip or .dll
        """
        api_url = f"{self.api_root}/repos/{ref.owner}/{ref.name}/releases/latest"
        data = self._get_json(api_url, NoReleases(f"No releases found for {ref.owner}/{ref.name}"))

        tag = data.get('tag_name') or UNKNOWN_VERSION
        asset = select_asset(data.get('assets'))
        if asset is None:
            raise NoInstallableAsset(f"No .dll or .zip asset in latest release of {ref.owner}/{ref.name}")

        return ReleaseInfo(tag=tag, asset_url=asset['browser_download_url'], asset_file_name=asset['name'])
