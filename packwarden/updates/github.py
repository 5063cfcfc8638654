"""
PackWarden Release Repository

Client for the GitHub releases API of the detection content repository.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config.settings import ReleasesConfig
from ..packs.errors import ReleaseRepositoryError

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100


@dataclass(frozen=True)
class RemoteRelease:
    """A release as listed by the repository."""
    id: int
    tag_name: str


class ReleaseRepository:
    """
    Read-only access to releases and release assets.
    """

    def __init__(self, config: ReleasesConfig, client: Optional[httpx.Client] = None):
        """
        Initialize the repository client.

        Args:
            config: Release repository settings
            client: Preconfigured HTTP client, mainly for tests
        """
        self.config = config
        self._client = client or httpx.Client(
            base_url=config.api_base,
            timeout=config.timeout_seconds,
            follow_redirects=True,
        )

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        headers = {
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def _releases_path(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.repo}/releases"

    def _get(self, path: str, accept: Optional[str] = None, **params: Any) -> httpx.Response:
        headers = self._headers(accept) if accept else self._headers()
        try:
            response = self._client.get(path, headers=headers, params=params or None)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ReleaseRepositoryError(
                f"GET {path} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ReleaseRepositoryError(f"GET {path} failed: {e}") from e
        return response

    def _get_release(self, release_id: int) -> Dict[str, Any]:
        return self._get(f"{self._releases_path()}/{release_id}").json()

    def list_releases(self) -> List[RemoteRelease]:
        """List every published release, following pagination."""
        releases: List[RemoteRelease] = []
        page = 1
        while True:
            batch = self._get(self._releases_path(), per_page=_PAGE_SIZE, page=page).json()
            for item in batch:
                releases.append(RemoteRelease(id=int(item["id"]), tag_name=item["tag_name"]))
            if len(batch) < _PAGE_SIZE:
                break
            page += 1

        logger.debug(f"Listed {len(releases)} releases from {self.config.owner}/{self.config.repo}")
        return releases

    def get_tag_name(self, release_id: int) -> str:
        """Return the tag the repository has recorded for a release id."""
        return self._get_release(release_id)["tag_name"]

    def download_assets(self, release_id: int, asset_names: Iterable[str]) -> Dict[str, bytes]:
        """
        Download the named assets of a release.

        Args:
            release_id: Release id
            asset_names: Asset file names to fetch

        Returns:
            Asset name -> content. Names the release does not have are absent.
        """
        wanted = set(asset_names)
        release = self._get_release(release_id)

        assets: Dict[str, bytes] = {}
        for asset in release.get("assets", []):
            name = asset.get("name")
            if name not in wanted:
                continue
            response = self._get(
                f"{self._releases_path()}/assets/{asset['id']}",
                accept="application/octet-stream",
            )
            assets[name] = response.content
            logger.debug(f"Downloaded asset {name} ({len(response.content)} bytes)")

        return assets

    def close(self):
        self._client.close()
