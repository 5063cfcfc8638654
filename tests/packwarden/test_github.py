import httpx
import pytest

from packwarden.config.settings import ReleasesConfig
from packwarden.packs.errors import ReleaseRepositoryError
from packwarden.updates import ReleaseRepository, RemoteRelease

RELEASES = "/repos/panther-labs/panther-analysis/releases"


def make_repository(handler, **config):
    settings = ReleasesConfig(**config)
    client = httpx.Client(
        base_url=settings.api_base,
        transport=httpx.MockTransport(handler),
    )
    return ReleaseRepository(settings, client=client)


class TestReleaseRepository:

    def test_list_releases_paginates(self):
        pages = {
            "1": [{"id": i, "tag_name": f"v1.{i}.0"} for i in range(100)],
            "2": [{"id": 100, "tag_name": "v2.0.0"}],
        }
        seen = []

        def handler(request):
            assert request.url.path == RELEASES
            assert request.url.params["per_page"] == "100"
            seen.append(request.url.params["page"])
            return httpx.Response(200, json=pages[request.url.params["page"]])

        releases = make_repository(handler).list_releases()

        assert seen == ["1", "2"]
        assert len(releases) == 101
        assert releases[-1] == RemoteRelease(id=100, tag_name="v2.0.0")

    def test_get_tag_name(self):
        def handler(request):
            assert request.url.path == f"{RELEASES}/42"
            return httpx.Response(200, json={"id": 42, "tag_name": "v1.14.0"})

        assert make_repository(handler).get_tag_name(42) == "v1.14.0"

    def test_download_assets(self):
        def handler(request):
            if request.url.path == f"{RELEASES}/42":
                return httpx.Response(200, json={
                    "id": 42,
                    "tag_name": "v1.14.0",
                    "assets": [
                        {"id": 7, "name": "panther-analysis-all.zip"},
                        {"id": 8, "name": "unrelated.txt"},
                    ],
                })
            if request.url.path == f"{RELEASES}/assets/7":
                assert request.headers["Accept"] == "application/octet-stream"
                return httpx.Response(200, content=b"zip bytes")
            return httpx.Response(404)

        assets = make_repository(handler).download_assets(
            42, ["panther-analysis-all.zip", "panther-analysis-all.sig"]
        )

        assert assets == {"panther-analysis-all.zip": b"zip bytes"}

    def test_token_header(self):
        def handler(request):
            assert request.headers["Authorization"] == "Bearer secret"
            assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"
            return httpx.Response(200, json={"tag_name": "v1.14.0"})

        make_repository(handler, token="secret").get_tag_name(1)

    def test_no_token_header(self):
        def handler(request):
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"tag_name": "v1.14.0"})

        make_repository(handler).get_tag_name(1)

    def test_http_error(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        with pytest.raises(ReleaseRepositoryError, match="404"):
            make_repository(handler).get_tag_name(1)

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ReleaseRepositoryError, match="failed"):
            make_repository(handler).list_releases()
