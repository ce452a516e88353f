"""Tests for bifrost.static: public directory fallback, SPA, injection."""

from pathlib import Path

import pytest

from bifrost import static as static_module
from bifrost.app import Bifrost
from bifrost.exceptions import StaticIOError
from bifrost.livereload import LIVE_RELOAD_SCRIPT
from bifrost.request import Request
from bifrost.static import StaticFiles

from tests.conftest import call_app, make_receive, make_scope

INDEX = "<html><head><title>app</title></head><body>root</body></html>"


@pytest.fixture
def public(tmp_path: Path) -> Path:
    (tmp_path / "index.html").write_text(INDEX)
    (tmp_path / "style.css").write_text("body{}")
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<html><head></head><body>docs</body></html>")
    return tmp_path


def _get(path: str, method: str = "GET") -> Request:
    return Request(make_scope(method=method, path=path), make_receive())


class TestLookup:
    async def test_serves_existing_file(self, public: Path) -> None:
        resp = await StaticFiles(public).lookup(_get("/style.css"))
        assert resp is not None
        assert resp.render() == b"body{}"
        assert resp.media_type == "text/css"

    async def test_root_serves_index(self, public: Path) -> None:
        resp = await StaticFiles(public).lookup(_get("/"))
        assert resp is not None
        assert resp.render() == INDEX.encode()

    async def test_trailing_slash_serves_directory_index(self, public: Path) -> None:
        resp = await StaticFiles(public).lookup(_get("/docs/"))
        assert resp is not None
        assert b"docs" in resp.render()

    async def test_directory_without_slash_is_miss(self, public: Path) -> None:
        assert await StaticFiles(public).lookup(_get("/docs")) is None

    async def test_missing_file_is_miss(self, public: Path) -> None:
        assert await StaticFiles(public).lookup(_get("/nope.js")) is None

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "HEAD"])
    async def test_non_get_always_misses(self, public: Path, method: str) -> None:
        assert await StaticFiles(public).lookup(_get("/style.css", method)) is None

    async def test_traversal_is_miss(self, public: Path) -> None:
        secret = public.parent / "secret.txt"
        secret.write_text("top secret")
        static = StaticFiles(public)
        assert static.resolve("/../secret.txt") is None
        assert await static.lookup(_get("/../secret.txt")) is None

    async def test_missing_public_dir_is_miss(self, tmp_path: Path) -> None:
        assert await StaticFiles(tmp_path / "absent").lookup(_get("/")) is None


class TestSpa:
    async def test_unknown_path_serves_root_index(self, public: Path) -> None:
        resp = await StaticFiles(public, spa=True).lookup(_get("/app/settings"))
        assert resp is not None
        assert resp.render() == INDEX.encode()

    async def test_existing_file_still_wins(self, public: Path) -> None:
        resp = await StaticFiles(public, spa=True).lookup(_get("/style.css"))
        assert resp.render() == b"body{}"

    async def test_spa_without_index_is_miss(self, tmp_path: Path) -> None:
        assert await StaticFiles(tmp_path, spa=True).lookup(_get("/x")) is None

    async def test_spa_does_not_apply_to_post(self, public: Path) -> None:
        assert await StaticFiles(public, spa=True).lookup(_get("/x", "POST")) is None


class TestLiveReloadInjection:
    async def test_html_gets_script_before_head_close(self, public: Path) -> None:
        resp = await StaticFiles(public, livereload=True).lookup(_get("/"))
        body = resp.render().decode()
        assert LIVE_RELOAD_SCRIPT + "</head>" in body

    async def test_spa_fallback_gets_script(self, public: Path) -> None:
        resp = await StaticFiles(public, spa=True, livereload=True).lookup(_get("/deep/link"))
        assert LIVE_RELOAD_SCRIPT in resp.render().decode()

    async def test_non_html_untouched(self, public: Path) -> None:
        resp = await StaticFiles(public, livereload=True).lookup(_get("/style.css"))
        assert resp.render() == b"body{}"

    async def test_disabled_by_default(self, public: Path) -> None:
        resp = await StaticFiles(public).lookup(_get("/"))
        assert LIVE_RELOAD_SCRIPT not in resp.render().decode()


class TestUnreadable:
    @pytest.fixture
    def failing_css(self, monkeypatch: pytest.MonkeyPatch) -> None:
        real_read = static_module._read_file

        def read(file_path: Path) -> bytes:
            if file_path.name == "style.css":
                raise StaticIOError(f"Could not read {file_path}: permission denied")
            return real_read(file_path)

        monkeypatch.setattr(static_module, "_read_file", read)

    async def test_read_failure_is_miss(self, public: Path, failing_css: None) -> None:
        assert await StaticFiles(public).lookup(_get("/style.css")) is None

    async def test_read_failure_falls_back_to_spa(self, public: Path, failing_css: None) -> None:
        resp = await StaticFiles(public, spa=True).lookup(_get("/style.css"))
        assert resp is not None
        assert resp.render() == INDEX.encode()

    async def test_read_failure_is_404_through_router(self, public: Path, failing_css: None) -> None:
        app = Bifrost(public_dir=str(public))
        cap = await call_app(app, path="/style.css")
        assert cap.status == 404
        assert cap.body == b"404"

    @pytest.mark.parametrize("path", ["/a\x00b", "/docs/\x00/", "/" + "x" * 5000])
    async def test_unnameable_path_is_miss(self, public: Path, path: str) -> None:
        assert await StaticFiles(public).lookup(_get(path)) is None

    async def test_nul_path_is_404_through_router(self, tmp_path: Path) -> None:
        app = Bifrost(public_dir=str(tmp_path))
        cap = await call_app(app, path="/a\x00b")
        assert cap.status == 404
        assert cap.body == b"404"

    async def test_nul_path_falls_back_to_spa(self, public: Path) -> None:
        app = Bifrost(public_dir=str(public), spa=True)
        cap = await call_app(app, path="/a\x00b")
        assert cap.status == 200
        assert cap.body == INDEX.encode()
