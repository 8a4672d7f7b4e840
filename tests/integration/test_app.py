"""
根应用与挂载分派测试

使用 TestClient 验证 /api 与 / 两个 Web 应用上下文的行为。
"""

import inspect

import pytest
from fastapi.testclient import TestClient
from starlette.routing import Mount

from pairgoth_container.app_factory import create_app
from pairgoth_container.mode import Development, Production
from pairgoth_container.mounts import configure_mounts
from pairgoth_container.properties import RuntimeConfig
from pairgoth_container.webapp import WebAppStaticFiles


@pytest.fixture
def runtime():
    return RuntimeConfig.from_properties({"logger.level": "DEBUG", "auth": "sesame"})


@pytest.fixture
def dev_client(dev_webapps, runtime, make_settings):
    api, view = dev_webapps
    configuration = configure_mounts(Development(api_base=api, view_base=view), runtime)
    with TestClient(create_app(configuration, runtime, make_settings()), follow_redirects=False) as client:
        yield client


@pytest.fixture
def prod_client(war_archive, runtime, make_settings):
    configuration = configure_mounts(Production(archive=war_archive), runtime)
    with TestClient(create_app(configuration, runtime, make_settings()), follow_redirects=False) as client:
        yield client


class TestDevelopmentDispatch:
    """开发模式：源码目录作为资源基"""

    def test_api_prefix(self, dev_client):
        response = dev_client.get("/api/")
        assert response.status_code == 200
        assert response.text == "<html>api</html>"

    def test_view_catch_all(self, dev_client):
        response = dev_client.get("/")
        assert response.status_code == 200
        assert response.text == "<html>view</html>"

        response = dev_client.get("/js/tour-standings.inc.js")
        assert response.status_code == 200
        assert response.text == "// standings"
        assert "javascript" in response.headers["content-type"]

    def test_api_without_slash_redirects(self, dev_client):
        response = dev_client.get("/api")
        assert response.status_code == 302
        assert response.headers["location"] == "/api/"

    def test_directory_redirects_to_slash(self, dev_client):
        response = dev_client.get("/tour")
        assert response.status_code == 307
        assert response.headers["location"].endswith("/tour/")

        response = dev_client.get("/tour/")
        assert response.status_code == 200
        assert response.text == "<html>tour</html>"

    def test_protected_targets(self, dev_client):
        assert dev_client.get("/api/WEB-INF/web.xml").status_code == 404
        assert dev_client.get("/META-INF/MANIFEST.MF").status_code == 404

    def test_missing_resource(self, dev_client):
        assert dev_client.get("/nope.html").status_code == 404
        assert dev_client.get("/api/nope.html").status_code == 404

    def test_head(self, dev_client):
        response = dev_client.head("/")
        assert response.status_code == 200
        assert response.content == b""

    def test_directories_served_by_static_files(self, dev_client):
        for mount in dev_client.app.routes:
            if isinstance(mount, Mount):
                (static,) = mount.app.routes
                assert isinstance(static.app, WebAppStaticFiles)

    def test_protected_targets_any_case(self, dev_client):
        assert dev_client.get("/api/web-inf/web.xml").status_code == 404
        assert dev_client.get("/api/js/../WEB-INF/web.xml").status_code == 404

    def test_post_not_allowed(self, dev_client):
        assert dev_client.post("/api/").status_code == 405


class TestProductionDispatch:
    """生产模式：两个挂载点共用归档"""

    def test_both_mounts_serve_archive(self, prod_client):
        assert prod_client.get("/").text == "<html>pairgoth</html>"
        assert prod_client.get("/api/").text == "<html>pairgoth</html>"
        assert prod_client.get("/css/app.css").text == "body { margin: 0; }"

    def test_protected_targets(self, prod_client):
        assert prod_client.get("/WEB-INF/web.xml").status_code == 404
        assert prod_client.get("/api/WEB-INF/classes/pairgoth.default.properties").status_code == 404

    def test_head_reports_length(self, prod_client):
        response = prod_client.head("/css/app.css")
        assert response.status_code == 200
        assert response.headers["content-length"] == str(len(b"body { margin: 0; }"))

    def test_directory_redirects_to_slash(self, prod_client):
        response = prod_client.get("/css")
        assert response.status_code == 307
        assert response.headers["location"].endswith("/css/")
        assert prod_client.get("/css/").status_code == 404

    def test_archive_handler_runs_in_threadpool(self, prod_client):
        """归档读取为阻塞 I/O，处理函数必须是同步函数"""
        for mount in prod_client.app.routes:
            if isinstance(mount, Mount):
                (route,) = mount.app.routes
                assert not inspect.iscoroutinefunction(route.endpoint)


def test_app_uses_injected_settings(dev_webapps, runtime, make_settings):
    api, view = dev_webapps
    configuration = configure_mounts(Development(api_base=api, view_base=view), runtime)
    app = create_app(configuration, runtime, make_settings(APP_NAME="pairgoth-test", APP_VERSION="9.9"))
    assert app.title == "pairgoth-test"
    assert app.version == "9.9"
    assert app.state.settings.APP_NAME == "pairgoth-test"


class TestWebAppContext:
    """子应用可见的上下文"""

    def _context(self, client, name):
        for route in client.app.routes:
            if getattr(route, "name", None) == name:
                return route.app.state.webapp
        raise AssertionError(name)

    def test_init_parameters(self, dev_client):
        api = self._context(dev_client, "api")
        view = self._context(dev_client, "view")
        assert api.get_init_parameter("webapp-slf4j-logger.level") == "DEBUG"
        assert view.get_init_parameter("webapp-slf4j-logger.level") is None
        assert api.runtime.get_property("auth") == "sesame"

    def test_development_classpath(self, dev_client):
        api = self._context(dev_client, "api")
        view = self._context(dev_client, "view")
        assert api.get_classpath_resource("api.properties") == b"solver=macmahon"
        assert view.get_classpath_resource("translations/fr") == b"Bonjour"
        assert view.get_classpath_resource("api.properties") is None

    def test_production_classpath(self, prod_client):
        api = self._context(prod_client, "api")
        assert api.get_classpath_resource("pairgoth.default.properties") == b"store=memory"

    def test_server_resources_are_masked(self, war_archive, runtime, make_settings):
        def hide_container(name, location):
            return name.startswith("org/eclipse/jetty/")

        configuration = configure_mounts(
            Production(archive=war_archive), runtime, server_resource=hide_container
        )
        client = TestClient(create_app(configuration, runtime, make_settings()))
        api = self._context(client, "api")
        assert api.get_classpath_resource("org/eclipse/jetty/server/Server.class") is None
        assert api.get_classpath_resource("pairgoth.default.properties") == b"store=memory"
