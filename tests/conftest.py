"""
pytest 共享夹具

在临时目录中构造开发目录布局与生产归档。
"""

import zipfile
from pathlib import Path

import pytest

from pairgoth_container.config import Settings

WAR_ENTRIES = {
    "index.html": "<html>pairgoth</html>",
    "css/app.css": "body { margin: 0; }",
    "WEB-INF/web.xml": "<web-app/>",
    "WEB-INF/classes/pairgoth.default.properties": "store=memory",
    "WEB-INF/jetty-server/org/eclipse/jetty/server/Server.class": "cafebabe",
    "WEB-INF/classes/org/eclipse/jetty/server/Server.class": "cafebabe",
}


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def working_dir(tmp_path):
    """容器的工作目录，开发目录与之同级"""
    path = tmp_path / "container"
    path.mkdir()
    return path


@pytest.fixture
def dev_webapps(tmp_path):
    """../api-webapp 与 ../view-webapp 开发目录"""
    api = tmp_path / "api-webapp"
    view = tmp_path / "view-webapp"
    _write(api / "src/main/webapp/index.html", "<html>api</html>")
    _write(api / "src/main/webapp/WEB-INF/web.xml", "<web-app/>")
    _write(api / "target/webapp/WEB-INF/classes/api.properties", "solver=macmahon")
    _write(view / "src/main/webapp/index.html", "<html>view</html>")
    _write(view / "src/main/webapp/js/tour-standings.inc.js", "// standings")
    _write(view / "src/main/webapp/tour/index.html", "<html>tour</html>")
    _write(view / "target/webapp/WEB-INF/classes/translations/fr", "Bonjour")
    return api, view


@pytest.fixture
def war_archive(tmp_path):
    """自包含的生产归档"""
    path = tmp_path / "dist" / "pairgoth.war"
    path.parent.mkdir(parents=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in WAR_ENTRIES.items():
            zf.writestr(name, content)
    return path


@pytest.fixture
def make_settings():
    def factory(**overrides) -> Settings:
        values = {"LIVEWAR_LOCATION": "", "SERVER_HOST": "127.0.0.1", "LOG_TO_FILE": False}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory
