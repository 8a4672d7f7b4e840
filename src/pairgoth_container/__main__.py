"""
pairgoth 容器主入口

判定运行模式并在单一监听端口上启动 API 与视图应用
"""

from loguru import logger

from pairgoth_container.config import settings
from pairgoth_container.logging import setup_logging
from pairgoth_container.server import Bootstrap


def main():
    """主函数"""
    setup_logging()
    try:
        Bootstrap(settings).run()
    except Exception:
        logger.opt(exception=True).critical("容器启动失败")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
