"""pairgoth 容器"""

__version__ = "0.1.0"

__all__ = ["Bootstrap", "create_app", "main", "__version__"]


def __getattr__(name: str):
    if name in ("Bootstrap", "create_app", "main"):
        import importlib

        module_map = {
            "Bootstrap": "pairgoth_container.server",
            "create_app": "pairgoth_container.app_factory",
            "main": "pairgoth_container.__main__",
        }
        module = importlib.import_module(module_map[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'pairgoth_container' has no attribute '{name}'")
