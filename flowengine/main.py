"""ASGI entry point: ``uvicorn flowengine.main:app``."""

from .config import load_config
from .factory import create_app

app = create_app(load_config())


if __name__ == "__main__":
    import uvicorn
    from .config import get_config

    config = get_config()
    uvicorn.run(app, host=config.host, port=config.port)
