"""用户接口模块

- WebServer: 门店后台 HTTP 接口（FastAPI + uvicorn 后台线程）

使用示例：
    ```python
    from interface import WebServer

    server = WebServer(db, port=8080)
    await server.startup()
    ```
"""
from .web.server import WebServer

__all__ = ["WebServer"]
