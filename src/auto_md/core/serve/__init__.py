"""Ready-made aiohttp apps: a demo site and a Markdown reverse proxy."""

from auto_md.core.serve.demo import create_demo_app, run_demo
from auto_md.core.serve.proxy import create_proxy_app, run_proxy

__all__ = ["create_demo_app", "create_proxy_app", "run_demo", "run_proxy"]
