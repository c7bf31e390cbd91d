"""Proxy config generation."""

from meshgate.proxy.config_writer import build_proxy_config, write_proxy_config

__all__ = ["build_proxy_config", "write_proxy_config"]
