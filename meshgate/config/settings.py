"""Layered config: packaged defaults.yaml -> user YAML -> environment.

Defaults: loaded from meshgate/config/defaults.yaml (single source of truth, no code-level defaults).
The result is an immutable Settings object built once at startup and passed to every component.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from meshgate.core.errors import ConfigError

# Lazy-loaded packaged defaults
_DEFAULTS: Optional[Dict[str, Any]] = None

_TRANSPORTS = ("tcp", "ws")

# env var -> (section, key). work_dir is deliberately absent.
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "PORT": ("web", "port"),
    "IP": ("mesh", "ip"),
    "PEER": ("mesh", "peer"),
    "NAME": ("mesh", "network_name"),
    "SECRET": ("mesh", "network_secret"),
    "VLESS_UUID": ("proxy", "uuid"),
    "VLESS_PORT": ("proxy", "port"),
    "VLESS_PATH": ("proxy", "path"),
    "VLESS_TRANSPORT": ("proxy", "transport"),
    "SECRET_PATH": ("web", "secret_path"),
}


def _load_defaults() -> Dict[str, Any]:
    """Load defaults.yaml shipped next to this module."""
    global _DEFAULTS
    if _DEFAULTS is None:
        path = Path(__file__).resolve().parent / "defaults.yaml"
        with open(path, encoding="utf-8") as f:
            _DEFAULTS = yaml.safe_load(f) or {}
    return _DEFAULTS


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base. Override values take precedence."""
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env(cfg: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay ENV_OVERRIDES on cfg. Empty values are ignored."""
    overrides: Dict[str, Any] = {}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value
    return _deep_merge(cfg, overrides)


def _port(value: Any, field: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{field} must be an integer port, got {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"{field} out of range: {port}")
    return port


def _optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{field} must be an integer, got {value!r}") from None


def _seconds(value: Any, field: str) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{field} must be a number of seconds, got {value!r}") from None
    if seconds < 0:
        raise ConfigError(f"{field} must not be negative: {seconds}")
    return seconds


def _required(section: Mapping[str, Any], key: str, field: str) -> str:
    value = section.get(key)
    if value is None or str(value) == "":
        raise ConfigError(f"{field} must be set")
    return str(value)


def _secret_slug(value: Any) -> str:
    """Slug of the share-link route: one literal path segment, never empty."""
    slug = str(value or "").strip("/")
    if not slug or any(c in slug for c in "/{}?#") or slug in (".", ".."):
        raise ConfigError(f"web.secret_path must be a single non-empty path segment, got {value!r}")
    return slug


def _resolve(value: Any, base_dir: Optional[Path]) -> Path:
    """Relative paths resolve against base_dir (default: process cwd)."""
    path = Path(value)
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    return path


@dataclass(frozen=True)
class WebSettings:
    port: int
    host: str
    secret_path: str
    static_dir: Path


@dataclass(frozen=True)
class MeshSettings:
    url: str
    display_name: str
    binary_match: str
    ip: str
    peer: str
    network_name: str
    network_secret: str
    mtu: Optional[int]
    default_protocol: Optional[str]


@dataclass(frozen=True)
class ProxySettings:
    url: str
    display_name: str
    binary_match: str
    config_name: str
    uuid: str
    port: int
    transport: str
    path: str
    listen: Optional[str]
    log_level: str


@dataclass(frozen=True)
class SupervisorSettings:
    ready_port: Optional[int]
    ready_host: str
    ready_timeout: float
    start_delay: float
    extract_method: str


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration."""

    work_dir: Path
    web: WebSettings
    mesh: MeshSettings
    proxy: ProxySettings
    supervisor: SupervisorSettings

    @property
    def mesh_binary(self) -> Path:
        return self.work_dir / self.mesh.display_name

    @property
    def proxy_binary(self) -> Path:
        return self.work_dir / self.proxy.display_name

    @property
    def proxy_config_path(self) -> Path:
        return self.work_dir / self.proxy.config_name


def read_config(config_path: Optional[str] = None) -> Tuple[Dict[str, Any], Optional[str]]:
    """Load user YAML (arg, then MESHGATE_CONFIG, then config/config.yaml). Returns (config, resolved_path).

    A missing file is not an error: the packaged defaults cover every key.
    """
    config_path = config_path or os.environ.get("MESHGATE_CONFIG", "config/config.yaml")
    if not Path(config_path).exists():
        return {}, None
    resolved = str(Path(config_path).resolve())
    with open(resolved, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    return config, resolved


def load_settings(
    config: Optional[Dict[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    base_dir: Optional[Path] = None,
) -> Settings:
    """Build Settings from defaults, config overrides and env (os.environ when env is None)."""
    merged = _deep_merge(_load_defaults(), config or {})
    merged = _apply_env(merged, os.environ if env is None else env)

    web = merged.get("web") or {}
    mesh = merged.get("mesh") or {}
    proxy = merged.get("proxy") or {}
    sup = merged.get("supervisor") or {}

    transport = str(proxy.get("transport") or "tcp").lower()
    if transport not in _TRANSPORTS:
        raise ConfigError(f"proxy.transport must be one of {_TRANSPORTS}, got {transport!r}")

    extract_method = str(sup.get("extract_method") or "external")
    if extract_method not in ("external", "builtin"):
        raise ConfigError(f"supervisor.extract_method must be external or builtin, got {extract_method!r}")

    names = [str(mesh.get("display_name") or ""), str(proxy.get("display_name") or "")]
    for name in names:
        if not name or Path(name).name != name or name in (".", ".."):
            raise ConfigError(f"display_name must be a plain file name, got {name!r}")
    if names[0] == names[1]:
        raise ConfigError("mesh and proxy display_name must differ")

    work_dir = _resolve(merged.get("work_dir") or "sys_run", base_dir)

    ready_port = sup.get("ready_port")
    return Settings(
        work_dir=work_dir,
        web=WebSettings(
            port=_port(web.get("port"), "web.port"),
            host=str(web.get("host") or "::"),
            secret_path=_secret_slug(web.get("secret_path")),
            static_dir=_resolve(web.get("static_dir") or ".", base_dir),
        ),
        mesh=MeshSettings(
            url=_required(mesh, "url", "mesh.url"),
            display_name=str(mesh.get("display_name")),
            binary_match=_required(mesh, "binary_match", "mesh.binary_match"),
            ip=_required(mesh, "ip", "mesh.ip"),
            peer=_required(mesh, "peer", "mesh.peer"),
            network_name=_required(mesh, "network_name", "mesh.network_name"),
            network_secret=_required(mesh, "network_secret", "mesh.network_secret"),
            mtu=_optional_int(mesh.get("mtu"), "mesh.mtu"),
            default_protocol=mesh.get("default_protocol") or None,
        ),
        proxy=ProxySettings(
            url=_required(proxy, "url", "proxy.url"),
            display_name=str(proxy.get("display_name")),
            binary_match=_required(proxy, "binary_match", "proxy.binary_match"),
            config_name=str(proxy.get("config_name") or "sb.json"),
            uuid=_required(proxy, "uuid", "proxy.uuid"),
            port=_port(proxy.get("port"), "proxy.port"),
            transport=transport,
            path=str(proxy.get("path") or "/"),
            listen=proxy.get("listen") or None,
            log_level=str(proxy.get("log_level") or "info"),
        ),
        supervisor=SupervisorSettings(
            ready_port=_port(ready_port, "supervisor.ready_port") if ready_port else None,
            ready_host=str(sup.get("ready_host") or "127.0.0.1"),
            ready_timeout=_seconds(sup.get("ready_timeout", 30.0), "supervisor.ready_timeout"),
            start_delay=_seconds(sup.get("start_delay", 2.0), "supervisor.start_delay"),
            extract_method=extract_method,
        ),
    )
