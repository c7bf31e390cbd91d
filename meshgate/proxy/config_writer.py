"""Generate the proxy's JSON config (VLESS inbound, direct outbound). Rewritten on every startup."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from meshgate.config.settings import ProxySettings

logger = logging.getLogger(__name__)

# tcp pairs with the mesh client's --no-tun mode, which only reaches IPv4 listeners
_DEFAULT_LISTEN = {"tcp": "0.0.0.0", "ws": "::"}


def build_proxy_config(proxy: ProxySettings) -> Dict[str, Any]:
    """Build the config document from settings. listen_port is always an int."""
    inbound: Dict[str, Any] = {
        "type": "vless",
        "tag": "in",
        "listen": proxy.listen or _DEFAULT_LISTEN[proxy.transport],
        "listen_port": int(proxy.port),
        "users": [{"uuid": proxy.uuid}],
    }
    if proxy.transport == "ws":
        inbound["transport"] = {"type": "ws", "path": proxy.path}
    else:
        inbound["network"] = "tcp"
    return {
        "log": {"output": "stdout", "level": proxy.log_level},
        "inbounds": [inbound],
        "outbounds": [{"type": "direct", "tag": "out"}],
    }


def write_proxy_config(proxy: ProxySettings, path: Union[str, Path]) -> Path:
    """Serialize build_proxy_config to path, replacing any previous content."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = build_proxy_config(proxy)
    path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
    logger.info(
        "Proxy config written to %s (transport=%s listen_port=%s)",
        path,
        proxy.transport,
        doc["inbounds"][0]["listen_port"],
    )
    return path
