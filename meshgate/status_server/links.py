"""Client share link for the proxy, addressed through the mesh IP."""

from urllib.parse import quote, urlencode

from meshgate.config.settings import Settings


def vless_link(settings: Settings) -> str:
    """vless://uuid@mesh_ip:port?params#port. tcp uses headerType=none; ws carries the path."""
    proxy = settings.proxy
    params = {"security": "none", "encryption": "none", "type": proxy.transport}
    if proxy.transport == "ws":
        params["path"] = proxy.path
    else:
        params["headerType"] = "none"
    query = urlencode(params, quote_via=quote, safe="")
    return f"vless://{proxy.uuid}@{settings.mesh.ip}:{proxy.port}?{query}#{proxy.port}"
