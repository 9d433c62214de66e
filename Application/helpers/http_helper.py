import codecs
import re
from typing import Optional

_XML_DECLARED_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*?encoding=["']([A-Za-z0-9._-]+)["']""")


def _declared_charset(r) -> Optional[str]:
    content_type = (getattr(r, "headers", None) or {}).get("Content-Type", "")
    if "charset=" in content_type.lower():
        return r.encoding
    return None


def response_encoding(r) -> str:
    """
    Pick the charset for a backend response body.

    An explicit ``charset`` on the Content-Type wins. Without one, requests
    falls back to ISO-8859-1 for every ``text/*`` type, which garbles the UTF-8
    that GeoServer and WPS servers actually send, so the XML declaration is
    consulted instead and UTF-8 is the last resort.
    """
    enc = _declared_charset(r)
    if not enc:
        match = _XML_DECLARED_ENCODING.match(r.content or b"")
        enc = match.group(1).decode("ascii") if match else "utf-8"
    try:
        return codecs.lookup(enc).name
    except LookupError:
        return "utf-8"


def decoded_text(r, max_chars: Optional[int] = None) -> str:
    text = (r.content or b"").decode(response_encoding(r), errors="replace")
    return text if max_chars is None else text[:max_chars]
