"""Response serialization."""

CRLF = "\r\n"


def build_response(status_line: str, contents: str) -> bytes:
    """Serialize a status line and body into raw HTTP response bytes.

    Content-Length counts encoded bytes, not characters.
    """
    body = contents.encode("utf-8")
    head = f"{status_line}{CRLF}Content-Length: {len(body)}{CRLF}{CRLF}"
    return head.encode("utf-8") + body
